"""
CupTally Game Session

Top-level controller that wires the tracker, the shot forwarder, the
match store and the event bus together for one match.
"""

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, Optional

from PySide6.QtCore import QObject

from config import PERSISTENCE_SETTINGS
from engine.board import Player, ShotType, Side
from engine.cup_tracker import CupTracker, ShotResult
from models.match import GameType
from models.schemas import MatchCreate
from services.event_bus import EventBus
from services.match_store import MatchStore
from services.shot_forwarder import ShotForwarder

logger = logging.getLogger(__name__)


class GameSession(QObject):
    """
    One match from setup to completion.

    Input arriving after the match is complete is ignored here, at the
    boundary; the tracker itself only refuses already-sunk cups.
    """

    def __init__(self, setup: MatchCreate, store: MatchStore,
                 executor: Optional[Executor] = None,
                 event_bus: Optional[EventBus] = None,
                 clock: Optional[Callable[[], int]] = None):
        """
        Initialize the session.

        Args:
            setup: Validated match configuration
            store: Where matches and shots are persisted
            executor: Runs store calls (a private thread pool if omitted)
            event_bus: Bus to relay tracker signals to
            clock: Millisecond timestamp source for the tracker
        """
        super().__init__()
        self.setup = setup
        self.store = store
        self.event_bus = event_bus or EventBus()

        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=PERSISTENCE_SETTINGS.forwarder_workers,
            thread_name_prefix="match-store",
        )

        self.team1_players = [Player(p.handle, p.user_id) for p in setup.team1_players]
        self.team2_players = [Player(p.handle, p.user_id) for p in setup.team2_players]

        self.tracker = CupTracker(setup.cup_count, clock=clock)
        self.forwarder = ShotForwarder(store, self._executor)
        self.forwarder.attach(self.tracker)
        self._wire_event_bus()

    def _wire_event_bus(self) -> None:
        tracker, bus = self.tracker, self.event_bus
        tracker.board_updated.connect(bus.board_updated.emit)
        tracker.board_updated.connect(lambda _board: bus.undo_available.emit(tracker.can_undo))
        tracker.shot_recorded.connect(bus.shot_recorded.emit)
        tracker.shot_undone.connect(bus.shot_undone.emit)
        tracker.victory.connect(bus.victory.emit)
        tracker.redemption_played.connect(bus.redemption_played.emit)
        tracker.reracked.connect(bus.reracked.emit)
        tracker.match_completed.connect(lambda result: bus.match_completed.emit(result.to_dict()))

    # ============ Match Lifecycle ============

    def start(self) -> None:
        """Ask the store for a match id without waiting for it."""
        self._executor.submit(self._create_match)

    def _create_match(self) -> None:
        try:
            match_id = self.store.create_match(
                self.setup.game_type, self.setup.cup_count,
                self.team1_players, self.team2_players,
            )
        except Exception:
            logger.exception("Error creating match")
            match_id = None

        self.forwarder.set_match_id(match_id)
        if match_id:
            self.event_bus.match_created.emit(match_id)
        else:
            self.event_bus.emit_message("warning", "Match not saved - playing offline")

    @property
    def match_id(self) -> Optional[str]:
        return self.forwarder.match_id

    @property
    def is_match_complete(self) -> bool:
        return self.tracker.is_match_complete

    def close(self) -> None:
        """Wait for outstanding store calls and release the worker thread."""
        if self._owns_executor:
            self._executor.shutdown(wait=True)

    # ============ Player Actions ============

    def players_on(self, side: Side) -> list[Player]:
        return self.team1_players if side is Side.TEAM1 else self.team2_players

    def shooters_for(self, side: Side) -> list[str]:
        """Handles of the players who can sink cups on `side` (the other team)."""
        return [p.handle for p in self.players_on(side.opponent)]

    def sink_cup(self, side: Side, cup_id: int,
                 shot_type: ShotType = ShotType.REGULAR,
                 player_handle: Optional[str] = None,
                 second_cup_id: Optional[int] = None) -> Optional[ShotResult]:
        """
        Record a sink from the table view.

        In 1v1 the only possible shooter is picked automatically; in 2v2 the
        shooter must be named.
        """
        if self.is_match_complete:
            logger.debug("Ignoring sink on %s cup %s: match complete", side.value, cup_id)
            return None

        shooters = self.shooters_for(side)
        if player_handle is None and self.setup.game_type is GameType.ONE_VS_ONE:
            player_handle = shooters[0]
        if player_handle not in shooters:
            logger.warning("Rejecting sink on %s cup %s: %r cannot shoot at this side",
                           side.value, cup_id, player_handle)
            return None

        player = next(p for p in self.players_on(side.opponent) if p.handle == player_handle)
        return self.tracker.record_shot(
            side, cup_id, player.handle,
            shot_type=shot_type,
            second_cup_id=second_cup_id,
            player_id=player.user_id,
        )
