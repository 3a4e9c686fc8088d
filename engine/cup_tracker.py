"""
Cup Tracker - Core game logic for CupTally.

Records shots, undoes them, and runs the redemption / rerack branches.
The board is always derived from the EventLog; every operation mutates
the log and then reads the board back from it.
"""

import logging
import time
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from PySide6.QtCore import QObject, Signal

from engine.adjacency import get_touching_unsunk_cups, has_adjacency
from engine.board import BoardSnapshot, Cup, ShotKind, ShotType, Side
from engine.event_log import (
    AdjustmentKind,
    BoardAdjustment,
    EventGroup,
    EventLog,
    ShotEvent,
)
from engine.rerack import RerackError, rerack_cups

logger = logging.getLogger(__name__)


class TrackerState(Enum):
    """State machine states for the rack lifecycle."""
    ACTIVE = "active"
    REDEMPTION = "redemption"   # a side hit 0 cups, waiting for play-on or win
    COMPLETED = "completed"


@dataclass(frozen=True)
class ShotResult:
    """What a recorded shot did."""
    side: Side
    kind: ShotKind
    cup_ids: list[int]
    event_ids: list[str]
    team1_remaining: int
    team2_remaining: int
    losing_side: Optional[Side] = None

    @property
    def group_id(self) -> Optional[str]:
        return self.kind.group_id


@dataclass(frozen=True)
class MatchResult:
    """Final result handed to the match store."""
    winning_side: Side
    team1_score: int
    team2_score: int
    surrendered_side: Optional[Side] = None

    def to_dict(self) -> dict:
        return {
            "winning_side": self.winning_side.value,
            "team1_score": self.team1_score,
            "team2_score": self.team2_score,
            "surrendered_side": self.surrendered_side.value if self.surrendered_side else None,
        }


def _now_ms() -> int:
    return int(time.time() * 1000)


def _new_id() -> str:
    return uuid.uuid4().hex


class CupTracker(QObject):
    """
    Shot recorder and undo / redemption controller for one rack pair.
    Emits Qt Signals so display layers can react without polling.

    This tracker does NOT talk to the match store - the ShotForwarder
    listens to `events_appended` / `events_undone` for that.
    """

    # Signals
    board_updated = Signal(object)          # BoardSnapshot
    shot_recorded = Signal(dict)            # shot details
    shot_undone = Signal(dict)              # group that was undone
    events_appended = Signal(object)        # list[ShotEvent]
    events_undone = Signal(object)          # list[str] event ids
    victory = Signal(str)                   # losing side
    redemption_played = Signal(dict)        # side, restored cup ids
    reracked = Signal(str)                  # side
    match_completed = Signal(object)        # MatchResult
    state_changed = Signal(str)             # new state name

    def __init__(self, cup_count: int,
                 clock: Optional[Callable[[], int]] = None,
                 id_factory: Optional[Callable[[], str]] = None):
        """
        Initialize the tracker.

        Args:
            cup_count: Cups per side (6 or 10)
            clock: Millisecond timestamp source (defaults to wall clock)
            id_factory: Event/group id source (defaults to uuid4 hex)
        """
        super().__init__()
        # Building the initial board validates the cup count
        BoardSnapshot.initial(cup_count)

        self.cup_count = cup_count
        self._clock = clock or _now_ms
        self._new_id = id_factory or _new_id
        self._log = EventLog(cup_count)
        self._state = TrackerState.ACTIVE
        self._losing_side: Optional[Side] = None
        self._redemption_group: Optional[EventGroup] = None
        self._result: Optional[MatchResult] = None
        self._last_timestamp = 0

    def _next_timestamp(self) -> int:
        # Log order must follow recording order even if the clock steps back
        self._last_timestamp = max(self._clock(), self._last_timestamp)
        return self._last_timestamp

    # ============ State ============

    @property
    def state(self) -> TrackerState:
        return self._state

    @state.setter
    def state(self, new_state: TrackerState) -> None:
        if new_state is not self._state:
            self._state = new_state
            self.state_changed.emit(new_state.value)

    @property
    def log(self) -> EventLog:
        return self._log

    @property
    def board(self) -> BoardSnapshot:
        """The current board, always reconstructed from the log."""
        return self._log.reconstruct()

    @property
    def events(self) -> list[ShotEvent]:
        return self._log.events()

    @property
    def losing_side(self) -> Optional[Side]:
        return self._losing_side

    @property
    def result(self) -> Optional[MatchResult]:
        return self._result

    @property
    def is_match_complete(self) -> bool:
        return self._state is TrackerState.COMPLETED

    @property
    def can_undo(self) -> bool:
        return not self.is_match_complete and self._log.last_active_group() is not None

    def remaining(self, side: Side) -> int:
        return self.board.remaining(side)

    # ============ Shot Recorder ============

    def record_shot(self, side: Side, cup_id: int, player_handle: str,
                    shot_type: ShotType = ShotType.REGULAR,
                    second_cup_id: Optional[int] = None,
                    player_id: Optional[str] = None) -> Optional[ShotResult]:
        """
        Record a shot that sank cups on `side`.

        Args:
            side: The rack the cups were sunk on
            cup_id: The targeted cup
            player_handle: Who made the shot
            shot_type: REGULAR, BOUNCE or GRENADE
            second_cup_id: The companion cup for a bounce
            player_id: Signed-in user id of the shooter, if any

        Returns:
            ShotResult, or None if the shot was ignored or rejected
        """
        board = self.board
        target = board.find(side, cup_id)
        if target is None or target.sunk:
            logger.debug("Ignoring shot on %s cup %s: missing or already sunk",
                         side.value, cup_id)
            return None

        sink_ids = self._resolve_cups(board, side, cup_id, shot_type, second_cup_id)
        if sink_ids is None:
            return None

        if shot_type is ShotType.REGULAR:
            kind = ShotKind.regular()
        else:
            kind = ShotKind(shot_type, self._new_id())

        timestamp = self._next_timestamp()
        updates = {
            cid: board.find(side, cid).sink(timestamp, player_handle, shot_type)
            for cid in sink_ids
        }
        new_board = board.update_cups(side, updates)
        team1_remaining = new_board.remaining(Side.TEAM1)
        team2_remaining = new_board.remaining(Side.TEAM2)

        # All events of one shot share the instant, snapshot and counts
        events = self._log.append_shots(
            ShotEvent(
                event_id=self._new_id(),
                timestamp=timestamp,
                side=side,
                cup_id=cid,
                player_handle=player_handle,
                player_id=player_id,
                kind=kind,
                team1_remaining=team1_remaining,
                team2_remaining=team2_remaining,
                snapshot=new_board,
            )
            for cid in sink_ids
        )
        logger.info("%s shot by %s sank %s cups %s",
                    shot_type.value, player_handle, side.value, sink_ids)

        self.events_appended.emit(events)
        self.shot_recorded.emit({
            "side": side.value,
            "cup_ids": list(sink_ids),
            "event_ids": [e.event_id for e in events],
            "shot_type": shot_type.value,
            "group_id": kind.group_id,
            "player_handle": player_handle,
            "team1_remaining": team1_remaining,
            "team2_remaining": team2_remaining,
        })
        self._emit_board()

        losing = self._evaluate_victory()

        return ShotResult(
            side=side,
            kind=kind,
            cup_ids=list(sink_ids),
            event_ids=[e.event_id for e in events],
            team1_remaining=team1_remaining,
            team2_remaining=team2_remaining,
            losing_side=losing,
        )

    def _resolve_cups(self, board: BoardSnapshot, side: Side, cup_id: int,
                      shot_type: ShotType,
                      second_cup_id: Optional[int]) -> Optional[list[int]]:
        """Cup ids a shot sinks, target first; None if the input is incomplete."""
        if shot_type is ShotType.REGULAR:
            return [cup_id]

        if shot_type is ShotType.BOUNCE:
            companion = board.find(side, second_cup_id) if second_cup_id is not None else None
            if companion is None or companion.sunk or second_cup_id == cup_id:
                logger.warning("Rejecting bounce on %s cup %s: companion cup %s unavailable",
                               side.value, cup_id, second_cup_id)
                return None
            return [cup_id, second_cup_id]

        if not has_adjacency(self.cup_count):
            logger.warning("Rejecting grenade: no adjacency for a %s-cup rack", self.cup_count)
            return None
        touching = get_touching_unsunk_cups(cup_id, self.cup_count, board.cups(side))
        return [cup_id] + touching

    def _evaluate_victory(self) -> Optional[Side]:
        """Enter or leave redemption depending on whether a rack is empty."""
        board = self.board
        # The first side emptied keeps its redemption even if the other rack empties too
        pending = self._losing_side
        if self._state is TrackerState.REDEMPTION and pending and board.remaining(pending) == 0:
            return pending

        for side in Side:
            if board.remaining(side) == 0:
                self._losing_side = side
                self._redemption_group = self._log.last_active_group()
                self.state = TrackerState.REDEMPTION
                logger.info("%s has no cups left, redemption pending", side.value)
                self.victory.emit(side.value)
                return side

        self._losing_side = None
        self._redemption_group = None
        self.state = TrackerState.ACTIVE
        return None

    # ============ Undo / Redemption ============

    def get_last_active_group(self) -> Optional[EventGroup]:
        """The most recent active shot, expanded to its whole group."""
        return self._log.last_active_group()

    def undo(self) -> Optional[EventGroup]:
        """
        Undo the most recent shot (every event of its group).

        Later adjustments on the shot's side were taken from a rack that
        included it, so they are voided as well. Later adjustments on the
        other side stand; the shot's side is then rewound by a new
        UNDO_RESTORE adjustment on top of them.

        Returns:
            The undone EventGroup, or None if there was nothing to undo
        """
        if self.is_match_complete:
            logger.warning("Undo ignored: match is complete")
            return None

        group = self._log.last_active_group()
        if group is None:
            return None

        first = self._log.get(group.event_ids[0])
        later = self._log.active_adjustments_after(first.timestamp, first.sequence)
        stale = [a.adjustment_id for a in later if a.side is group.side]
        self._log.mark_undone(group.event_ids + stale)

        if any(a.side is not group.side for a in later):
            rack = self._log.board_before(first.timestamp, first.sequence).cups(group.side)
            current = self.board
            if current.cups(group.side) != rack:
                self._log.append_adjustment(BoardAdjustment(
                    adjustment_id=self._new_id(),
                    timestamp=self._next_timestamp(),
                    kind=AdjustmentKind.UNDO_RESTORE,
                    side=group.side,
                    snapshot=current.replace_side(group.side, rack),
                ))
        logger.info("Undid %s shot on %s cups %s", group.kind.type.value,
                    group.side.value, group.cup_ids)

        self.events_undone.emit(list(group.event_ids))
        self.shot_undone.emit({
            "side": group.side.value,
            "cup_ids": list(group.cup_ids),
            "event_ids": list(group.event_ids),
            "shot_type": group.kind.type.value,
            "group_id": group.group_id,
        })
        self._emit_board()
        self._evaluate_victory()
        return group

    def restore_cups(self, side: Side, cup_ids: Sequence[int]) -> list[int]:
        """
        Stand sunk cups back up without undoing the shots that sank them.

        Returns:
            The cup ids that were actually restored
        """
        board = self.board
        updates: dict[int, Cup] = {}
        for cid in cup_ids:
            cup = board.find(side, cid)
            if cup is not None and cup.sunk:
                updates[cid] = cup.restore()

        if not updates:
            return []

        self._log.append_adjustment(BoardAdjustment(
            adjustment_id=self._new_id(),
            timestamp=self._next_timestamp(),
            kind=AdjustmentKind.REDEMPTION_RESTORE,
            side=side,
            snapshot=board.update_cups(side, updates),
        ))
        self._emit_board()
        return list(updates)

    def redemption_play_on(self) -> list[int]:
        """
        The losing side keeps playing.

        Reopens one cup: the cup of a regular shot, the triggering cup of a
        bounce, or the targeted cup of a grenade. The shot stays in history.

        Returns:
            The restored cup ids (empty if no redemption was pending)
        """
        if self._state is not TrackerState.REDEMPTION or self._redemption_group is None:
            logger.warning("Play-on ignored in state %s", self._state.value)
            return []

        group = self._redemption_group
        restored = self.restore_cups(group.side, group.cup_ids[:1])

        self._losing_side = None
        self._redemption_group = None
        self.redemption_played.emit({"side": group.side.value, "cup_ids": restored})
        # The other rack may already be empty, which starts its redemption
        self._evaluate_victory()
        return restored

    def redemption_win(self) -> Optional[MatchResult]:
        """Finalize the match for the side that emptied the opponent's rack."""
        if self._state is not TrackerState.REDEMPTION or self._losing_side is None:
            logger.warning("Redemption win ignored in state %s", self._state.value)
            return None

        board = self.board
        result = MatchResult(
            winning_side=self._losing_side.opponent,
            team1_score=self.cup_count - board.remaining(Side.TEAM2),
            team2_score=self.cup_count - board.remaining(Side.TEAM1),
        )
        return self._complete(result)

    def surrender(self, side: Side) -> Optional[MatchResult]:
        """
        End the match with `side` conceding.

        The other side is credited with every cup the surrendering side
        still had standing; no shot event is changed.
        """
        if self.is_match_complete:
            logger.warning("Surrender ignored: match is complete")
            return None

        board = self.board
        winner = side.opponent
        scores = {
            winner: self.cup_count,
            side: self.cup_count - board.remaining(winner),
        }
        result = MatchResult(
            winning_side=winner,
            team1_score=scores[Side.TEAM1],
            team2_score=scores[Side.TEAM2],
            surrendered_side=side,
        )
        return self._complete(result)

    def _complete(self, result: MatchResult) -> MatchResult:
        self._result = result
        self._losing_side = None
        self._redemption_group = None
        self.state = TrackerState.COMPLETED
        logger.info("Match complete: %s wins %s-%s", result.winning_side.value,
                    result.team1_score, result.team2_score)
        self.match_completed.emit(result)
        return result

    # ============ Rerack ============

    def rerack(self, side: Side, target_slots: Optional[Sequence[int]] = None) -> bool:
        """
        Move the standing cups of `side` into fresh slots.

        Args:
            side: The side re-racking
            target_slots: Slot ids for the standing cups (front packing if omitted)

        Returns:
            True if the rack was rearranged
        """
        if self.is_match_complete:
            logger.warning("Rerack ignored: match is complete")
            return False

        board = self.board
        try:
            cups = rerack_cups(board.cups(side), self.cup_count, target_slots)
        except RerackError as e:
            logger.warning("Rerack of %s rejected: %s", side.value, e)
            return False

        self._log.append_adjustment(BoardAdjustment(
            adjustment_id=self._new_id(),
            timestamp=self._next_timestamp(),
            kind=AdjustmentKind.RERACK,
            side=side,
            snapshot=board.replace_side(side, cups),
        ))
        logger.info("Reracked %s into slots %s", side.value,
                    [c.id for c in cups if not c.sunk])
        self.reracked.emit(side.value)
        self._emit_board()
        return True

    def _emit_board(self) -> None:
        self.board_updated.emit(self.board)
