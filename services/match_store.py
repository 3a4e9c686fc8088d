"""
Match Store - persistence collaborator for recorded matches.

The tracker never calls the store directly; the ShotForwarder does, off
the calling thread. Every write method reports failure through its return
value and the log, never by raising, so a broken database cannot stop a
game in progress.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from engine.board import Player, Side
from engine.event_log import ShotEvent
from models.base import get_session
from models.match import GameType, Match, MatchParticipant
from models.schemas import MadeShotResponse, MatchResponse
from models.shot import MadeShot

logger = logging.getLogger(__name__)


class MatchStore(Protocol):
    """What the game needs from a match store."""

    def create_match(self, game_type: GameType, cup_count: int,
                     team1_players: Sequence[Player],
                     team2_players: Sequence[Player]) -> Optional[str]:
        """Returns the new match id, or None when the store is unavailable."""
        ...

    def save_shot_event(self, match_id: str, event: ShotEvent) -> bool:
        ...

    def mark_event_undone(self, event_id: str) -> bool:
        ...

    def complete_match(self, match_id: str, winning_side: Side,
                       team1_score: int, team2_score: int) -> bool:
        ...


def _utcnow() -> datetime:
    # SQLite DateTime columns are naive; store UTC without tzinfo
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_match_id() -> str:
    """e.g. match_1760745600000_3f9c2a1b7"""
    millis = int(datetime.now(timezone.utc).timestamp() * 1000)
    return f"match_{millis}_{uuid.uuid4().hex[:9]}"


def made_shot_from_event(match_id: str, event: ShotEvent) -> MadeShot:
    """Flatten a shot event into its persisted row (snapshot dropped)."""
    return MadeShot(
        shot_id=event.event_id,
        match_id=match_id,
        player_handle=event.player_handle or "",
        user_id=event.player_id,
        cup_index=event.cup_id,
        side=event.side.value,
        timestamp=event.timestamp,
        is_bounce=event.is_bounce,
        is_grenade=event.is_grenade,
        is_redemption=event.is_redemption,
        is_undone=event.is_undone,
        bounce_group_id=event.bounce_group_id,
        grenade_group_id=event.grenade_group_id,
        team1_remaining=event.team1_remaining,
        team2_remaining=event.team2_remaining,
    )


class SqlMatchStore:
    """MatchStore backed by SQLAlchemy (SQLite by default)."""

    def __init__(self, session_factory: sessionmaker[Session]):
        self._session_factory = session_factory

    def create_match(self, game_type: GameType, cup_count: int,
                     team1_players: Sequence[Player],
                     team2_players: Sequence[Player]) -> Optional[str]:
        match_id = new_match_id()
        participants = [
            MatchParticipant(handle=p.handle, user_id=p.user_id, side=side.value)
            for side, roster in ((Side.TEAM1, team1_players), (Side.TEAM2, team2_players))
            for p in roster
        ]

        try:
            with get_session(self._session_factory) as session:
                session.add(Match(
                    id=match_id,
                    game_type=game_type,
                    cup_count=cup_count,
                    started_at=_utcnow(),
                    completed=False,
                    participants=participants,
                ))
        except SQLAlchemyError:
            logger.exception("Error creating match")
            return None

        logger.info("Created match %s (%s, %s cups)", match_id, game_type.value, cup_count)
        return match_id

    def save_shot_event(self, match_id: str, event: ShotEvent) -> bool:
        if not match_id:
            logger.warning("No match id, shot %s not saved", event.event_id)
            return False

        try:
            with get_session(self._session_factory) as session:
                # merge: re-sending the same event overwrites its row
                session.merge(made_shot_from_event(match_id, event))
        except SQLAlchemyError:
            logger.exception("Error saving made shot %s (match %s, cup %s)",
                             event.event_id, match_id, event.cup_id)
            return False
        return True

    def mark_event_undone(self, event_id: str) -> bool:
        try:
            with get_session(self._session_factory) as session:
                shot = session.get(MadeShot, event_id)
                if shot is None:
                    logger.warning("Made shot %s not found, undo not saved", event_id)
                    return False
                shot.is_undone = True
        except SQLAlchemyError:
            logger.exception("Error marking made shot %s as undone", event_id)
            return False
        return True

    def complete_match(self, match_id: str, winning_side: Side,
                       team1_score: int, team2_score: int) -> bool:
        try:
            with get_session(self._session_factory) as session:
                match = session.get(Match, match_id)
                if match is None:
                    logger.error("Match not found: %s", match_id)
                    return False

                now = _utcnow()
                match.completed = True
                match.ended_at = now
                match.duration_seconds = max(0, int((now - match.started_at).total_seconds()))
                match.winning_side = winning_side.value
                match.team1_score = team1_score
                match.team2_score = team2_score
        except SQLAlchemyError:
            logger.exception("Error completing match %s", match_id)
            return False

        logger.info("Match %s completed: %s wins %s-%s", match_id,
                    winning_side.value, team1_score, team2_score)
        return True

    # ============ Query Methods ============

    def get_match(self, match_id: str) -> Optional[MatchResponse]:
        with get_session(self._session_factory) as session:
            match = session.get(Match, match_id)
            return MatchResponse.model_validate(match) if match else None

    def list_shots(self, match_id: str, include_undone: bool = True) -> list[MadeShotResponse]:
        """Shots of a match in recorded order."""
        stmt = select(MadeShot).where(MadeShot.match_id == match_id)
        if not include_undone:
            stmt = stmt.where(MadeShot.is_undone.is_(False))
        stmt = stmt.order_by(MadeShot.timestamp)

        with get_session(self._session_factory) as session:
            return [MadeShotResponse.model_validate(s) for s in session.scalars(stmt)]
