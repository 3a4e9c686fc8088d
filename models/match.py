"""
Match and participant models for recorded games.
"""

import enum
from datetime import datetime
from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Integer, ForeignKey, DateTime, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base

if TYPE_CHECKING:
    from models.shot import MadeShot


class GameType(enum.Enum):
    """Players per side."""
    ONE_VS_ONE = "1v1"
    TWO_VS_TWO = "2v2"


class Match(Base):
    """
    A match between two sides, each defending a rack of 6 or 10 cups.

    `completed` stays False for abandoned matches (did not finish).
    """
    __tablename__ = "matches"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    game_type: Mapped[GameType] = mapped_column(SAEnum(GameType), nullable=False)
    cup_count: Mapped[int] = mapped_column(Integer, nullable=False)  # 6 or 10

    # Timing
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    ended_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Result (set when the match completes)
    winning_side: Mapped[Optional[str]] = mapped_column(String(10), nullable=True)  # "team1"/"team2"
    team1_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    team2_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    completed: Mapped[bool] = mapped_column(default=False)

    # Relationships
    participants: Mapped[list["MatchParticipant"]] = relationship(
        back_populates="match", cascade="all, delete-orphan"
    )
    shots: Mapped[list["MadeShot"]] = relationship(
        back_populates="match", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<Match(id={self.id}, type={self.game_type.value}, cups={self.cup_count})>"

    def players_on(self, side: str) -> list["MatchParticipant"]:
        return [p for p in self.participants if p.side == side]


class MatchParticipant(Base):
    """A player on one side of a match."""
    __tablename__ = "match_participants"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    match_id: Mapped[str] = mapped_column(ForeignKey("matches.id"), nullable=False)
    handle: Mapped[str] = mapped_column(String(100), nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    side: Mapped[str] = mapped_column(String(10), nullable=False)  # "team1"/"team2"

    match: Mapped["Match"] = relationship(back_populates="participants")

    def __repr__(self) -> str:
        return f"<MatchParticipant(match={self.match_id}, handle='{self.handle}', side={self.side})>"
