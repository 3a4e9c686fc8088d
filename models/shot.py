"""
MadeShot model - one persisted row per shot event.

The board snapshot is not stored; it can be rebuilt from the event log.
"""

from typing import TYPE_CHECKING, Optional

from sqlalchemy import String, Integer, BigInteger, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from models.base import Base

if TYPE_CHECKING:
    from models.match import Match


class MadeShot(Base):
    """
    A single sunk cup.

    Bounce and grenade shots produce several rows sharing a group id.
    Undone shots are kept with `is_undone` set.
    """
    __tablename__ = "made_shots"

    # Same as the event id
    shot_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    match_id: Mapped[str] = mapped_column(ForeignKey("matches.id"), nullable=False, index=True)

    player_handle: Mapped[str] = mapped_column(String(100), nullable=False)
    user_id: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)

    # Slot id at the time of the shot; may name another cup after a rerack
    cup_index: Mapped[int] = mapped_column(Integer, nullable=False)
    side: Mapped[str] = mapped_column(String(10), nullable=False)
    timestamp: Mapped[int] = mapped_column(BigInteger, nullable=False)  # ms

    is_bounce: Mapped[bool] = mapped_column(default=False)
    is_grenade: Mapped[bool] = mapped_column(default=False)
    is_redemption: Mapped[bool] = mapped_column(default=False)
    is_undone: Mapped[bool] = mapped_column(default=False)
    bounce_group_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    grenade_group_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    team1_remaining: Mapped[int] = mapped_column(Integer, nullable=False)
    team2_remaining: Mapped[int] = mapped_column(Integer, nullable=False)

    match: Mapped["Match"] = relationship(back_populates="shots")

    def __repr__(self) -> str:
        return f"<MadeShot(id={self.shot_id}, match={self.match_id}, cup={self.cup_index})>"
