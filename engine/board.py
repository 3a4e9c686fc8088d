"""
Board data model: sides, cups, shot kinds and board snapshots.

Every value here is immutable. A change to the board always produces a
new BoardSnapshot, which is what lets the event log own the board.
"""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Optional

from engine.layout import CupPosition, get_cup_positions


class Side(Enum):
    """The two racks on the table."""
    TEAM1 = "team1"
    TEAM2 = "team2"

    @property
    def opponent(self) -> "Side":
        return Side.TEAM2 if self is Side.TEAM1 else Side.TEAM1


class ShotType(Enum):
    """How a cup was sunk."""
    REGULAR = "regular"
    BOUNCE = "bounce"      # two cups, same side
    GRENADE = "grenade"    # target plus every touching standing cup


@dataclass(frozen=True)
class ShotKind:
    """
    Tagged shot variant: REGULAR, BOUNCE(group_id) or GRENADE(group_id).

    Composite shots always carry the id that links their events;
    regular shots never do.
    """
    type: ShotType
    group_id: Optional[str] = None

    def __post_init__(self):
        if self.type is ShotType.REGULAR and self.group_id is not None:
            raise ValueError("Regular shots cannot carry a group id")
        if self.type is not ShotType.REGULAR and not self.group_id:
            raise ValueError(f"{self.type.value} shots require a group id")

    @classmethod
    def regular(cls) -> "ShotKind":
        return cls(ShotType.REGULAR)

    @classmethod
    def bounce(cls, group_id: str) -> "ShotKind":
        return cls(ShotType.BOUNCE, group_id)

    @classmethod
    def grenade(cls, group_id: str) -> "ShotKind":
        return cls(ShotType.GRENADE, group_id)

    @property
    def is_group(self) -> bool:
        return self.group_id is not None

    @property
    def is_bounce(self) -> bool:
        return self.type is ShotType.BOUNCE

    @property
    def is_grenade(self) -> bool:
        return self.type is ShotType.GRENADE

    @property
    def bounce_group_id(self) -> Optional[str]:
        return self.group_id if self.is_bounce else None

    @property
    def grenade_group_id(self) -> Optional[str]:
        return self.group_id if self.is_grenade else None


@dataclass(frozen=True)
class Player:
    """A participant; user_id is set when the player is signed in."""
    handle: str
    user_id: Optional[str] = None


@dataclass(frozen=True)
class Cup:
    """A single cup on one side's rack."""
    id: int
    position: CupPosition
    sunk: bool = False
    sunk_at: Optional[int] = None          # ms timestamp
    sunk_by: Optional[str] = None          # player handle
    shot_type: Optional[ShotType] = None

    def sink(self, timestamp: int, player_handle: str, shot_type: ShotType) -> "Cup":
        return replace(self, sunk=True, sunk_at=timestamp,
                       sunk_by=player_handle, shot_type=shot_type)

    def restore(self) -> "Cup":
        return replace(self, sunk=False, sunk_at=None, sunk_by=None, shot_type=None)


def initial_rack(cup_count: int) -> tuple[Cup, ...]:
    """A full rack with every cup standing, id == slot index."""
    return tuple(
        Cup(id=slot, position=pos)
        for slot, pos in enumerate(get_cup_positions(cup_count))
    )


@dataclass(frozen=True)
class BoardSnapshot:
    """Both racks at one instant."""
    team1: tuple[Cup, ...]
    team2: tuple[Cup, ...]

    @classmethod
    def initial(cls, cup_count: int) -> "BoardSnapshot":
        return cls(team1=initial_rack(cup_count), team2=initial_rack(cup_count))

    def cups(self, side: Side) -> tuple[Cup, ...]:
        return self.team1 if side is Side.TEAM1 else self.team2

    def find(self, side: Side, cup_id: int) -> Optional[Cup]:
        for cup in self.cups(side):
            if cup.id == cup_id:
                return cup
        return None

    def remaining(self, side: Side) -> int:
        return sum(1 for c in self.cups(side) if not c.sunk)

    def replace_side(self, side: Side, cups: tuple[Cup, ...]) -> "BoardSnapshot":
        if side is Side.TEAM1:
            return replace(self, team1=tuple(cups))
        return replace(self, team2=tuple(cups))

    def update_cups(self, side: Side, updates: dict[int, Cup]) -> "BoardSnapshot":
        """Swap in the cups in `updates` (keyed by cup id) on one side."""
        cups = tuple(updates.get(c.id, c) for c in self.cups(side))
        return self.replace_side(side, cups)

    def to_dict(self) -> dict:
        """Plain representation for display layers."""
        return {
            side.value: [
                {
                    "id": c.id,
                    "row": c.position.row,
                    "column": c.position.column,
                    "sunk": c.sunk,
                    "sunk_at": c.sunk_at,
                    "sunk_by": c.sunk_by,
                    "shot_type": c.shot_type.value if c.shot_type else None,
                }
                for c in self.cups(side)
            ]
            for side in Side
        }
