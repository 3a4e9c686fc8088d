"""
Cup adjacency for grenade shots.

Defines which slots are touching in the triangular packing. Tables are
built once per supported cup count when the module is imported.
"""

from typing import Iterable, Protocol

from config import RACK_SETTINGS
from engine.layout import CupPosition, get_cup_positions, slot_for_position


class _CupLike(Protocol):
    id: int
    sunk: bool


# Row r is offset half a cup from row r-1, so a cup touches two cups in
# the row above and two in the row below.
_NEIGHBOUR_OFFSETS = (
    (0, -1), (0, 1),    # same row
    (-1, 0), (-1, 1),   # wider row
    (1, -1), (1, 0),    # narrower row
)


def _build_table(cup_count: int) -> dict[int, frozenset[int]]:
    lookup = slot_for_position(cup_count)
    table = {}
    for slot, pos in enumerate(get_cup_positions(cup_count)):
        touching = set()
        for d_row, d_col in _NEIGHBOUR_OFFSETS:
            neighbour = CupPosition(row=pos.row + d_row, column=pos.column + d_col)
            if neighbour in lookup:
                touching.add(lookup[neighbour])
        table[slot] = frozenset(touching)
    return table


ADJACENCY_TABLES: dict[int, dict[int, frozenset[int]]] = {
    count: _build_table(count) for count in RACK_SETTINGS.supported_cup_counts
}


def has_adjacency(cup_count: int) -> bool:
    """Whether grenade resolution is defined for this rack size."""
    return cup_count in ADJACENCY_TABLES


def get_touching_cups(cup_id: int, cup_count: int) -> frozenset[int]:
    """
    Slot ids touching the given cup.

    Unknown ids (or rack sizes) give an empty set; callers treat that the
    same as a cup with no neighbours.
    """
    return ADJACENCY_TABLES.get(cup_count, {}).get(cup_id, frozenset())


def get_touching_unsunk_cups(cup_id: int, cup_count: int,
                             cups: Iterable[_CupLike]) -> list[int]:
    """Touching cup ids that are present in `cups` and still standing."""
    standing = {c.id for c in cups if not c.sunk}
    return sorted(standing & get_touching_cups(cup_id, cup_count))
