"""
Pyramid Layout - slot positions for a rack of cups.

Row 0 is the widest row; every following row has one slot fewer,
ending in a single apex cup:

    6 cups:  [0] [1] [2]        10 cups:  [0] [1] [2] [3]
               [3] [4]                      [4] [5] [6]
                 [5]                          [7] [8]
                                                [9]

Slot index == cup id on a fresh rack.
"""

from dataclasses import dataclass

from config import RACK_SETTINGS


@dataclass(frozen=True)
class CupPosition:
    """A slot in the pyramid (row 0 = widest row)."""
    row: int
    column: int


def _row_sizes(cup_count: int) -> list[int]:
    """Row sizes for a triangular rack, e.g. 6 -> [3, 2, 1]."""
    if cup_count not in RACK_SETTINGS.supported_cup_counts:
        raise ValueError(
            f"Unsupported cup count: {cup_count} "
            f"(expected one of {RACK_SETTINGS.supported_cup_counts})"
        )

    sizes = []
    width = 1
    while sum(sizes) < cup_count:
        sizes.insert(0, width)
        width += 1
    return sizes


_LAYOUTS: dict[int, tuple[CupPosition, ...]] = {}


def get_cup_positions(cup_count: int) -> list[CupPosition]:
    """
    Generate the ordered slot positions for a rack.

    Args:
        cup_count: Number of cups (6 or 10)

    Returns:
        List of CupPosition, indexed by slot id
    """
    if cup_count not in _LAYOUTS:
        positions = []
        for row, size in enumerate(_row_sizes(cup_count)):
            for column in range(size):
                positions.append(CupPosition(row=row, column=column))
        _LAYOUTS[cup_count] = tuple(positions)

    return list(_LAYOUTS[cup_count])


def slot_for_position(cup_count: int) -> dict[CupPosition, int]:
    """Reverse lookup: position -> slot id."""
    return {pos: slot for slot, pos in enumerate(get_cup_positions(cup_count))}
