"""
Rerack Reindexer - move a side's standing cups into fresh pyramid slots.

Only the board snapshot changes. Shot events recorded before the rerack
keep their old cup ids, so after a rerack a historical cup id may name a
different physical cup; analytics must key on event id, not cup id.
"""

from dataclasses import replace
from typing import Optional, Sequence

from engine.board import Cup
from engine.layout import get_cup_positions


class RerackError(ValueError):
    """The requested slots do not fit the standing cups."""


def default_slots(standing: int) -> list[int]:
    """Front packing: fill the widest row first."""
    return list(range(standing))


def rerack_cups(cups: Sequence[Cup], cup_count: int,
                target_slots: Optional[Sequence[int]] = None) -> tuple[Cup, ...]:
    """
    Reassign slot ids and positions for one side.

    Standing cups move to `target_slots` (or the front packing); the sunk
    cups take the freed slots, so every slot stays occupied exactly once.

    Args:
        cups: The side's current cups
        cup_count: The rack size the side started with
        target_slots: Slot ids for the standing cups, one per standing cup

    Returns:
        The side's new cups, ordered by slot id

    Raises:
        RerackError: if the slots don't match the standing cups
    """
    positions = get_cup_positions(cup_count)
    standing = [c for c in cups if not c.sunk]
    sunk = [c for c in cups if c.sunk]

    if len(cups) != cup_count:
        raise RerackError(f"Expected {cup_count} cups, got {len(cups)}")
    if not standing:
        raise RerackError("No standing cups to rerack")
    if not sunk:
        raise RerackError("Rerack needs at least one sunk cup")

    slots = list(target_slots) if target_slots is not None else default_slots(len(standing))

    if len(slots) != len(standing):
        raise RerackError(
            f"Got {len(slots)} slots for {len(standing)} standing cups"
        )
    if len(set(slots)) != len(slots):
        raise RerackError(f"Duplicate slots: {slots}")
    invalid = [s for s in slots if not 0 <= s < cup_count]
    if invalid:
        raise RerackError(f"Slots out of range for a {cup_count}-cup rack: {invalid}")

    freed = [s for s in range(cup_count) if s not in set(slots)]

    # Standing cups keep their current order front-to-back
    standing.sort(key=lambda c: c.id)
    sunk.sort(key=lambda c: c.id)

    moved = [
        replace(cup, id=slot, position=positions[slot])
        for cup, slot in zip(standing, sorted(slots))
    ]
    moved += [
        replace(cup, id=slot, position=positions[slot])
        for cup, slot in zip(sunk, freed)
    ]
    return tuple(sorted(moved, key=lambda c: c.id))
