"""
Tests for the rerack reindexer and the tracker's rerack operation.
"""

import itertools

import pytest
from unittest.mock import MagicMock

from engine.board import ShotType, Side, initial_rack
from engine.cup_tracker import CupTracker
from engine.event_log import AdjustmentKind, BoardAdjustment, reconstruct_board
from engine.layout import get_cup_positions
from engine.rerack import RerackError, default_slots, rerack_cups


def sunk_rack(cup_count, sunk):
    return tuple(
        c.sink(1000, "amy", ShotType.REGULAR) if c.id in sunk else c
        for c in initial_rack(cup_count)
    )


class TestRerackCups:
    """Tests for the pure slot reassignment."""

    def test_default_slots_pack_front_row(self):
        """Default slots fill from the front of the pyramid."""
        assert default_slots(3) == [0, 1, 2]

    def test_standing_cups_move_to_front(self):
        """With default slots the standing cups take the lowest ids."""
        cups = rerack_cups(sunk_rack(6, {0, 1, 2}), 6)

        assert [c.id for c in cups] == list(range(6))
        assert [c.sunk for c in cups] == [False, False, False, True, True, True]

    def test_positions_follow_new_slots(self):
        """Every moved cup takes the position of its new slot."""
        positions = get_cup_positions(10)
        cups = rerack_cups(sunk_rack(10, set(range(6))), 10, [4, 5, 6, 9])

        for cup in cups:
            assert cup.position == positions[cup.id]
        assert sorted(c.id for c in cups if not c.sunk) == [4, 5, 6, 9]

    def test_sunk_cups_keep_their_history(self):
        """Sunk cups moved into freed slots keep who sank them."""
        cups = rerack_cups(sunk_rack(6, {0}), 6, [1, 2, 3, 4, 5])

        moved = next(c for c in cups if c.sunk)
        assert moved.id == 0
        assert moved.sunk_by == "amy"

    def test_every_slot_occupied_once(self):
        """After a rerack each slot id appears exactly once."""
        cups = rerack_cups(sunk_rack(10, {0, 3, 7, 9}), 10, [0, 1, 2, 4, 5, 8])

        assert sorted(c.id for c in cups) == list(range(10))

    def test_wrong_slot_count_raises(self):
        """The slot list must have one slot per standing cup."""
        with pytest.raises(RerackError, match="slots"):
            rerack_cups(sunk_rack(6, {0, 1}), 6, [0, 1])

    def test_duplicate_slots_raise(self):
        """Two cups cannot share a slot."""
        with pytest.raises(RerackError, match="Duplicate"):
            rerack_cups(sunk_rack(6, {0, 1, 2, 3}), 6, [2, 2])

    def test_out_of_range_slots_raise(self):
        """Slots must exist in the rack."""
        with pytest.raises(RerackError, match="out of range"):
            rerack_cups(sunk_rack(6, {0, 1, 2, 3}), 6, [5, 6])

    def test_full_rack_cannot_rerack(self):
        """A rack with nothing sunk has no free slots."""
        with pytest.raises(RerackError):
            rerack_cups(initial_rack(6), 6)

    def test_empty_rack_cannot_rerack(self):
        """A rack with nothing standing has nothing to move."""
        with pytest.raises(RerackError):
            rerack_cups(sunk_rack(6, set(range(6))), 6, [])

    def test_rerack_error_is_value_error(self):
        """RerackError is a ValueError."""
        assert issubclass(RerackError, ValueError)


class TestTrackerRerack:
    """Tests for CupTracker.rerack."""

    def setup_method(self):
        """Set up a tracker with a rerack listener."""
        ticks = itertools.count(1_000, 10)
        self.tracker = CupTracker(6, clock=lambda: next(ticks))
        self.reracked_mock = MagicMock()
        self.tracker.reracked.connect(self.reracked_mock)

    def _sink(self, side, cup_ids):
        for cup_id in cup_ids:
            self.tracker.record_shot(side, cup_id, "amy")

    def _standing(self, side):
        return [c.id for c in self.tracker.board.cups(side) if not c.sunk]

    def test_rerack_rearranges_board_only(self):
        """A rerack moves cups without touching recorded events."""
        self._sink(Side.TEAM2, (0, 1, 2))

        assert self.tracker.rerack(Side.TEAM2)

        assert self._standing(Side.TEAM2) == [0, 1, 2]
        assert [e.cup_id for e in self.tracker.events] == [0, 1, 2]
        self.reracked_mock.assert_called_once_with("team2")

    def test_rerack_leaves_other_side_alone(self):
        """Reracking one side leaves the other rack unchanged."""
        self.tracker.record_shot(Side.TEAM1, 5, "bob")
        self.tracker.record_shot(Side.TEAM2, 0, "amy")
        before = self.tracker.board.cups(Side.TEAM1)

        self.tracker.rerack(Side.TEAM2, [1, 2, 3, 4, 5])

        assert self.tracker.board.cups(Side.TEAM1) == before

    def test_rejected_rerack_returns_false(self):
        """A full rack cannot be reracked."""
        assert not self.tracker.rerack(Side.TEAM1)
        self.reracked_mock.assert_not_called()

    def test_undo_of_earlier_shot_voids_rerack(self):
        """Undoing a shot voids a later rerack of the same side."""
        self._sink(Side.TEAM2, (0, 1, 2))
        self.tracker.rerack(Side.TEAM2)

        self.tracker.undo()

        sunk = {c.id for c in self.tracker.board.cups(Side.TEAM2) if c.sunk}
        assert sunk == {0, 1}

    def test_undo_keeps_other_side_rerack(self):
        """Undoing a shot on one side keeps a later rerack of the other side."""
        self._sink(Side.TEAM1, (0, 1, 2))
        self.tracker.record_shot(Side.TEAM2, 0, "amy")
        self.tracker.rerack(Side.TEAM1)
        after_rerack = self.tracker.board.cups(Side.TEAM1)

        group = self.tracker.undo()

        assert group.side == Side.TEAM2
        assert self.tracker.board.cups(Side.TEAM1) == after_rerack
        assert self._standing(Side.TEAM1) == [0, 1, 2]
        assert self.tracker.remaining(Side.TEAM2) == 6
        assert self.tracker.board == reconstruct_board(self.tracker.log.entries(), 6)

    def test_undo_restore_is_logged_as_adjustment(self):
        """The rewound side is written as an undo-restore entry."""
        self._sink(Side.TEAM1, (0, 1, 2))
        self.tracker.record_shot(Side.TEAM2, 0, "amy")
        self.tracker.rerack(Side.TEAM1)

        self.tracker.undo()

        adjustments = [e for e in self.tracker.log.entries() if isinstance(e, BoardAdjustment)]
        assert [a.kind for a in adjustments] == [AdjustmentKind.RERACK, AdjustmentKind.UNDO_RESTORE]
        assert not any(a.is_undone for a in adjustments)
        assert adjustments[-1].side == Side.TEAM2

    def test_second_undo_rewinds_reracked_side(self):
        """Undoing the shots under a kept rerack voids the rerack in turn."""
        self._sink(Side.TEAM1, (0, 1, 2))
        self.tracker.record_shot(Side.TEAM2, 0, "amy")
        self.tracker.rerack(Side.TEAM1)
        self.tracker.undo()

        self.tracker.undo()

        sunk = {c.id for c in self.tracker.board.cups(Side.TEAM1) if c.sunk}
        assert sunk == {0, 1}
        assert self.tracker.remaining(Side.TEAM2) == 6
        assert self.tracker.board == reconstruct_board(self.tracker.log.entries(), 6)

    def test_shot_after_rerack_uses_new_slots(self):
        """Shots after a rerack address the new slot ids."""
        self._sink(Side.TEAM2, (0, 1, 2))
        self.tracker.rerack(Side.TEAM2)

        result = self.tracker.record_shot(Side.TEAM2, 0, "amy")

        assert result is not None
        assert self.tracker.remaining(Side.TEAM2) == 2
