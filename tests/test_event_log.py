"""
Tests for the event log, board reconstruction and the shot kind variant.
"""

import pytest

from engine.board import BoardSnapshot, ShotKind, ShotType, Side
from engine.event_log import (
    AdjustmentKind,
    BoardAdjustment,
    EventLog,
    ShotEvent,
    reconstruct_board,
)


def shot(event_id, timestamp, cup_id, board, kind=None, side=Side.TEAM2):
    board = board.update_cups(side, {cup_id: board.find(side, cup_id).sink(timestamp, "amy", ShotType.REGULAR)})
    return ShotEvent(
        event_id=event_id,
        timestamp=timestamp,
        side=side,
        cup_id=cup_id,
        player_handle="amy",
        kind=kind or ShotKind.regular(),
        team1_remaining=board.remaining(Side.TEAM1),
        team2_remaining=board.remaining(Side.TEAM2),
        snapshot=board,
    )


class TestShotKind:
    """Tests for the tagged shot variant."""

    def test_regular_has_no_group(self):
        """A regular kind has no group ids."""
        kind = ShotKind.regular()

        assert not kind.is_group
        assert kind.bounce_group_id is None
        assert kind.grenade_group_id is None

    def test_bounce_exposes_bounce_group_only(self):
        """A bounce kind fills only the bounce group id."""
        kind = ShotKind.bounce("g1")

        assert kind.bounce_group_id == "g1"
        assert kind.grenade_group_id is None

    def test_regular_with_group_rejected(self):
        """A regular kind cannot carry a group id."""
        with pytest.raises(ValueError):
            ShotKind(ShotType.REGULAR, "g1")

    def test_grenade_without_group_rejected(self):
        """A grenade kind needs a group id."""
        with pytest.raises(ValueError):
            ShotKind(ShotType.GRENADE)


class TestEventLog:
    """Tests for appending, undoing and reconstructing."""

    def setup_method(self):
        """Set up an empty 6-cup log."""
        self.log = EventLog(6)
        self.start = BoardSnapshot.initial(6)

    def test_empty_log_reconstructs_initial_rack(self):
        """An empty log yields the full initial racks."""
        assert self.log.reconstruct() == self.start
        assert self.log.last_active_group() is None

    def test_append_assigns_sequence(self):
        """Appended entries are numbered in append order."""
        first = shot("e1", 100, 0, self.start)
        second = shot("e2", 100, 1, first.snapshot)

        appended = self.log.append_shots([first, second])

        assert [e.sequence for e in appended] == [0, 1]
        assert len(self.log) == 2

    def test_board_is_latest_active_snapshot(self):
        """The board is the snapshot of the newest active entry."""
        first = shot("e1", 100, 0, self.start)
        second = shot("e2", 200, 1, first.snapshot)
        self.log.append_shots([first])
        self.log.append_shots([second])

        assert self.log.reconstruct() == second.snapshot

    def test_mark_undone_keeps_entry(self):
        """Undone entries stay in the log and drop out of the board."""
        first = shot("e1", 100, 0, self.start)
        second = shot("e2", 200, 1, first.snapshot)
        self.log.append_shots([first])
        self.log.append_shots([second])

        changed = self.log.mark_undone(["e2"])

        assert [e.event_id for e in changed] == ["e2"]
        assert self.log.get("e2").is_undone
        assert len(self.log.events()) == 2
        assert self.log.reconstruct() == first.snapshot

    def test_mark_undone_skips_unknown_and_repeated_ids(self):
        """Unknown or already-undone ids are ignored."""
        self.log.append_shots([shot("e1", 100, 0, self.start)])
        self.log.mark_undone(["e1"])

        assert self.log.mark_undone(["e1", "missing"]) == []

    def test_events_sorted_by_timestamp_then_sequence(self):
        """Ordering follows timestamps, not append order."""
        late = shot("late", 300, 0, self.start)
        early = shot("early", 100, 1, self.start)
        self.log.append_shots([late])
        self.log.append_shots([early])

        assert [e.event_id for e in self.log.events()] == ["early", "late"]
        assert self.log.reconstruct() == late.snapshot

    def test_group_expands_to_active_members(self):
        """The last group lists every event of a composite shot, target first."""
        kind = ShotKind.grenade("g1")
        first = shot("e1", 100, 3, self.start, kind)
        second = shot("e2", 100, 0, first.snapshot, kind)
        self.log.append_shots([first, second])

        group = self.log.last_active_group()

        assert group.cup_ids == [3, 0]
        assert group.event_ids == ["e1", "e2"]
        assert group.group_id == "g1"

    def test_adjustment_becomes_board(self):
        """A board adjustment supplies the board without being a shot."""
        first = shot("e1", 100, 0, self.start)
        self.log.append_shots([first])
        restored = first.snapshot.update_cups(Side.TEAM2, {0: first.snapshot.find(Side.TEAM2, 0).restore()})
        self.log.append_adjustment(BoardAdjustment(
            adjustment_id="a1",
            timestamp=200,
            kind=AdjustmentKind.REDEMPTION_RESTORE,
            side=Side.TEAM2,
            snapshot=restored,
        ))

        assert self.log.reconstruct() == restored
        assert self.log.active_events() == [self.log.get("e1")]
        assert [a.adjustment_id for a in self.log.active_adjustments_after(100, 0)] == ["a1"]
        assert self.log.active_adjustments_after(200, 1) == []

    def test_board_before_position(self):
        """board_before ignores the entry at the position and everything after it."""
        first = shot("e1", 100, 0, self.start)
        second = shot("e2", 200, 1, first.snapshot)
        self.log.append_shots([first])
        self.log.append_shots([second])

        assert self.log.board_before(200, 1) == first.snapshot
        assert self.log.board_before(100, 0) == self.start

    def test_reconstruct_board_ignores_undone(self):
        """Reconstruction skips undone entries."""
        first = shot("e1", 100, 0, self.start)
        self.log.append_shots([first])
        self.log.mark_undone(["e1"])

        assert reconstruct_board(self.log.entries(), 6) == self.start
