"""
Event Log - append-only history of shots and board adjustments.

The board is never stored on its own: it is always the snapshot carried
by the most recent active entry in this log (or the initial rack when
there is none). Undo flips `is_undone`; nothing is ever removed.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Optional, Union

from engine.board import BoardSnapshot, ShotKind, Side


@dataclass(frozen=True)
class ShotEvent:
    """One sunk cup. Composite shots produce several events sharing a group id."""
    event_id: str
    timestamp: int
    side: Side
    cup_id: int
    player_handle: str
    kind: ShotKind
    team1_remaining: int
    team2_remaining: int
    snapshot: BoardSnapshot = field(repr=False)
    player_id: Optional[str] = None
    is_undone: bool = False
    sequence: int = -1

    @property
    def entry_id(self) -> str:
        return self.event_id

    @property
    def is_bounce(self) -> bool:
        return self.kind.is_bounce

    @property
    def is_grenade(self) -> bool:
        return self.kind.is_grenade

    @property
    def bounce_group_id(self) -> Optional[str]:
        return self.kind.bounce_group_id

    @property
    def grenade_group_id(self) -> Optional[str]:
        return self.kind.grenade_group_id

    @property
    def is_redemption(self) -> bool:
        """True when this shot left one side with no cups."""
        return self.team1_remaining == 0 or self.team2_remaining == 0

    def remaining(self, side: Side) -> int:
        return self.team1_remaining if side is Side.TEAM1 else self.team2_remaining


class AdjustmentKind(Enum):
    """Board changes that are not shots."""
    REDEMPTION_RESTORE = "redemption_restore"
    RERACK = "rerack"
    UNDO_RESTORE = "undo_restore"    # undone shot's side rewound under a later adjustment


@dataclass(frozen=True)
class BoardAdjustment:
    """A new snapshot written by redemption, rerack or undo. Never sent to the store."""
    adjustment_id: str
    timestamp: int
    kind: AdjustmentKind
    side: Side
    snapshot: BoardSnapshot = field(repr=False)
    is_undone: bool = False
    sequence: int = -1

    @property
    def entry_id(self) -> str:
        return self.adjustment_id


LogEntry = Union[ShotEvent, BoardAdjustment]


@dataclass(frozen=True)
class EventGroup:
    """The events of one player action (a single event for regular shots)."""
    side: Side
    cup_ids: list[int]
    event_ids: list[str]
    kind: ShotKind
    timestamp: int

    @property
    def group_id(self) -> Optional[str]:
        return self.kind.group_id


def _order_key(entry: LogEntry) -> tuple[int, int]:
    return (entry.timestamp, entry.sequence)


def reconstruct_board(entries: Iterable[LogEntry], cup_count: int) -> BoardSnapshot:
    """
    Fold a log into the current board.

    Returns the snapshot of the latest active entry ordered by
    (timestamp, sequence), or the initial rack if nothing is active.
    """
    latest = None
    for entry in entries:
        if entry.is_undone:
            continue
        if latest is None or _order_key(entry) > _order_key(latest):
            latest = entry

    if latest is None:
        return BoardSnapshot.initial(cup_count)
    return latest.snapshot


class EventLog:
    """
    Append-only log of ShotEvents and BoardAdjustments.

    Entries are frozen; `mark_undone` swaps an entry for a copy with the
    flag set, keeping its position. The reconstructed board is cached and
    recomputed after every mutation.
    """

    def __init__(self, cup_count: int):
        self.cup_count = cup_count
        self._entries: list[LogEntry] = []
        self._index: dict[str, int] = {}
        self._board: Optional[BoardSnapshot] = None

    def __len__(self) -> int:
        return len(self._entries)

    # ============ Mutation ============

    def _append(self, entry: LogEntry) -> LogEntry:
        entry = replace(entry, sequence=len(self._entries))
        self._index[entry.entry_id] = len(self._entries)
        self._entries.append(entry)
        self._board = None
        return entry

    def append_shots(self, events: Iterable[ShotEvent]) -> list[ShotEvent]:
        """Append the events of one shot; returns them with sequence numbers set."""
        return [self._append(e) for e in events]

    def append_adjustment(self, adjustment: BoardAdjustment) -> BoardAdjustment:
        return self._append(adjustment)

    def mark_undone(self, entry_ids: Iterable[str]) -> list[LogEntry]:
        """Soft-delete the given entries. Unknown or already-undone ids are skipped."""
        changed = []
        for entry_id in entry_ids:
            pos = self._index.get(entry_id)
            if pos is None or self._entries[pos].is_undone:
                continue
            self._entries[pos] = replace(self._entries[pos], is_undone=True)
            changed.append(self._entries[pos])

        if changed:
            self._board = None
        return changed

    # ============ Queries ============

    def get(self, entry_id: str) -> Optional[LogEntry]:
        pos = self._index.get(entry_id)
        return self._entries[pos] if pos is not None else None

    def entries(self) -> list[LogEntry]:
        """Every entry in append order, undone ones included."""
        return list(self._entries)

    def events(self, include_undone: bool = True) -> list[ShotEvent]:
        """Shot events in (timestamp, sequence) order."""
        shots = [
            e for e in self._entries
            if isinstance(e, ShotEvent) and (include_undone or not e.is_undone)
        ]
        return sorted(shots, key=_order_key)

    def active_events(self) -> list[ShotEvent]:
        return self.events(include_undone=False)

    def active_adjustments_after(self, timestamp: int, sequence: int) -> list[BoardAdjustment]:
        """Active adjustments ordered after the given position."""
        return [
            e for e in self._entries
            if isinstance(e, BoardAdjustment)
            and not e.is_undone
            and _order_key(e) > (timestamp, sequence)
        ]

    def board_before(self, timestamp: int, sequence: int) -> BoardSnapshot:
        """The board as it stood just before the given position."""
        earlier = [e for e in self._entries if _order_key(e) < (timestamp, sequence)]
        return reconstruct_board(earlier, self.cup_count)

    def last_active_group(self) -> Optional[EventGroup]:
        """
        The most recent active player action.

        Bounce and grenade events are expanded to every active event of
        their group, in recorded order (the target cup first).
        """
        active = self.active_events()
        if not active:
            return None

        latest = active[-1]
        if latest.kind.is_group:
            members = [e for e in active if e.kind.group_id == latest.kind.group_id]
        else:
            members = [latest]

        return EventGroup(
            side=latest.side,
            cup_ids=[e.cup_id for e in members],
            event_ids=[e.event_id for e in members],
            kind=latest.kind,
            timestamp=latest.timestamp,
        )

    def reconstruct(self) -> BoardSnapshot:
        """Current board, derived from the log."""
        if self._board is None:
            self._board = reconstruct_board(self._entries, self.cup_count)
        return self._board
