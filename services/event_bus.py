"""
Event Bus - Central signal hub for inter-module communication.

Display layers connect to this single object rather than directly to the
tracker, so a new tracker can be swapped in per match without rewiring.
"""

from PySide6.QtCore import QObject, Signal


class EventBus(QObject):
    """
    Central signal hub for CupTally.

    The EventBus acts as a mediator between components:
    - GameSession relays tracker signals here
    - Display code listens and re-renders the racks

    Usage:
        # In a display widget
        self.event_bus.board_updated.connect(self._on_board_updated)
    """

    # ============ Match Lifecycle ============
    match_created = Signal(str)         # match_id
    match_completed = Signal(dict)      # MatchResult.to_dict()

    # ============ Board Events ============
    board_updated = Signal(object)      # BoardSnapshot
    shot_recorded = Signal(dict)        # shot details
    shot_undone = Signal(dict)          # group that was undone
    undo_available = Signal(bool)

    # ============ End-of-Rack Events ============
    victory = Signal(str)               # losing side
    redemption_played = Signal(dict)    # side, restored cup ids
    reracked = Signal(str)              # side

    # ============ System Events ============
    system_message = Signal(str, str)   # (level, message) - e.g., ("info", "Match saved")

    def __init__(self):
        super().__init__()

    def emit_message(self, level: str, message: str) -> None:
        """Emit a system message (info, warning, error)."""
        self.system_message.emit(level, message)
