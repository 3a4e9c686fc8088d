"""
CupTally Game Engine

Core rack-tracking logic: layout, adjacency, event log, shots, undo,
redemption and rerack. This module contains no GUI dependencies.
"""

from engine.board import BoardSnapshot, Cup, Player, ShotKind, ShotType, Side
from engine.cup_tracker import CupTracker, MatchResult, ShotResult, TrackerState
from engine.event_log import EventGroup, EventLog, ShotEvent, reconstruct_board
from engine.layout import CupPosition, get_cup_positions
from engine.adjacency import get_touching_cups, get_touching_unsunk_cups
from engine.rerack import RerackError, rerack_cups

__all__ = [
    "BoardSnapshot",
    "Cup",
    "CupPosition",
    "CupTracker",
    "EventGroup",
    "EventLog",
    "MatchResult",
    "Player",
    "RerackError",
    "ShotEvent",
    "ShotKind",
    "ShotResult",
    "ShotType",
    "Side",
    "TrackerState",
    "get_cup_positions",
    "get_touching_cups",
    "get_touching_unsunk_cups",
    "reconstruct_board",
    "rerack_cups",
]
