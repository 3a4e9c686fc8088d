"""
CupTally Services

Application services for event handling and match persistence.
"""

from services.event_bus import EventBus
from services.match_store import MatchStore, SqlMatchStore
from services.shot_forwarder import ShotForwarder

__all__ = ["EventBus", "MatchStore", "SqlMatchStore", "ShotForwarder"]
