"""
Shot Forwarder - fire-and-forget delivery of shots to the match store.

Listens to the CupTracker and hands every store call to an executor
without waiting on it. Shots recorded before the match id is known are
held back and sent by the catch-up pass in `set_match_id`.
"""

import logging
import threading
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, Optional

from config import PERSISTENCE_SETTINGS
from engine.cup_tracker import CupTracker, MatchResult
from engine.event_log import ShotEvent
from services.match_store import MatchStore

logger = logging.getLogger(__name__)


class ShotForwarder:
    """
    Forwards tracker events to a MatchStore.

    Failures are logged and dropped; retrying is the store's business.

    Usage:
        forwarder = ShotForwarder(store)
        forwarder.attach(tracker)
        ...
        forwarder.set_match_id(match_id)   # sends anything held back
    """

    def __init__(self, store: MatchStore, executor: Optional[Executor] = None):
        self.store = store
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=PERSISTENCE_SETTINGS.forwarder_workers,
            thread_name_prefix="shot-forwarder",
        )
        self._lock = threading.Lock()
        self._match_id: Optional[str] = None
        self._pending: dict[str, ShotEvent] = {}
        self._pending_result: Optional[MatchResult] = None
        self._saved: set[str] = set()

    def attach(self, tracker: CupTracker) -> None:
        """Subscribe to a tracker's shot, undo and completion signals."""
        tracker.events_appended.connect(self.forward_events)
        tracker.events_undone.connect(self.forward_undo)
        tracker.match_completed.connect(self.forward_completion)

    @property
    def match_id(self) -> Optional[str]:
        return self._match_id

    @property
    def saved_event_ids(self) -> set[str]:
        with self._lock:
            return set(self._saved)

    @property
    def pending_event_ids(self) -> list[str]:
        with self._lock:
            return list(self._pending)

    def set_match_id(self, match_id: Optional[str]) -> None:
        """
        Record the match id once the store has created the match.

        Runs the catch-up pass: every held-back shot that is still active
        is sent, followed by a held-back completion.
        """
        if not match_id:
            logger.warning("Match store unavailable, playing offline")
            return

        with self._lock:
            self._match_id = match_id
            unsent = [e for e in self._pending.values() if e.event_id not in self._saved]
            self._pending.clear()
            result, self._pending_result = self._pending_result, None

        if unsent:
            logger.info("Saving %d unsaved shots (match id now available)", len(unsent))
        for event in unsent:
            self._submit_save(match_id, event)
        if result is not None:
            self._submit(self._complete, match_id, result)

    # ============ Signal Handlers ============

    def forward_events(self, events: list) -> None:
        with self._lock:
            match_id = self._match_id
            if match_id is None:
                for event in events:
                    self._pending[event.event_id] = event

        if match_id is None:
            logger.warning("No match id yet, %d shot(s) held for later", len(events))
            return

        for event in events:
            self._submit_save(match_id, event)

    def forward_undo(self, event_ids: list) -> None:
        to_send = []
        with self._lock:
            for event_id in event_ids:
                # Never sent: just drop it
                if self._pending.pop(event_id, None) is None:
                    to_send.append(event_id)
            offline = self._match_id is None

        if offline:
            return
        for event_id in to_send:
            self._submit(self._mark_undone, event_id)

    def forward_completion(self, result: MatchResult) -> None:
        with self._lock:
            match_id = self._match_id
            if match_id is None:
                self._pending_result = result

        if match_id is None:
            logger.warning("No match id yet, completion held for later")
            return
        self._submit(self._complete, match_id, result)

    # ============ Store Calls (worker side) ============

    def _submit(self, fn: Callable, *args) -> None:
        try:
            self._executor.submit(fn, *args)
        except RuntimeError:
            # Executor already shut down
            logger.error("Forwarder stopped, dropped %s%s", fn.__name__, args)

    def _submit_save(self, match_id: str, event: ShotEvent) -> None:
        self._submit(self._save, match_id, event)

    def _save(self, match_id: str, event: ShotEvent) -> None:
        try:
            ok = self.store.save_shot_event(match_id, event)
        except Exception:
            logger.exception("Failed to save shot %s", event.event_id)
            return

        if ok:
            with self._lock:
                self._saved.add(event.event_id)
        else:
            logger.error("Store rejected shot %s", event.event_id)

    def _mark_undone(self, event_id: str) -> None:
        try:
            ok = self.store.mark_event_undone(event_id)
        except Exception:
            logger.exception("Failed to mark shot %s undone", event_id)
            return
        if not ok:
            logger.error("Store rejected undo of shot %s", event_id)

    def _complete(self, match_id: str, result: MatchResult) -> None:
        try:
            ok = self.store.complete_match(match_id, result.winning_side,
                                           result.team1_score, result.team2_score)
        except Exception:
            logger.exception("Failed to complete match %s", match_id)
            return
        if not ok:
            logger.error("Store rejected completion of match %s", match_id)

    def shutdown(self, wait: bool = True) -> None:
        """Stop the executor if this forwarder created it."""
        if self._owns_executor:
            self._executor.shutdown(wait=wait)
