"""
Path-keyed update debouncer.

Gesture channels emit a parameter update on nearly every frame. The
debouncer keeps only the newest value per path and commits the whole
batch once the stream has been quiet for the debounce interval.

Structure:
    _pending   path -> latest value (insertion order preserved)
    _timer     one shared threading.Timer, restarted on every push

Commit order is path-insertion order. A path re-pushed within the window
keeps its original position but takes the newest value.
"""

import logging
import threading
from typing import Callable

from core.types import GestureUpdate

logger = logging.getLogger(__name__)


class UpdateDebouncer:
    """Coalesces bursts of parameter updates into last-write-wins commits."""

    def __init__(self, commit: Callable, config: dict, timer_factory=threading.Timer):
        """
        Args:
            commit: Called as commit(path, value) for each flushed entry
            config: Debouncing config section
            timer_factory: threading.Timer compatible constructor
        """
        self._commit = commit
        self._delay_sec = config.get("debounce_ms", 100) / 1000.0
        self._timer_factory = timer_factory

        self._pending = {}
        self._timer = None
        self._lock = threading.Lock()

    def push(self, update: GestureUpdate):
        """Queue an update and restart the quiet-interval timer."""
        self.queue(update.path, update.value)

    def queue(self, path: str, value):
        with self._lock:
            self._pending[path] = value
            if self._timer is not None:
                self._timer.cancel()
            self._timer = self._timer_factory(self._delay_sec, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> list:
        """Commit every pending value now, in insertion order.

        Returns:
            list of (path, value, commit_result) tuples
        """
        with self._lock:
            batch = self._pending
            self._pending = {}
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

        committed = []
        for path, value in batch.items():
            result = self._commit(path, value)
            committed.append((path, value, result))
        if committed:
            logger.debug("Flushed %d debounced update(s)", len(committed))
        return committed

    def cancel(self):
        """Drop pending values and the timer."""
        with self._lock:
            dropped = len(self._pending)
            self._pending = {}
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
        if dropped:
            logger.debug("Cancelled %d pending update(s)", dropped)

    @property
    def pending(self) -> dict:
        with self._lock:
            return dict(self._pending)

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return bool(self._pending)
