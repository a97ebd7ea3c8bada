"""
Lightweight event bus for decoupled inter-module communication.

Sessions publish parameter commits, captures, and generation outcomes
here; UI layers and collaboration peers subscribe without the session
knowing about them.

Usage:
    bus = EventBus()
    bus.subscribe(Events.PARAMETER_COMMITTED, my_handler)
    bus.emit(Events.PARAMETER_COMMITTED, path="lighting.conditions", value="...")
"""

import time
import logging
import threading
from collections import defaultdict
from typing import Callable

logger = logging.getLogger(__name__)


class EventBus:
    """Thread-safe publish/subscribe event bus.

    One bus per session, created by the composition root and passed to
    whoever needs it.
    """

    def __init__(self, max_history: int = 100):
        self._listeners = defaultdict(list)  # event_name -> [(priority, callback)]
        self._lock = threading.Lock()
        self._event_history = []
        self._max_history = max_history

    def subscribe(self, event_name: str, callback: Callable, priority: int = 0):
        """Register a listener for an event.

        Args:
            event_name: Event to listen for
            callback: Function to call. Receives **kwargs from emit().
            priority: Higher priority callbacks run first (default 0)
        """
        with self._lock:
            self._listeners[event_name].append((priority, callback))
            # Sort by priority descending (highest first)
            self._listeners[event_name].sort(key=lambda x: -x[0])
        logger.debug("Subscribed to '%s': %s (priority=%d)",
                     event_name, getattr(callback, "__name__", callback), priority)

    def emit(self, event_name: str, **kwargs):
        """Emit an event to all registered listeners.

        Listener exceptions are logged and do not reach the emitter.
        """
        with self._lock:
            listeners = list(self._listeners.get(event_name, []))
            self._event_history.append({
                "event": event_name,
                "time": time.time(),
                "data_keys": list(kwargs.keys()),
            })
            if len(self._event_history) > self._max_history:
                self._event_history = self._event_history[-self._max_history:]

        for priority, callback in listeners:
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error("Event handler error [%s -> %s]: %s",
                             event_name, getattr(callback, "__name__", callback), e)

    def get_history(self, last_n: int = 10) -> list:
        """Get recent event history."""
        with self._lock:
            return self._event_history[-last_n:]


# =============================================================================
# Standard Event Names (constants to avoid typos)
# =============================================================================

class Events:
    """Standard event names used throughout the system."""

    # Frame events
    HAND_DETECTED = "hand_detected"
    HAND_LOST = "hand_lost"
    POSE_CAPTURED = "pose_captured"
    PRESET_APPLIED = "preset_applied"

    # Prompt state
    PARAMETER_COMMITTED = "parameter_committed"
    PARAMETER_REJECTED = "parameter_rejected"

    # Generation
    GENERATION_TRIGGERED = "generation_triggered"
    GENERATION_STARTED = "generation_started"
    GENERATION_COMPLETED = "generation_completed"
    GENERATION_FAILED = "generation_failed"
