"""
Bounded, newest-first history of completed generations.
"""

import threading
from collections import deque
from typing import List, Optional

from core.types import GenerationResult


class GenerationHistory:
    """Keeps the most recent results; the oldest fall off the end."""

    def __init__(self, config: dict = None):
        config = config or {}
        self._items = deque(maxlen=config.get("max_history", 10))
        self._lock = threading.Lock()

    def add(self, result: GenerationResult):
        with self._lock:
            self._items.appendleft(result)

    def latest(self) -> Optional[GenerationResult]:
        with self._lock:
            return self._items[0] if self._items else None

    def items(self) -> List[GenerationResult]:
        with self._lock:
            return list(self._items)

    def clear(self):
        with self._lock:
            self._items.clear()

    def __len__(self):
        return len(self._items)
