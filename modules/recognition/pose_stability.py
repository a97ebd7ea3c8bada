"""
Pose stability detection over a sliding window of landmark frames.

A pose counts as held when the mean per-landmark movement between
consecutive frames stays below a threshold. Holding it for the configured
duration arms a capture. A single noisy frame cancels the hold entirely.
"""

import time
import logging
from collections import deque

import numpy as np

from core.types import StabilityState
from modules.detection.landmark_extractor import to_landmark_array

logger = logging.getLogger(__name__)

# Reported when fewer than two comparable frames exist
_MAX_VARIANCE = 1.0


class PoseStabilityDetector:
    """Tracks inter-frame landmark movement and hold progress."""

    def __init__(self, config: dict, clock=time.monotonic):
        self._window_size = config.get("window_size", 30)
        self._threshold = config.get("variance_threshold", 0.02)
        self._hold_duration = config.get("hold_duration_sec", 2.0)
        self._clock = clock

        self._history = deque(maxlen=self._window_size)
        self._stable_since = None
        self._variance = _MAX_VARIANCE

    def update(self, landmarks) -> StabilityState:
        """Push a frame and return the resulting stability state."""
        frame = to_landmark_array(landmarks)
        if frame is not None:
            self._history.append(frame)

        self._variance = self._compute_variance()

        if self._variance < self._threshold:
            if self._stable_since is None:
                self._stable_since = self._clock()
                logger.debug("Pose stable (variance=%.4f), hold started", self._variance)
        elif self._stable_since is not None:
            logger.debug("Pose moved (variance=%.4f), hold cancelled", self._variance)
            self._stable_since = None

        return self.state

    def _compute_variance(self) -> float:
        """Mean per-landmark displacement across consecutive frame pairs."""
        if len(self._history) < 2:
            return _MAX_VARIANCE

        displacements = []
        frames = list(self._history)
        for prev, curr in zip(frames, frames[1:]):
            if prev.shape != curr.shape or len(curr) == 0:
                continue
            displacements.append(float(np.mean(np.linalg.norm(curr - prev, axis=1))))

        if not displacements:
            return _MAX_VARIANCE
        return float(np.mean(displacements))

    def should_capture(self) -> bool:
        """True once the pose has been held for the full hold duration."""
        return self._elapsed_stable() >= self._hold_duration

    def _elapsed_stable(self) -> float:
        if self._stable_since is None:
            return 0.0
        return self._clock() - self._stable_since

    def get_current_landmarks(self):
        """Copy of the newest frame, or None when empty."""
        if not self._history:
            return None
        return self._history[-1].copy()

    def reset(self):
        """Discard all buffered frames."""
        self._history.clear()
        self._stable_since = None
        self._variance = _MAX_VARIANCE

    @property
    def state(self) -> StabilityState:
        return StabilityState(
            is_stable=self.is_stable,
            hold_progress=self.hold_progress,
            variance=self._variance,
        )

    @property
    def is_stable(self) -> bool:
        return self._stable_since is not None

    @property
    def hold_progress(self) -> float:
        if self._stable_since is None:
            return 0.0
        if self._hold_duration <= 0:
            return 1.0
        return max(0.0, min(1.0, self._elapsed_stable() / self._hold_duration))

    @property
    def window_fill(self) -> float:
        """How full the window is (0.0 - 1.0)."""
        return len(self._history) / self._window_size
