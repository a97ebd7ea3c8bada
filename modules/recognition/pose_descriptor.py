"""
Natural-language description of a held hand pose.

Used when a stable pose is captured: the text is written into the prompt
so the generated subject mirrors the user's pose.
"""

import numpy as np

from modules.detection.landmark_extractor import (
    LandmarkExtractor, WRIST, INDEX_TIP, INDEX_MCP, MIDDLE_TIP, MIDDLE_MCP,
    RING_TIP, RING_MCP, PINKY_TIP, PINKY_MCP,
)

DEFAULT_DESCRIPTOR = "in a relaxed, natural stance"

ORIENTATION_LEFT = "turned slightly left"
ORIENTATION_RIGHT = "turned slightly right"
POSITION_RAISED = "with arms raised"
POSITION_LOWERED = "with arms lowered"
SPREAD_WIDE = "in an expansive, welcoming pose"
SPREAD_NARROW = "in a contained, focused pose"
SPREAD_TOGETHER = "in a contemplative, centered pose"
GESTURE_OPEN = "with open palms"
GESTURE_POINTING = "gesturing directionally"
GESTURE_CLOSED = "with determined expression"

_TIP_MCP_PAIRS = [
    (INDEX_TIP, INDEX_MCP),
    (MIDDLE_TIP, MIDDLE_MCP),
    (RING_TIP, RING_MCP),
    (PINKY_TIP, PINKY_MCP),
]


class PoseDescriptor:
    """Builds pose text from one or two hands."""

    def __init__(self, config: dict = None):
        config = config or {}
        self._raised = config.get("raised_threshold", 0.35)
        self._lowered = config.get("lowered_threshold", 0.65)
        self._wide = config.get("wide_spread_threshold", 0.5)
        self._together = config.get("together_threshold", 0.15)
        self._bias = config.get("orientation_bias", 0.15)
        self._extend_margin = config.get("extend_margin", 0.05)
        self._extractor = LandmarkExtractor()

    def describe(self, hands: list) -> str:
        """Describe the pose of the given hands (primary first)."""
        frames = [f for f in (self._extractor.extract(h) for h in hands or []) if f is not None]
        if not frames:
            return DEFAULT_DESCRIPTOR

        wrists = np.array([f[WRIST][:2] for f in frames])
        parts = [
            self._orientation(wrists),
            self._height(wrists),
            self._spread(wrists),
            self._gesture(frames[0]),
        ]
        parts = [p for p in parts if p]
        if not parts:
            return DEFAULT_DESCRIPTOR
        return ", ".join(parts)

    def _orientation(self, wrists):
        avg_x = float(wrists[:, 0].mean())
        if avg_x < 0.5 - self._bias:
            return ORIENTATION_LEFT
        if avg_x > 0.5 + self._bias:
            return ORIENTATION_RIGHT
        return None

    def _height(self, wrists):
        # Smaller y is higher in the image
        avg_y = float(wrists[:, 1].mean())
        if avg_y < self._raised:
            return POSITION_RAISED
        if avg_y > self._lowered:
            return POSITION_LOWERED
        return None

    def _spread(self, wrists):
        if len(wrists) < 2:
            if abs(wrists[0][0] - 0.5) > self._wide / 2:
                return SPREAD_WIDE
            return SPREAD_NARROW
        separation = abs(wrists[0][0] - wrists[1][0])
        if separation > self._wide:
            return SPREAD_WIDE
        if separation < self._together:
            return SPREAD_TOGETHER
        return SPREAD_NARROW

    def _gesture(self, landmarks):
        extended = [
            landmarks[tip][1] < landmarks[mcp][1] - self._extend_margin
            for tip, mcp in _TIP_MCP_PAIRS
        ]
        count = sum(extended)
        if count >= 3:
            return GESTURE_OPEN
        if count == 1 and extended[0]:
            return GESTURE_POINTING
        if count == 0:
            return GESTURE_CLOSED
        return None


def landmarks_to_descriptor(hands: list, config: dict = None) -> str:
    """Convenience wrapper around PoseDescriptor.describe()."""
    return PoseDescriptor(config).describe(hands)
