"""
Continuous hand geometry -> discrete prompt parameter updates.

Channels:
    pinch distance          -> photographic_characteristics.lens_focal_length
    wrist tilt              -> photographic_characteristics.camera_angle
    wrist height            -> lighting.conditions
    two-hand span/alignment -> aesthetics.composition

Each channel is a pure function of its input frame and returns a
GestureUpdate or None when the feature cannot be derived. The only state
kept here is the last definite hand classification used by the
generation trigger edge detector.
"""

import math
import logging
from typing import List, Optional

import numpy as np

from core.types import GestureUpdate, HandState
from modules.detection.landmark_extractor import (
    LandmarkExtractor, WRIST, MIDDLE_MCP, THUMB_TIP, INDEX_TIP,
)
from modules.state.prompt_schema import Paths

logger = logging.getLogger(__name__)

# (max field of view in degrees, lens descriptor), narrowest first; bounds inclusive
FOCAL_LENGTH_BUCKETS = [
    (45, "200mm telephoto"),
    (55, "85mm portrait"),
    (70, "50mm standard"),
    (90, "35mm wide"),
    (math.inf, "24mm ultra-wide"),
]

# (exclusive upper tilt bound in degrees, camera angle descriptor)
CAMERA_ANGLE_BUCKETS = [
    (-15, "low dutch tilt"),
    (15, "eye level"),
    (45, "high angle"),
    (math.inf, "bird's eye view"),
]

# (exclusive upper wrist-Y bound, lighting descriptor); y=0 is the top of the frame
LIGHTING_BUCKETS = [
    (0.3, "night, moonlight from above"),
    (0.5, "golden hour from top"),
    (0.7, "soft volumetric god rays from left"),
    (math.inf, "bright studio lighting"),
]

COMPOSITION_CENTERED = "subject centered"
COMPOSITION_THIRDS = "rule of thirds"
COMPOSITION_PANORAMIC = "panoramic composition"


def _bucket(value: float, buckets, inclusive: bool = False) -> str:
    for bound, label in buckets:
        if value < bound or (inclusive and value == bound):
            return label
    return buckets[-1][1]


class GestureMapper:
    """Maps landmark frames to semantic parameter updates."""

    def __init__(self, config: dict):
        pinch_cfg = config.get("pinch", {})
        self._pinch_min = pinch_cfg.get("min_distance", 0.02)
        self._pinch_max = pinch_cfg.get("max_distance", 0.25)
        self._fov_min = pinch_cfg.get("fov_min", 35.0)
        self._fov_max = pinch_cfg.get("fov_max", 120.0)

        comp_cfg = config.get("composition", {})
        self._panoramic_span = comp_cfg.get("panoramic_span", 0.5)
        self._level_tolerance = comp_cfg.get("level_tolerance", 0.15)
        self._center_band = tuple(comp_cfg.get("center_band", (0.4, 0.6)))

        trigger_cfg = config.get("trigger", {})
        self._fist_threshold = trigger_cfg.get("fist_threshold", 0.15)
        self._open_threshold = trigger_cfg.get("open_threshold", 0.25)

        self._extractor = LandmarkExtractor()
        self._previous_state = None

    # =========================================================================
    # Single-hand channels
    # =========================================================================

    def map_pinch_to_focal_length(self, landmarks) -> Optional[GestureUpdate]:
        """Thumb-index pinch distance -> lens focal length.

        A tight pinch is a narrow field of view (telephoto); a wide pinch
        opens up to ultra-wide.
        """
        points = self._extractor.extract(landmarks)
        if points is None:
            return None

        distance = self._extractor.get_thumb_index_distance(points)
        if distance < self._pinch_min or distance > self._pinch_max:
            return None

        normalized = (distance - self._pinch_min) / (self._pinch_max - self._pinch_min)
        fov = self._fov_min + normalized * (self._fov_max - self._fov_min)

        depth_delta = abs(points[THUMB_TIP][2] - points[INDEX_TIP][2])
        depth_consistency = max(0.0, 1.0 - depth_delta * 10)
        confidence = ((1.0 - distance / self._pinch_max) + depth_consistency) / 2.0

        return GestureUpdate(
            path=Paths.LENS_FOCAL_LENGTH,
            value=_bucket(fov, FOCAL_LENGTH_BUCKETS, inclusive=True),
            confidence=_clamp(confidence),
        )

    def map_wrist_tilt_to_camera_angle(self, landmarks) -> Optional[GestureUpdate]:
        """Tilt of the wrist -> middle MCP vector from vertical -> camera angle.

        0 degrees is an upright hand; positive tilt leans toward +x.
        """
        points = self._extractor.extract(landmarks)
        if points is None:
            return None

        dx = points[MIDDLE_MCP][0] - points[WRIST][0]
        dy = points[MIDDLE_MCP][1] - points[WRIST][1]
        if dx == 0 and dy == 0:
            return None

        # Image y grows downward, so an upright hand has dy < 0
        tilt = math.degrees(math.atan2(dx, -dy))
        confidence = min(1.0, abs(math.cos(math.radians(tilt))) + 0.5)

        return GestureUpdate(
            path=Paths.CAMERA_ANGLE,
            value=_bucket(tilt, CAMERA_ANGLE_BUCKETS),
            confidence=confidence,
        )

    def map_vertical_position_to_lighting(self, landmarks) -> Optional[GestureUpdate]:
        """Wrist height in frame -> lighting conditions (top = night)."""
        points = self._extractor.extract(landmarks)
        if points is None:
            return None

        y = _clamp(float(points[WRIST][1]))
        boundaries = [bound for bound, _ in LIGHTING_BUCKETS[:-1]]
        edge_distance = min(abs(y - b) for b in boundaries)

        return GestureUpdate(
            path=Paths.LIGHTING_CONDITIONS,
            value=_bucket(y, LIGHTING_BUCKETS),
            confidence=_clamp(0.5 + edge_distance * 5, 0.5, 1.0),
        )

    # =========================================================================
    # Two-hand channel
    # =========================================================================

    def map_two_hands_to_composition(self, first, second) -> Optional[GestureUpdate]:
        """Wrist separation and alignment of two hands -> composition."""
        a = self._extractor.extract(first)
        b = self._extractor.extract(second)
        if a is None or b is None:
            return None

        wrist_a, wrist_b = a[WRIST], b[WRIST]
        separation = abs(wrist_a[0] - wrist_b[0])
        offset = abs(wrist_a[1] - wrist_b[1])
        mid_x = (wrist_a[0] + wrist_b[0]) / 2.0
        mid_y = (wrist_a[1] + wrist_b[1]) / 2.0
        low, high = self._center_band

        if separation > self._panoramic_span and offset < self._level_tolerance:
            value = COMPOSITION_PANORAMIC
            confidence = 1.0 - offset / self._level_tolerance * 0.5
        elif low <= mid_x <= high and low <= mid_y <= high:
            value = COMPOSITION_CENTERED
            center_offset = max(abs(mid_x - 0.5), abs(mid_y - 0.5))
            confidence = 1.0 - center_offset / max(high - 0.5, 1e-6) * 0.5
        else:
            value = COMPOSITION_THIRDS
            confidence = 0.7

        return GestureUpdate(
            path=Paths.COMPOSITION,
            value=value,
            confidence=_clamp(confidence),
        )

    def map_all(self, hands: list) -> List[GestureUpdate]:
        """Run every channel that applies to this frame.

        Args:
            hands: landmark containers, primary hand first
        """
        if not hands:
            return []

        primary = hands[0]
        candidates = [
            self.map_pinch_to_focal_length(primary),
            self.map_wrist_tilt_to_camera_angle(primary),
            self.map_vertical_position_to_lighting(primary),
        ]
        if len(hands) >= 2:
            candidates.append(self.map_two_hands_to_composition(hands[0], hands[1]))
        return [u for u in candidates if u is not None]

    # =========================================================================
    # Generation trigger
    # =========================================================================

    def classify_hand_state(self, landmarks) -> Optional[HandState]:
        """FIST when every non-thumb tip hugs the palm, OPEN when all are far."""
        points = self._extractor.extract(landmarks)
        if points is None:
            return None

        distances = self._extractor.get_finger_tip_to_palm_distances(points)
        fingers = [distances[name] for name in ("index", "middle", "ring", "pinky")]

        if all(d < self._fist_threshold for d in fingers):
            return HandState.FIST
        if all(d > self._open_threshold for d in fingers):
            return HandState.OPEN
        return HandState.PARTIAL

    def detect_generation_trigger(self, landmarks) -> bool:
        """True exactly once per closed -> open transition.

        PARTIAL frames are indeterminate and leave the remembered state
        alone, so a hand opening through a half-closed pose still fires.
        Recording PARTIAL as a remembered state instead would make
        fist -> partial -> open never fire.
        """
        state = self.classify_hand_state(landmarks)
        if state is None or state is HandState.PARTIAL:
            return False

        fired = self._previous_state is HandState.FIST and state is HandState.OPEN
        self._previous_state = state
        if fired:
            logger.info("Generation trigger: fist -> open")
        return fired

    def reset(self):
        """Forget the remembered hand state."""
        self._previous_state = None

    @property
    def previous_state(self) -> Optional[HandState]:
        return self._previous_state


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return float(np.clip(value, low, high))
