"""
21-point hand landmark normalization and shared geometric features.

Every detector indexes landmarks by position, so the ordering below is
relied upon throughout the recognition modules.

Accepted landmark containers:
    - np.ndarray of shape (N, 3) or (N, 2)
    - sequence of (x, y[, z]) tuples / Landmark named tuples
    - sequence of {"x", "y", "z"} mappings
    - sequence of objects exposing x / y / z attributes
"""

import logging
import numpy as np

logger = logging.getLogger(__name__)

NUM_LANDMARKS = 21

# Hand landmark indices
WRIST = 0
THUMB_CMC = 1
THUMB_MCP = 2
THUMB_IP = 3
THUMB_TIP = 4
INDEX_MCP = 5
INDEX_PIP = 6
INDEX_DIP = 7
INDEX_TIP = 8
MIDDLE_MCP = 9
MIDDLE_PIP = 10
MIDDLE_DIP = 11
MIDDLE_TIP = 12
RING_MCP = 13
RING_PIP = 14
RING_DIP = 15
RING_TIP = 16
PINKY_MCP = 17
PINKY_PIP = 18
PINKY_DIP = 19
PINKY_TIP = 20

FINGER_NAMES = ("thumb", "index", "middle", "ring", "pinky")
FINGER_TIPS = [THUMB_TIP, INDEX_TIP, MIDDLE_TIP, RING_TIP, PINKY_TIP]
FINGER_MCPS = [THUMB_MCP, INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP]
PALM_POINTS = [WRIST, INDEX_MCP, MIDDLE_MCP, RING_MCP, PINKY_MCP]


def to_landmark_array(points):
    """Convert any accepted landmark container to a float (N, 3) array.

    Returns None when the container cannot be interpreted.
    """
    if points is None:
        return None

    if isinstance(points, np.ndarray):
        arr = np.asarray(points, dtype=np.float64)
        if arr.ndim != 2 or arr.shape[1] not in (2, 3):
            return None
        if arr.shape[1] == 2:
            arr = np.hstack([arr, np.zeros((arr.shape[0], 1))])
        return arr

    rows = []
    try:
        for p in points:
            if isinstance(p, dict):
                rows.append((p["x"], p["y"], p.get("z", 0.0)))
            elif hasattr(p, "x") and hasattr(p, "y"):
                rows.append((p.x, p.y, getattr(p, "z", 0.0)))
            else:
                rows.append((p[0], p[1], p[2] if len(p) > 2 else 0.0))
        return np.array(rows, dtype=np.float64).reshape(-1, 3)
    except (KeyError, IndexError, TypeError, ValueError) as e:
        logger.debug("Unreadable landmark container: %s", e)
        return None


def is_full_hand(landmarks) -> bool:
    """True when the array holds the complete 21-point skeleton."""
    return landmarks is not None and len(landmarks) >= NUM_LANDMARKS


class LandmarkExtractor:
    """Extracts geometric features from normalized hand landmarks."""

    def extract(self, points):
        """Normalize input and return a (21, 3) array, or None if incomplete."""
        arr = to_landmark_array(points)
        if not is_full_hand(arr):
            return None
        return arr

    def get_palm_center(self, landmarks: np.ndarray) -> np.ndarray:
        """Calculate palm center from wrist and MCP joints."""
        return np.mean(landmarks[PALM_POINTS], axis=0)

    def get_finger_tip_to_palm_distances(self, landmarks: np.ndarray) -> dict:
        """2D distance from each fingertip to the palm center.

        Raw normalized distances (not scaled by hand size); the thresholds
        applied to them are tuned for normalized image coordinates.
        """
        palm = self.get_palm_center(landmarks)
        return {
            name: self._distance_2d(landmarks[tip], palm)
            for name, tip in zip(FINGER_NAMES, FINGER_TIPS)
        }

    def get_finger_states(self, landmarks: np.ndarray,
                          extended_threshold: float, closed_threshold: float) -> dict:
        """Classify each finger as extended (True), closed (False), or None.

        A finger between the two thresholds sits in the dead zone and
        reports None.
        """
        states = {}
        for name, dist in self.get_finger_tip_to_palm_distances(landmarks).items():
            if dist > extended_threshold:
                states[name] = True
            elif dist < closed_threshold:
                states[name] = False
            else:
                states[name] = None
        return states

    def get_thumb_index_distance(self, landmarks: np.ndarray) -> float:
        """Distance between thumb tip and index tip (pinch)."""
        return self._distance(landmarks[THUMB_TIP], landmarks[INDEX_TIP])

    # =========================================================================
    # Math Helpers
    # =========================================================================

    @staticmethod
    def _distance(p1: np.ndarray, p2: np.ndarray) -> float:
        """Euclidean distance between two 3D points."""
        return float(np.linalg.norm(p1 - p2))

    @staticmethod
    def _distance_2d(p1: np.ndarray, p2: np.ndarray) -> float:
        return float(np.linalg.norm(p1[:2] - p2[:2]))
