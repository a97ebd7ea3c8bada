"""
Shared fixtures and synthetic hand builders.

make_hand() lays out a 21-point hand whose palm center (mean of wrist and
the four finger MCPs) sits exactly at `center`, with each fingertip placed
at a chosen 2D distance from that center:

    extended 0.30   (> open / extended thresholds)
    half     0.20   (between fist and open thresholds)
    dead     0.11   (inside the preset dead zone)
    closed   0.05   (< fist / closed thresholds)
"""

import numpy as np
import pytest

FINGERS = ("thumb", "index", "middle", "ring", "pinky")

TIP_DISTANCES = {
    "extended": 0.30,
    "half": 0.20,
    "dead": 0.11,
    "closed": 0.05,
}

_DIRECTIONS = {
    "thumb": (-0.6, -0.8),
    "index": (-0.2, -1.0),
    "middle": (0.0, -1.0),
    "ring": (0.2, -1.0),
    "pinky": (0.4, -1.0),
}

# (base, joint, joint, tip) per finger
_CHAINS = {
    "thumb": (1, 2, 3, 4),
    "index": (5, 6, 7, 8),
    "middle": (9, 10, 11, 12),
    "ring": (13, 14, 15, 16),
    "pinky": (17, 18, 19, 20),
}


def make_hand(fingers=None, center=(0.5, 0.5), z=0.0) -> np.ndarray:
    """Build a (21, 3) landmark array.

    Args:
        fingers: "open", "fist", or {finger: extended|half|dead|closed};
                 unspecified fingers are extended
        center: palm center (x, y)
        z: depth for every point
    """
    spec = {name: "extended" for name in FINGERS}
    if fingers == "fist":
        spec = {name: "closed" for name in FINGERS}
    elif isinstance(fingers, dict):
        spec.update(fingers)

    cx, cy = center
    pts = np.zeros((21, 3))
    pts[:, 2] = z
    pts[0, :2] = (cx, cy + 0.1)
    pts[1, :2] = (cx - 0.04, cy + 0.06)
    pts[5, :2] = (cx - 0.03, cy - 0.025)
    pts[9, :2] = (cx - 0.01, cy - 0.025)
    pts[13, :2] = (cx + 0.01, cy - 0.025)
    pts[17, :2] = (cx + 0.03, cy - 0.025)

    for name, (base, j1, j2, tip) in _CHAINS.items():
        direction = np.array(_DIRECTIONS[name])
        direction = direction / np.linalg.norm(direction)
        tip_xy = np.array([cx, cy]) + direction * TIP_DISTANCES[spec[name]]
        base_xy = pts[base, :2].copy()
        pts[j1, :2] = base_xy + (tip_xy - base_xy) / 3.0
        pts[j2, :2] = base_xy + (tip_xy - base_xy) * 2.0 / 3.0
        pts[tip, :2] = tip_xy

    return pts


def set_pinch(hand: np.ndarray, distance: float) -> np.ndarray:
    """Return a copy with thumb and index tips `distance` apart on x."""
    hand = hand.copy()
    hand[8] = (0.5, 0.3, 0.0)
    hand[4] = (0.5 + distance, 0.3, 0.0)
    return hand


def set_tilt(hand: np.ndarray, degrees: float, length: float = 0.125) -> np.ndarray:
    """Return a copy with the middle MCP rotated `degrees` from upright."""
    hand = hand.copy()
    theta = np.radians(degrees)
    wrist = hand[0]
    hand[9, 0] = wrist[0] + np.sin(theta) * length
    hand[9, 1] = wrist[1] - np.cos(theta) * length
    return hand


class FakeClock:
    """Manually advanced monotonic clock; sleep() advances it."""

    def __init__(self, start=0.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class FakeTimer:
    """threading.Timer stand-in that only fires when told to."""

    created = []

    def __init__(self, interval, function):
        self.interval = interval
        self.function = function
        self.started = False
        self.cancelled = False
        self.daemon = False
        FakeTimer.created.append(self)

    def start(self):
        self.started = True

    def cancel(self):
        self.cancelled = True

    def fire(self):
        if not self.cancelled:
            self.function()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fake_timer():
    FakeTimer.created = []
    yield FakeTimer
    FakeTimer.created = []


@pytest.fixture
def open_hand():
    return make_hand("open")


@pytest.fixture
def fist_hand():
    return make_hand("fist")
