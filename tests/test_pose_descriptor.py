"""
Tests for Pose Descriptions
===========================
"""

import pytest

from conftest import make_hand
from modules.recognition.pose_descriptor import (
    DEFAULT_DESCRIPTOR, GESTURE_CLOSED, GESTURE_OPEN, GESTURE_POINTING,
    ORIENTATION_LEFT, POSITION_RAISED, SPREAD_TOGETHER, SPREAD_WIDE,
    PoseDescriptor, landmarks_to_descriptor,
)


@pytest.fixture
def descriptor():
    return PoseDescriptor()


class TestPoseDescriptor:
    """Pose text from wrist placement and finger extension."""

    def test_no_hands(self, descriptor):
        """No hands yields the neutral description."""
        assert descriptor.describe([]) == DEFAULT_DESCRIPTOR

    def test_open_hand(self, descriptor, open_hand):
        """Three or more raised fingers read as open palms."""
        assert GESTURE_OPEN in descriptor.describe([open_hand])

    def test_fist(self, descriptor, fist_hand):
        """No raised fingers reads as determined."""
        assert GESTURE_CLOSED in descriptor.describe([fist_hand])

    def test_pointing(self, descriptor):
        """Only the index finger raised reads as pointing."""
        hand = make_hand({"index": "extended", "middle": "closed",
                          "ring": "closed", "pinky": "closed"})
        assert GESTURE_POINTING in descriptor.describe([hand])

    def test_raised_hand_on_left(self, descriptor):
        """Wrist placement drives orientation and height."""
        text = descriptor.describe([make_hand(center=(0.2, 0.1))])
        assert ORIENTATION_LEFT in text
        assert POSITION_RAISED in text

    def test_two_hand_spread(self, descriptor):
        """Wrist separation drives the spread phrase."""
        wide = descriptor.describe([make_hand(center=(0.1, 0.5)), make_hand(center=(0.9, 0.5))])
        together = descriptor.describe([make_hand(center=(0.48, 0.5)),
                                        make_hand(center=(0.52, 0.5))])
        assert SPREAD_WIDE in wide
        assert SPREAD_TOGETHER in together

    def test_wrapper(self, open_hand):
        """The module helper matches the class."""
        assert landmarks_to_descriptor([open_hand]) == PoseDescriptor().describe([open_hand])


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
