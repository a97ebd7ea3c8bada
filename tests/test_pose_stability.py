"""
Tests for Pose Stability Detection
==================================
"""

import numpy as np
import pytest

from conftest import make_hand
from core.types import Landmark
from modules.recognition.pose_stability import PoseStabilityDetector


@pytest.fixture
def detector(clock):
    return PoseStabilityDetector(
        {"window_size": 30, "variance_threshold": 0.02, "hold_duration_sec": 2.0},
        clock=clock,
    )


class TestVariance:
    """Inter-frame movement measurement."""

    def test_single_frame_reports_max_variance(self, detector, open_hand):
        """Fewer than two frames cannot be stable."""
        state = detector.update(open_hand)
        assert state.variance == 1.0
        assert not state.is_stable

    def test_identical_frames_have_zero_variance(self, detector, open_hand):
        """A perfectly still hand has no movement."""
        detector.update(open_hand)
        state = detector.update(open_hand)
        assert state.variance == pytest.approx(0.0)
        assert state.is_stable

    def test_mismatched_landmark_counts_are_skipped(self, detector):
        """Pairs with different point counts are ignored, not compared."""
        full = make_hand("open")
        partial = full[:20]
        detector.update(full)
        detector.update(full)
        detector.update(partial)
        state = detector.update(partial)
        assert state.variance == pytest.approx(0.0)

    def test_only_mismatched_pairs_reports_max_variance(self, detector):
        """No comparable pair means the pose is not stable."""
        full = make_hand("open")
        detector.update(full)
        state = detector.update(full[:20])
        assert state.variance == 1.0
        assert not state.is_stable

    def test_accepts_landmark_tuples(self, detector, open_hand):
        """Named-tuple landmark lists are read like arrays."""
        points = [Landmark(*p) for p in open_hand]
        detector.update(points)
        state = detector.update(points)
        assert state.is_stable

    def test_invalid_frame_is_not_buffered(self, detector, open_hand):
        """Unreadable input leaves the window unchanged."""
        detector.update(open_hand)
        detector.update("not landmarks")
        assert detector.window_fill == pytest.approx(1 / 30)


class TestHold:
    """Hold progress and capture timing."""

    def test_capture_after_hold_duration(self, detector, clock, open_hand):
        """Identical frames arm a capture once the hold duration elapses."""
        detector.update(open_hand)
        clock.advance(0.25)
        detector.update(open_hand)  # hold starts here
        assert not detector.should_capture()

        for _ in range(7):
            clock.advance(0.25)
            detector.update(open_hand)
        assert not detector.should_capture()

        clock.advance(0.25)
        detector.update(open_hand)
        assert detector.should_capture()
        assert detector.hold_progress == 1.0

    def test_hold_progress_is_monotonic(self, detector, clock, open_hand):
        """Progress never decreases while the hand stays still."""
        detector.update(open_hand)
        progress = []
        for _ in range(12):
            clock.advance(0.25)
            progress.append(detector.update(open_hand).hold_progress)
        assert progress == sorted(progress)
        assert 0.0 <= progress[0] <= progress[-1] <= 1.0

    def test_noisy_frame_resets_progress(self, detector, clock, open_hand):
        """A sudden jump cancels the hold."""
        detector.update(open_hand)
        for _ in range(6):
            clock.advance(0.25)
            detector.update(open_hand)
        assert detector.hold_progress > 0

        clock.advance(0.25)
        state = detector.update(open_hand + 1.0)
        assert state.hold_progress == 0.0
        assert not state.is_stable
        assert not detector.should_capture()

    def test_reset_clears_window(self, detector, clock, open_hand):
        """Reset discards frames and the hold."""
        detector.update(open_hand)
        clock.advance(0.5)
        detector.update(open_hand)
        detector.reset()
        assert detector.window_fill == 0.0
        assert detector.get_current_landmarks() is None
        assert detector.hold_progress == 0.0

    def test_current_landmarks_is_a_copy(self, detector, open_hand):
        """Mutating the returned frame does not touch the window."""
        detector.update(open_hand)
        frame = detector.get_current_landmarks()
        frame[:] = 0
        assert np.allclose(detector.get_current_landmarks(), open_hand)


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
