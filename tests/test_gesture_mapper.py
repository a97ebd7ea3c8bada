"""
Tests for Gesture Mapping
=========================
"""

import pytest

from conftest import make_hand, set_pinch, set_tilt
from core.types import HandState
from modules.recognition.gesture_mapper import (
    GestureMapper, COMPOSITION_CENTERED, COMPOSITION_PANORAMIC, COMPOSITION_THIRDS,
    CAMERA_ANGLE_BUCKETS, FOCAL_LENGTH_BUCKETS, _bucket,
)
from modules.state.prompt_schema import Paths


@pytest.fixture
def mapper():
    return GestureMapper({})


HALF_CLOSED = {"index": "half", "middle": "half", "ring": "half", "pinky": "half"}


class TestPinch:
    """Pinch distance -> lens focal length."""

    def test_tight_and_wide_pinch_differ(self, mapper, open_hand):
        """Different pinch spans map to different lenses."""
        tight = mapper.map_pinch_to_focal_length(set_pinch(open_hand, 0.02))
        wide = mapper.map_pinch_to_focal_length(set_pinch(open_hand, 0.15))
        assert tight.path == Paths.LENS_FOCAL_LENGTH
        assert tight.value == "200mm telephoto"
        assert wide.value == "35mm wide"

    @pytest.mark.parametrize("distance", [0.01, 0.3])
    def test_out_of_range_returns_none(self, mapper, open_hand, distance):
        """Pinches outside the usable range produce no update."""
        assert mapper.map_pinch_to_focal_length(set_pinch(open_hand, distance)) is None

    def test_depth_disagreement_lowers_confidence(self, mapper, open_hand):
        """Tips at different depths are less trustworthy."""
        flat = set_pinch(open_hand, 0.1)
        skewed = flat.copy()
        skewed[4, 2] = 0.05
        assert (mapper.map_pinch_to_focal_length(skewed).confidence
                < mapper.map_pinch_to_focal_length(flat).confidence)

    def test_incomplete_hand_returns_none(self, mapper, open_hand):
        """Fewer than 21 points cannot be mapped."""
        assert mapper.map_pinch_to_focal_length(open_hand[:10]) is None


class TestTiltAndLighting:
    """Wrist tilt -> camera angle, wrist height -> lighting."""

    @pytest.mark.parametrize("degrees,expected", [
        (-30, "low dutch tilt"),
        (0, "eye level"),
        (30, "high angle"),
        (60, "bird's eye view"),
    ])
    def test_tilt_buckets(self, mapper, open_hand, degrees, expected):
        """Each tilt range selects its camera angle."""
        update = mapper.map_wrist_tilt_to_camera_angle(set_tilt(open_hand, degrees))
        assert update.path == Paths.CAMERA_ANGLE
        assert update.value == expected
        assert 0.0 <= update.confidence <= 1.0

    @pytest.mark.parametrize("center_y,expected", [
        (0.1, "night, moonlight from above"),
        (0.3, "golden hour from top"),
        (0.5, "soft volumetric god rays from left"),
        (0.8, "bright studio lighting"),
    ])
    def test_lighting_buckets(self, mapper, center_y, expected):
        """Raising the hand darkens the scene."""
        update = mapper.map_vertical_position_to_lighting(make_hand(center=(0.5, center_y)))
        assert update.path == Paths.LIGHTING_CONDITIONS
        assert update.value == expected

    def test_lighting_confidence_drops_at_boundary(self, mapper):
        """A wrist sitting on a bucket edge reports minimum confidence."""
        hand = make_hand()
        hand[0, 1] = 0.5
        update = mapper.map_vertical_position_to_lighting(hand)
        assert update.confidence == pytest.approx(0.5)

    def test_lighting_bound_belongs_to_next_bucket(self, mapper):
        """A wrist exactly on a lighting bound takes the lower-frame bucket."""
        hand = make_hand()
        hand[0, 1] = 0.3
        assert mapper.map_vertical_position_to_lighting(hand).value == "golden hour from top"

    @pytest.mark.parametrize("degrees,expected", [
        (-15, "eye level"),
        (15, "high angle"),
        (45, "bird's eye view"),
    ])
    def test_tilt_bounds_are_exclusive(self, degrees, expected):
        """Tilt bounds start the next camera angle."""
        assert _bucket(degrees, CAMERA_ANGLE_BUCKETS) == expected

    def test_lens_bounds_are_inclusive(self):
        """Field-of-view bounds stay with the narrower lens."""
        assert _bucket(45, FOCAL_LENGTH_BUCKETS, inclusive=True) == "200mm telephoto"
        assert _bucket(90, FOCAL_LENGTH_BUCKETS, inclusive=True) == "35mm wide"

    def test_lighting_is_stateless(self, mapper):
        """The same frame always maps to the same update."""
        hand = make_hand(center=(0.5, 0.3))
        first = mapper.map_vertical_position_to_lighting(hand)
        mapper.map_vertical_position_to_lighting(make_hand(center=(0.5, 0.8)))
        assert mapper.map_vertical_position_to_lighting(hand) == first


class TestComposition:
    """Two-hand span -> composition."""

    def test_wide_level_hands_are_panoramic(self, mapper):
        """Far apart, level wrists frame a panorama."""
        update = mapper.map_two_hands_to_composition(
            make_hand(center=(0.15, 0.5)), make_hand(center=(0.85, 0.5)))
        assert update.value == COMPOSITION_PANORAMIC
        assert update.path == Paths.COMPOSITION

    def test_hands_around_center_are_centered(self, mapper):
        """A wrist midpoint near the frame center centers the subject."""
        update = mapper.map_two_hands_to_composition(
            make_hand(center=(0.45, 0.4)), make_hand(center=(0.55, 0.4)))
        assert update.value == COMPOSITION_CENTERED

    def test_off_center_hands_use_thirds(self, mapper):
        """Anything else falls back to the rule of thirds."""
        update = mapper.map_two_hands_to_composition(
            make_hand(center=(0.2, 0.1)), make_hand(center=(0.4, 0.1)))
        assert update.value == COMPOSITION_THIRDS

    def test_map_all_adds_composition_for_two_hands(self, mapper, open_hand):
        """One hand feeds three channels, a second hand adds composition."""
        single = mapper.map_all([open_hand])
        double = mapper.map_all([open_hand, make_hand(center=(0.9, 0.5))])
        assert {u.path for u in single} == {
            Paths.LENS_FOCAL_LENGTH, Paths.CAMERA_ANGLE, Paths.LIGHTING_CONDITIONS,
        }
        assert Paths.COMPOSITION in {u.path for u in double}
        assert mapper.map_all([]) == []


class TestGenerationTrigger:
    """Fist -> open edge detection."""

    def test_classification(self, mapper, open_hand, fist_hand):
        """Fist, open and partial hands are told apart."""
        assert mapper.classify_hand_state(fist_hand) is HandState.FIST
        assert mapper.classify_hand_state(open_hand) is HandState.OPEN
        assert mapper.classify_hand_state(make_hand(HALF_CLOSED)) is HandState.PARTIAL

    def test_fires_once_per_transition(self, mapper, open_hand, fist_hand):
        """Only the first open frame after a fist fires."""
        assert mapper.detect_generation_trigger(fist_hand) is False
        assert mapper.detect_generation_trigger(open_hand) is True
        assert mapper.detect_generation_trigger(open_hand) is False

    def test_fires_again_after_new_fist(self, mapper, open_hand, fist_hand):
        """Each new fist re-arms the trigger."""
        mapper.detect_generation_trigger(fist_hand)
        mapper.detect_generation_trigger(open_hand)
        mapper.detect_generation_trigger(fist_hand)
        assert mapper.detect_generation_trigger(open_hand) is True

    def test_partial_frames_do_not_break_transition(self, mapper, open_hand, fist_hand):
        """Opening through a half-closed pose still fires."""
        mapper.detect_generation_trigger(fist_hand)
        assert mapper.detect_generation_trigger(make_hand(HALF_CLOSED)) is False
        assert mapper.previous_state is HandState.FIST
        assert mapper.detect_generation_trigger(open_hand) is True

    def test_open_without_fist_never_fires(self, mapper, open_hand):
        """An open hand alone is not a trigger."""
        assert mapper.detect_generation_trigger(open_hand) is False
        assert mapper.detect_generation_trigger(open_hand) is False

    def test_reset_forgets_fist(self, mapper, open_hand, fist_hand):
        """Reset disarms a pending trigger."""
        mapper.detect_generation_trigger(fist_hand)
        mapper.reset()
        assert mapper.detect_generation_trigger(open_hand) is False


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
