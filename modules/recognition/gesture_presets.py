"""
Preset gestures: canonical finger patterns bound to parameter overrides.

Each finger is read from its fingertip-to-palm-center distance:
    extended  distance > extended_threshold
    closed    distance < closed_threshold
    (between the two is a dead zone and matches nothing)

A frame matches a preset only when all five fingers match its pattern
exactly. The preset set can be edited at runtime and persisted to a
key-value store as one bundle; a missing or damaged bundle falls back to
the built-in presets as a whole.
"""

import copy
import json
import logging
from typing import Dict, Optional, Union

from pydantic import BaseModel, Field, ValidationError

from core.types import PresetConfig, PresetDetection, PresetType
from modules.detection.landmark_extractor import (
    LandmarkExtractor, FINGER_NAMES, THUMB_TIP, WRIST,
)
from modules.state.prompt_schema import Paths, is_known_path

logger = logging.getLogger(__name__)

PRESET_CONFIDENCE = 0.9
STORAGE_KEY = "gesture-presets"

# (thumb, index, middle, ring, pinky); True = extended, False = closed
PRESET_PATTERNS = {
    PresetType.PEACE: (False, True, True, False, False),
    PresetType.THUMBS_UP: (True, False, False, False, False),
    PresetType.ROCK: (False, True, False, False, True),
}

DEFAULT_PRESETS = {
    PresetType.PEACE: PresetConfig(
        name="Cinematic",
        description="Dramatic cinematic mood with rim lighting",
        overrides={
            Paths.MOOD: "cinematic, dramatic",
            Paths.LIGHTING_CONDITIONS: "dramatic rim lighting",
        },
    ),
    PresetType.THUMBS_UP: PresetConfig(
        name="Optimistic",
        description="Bright, upbeat mood with warm vibrant colors",
        overrides={
            Paths.MOOD: "bright, optimistic",
            Paths.COLOR_SCHEME: "warm, vibrant",
        },
    ),
    PresetType.ROCK: PresetConfig(
        name="Edgy",
        description="Bold mood with hard, high-contrast shadows",
        overrides={
            Paths.MOOD: "edgy, bold",
            Paths.LIGHTING_SHADOWS: "high contrast, dramatic shadows",
        },
    ),
}


class _StoredPreset(BaseModel):
    name: str = Field(min_length=1)
    description: str
    overrides: Dict[str, Union[str, int, float]]


class GesturePresetDetector:
    """Matches hand poses against preset finger patterns."""

    def __init__(self, config: dict, store=None):
        self._extended_threshold = config.get("extended_threshold", 0.15)
        self._closed_threshold = config.get("closed_threshold", 0.08)
        self._thumb_rise = config.get("thumb_up_min_rise", 0.05)
        self._store = store
        self._extractor = LandmarkExtractor()
        self._presets = _default_presets()

    def detect_preset_gesture(self, landmarks) -> PresetDetection:
        """Classify a single-hand frame against the preset patterns."""
        points = self._extractor.extract(landmarks)
        if points is None:
            return PresetDetection()

        states = self._extractor.get_finger_states(
            points, self._extended_threshold, self._closed_threshold
        )
        pattern = tuple(states[name] for name in FINGER_NAMES)
        if None in pattern:
            return PresetDetection()

        for preset_type, expected in PRESET_PATTERNS.items():
            if pattern != expected:
                continue
            if preset_type is PresetType.THUMBS_UP:
                # Thumb must point up: tip clearly above the wrist
                if points[WRIST][1] - points[THUMB_TIP][1] < self._thumb_rise:
                    continue
            return PresetDetection(
                type=preset_type,
                confidence=PRESET_CONFIDENCE,
                preset=copy.deepcopy(self._presets[preset_type]),
            )
        return PresetDetection()

    # =========================================================================
    # Preset Management
    # =========================================================================

    def get_preset(self, preset_type: PresetType) -> PresetConfig:
        return copy.deepcopy(self._presets[preset_type])

    def get_all_presets(self) -> Dict[PresetType, PresetConfig]:
        return copy.deepcopy(self._presets)

    def update_preset(self, preset_type: PresetType, name: Optional[str] = None,
                      description: Optional[str] = None, overrides: Optional[dict] = None):
        """Modify one preset in place.

        Raises:
            KeyError: unknown preset type
            ValueError: an override path is not a prompt parameter
        """
        if preset_type not in self._presets:
            raise KeyError(f"Unknown preset: {preset_type!r}")
        if overrides is not None:
            bad = [p for p in overrides if not is_known_path(p)]
            if bad:
                raise ValueError(f"Unknown parameter path(s): {', '.join(bad)}")

        preset = self._presets[preset_type]
        if name is not None:
            preset.name = name
        if description is not None:
            preset.description = description
        if overrides is not None:
            preset.overrides = dict(overrides)
        logger.info("Preset '%s' updated", preset_type.value)

    def reset_presets(self):
        """Restore built-in presets."""
        self._presets = _default_presets()
        logger.info("Presets reset to defaults")

    # =========================================================================
    # Persistence
    # =========================================================================

    def save_presets(self) -> bool:
        if self._store is None:
            return False
        bundle = {t.value: p.to_dict() for t, p in self._presets.items()}
        try:
            self._store.set(STORAGE_KEY, json.dumps(bundle, indent=2))
        except OSError as e:
            logger.error("Failed to save presets: %s", e)
            return False
        logger.info("Saved %d presets", len(bundle))
        return True

    def load_presets(self) -> bool:
        """Load the stored bundle. Any defect restores the built-in set.

        Returns:
            True when a stored bundle was applied
        """
        self._presets = _default_presets()
        if self._store is None:
            return False

        text = self._store.get(STORAGE_KEY)
        if text is None:
            logger.debug("No stored presets")
            return False

        loaded = _parse_bundle(text)
        if loaded is None:
            return False
        self._presets = loaded
        logger.info("Loaded %d stored presets", len(loaded))
        return True


def _default_presets() -> Dict[PresetType, PresetConfig]:
    return copy.deepcopy(DEFAULT_PRESETS)


def _parse_bundle(text: str) -> Optional[Dict[PresetType, PresetConfig]]:
    """Parse a stored bundle; None unless every preset is present and valid."""
    try:
        raw = json.loads(text)
    except ValueError as e:
        logger.warning("Stored presets unreadable, using defaults: %s", e)
        return None
    if not isinstance(raw, dict):
        logger.warning("Stored presets malformed, using defaults")
        return None

    presets = {}
    for preset_type in PresetType:
        entry = raw.get(preset_type.value)
        if entry is None:
            logger.warning("Stored presets missing '%s', using defaults", preset_type.value)
            return None
        try:
            parsed = _StoredPreset.model_validate(entry)
        except ValidationError as e:
            logger.warning("Stored preset '%s' invalid, using defaults: %s",
                           preset_type.value, e.error_count())
            return None
        if not all(is_known_path(p) for p in parsed.overrides):
            logger.warning("Stored preset '%s' has unknown paths, using defaults",
                           preset_type.value)
            return None
        presets[preset_type] = PresetConfig(
            name=parsed.name,
            description=parsed.description,
            overrides=dict(parsed.overrides),
        )
    return presets
