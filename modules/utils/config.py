"""
Centralized configuration manager.
Loads the YAML config over built-in defaults and provides typed access.

    - Schema validation for critical config fields (warnings, never fatal)
    - Dot-path access: config.get("generation.poll_interval_sec")
    - One instance per application, constructed by the composition root
"""

import os
import yaml
import logging

from modules.utils.paths import deep_merge, get_at_path

logger = logging.getLogger(__name__)

_BASE_DIR = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
_CONFIG_DIR = os.path.join(_BASE_DIR, "config")

_DEFAULTS = {
    "stability": {
        "window_size": 30,
        "variance_threshold": 0.02,
        "hold_duration_sec": 2.0,
    },
    "mapper": {
        "pinch": {"min_distance": 0.02, "max_distance": 0.25},
        "trigger": {"fist_threshold": 0.15, "open_threshold": 0.25},
    },
    "presets": {
        "extended_threshold": 0.15,
        "closed_threshold": 0.08,
    },
    "debouncing": {
        "debounce_ms": 100,
    },
    "generation": {
        "base_url": "https://engine.prod.bria-api.com/v2",
        "status_host": "https://engine.prod.bria-api.com/",
        "max_retries": 3,
        "backoff_base_ms": 1000,
        "poll_interval_sec": 1.0,
        "poll_timeout_sec": 60.0,
        "request_timeout_sec": 30,
        "defaults": {
            "steps_num": 50,
            "guidance_scale": 5,
            "aspect_ratio": "1:1",
            "sync": False,
        },
    },
    "session": {
        "generation_cooldown_sec": 5.0,
        "async_generation": True,
        "min_update_confidence": 0.5,
        "max_history": 10,
    },
    "storage": {
        "directory": "data/store",
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "max_size_mb": 10,
        "backup_count": 3,
        "loggers": {"urllib3": "WARNING"},
    },
}

# Schema: required sections and their expected types
_CONFIG_SCHEMA = {
    "stability": {
        "window_size": int,
        "variance_threshold": float,
        "hold_duration_sec": float,
    },
    "presets": {
        "extended_threshold": float,
        "closed_threshold": float,
    },
    "debouncing": {
        "debounce_ms": int,
    },
    "generation": {
        "base_url": str,
        "status_host": str,
        "max_retries": int,
        "backoff_base_ms": int,
        "poll_interval_sec": float,
        "poll_timeout_sec": float,
    },
    "session": {
        "generation_cooldown_sec": float,
        "async_generation": bool,
    },
    "logging": {
        "level": str,
        "loggers": dict,
    },
}


class Config:
    """Configuration loaded from config/config.yaml over built-in defaults."""

    def __init__(self, data: dict = None):
        self._data = deep_merge(_DEFAULTS, data or {})

    def load(self, config_path=None):
        """Load configuration from a YAML file."""
        config_path = config_path or os.path.join(_CONFIG_DIR, "config.yaml")

        try:
            with open(config_path, "r") as f:
                loaded = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)
            loaded = {}

        if not isinstance(loaded, dict):
            logger.warning("Config root should be a mapping, got %s; using defaults",
                           type(loaded).__name__)
            loaded = {}

        self._data = deep_merge(_DEFAULTS, loaded)
        self._validate()
        return self

    def _validate(self):
        """Validate critical config fields against schema."""
        warnings = []
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if not isinstance(section, dict):
                warnings.append(f"Section '{section_name}' should be a dict, got {type(section).__name__}")
                continue
            for field_name, expected_type in fields.items():
                if field_name not in section:
                    continue
                value = section[field_name]
                # Allow int where float is expected
                if expected_type is float and isinstance(value, (int, float)) \
                        and not isinstance(value, bool):
                    continue
                if expected_type is int and isinstance(value, bool):
                    warnings.append(f"{section_name}.{field_name}: expected int, got bool")
                    continue
                if not isinstance(value, expected_type):
                    warnings.append(
                        f"{section_name}.{field_name}: expected {expected_type.__name__}, "
                        f"got {type(value).__name__} ({value!r})"
                    )

        if warnings:
            for w in warnings:
                logger.warning("Config validation: %s", w)
        else:
            logger.debug("Config validation passed")
        return warnings

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'generation.max_retries'."""
        return get_at_path(self._data, key_path, default)

    def get_section(self, section: str) -> dict:
        """Get an entire config section."""
        value = self._data.get(section, {})
        return value if isinstance(value, dict) else {}

    @property
    def stability(self) -> dict:
        return self.get_section("stability")

    @property
    def mapper(self) -> dict:
        return self.get_section("mapper")

    @property
    def presets(self) -> dict:
        return self.get_section("presets")

    @property
    def debouncing(self) -> dict:
        return self.get_section("debouncing")

    @property
    def generation(self) -> dict:
        return self.get_section("generation")

    @property
    def pose_descriptor(self) -> dict:
        return self.get_section("pose_descriptor")

    @property
    def session(self) -> dict:
        return self.get_section("session")

    @property
    def storage(self) -> dict:
        return self.get_section("storage")

    @property
    def logging_config(self) -> dict:
        return self.get_section("logging")
