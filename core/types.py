"""
Shared domain types for the HandPrompt gesture-to-prompt system.

Centralizes enums, data classes, and type definitions used across modules
to eliminate circular imports and ensure type consistency.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Union


# =============================================================================
# Landmarks
# =============================================================================

class Landmark(NamedTuple):
    """A single normalized 3D hand-joint position."""
    x: float
    y: float
    z: float = 0.0


class HandObservation:
    """One tracked hand in one frame.

    Uses __slots__ like the other per-frame containers.
    """

    __slots__ = ("landmarks", "handedness", "score")

    def __init__(self, landmarks, handedness: str = "Right", score: float = 1.0):
        self.landmarks = landmarks
        self.handedness = handedness
        self.score = score

    @classmethod
    def from_dict(cls, data: dict) -> 'HandObservation':
        return cls(
            landmarks=data.get("landmarks", []),
            handedness=data.get("handedness", "Right"),
            score=data.get("score", 1.0),
        )

    def __repr__(self):
        return f"HandObservation({self.handedness}, points={len(self.landmarks)})"


# =============================================================================
# Gesture Channel Output
# =============================================================================

ParameterValue = Union[str, int, float]


@dataclass(frozen=True)
class GestureUpdate:
    """A semantic parameter update derived from one frame."""
    path: str
    value: ParameterValue
    confidence: float


@dataclass(frozen=True)
class StabilityState:
    """Snapshot of the pose stability detector."""
    is_stable: bool
    hold_progress: float
    variance: float


class HandState(Enum):
    """Coarse open/closed classification used by the generation trigger."""
    FIST = "fist"
    OPEN = "open"
    PARTIAL = "partial"


class PresetType(Enum):
    """Canonical hand poses bound to parameter presets."""
    PEACE = "peace"
    THUMBS_UP = "thumbs_up"
    ROCK = "rock"


@dataclass
class PresetConfig:
    """A named bundle of parameter-path overrides."""
    name: str
    description: str
    overrides: Dict[str, ParameterValue] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "description": self.description,
            "overrides": dict(self.overrides),
        }


@dataclass(frozen=True)
class PresetDetection:
    """Result of matching a frame against the preset patterns."""
    type: Optional[PresetType] = None
    confidence: float = 0.0
    preset: Optional[PresetConfig] = None

    @property
    def matched(self) -> bool:
        return self.type is not None


# =============================================================================
# Structured State Results
# =============================================================================

@dataclass(frozen=True)
class ValidationIssue:
    path: str
    message: str


@dataclass(frozen=True)
class ValidationResult:
    success: bool
    errors: List[ValidationIssue] = field(default_factory=list)


@dataclass(frozen=True)
class UpdateResult:
    """Outcome of a path-scoped update on the structured prompt."""
    success: bool
    previous_value: Any = None
    error: Optional[str] = None
    errors: List[ValidationIssue] = field(default_factory=list)


@dataclass(frozen=True)
class ImportResult:
    success: bool
    error: Optional[str] = None
    errors: List[ValidationIssue] = field(default_factory=list)


# =============================================================================
# Generation
# =============================================================================

class ClientStatus(Enum):
    """Lifecycle of the generation client."""
    IDLE = "idle"
    GENERATING = "generating"
    POLLING = "polling"
    ERROR = "error"


@dataclass
class GenerationOptions:
    """Options sent alongside a prompt. Defaults match the service's."""
    steps_num: int = 50
    guidance_scale: float = 5
    aspect_ratio: str = "1:1"
    seed: Optional[int] = None
    sync: bool = False

    def to_payload(self) -> dict:
        payload = {
            "guidance_scale": self.guidance_scale,
            "aspect_ratio": self.aspect_ratio,
            "steps_num": self.steps_num,
            "sync": self.sync,
        }
        if self.seed is not None:
            payload["seed"] = self.seed
        return payload


@dataclass(frozen=True)
class GenerationResult:
    """A completed generation. Immutable once constructed."""
    image_url: str
    prompt: Union[str, Dict[str, Any]]
    timestamp: float
    seed: Optional[int]
    request_id: Optional[str]


# =============================================================================
# Session Output
# =============================================================================

class FrameResult:
    """Result of a single session frame."""

    __slots__ = (
        "hand_count", "stability", "updates", "preset",
        "captured", "triggered", "timestamp",
    )

    def __init__(self):
        self.hand_count = 0
        self.stability: Optional[StabilityState] = None
        self.updates: List[GestureUpdate] = []
        self.preset: Optional[PresetDetection] = None
        self.captured = False
        self.triggered = False
        self.timestamp = time.time()
