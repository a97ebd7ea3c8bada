"""
Structured prompt schema, defaults, and the parameter path table.

The schema is expressed as pydantic models; validation results are
flattened to {path, message} issues so callers never handle pydantic
exceptions directly.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.types import ValidationIssue, ValidationResult


class _Strict(BaseModel):
    model_config = ConfigDict(extra="forbid")


class Lighting(_Strict):
    conditions: str = Field(min_length=1)
    direction: str = Field(min_length=1)
    shadows: str = Field(min_length=1)


class Aesthetics(_Strict):
    composition: str = Field(min_length=1)
    color_scheme: str = Field(min_length=1)
    mood_atmosphere: str = Field(min_length=1)
    preference_score: Optional[str] = None
    aesthetic_score: Optional[str] = None


class PhotographicCharacteristics(_Strict):
    depth_of_field: str = Field(min_length=1)
    focus: str = Field(min_length=1)
    camera_angle: str = Field(min_length=1)
    lens_focal_length: str = Field(min_length=1)


class SceneObject(_Strict):
    description: str = Field(min_length=1)
    location: str = Field(min_length=1)
    relationship: Optional[str] = None
    relative_size: Optional[str] = None
    shape_and_color: Optional[str] = None
    texture: Optional[str] = None
    appearance_details: Optional[str] = None
    number_of_objects: Optional[int] = Field(default=None, gt=0)
    orientation: Optional[str] = None
    expression: Optional[str] = None


class TextRender(_Strict):
    text: str = Field(min_length=1)
    location: str = Field(min_length=1)
    size: str = Field(min_length=1)
    color: str = Field(min_length=1)
    font: str = Field(min_length=1)
    appearance_details: Optional[str] = None


class StructuredPrompt(_Strict):
    short_description: str = Field(min_length=1)
    objects: List[SceneObject] = Field(min_length=1)
    background_setting: str = Field(min_length=1)
    lighting: Lighting
    aesthetics: Aesthetics
    photographic_characteristics: PhotographicCharacteristics
    style_medium: str = Field(min_length=1)
    artistic_style: Optional[str] = None
    text_render: Optional[List[TextRender]] = None
    context: str = Field(min_length=1)


# =============================================================================
# Parameter Paths
# =============================================================================

class Paths:
    """Dot-paths written by gestures and presets."""

    SHORT_DESCRIPTION = "short_description"
    BACKGROUND_SETTING = "background_setting"
    LIGHTING_CONDITIONS = "lighting.conditions"
    LIGHTING_DIRECTION = "lighting.direction"
    LIGHTING_SHADOWS = "lighting.shadows"
    COMPOSITION = "aesthetics.composition"
    COLOR_SCHEME = "aesthetics.color_scheme"
    MOOD = "aesthetics.mood_atmosphere"
    DEPTH_OF_FIELD = "photographic_characteristics.depth_of_field"
    FOCUS = "photographic_characteristics.focus"
    CAMERA_ANGLE = "photographic_characteristics.camera_angle"
    LENS_FOCAL_LENGTH = "photographic_characteristics.lens_focal_length"
    STYLE_MEDIUM = "style_medium"
    ARTISTIC_STYLE = "artistic_style"
    OBJECT_ORIENTATION = "objects.0.orientation"


def is_known_path(path: str) -> bool:
    """Check a dot-path against the schema.

    List fields accept a non-negative integer index segment followed by a
    field of the item model.
    """
    if not path or not isinstance(path, str):
        return False

    model = StructuredPrompt
    segments = path.split(".")
    i = 0
    while i < len(segments):
        if model is None:
            return False
        field_info = model.model_fields.get(segments[i])
        if field_info is None:
            return False
        item_model = _list_item_model(field_info.annotation)
        if item_model is not None:
            if i + 1 < len(segments):
                if not segments[i + 1].isdigit():
                    return False
                i += 2
                model = item_model
                continue
            return True
        model = _nested_model(field_info.annotation)
        i += 1
    return True


def _nested_model(annotation):
    if isinstance(annotation, type) and issubclass(annotation, BaseModel):
        return annotation
    return None


def _list_item_model(annotation):
    """Return the item model for List[Model] / Optional[List[Model]]."""
    for arg in _unwrap(annotation):
        origin = getattr(arg, "__origin__", None)
        if origin is list:
            (item,) = arg.__args__
            return _nested_model(item)
    return None


def _unwrap(annotation):
    args = getattr(annotation, "__args__", None)
    if getattr(annotation, "__origin__", None) is list or not args:
        return [annotation]
    return [a for a in args if a is not type(None)]


# =============================================================================
# Defaults & Validation
# =============================================================================

DEFAULT_PROMPT = {
    "short_description": "abstract sculpture in a studio setting",
    "objects": [
        {
            "description": "an abstract sculptural form with smooth, flowing curves",
            "location": "center",
            "relationship": "primary subject of the composition",
            "relative_size": "large within frame",
            "shape_and_color": "organic, flowing shape with neutral tones",
            "texture": "smooth, polished surface",
            "appearance_details": "modern, minimalist aesthetic with clean lines",
            "number_of_objects": 1,
            "orientation": "upright",
        },
    ],
    "background_setting": "clean studio environment with neutral backdrop",
    "lighting": {
        "conditions": "soft volumetric god rays from left",
        "direction": "overhead and slightly front-lit",
        "shadows": "soft, diffused shadows",
    },
    "aesthetics": {
        "composition": "rule of thirds",
        "color_scheme": "warm complementary colors",
        "mood_atmosphere": "elegant, sophisticated",
    },
    "photographic_characteristics": {
        "depth_of_field": "shallow, with subject in sharp focus",
        "focus": "sharp focus on subject",
        "camera_angle": "eye level",
        "lens_focal_length": "50mm standard",
    },
    "style_medium": "photograph",
    "artistic_style": "realistic, detailed",
    "context": (
        "This is a professional product photograph for a gallery or portfolio, "
        "showcasing the sculptural form with attention to lighting and composition."
    ),
}


def validate_prompt(document: Any) -> ValidationResult:
    """Validate a document against the structured prompt schema."""
    if not isinstance(document, dict):
        return ValidationResult(
            success=False,
            errors=[ValidationIssue(path="", message="Prompt must be a JSON object")],
        )
    try:
        StructuredPrompt.model_validate(document)
    except ValidationError as e:
        issues = [
            ValidationIssue(
                path=".".join(str(part) for part in err["loc"]),
                message=err["msg"],
            )
            for err in e.errors()
        ]
        return ValidationResult(success=False, errors=issues)
    return ValidationResult(success=True)
