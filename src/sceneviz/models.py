"""Pydantic models for scenes, answers and the question store."""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import AliasChoices, BaseModel, Field, model_validator
from pydantic.alias_generators import to_camel

# Scenes arrive as camelCase JSON; Python code uses snake_case names.
_CAMEL = {"alias_generator": to_camel, "populate_by_name": True}


# ── Enums ──────────────────────────────────────────────────────────────

class PathType(str, Enum):
    linear = "linear"
    bezier = "bezier"
    catmull_rom = "catmull-rom"


class BoundaryType(str, Enum):
    none = "none"
    bounce = "bounce"
    wrap = "wrap"
    kill = "kill"


class AnswerSource(str, Enum):
    generated = "generated"
    text_only = "text_only"
    fallback = "fallback"


# ── Scene Description ──────────────────────────────────────────────────

class Point(BaseModel):
    model_config = _CAMEL

    x: float = 0.0
    y: float = 0.0

    @model_validator(mode="before")
    @classmethod
    def _from_pair(cls, data: Any) -> Any:
        if isinstance(data, (list, tuple)) and len(data) >= 2:
            return {"x": data[0], "y": data[1]}
        return data


class Animation(BaseModel):
    """One time-windowed rule. Only the fields of the variant named by
    ``property`` (and ``path_type`` for paths) are consulted."""

    model_config = {**_CAMEL, "extra": "allow"}

    prop: str = Field(..., alias="property")
    start: float = 0.0
    end: Optional[float] = None  # None: runs until the scene ends
    easing: str = "linear"
    loop: bool = False

    from_: Optional[float] = Field(None, alias="from")
    to: Optional[float] = None

    # orbit
    center_x: Optional[float] = None
    center_y: Optional[float] = None
    radius: Optional[float] = None

    # path
    path_type: str = PathType.linear.value
    points: list[Point] = Field(default_factory=list)
    closed: bool = False
    orient_to_path: bool = False
    rotation_offset: float = 0.0
    alpha: float = 0.5

    # scale and spring vectors
    from_x: Optional[float] = None
    from_y: Optional[float] = None
    to_x: Optional[float] = None
    to_y: Optional[float] = None

    # spring
    target_property: Optional[str] = None
    stiffness: float = Field(0.1, gt=0)
    damping: float = Field(0.8, gt=0)
    mass: float = Field(1.0, gt=0)
    precision: float = Field(0.001, gt=0)


class Layer(BaseModel):
    model_config = {**_CAMEL, "extra": "allow"}

    id: str
    type: str = "circle"
    props: dict[str, Any] = Field(default_factory=dict)
    animations: list[Animation] = Field(default_factory=list)


class Bounds(BaseModel):
    model_config = _CAMEL

    x: float = 0.0
    y: float = 0.0
    width: float = 800.0
    height: float = 500.0


class Boundaries(BaseModel):
    model_config = _CAMEL

    type: BoundaryType = BoundaryType.none
    bounds: Optional[Bounds] = None


class ForceField(BaseModel):
    model_config = _CAMEL

    type: str = "point"  # point | vortex | directional
    x: float = 0.0
    y: float = 0.0
    radius: float = Field(100.0, gt=0)
    strength: float = 0.0
    direction_x: float = 0.0
    direction_y: float = 0.0


class FlowField(BaseModel):
    model_config = _CAMEL

    type: str = "circular"  # circular | wave
    x: float = 0.0
    y: float = 0.0
    radius: float = Field(100.0, gt=0)
    strength: float = 0.0
    clockwise: bool = True
    width: float = Field(800.0, gt=0)
    height: float = Field(500.0, gt=0)
    frequency: float = 1.0
    amplitude: float = 0.0
    speed: float = 1.0


class InteractionRule(BaseModel):
    model_config = _CAMEL

    type: str = "attract"  # attract | repel | orbit
    groups: list[str] = Field(default_factory=list)
    strength: float = 0.0
    min_distance: float = Field(0.0, ge=0)
    max_distance: float = Field(100.0, gt=0)


class GlobalForce(BaseModel):
    model_config = _CAMEL

    type: str = "wind"  # wind | drag
    x: float = 0.0
    y: float = 0.0
    strength: float = 0.0


class ParticleSystemSpec(BaseModel):
    model_config = {**_CAMEL, "extra": "allow"}

    id: Optional[str] = None
    x: float = 400.0
    y: float = 250.0
    active: bool = True

    emission_rate: float = Field(0.0, ge=0)
    particle_life: float = Field(1000.0, gt=0)  # ms
    life_variance: float = Field(0.0, ge=0)
    spread: float = Field(0.0, ge=0)
    velocity: float = Field(0.0, ge=0)  # px/s
    particle_size: float = Field(3.0, ge=0)
    size_variance: float = Field(0.0, ge=0)
    colors: list[str] = Field(default_factory=lambda: ["#4ECDC4"])
    particle_mass: float = Field(1.0, gt=0)
    opacity: float = Field(1.0, ge=0, le=1)
    fade_out: bool = True
    shrink: bool = False
    interaction_group: Optional[str] = None
    shape: str = "circle"

    gravity: float = 0.0
    friction: float = Field(0.99, gt=0, le=1)
    force_fields: list[ForceField] = Field(default_factory=list)
    flow_fields: list[FlowField] = Field(default_factory=list)
    particle_interactions: list[InteractionRule] = Field(default_factory=list)
    global_forces: list[GlobalForce] = Field(default_factory=list)
    boundaries: Boundaries = Field(default_factory=Boundaries)
    bounds: Optional[Bounds] = None
    collisions: bool = False
    collision_damping: float = Field(0.5, ge=0, le=1)

    @property
    def effective_bounds(self) -> Bounds | None:
        return self.boundaries.bounds or self.bounds


class Scene(BaseModel):
    """Root document: timed layers plus optional particle systems."""

    model_config = {**_CAMEL, "extra": "allow"}

    id: Optional[str] = None
    duration_ms: float = Field(
        ...,
        gt=0,
        validation_alias=AliasChoices("durationMs", "duration", "duration_ms"),
        serialization_alias="durationMs",
    )
    fps: float = Field(..., gt=0)
    layers: list[Layer] = Field(..., min_length=1)
    particle_systems: list[ParticleSystemSpec] = Field(default_factory=list)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)


# ── Answers & Questions ────────────────────────────────────────────────

class Answer(BaseModel):
    """Generator output: the text explanation plus an optional scene."""

    model_config = _CAMEL

    text: str
    visualization: Optional[Scene] = None
    animation_description: Optional[str] = None
    source: AnswerSource = AnswerSource.generated


class QuestionRecord(BaseModel):
    model_config = _CAMEL

    id: str
    user_id: str
    question: str
    timestamp: str
    answer_id: Optional[str] = None


class AnswerRecord(BaseModel):
    model_config = _CAMEL

    id: str
    question_id: str
    text: str
    visualization: Optional[Scene] = None
    animation_description: Optional[str] = None
    source: AnswerSource = AnswerSource.generated
    timestamp: str


class QuestionWithAnswer(QuestionRecord):
    answer: Optional[AnswerRecord] = None


class SubmitResult(BaseModel):
    model_config = _CAMEL

    question_id: str
    answer_id: str
