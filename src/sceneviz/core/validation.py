"""Boundary validation between the generator and the playback engine.

A scene missing its duration, fps or layers is rejected as a whole. Problems
inside a single layer, animation or particle system are repaired or the entry
is dropped, so one bad element never costs the rest of the scene.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from pydantic import ValidationError

from sceneviz.engine.evaluator import is_vector_spring
from sceneviz.engine.paths import parse_path_type
from sceneviz.exceptions import SceneValidationError
from sceneviz.models import Animation, Layer, ParticleSystemSpec, PathType, Scene

logger = logging.getLogger(__name__)

DEFAULT_PROPS = {"x": 300, "y": 300}
_SCENE_KEYS = {"id", "duration", "durationMs", "fps", "layers", "particleSystems"}


def _positive_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def check_scene_shape(raw: Any) -> list[str]:
    """Return the list of whole-scene problems (empty when the shape is valid)."""
    if not isinstance(raw, dict):
        return ["visualization must be an object"]
    errors = []
    duration = raw.get("durationMs", raw.get("duration"))
    if not _positive_number(duration):
        errors.append("duration must be a positive number")
    if not _positive_number(raw.get("fps")):
        errors.append("fps must be a positive number")
    layers = raw.get("layers")
    if not isinstance(layers, list) or not layers:
        errors.append("layers must be a non-empty array")
    return errors


def _animations(layer_id: str, raw: Any) -> list[Animation]:
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning("Layer '%s': animations is not an array, ignoring", layer_id)
        return []

    animations = []
    for i, entry in enumerate(raw):
        try:
            anim = Animation.model_validate(entry)
        except ValidationError as e:
            logger.warning(
                "Layer '%s': dropping animation %d (%d errors)", layer_id, i, e.error_count()
            )
            continue
        _warn_path_shape(layer_id, i, anim)
        animations.append(anim)
    _warn_overlaps(layer_id, animations)
    return animations


def _warn_path_shape(layer_id: str, index: int, anim: Animation) -> None:
    if anim.prop != "path":
        return
    kind = parse_path_type(anim.path_type)
    count = len(anim.points)
    if kind is None:
        logger.warning("Layer '%s': animation %d has unknown pathType '%s'", layer_id, index, anim.path_type)
    elif kind == PathType.bezier and count not in (3, 4):
        logger.warning("Layer '%s': bezier animation %d has %d points, using linear", layer_id, index, count)
    elif kind == PathType.catmull_rom and count < 4 and not anim.closed:
        logger.warning("Layer '%s': catmull-rom animation %d has %d points, using linear", layer_id, index, count)
    elif count < 2:
        logger.warning("Layer '%s': path animation %d has %d points", layer_id, index, count)


def _writes(anim: Animation) -> set[str]:
    if anim.prop == "orbit":
        return {"x", "y"}
    if anim.prop == "path":
        return {"x", "y", "rotation"} if anim.orient_to_path else {"x", "y"}
    if anim.prop == "scale":
        return {"scale", "scaleX", "scaleY"}
    if anim.prop == "spring":
        if is_vector_spring(anim):
            return {"x", "y"}
        return {anim.target_property or ""}
    return {anim.prop}


def _warn_overlaps(layer_id: str, animations: list[Animation]) -> None:
    """Flag same-property animations whose windows overlap (last one wins)."""
    for i, a in enumerate(animations):
        for j in range(i + 1, len(animations)):
            b = animations[j]
            if not _writes(a) & _writes(b):
                continue
            a_end = a.end if a.end is not None else float("inf")
            b_end = b.end if b.end is not None else float("inf")
            if a.start < b_end and b.start < a_end:
                logger.warning(
                    "Layer '%s': animations %d and %d overlap on the same property; "
                    "animation %d wins",
                    layer_id, i, j, j,
                )


def _layers(raw_layers: list[Any]) -> list[Layer]:
    layers = []
    seen: set[str] = set()
    for i, raw in enumerate(raw_layers):
        if not isinstance(raw, dict):
            logger.warning("Dropping layer %d: not an object", i)
            continue

        layer_id = raw.get("id")
        if not isinstance(layer_id, str) or not layer_id:
            layer_id = f"layer_{i}"
        if layer_id in seen:
            renamed = f"{layer_id}_{i}"
            suffix = i
            while renamed in seen:
                suffix += 1
                renamed = f"{layer_id}_{suffix}"
            logger.warning("Duplicate layer id '%s', renaming to '%s'", layer_id, renamed)
            layer_id = renamed
        seen.add(layer_id)

        layer_type = raw.get("type")
        if not isinstance(layer_type, str) or not layer_type:
            layer_type = "circle"

        props = raw.get("props")
        if not isinstance(props, dict):
            props = dict(DEFAULT_PROPS)

        extra = {k: v for k, v in raw.items() if k not in {"id", "type", "props", "animations"}}
        layers.append(
            Layer(
                id=layer_id,
                type=layer_type,
                props=props,
                animations=_animations(layer_id, raw.get("animations")),
                **extra,
            )
        )
    return layers


def _particle_systems(raw: Any) -> list[ParticleSystemSpec]:
    if not isinstance(raw, list):
        if raw is not None:
            logger.warning("particleSystems is not an array, ignoring")
        return []
    systems = []
    for i, entry in enumerate(raw):
        try:
            spec = ParticleSystemSpec.model_validate(entry)
        except ValidationError as e:
            logger.warning("Dropping particle system %d (%d errors)", i, e.error_count())
            continue
        if spec.id is None:
            spec.id = f"particles_{i}"
        systems.append(spec)
    return systems


def validate_scene(raw: Any) -> Scene:
    """Validate and normalize a raw visualization object into a :class:`Scene`.

    Raises:
        SceneValidationError: if the scene itself is malformed.
    """
    errors = check_scene_shape(raw)
    if errors:
        raise SceneValidationError("Invalid visualization", errors)

    layers = _layers(raw["layers"])
    if not layers:
        raise SceneValidationError("Invalid visualization", ["no usable layers"])

    extra = {k: v for k, v in raw.items() if k not in _SCENE_KEYS}
    try:
        return Scene.model_validate({
            **extra,
            "id": raw.get("id") if isinstance(raw.get("id"), str) else f"vis_{uuid.uuid4()}",
            "durationMs": raw.get("durationMs", raw.get("duration")),
            "fps": raw["fps"],
            "layers": layers,
            "particleSystems": _particle_systems(raw.get("particleSystems")),
        })
    except ValidationError as e:
        raise SceneValidationError(
            "Invalid visualization", [err["msg"] for err in e.errors()]
        ) from e
