"""Animation evaluator: ``resolve(scene, elapsed_ms)`` -> per-layer props.

The scene is never mutated. Runtime spring state lives in an
:class:`EvaluatorState` owned by the caller (normally a
:class:`~sceneviz.engine.playback.PlaybackSession`), keyed by
``(layer_id, animation_index)``.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from sceneviz.engine import paths
from sceneviz.engine.easing import clamp01, ease, lerp
from sceneviz.engine.spring import SpringState, VectorSpring, create_spring, set_target, update
from sceneviz.models import Animation, Layer, Scene

logger = logging.getLogger(__name__)

SpringKey = tuple[str, int]

_SPRING_AXES = ("x", "y")
_EVAL_ERRORS = (TypeError, ValueError, KeyError, ZeroDivisionError, OverflowError)


@dataclass
class EvaluatorState:
    """Session-scoped runtime state the evaluator reads and updates."""

    springs: dict[SpringKey, SpringState | VectorSpring] = field(default_factory=dict)
    armed: set[SpringKey] = field(default_factory=set)
    triggers: set[SpringKey] = field(default_factory=set)
    spring_step_ms: float = 16.0

    def clear(self) -> None:
        self.springs.clear()
        self.armed.clear()
        self.triggers.clear()


def _number(value: Any, default: float | None = None) -> float | None:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        return float(value)
    return default


def _first(*values: Any) -> float | None:
    for value in values:
        number = _number(value)
        if number is not None:
            return number
    return None


def _mix(a: float, b: float, progress: float) -> float:
    # Exact endpoints so terminal frames carry the authored target verbatim.
    if progress == 1.0:
        return b
    if progress == 0.0:
        return a
    return lerp(a, b, progress)


def window(anim: Animation, scene: Scene) -> tuple[float, float]:
    start = anim.start
    end = anim.end if anim.end is not None else scene.duration_ms
    return start, end


def resolve(
    scene: Scene,
    elapsed_ms: float,
    state: EvaluatorState | None = None,
) -> dict[str, dict[str, Any]]:
    """Compute the render-ready props of every layer at ``elapsed_ms``.

    Without a ``state`` springs are evaluated against a throwaway cache, so
    only stateless animations are meaningful across calls.
    """
    state = state if state is not None else EvaluatorState()
    resolved: dict[str, dict[str, Any]] = {}
    for layer in scene.layers:
        resolved[layer.id] = resolve_layer(scene, layer, elapsed_ms, state)
    return resolved


def resolve_layer(
    scene: Scene,
    layer: Layer,
    elapsed_ms: float,
    state: EvaluatorState,
) -> dict[str, Any]:
    props = dict(layer.props)
    for index, anim in enumerate(layer.animations):
        try:
            _apply_animation(scene, layer, index, anim, elapsed_ms, props, state)
        except _EVAL_ERRORS as e:
            logger.warning(
                "Skipping animation %d (%s) on layer '%s': %s",
                index, anim.prop, layer.id, e,
            )
    return props


def _apply_animation(
    scene: Scene,
    layer: Layer,
    index: int,
    anim: Animation,
    elapsed_ms: float,
    props: dict[str, Any],
    state: EvaluatorState,
) -> None:
    start, end = window(anim, scene)
    if elapsed_ms < start:
        return

    duration = end - start
    if anim.loop and duration > 0:
        effective = start + math.fmod(elapsed_ms - start, duration)
    else:
        effective = elapsed_ms

    if effective >= end:
        _dispatch(layer, index, anim, 1.0, props, state, terminal=True)
        return

    progress = ease(anim.easing, clamp01((effective - start) / duration))
    _dispatch(layer, index, anim, progress, props, state, terminal=False)


def _dispatch(
    layer: Layer,
    index: int,
    anim: Animation,
    progress: float,
    props: dict[str, Any],
    state: EvaluatorState,
    *,
    terminal: bool,
) -> None:
    kind = anim.prop
    if kind == "orbit":
        _apply_orbit(anim, progress, props)
    elif kind == "path":
        _apply_path(anim, progress, props, terminal=terminal)
    elif kind == "scale":
        _apply_scale(anim, progress, props)
    elif kind == "spring":
        _apply_spring(layer, index, anim, props, state, terminal=terminal)
    else:
        _apply_generic(anim, progress, props)


# ── Variants ──────────────────────────────────────────────────────────

def _apply_orbit(anim: Animation, progress: float, props: dict[str, Any]) -> None:
    if anim.center_x is None or anim.center_y is None or anim.radius is None:
        raise ValueError("orbit needs centerX, centerY and radius")
    props["x"], props["y"] = paths.orbit(progress, anim.center_x, anim.center_y, anim.radius)


def _apply_path(
    anim: Animation, progress: float, props: dict[str, Any], *, terminal: bool = False,
) -> None:
    if terminal:
        sample = paths.path_end(anim.path_type, anim.points)
    else:
        sample = paths.follow_path(
            anim.path_type, anim.points, progress, closed=anim.closed, alpha=anim.alpha,
        )
    if sample is None:
        return
    props["x"], props["y"] = sample.x, sample.y
    if anim.orient_to_path and sample.angle is not None:
        props["rotation"] = math.degrees(sample.angle) + anim.rotation_offset


def _apply_scale(anim: Animation, progress: float, props: dict[str, Any]) -> None:
    per_axis = any(v is not None for v in (anim.from_x, anim.from_y, anim.to_x, anim.to_y))
    base = _first(props.get("scale"), 1.0)

    if not per_axis:
        if anim.to is None:
            raise ValueError("scale needs 'to'")
        start = _first(anim.from_, base)
        value = _mix(start, anim.to, progress)
        props["scale"] = props["scaleX"] = props["scaleY"] = value
        return

    from_x = _first(anim.from_x, anim.from_, props.get("scaleX"), base)
    from_y = _first(anim.from_y, anim.from_, props.get("scaleY"), base)
    to_x = _first(anim.to_x, anim.to, from_x)
    to_y = _first(anim.to_y, anim.to, from_y)
    props["scaleX"] = _mix(from_x, to_x, progress)
    props["scaleY"] = _mix(from_y, to_y, progress)


def _apply_generic(anim: Animation, progress: float, props: dict[str, Any]) -> None:
    if anim.to is None:
        raise ValueError(f"'{anim.prop}' animation needs 'to'")
    start = _first(anim.from_, props.get(anim.prop))
    if start is None:
        raise ValueError(f"'{anim.prop}' has no numeric starting value")
    props[anim.prop] = _mix(start, anim.to, progress)


# ── Springs ───────────────────────────────────────────────────────────

def is_vector_spring(anim: Animation) -> bool:
    return anim.target_property == "position" or any(
        v is not None for v in (anim.from_x, anim.from_y, anim.to_x, anim.to_y)
    )


def spring_endpoints(
    anim: Animation, props: dict[str, Any]
) -> tuple[dict[str, float], dict[str, float]]:
    """Start and target values keyed by the props the spring writes."""
    if is_vector_spring(anim):
        start = {
            "x": _first(anim.from_x, props.get("x"), 0.0),
            "y": _first(anim.from_y, props.get("y"), 0.0),
        }
        target = {
            "x": _first(anim.to_x, start["x"]),
            "y": _first(anim.to_y, start["y"]),
        }
        return start, target

    prop = anim.target_property
    if not prop:
        raise ValueError("spring needs 'targetProperty'")
    if anim.to is None:
        raise ValueError("spring needs 'to'")
    initial = _first(anim.from_, props.get(prop))
    if initial is None:
        raise ValueError(f"spring '{prop}' has no numeric starting value")
    return {prop: initial}, {prop: anim.to}


def _apply_spring(
    layer: Layer,
    index: int,
    anim: Animation,
    props: dict[str, Any],
    state: EvaluatorState,
    *,
    terminal: bool,
) -> None:
    start, target = spring_endpoints(anim, props)
    if terminal:
        props.update(target)
        return

    key = (layer.id, index)
    spring = state.springs.get(key)
    options = {
        "stiffness": anim.stiffness,
        "damping": anim.damping,
        "mass": anim.mass,
        "precision": anim.precision,
    }
    if spring is None:
        if is_vector_spring(anim):
            spring = VectorSpring.create(start, start, **options)
        else:
            value = next(iter(start.values()))
            spring = create_spring(value, value, **options)
        state.springs[key] = spring

    if key not in state.armed or key in state.triggers:
        if isinstance(spring, VectorSpring):
            spring.set_target(target)
        else:
            set_target(spring, next(iter(target.values())))
        state.armed.add(key)
        state.triggers.discard(key)

    if isinstance(spring, VectorSpring):
        props.update(spring.update(state.spring_step_ms))
    else:
        (name,) = target
        props[name] = update(spring, state.spring_step_ms)
