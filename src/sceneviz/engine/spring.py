"""Damped-oscillator springs.

A :class:`SpringState` is plain data; :func:`update` advances it with
semi-implicit Euler integration (velocity first, then position) using
``dt`` in seconds. Once both the velocity and the remaining distance fall
below ``precision`` the spring snaps onto its target and stops.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping


@dataclass
class SpringState:
    value: float
    target: float
    velocity: float = 0.0
    stiffness: float = 0.1
    damping: float = 0.8
    mass: float = 1.0
    precision: float = 0.001
    at_rest: bool = False


def create_spring(
    initial: float,
    target: float,
    *,
    stiffness: float = 0.1,
    damping: float = 0.8,
    mass: float = 1.0,
    precision: float = 0.001,
) -> SpringState:
    return SpringState(
        value=initial,
        target=target,
        stiffness=stiffness,
        damping=damping,
        mass=mass,
        precision=precision,
    )


def update(spring: SpringState, delta_ms: float = 16.0) -> float:
    """Advance ``spring`` by ``delta_ms`` and return its new value."""
    if spring.at_rest:
        return spring.value

    dt = delta_ms / 1000
    force = -spring.stiffness * (spring.value - spring.target) - spring.damping * spring.velocity
    acceleration = force / spring.mass
    spring.velocity += acceleration * dt
    spring.value += spring.velocity * dt

    if (
        abs(spring.velocity) < spring.precision
        and abs(spring.value - spring.target) < spring.precision
    ):
        spring.value = spring.target
        spring.velocity = 0.0
        spring.at_rest = True

    return spring.value


def set_target(spring: SpringState, target: float) -> None:
    """Retarget without touching velocity, so momentum carries over."""
    spring.target = target
    spring.at_rest = False


def reset(spring: SpringState, value: float | None = None, target: float | None = None) -> None:
    if value is not None:
        spring.value = value
    if target is not None:
        spring.target = target
    spring.velocity = 0.0
    spring.at_rest = False


@dataclass
class VectorSpring:
    """One independent scalar spring per named component (e.g. ``x``, ``y``)."""

    components: dict[str, SpringState] = field(default_factory=dict)

    @classmethod
    def create(
        cls,
        initial: Mapping[str, float],
        target: Mapping[str, float],
        **options: float,
    ) -> VectorSpring:
        return cls({key: create_spring(initial[key], target[key], **options) for key in initial})

    @property
    def at_rest(self) -> bool:
        return all(s.at_rest for s in self.components.values())

    @property
    def values(self) -> dict[str, float]:
        return {key: s.value for key, s in self.components.items()}

    def update(self, delta_ms: float = 16.0) -> dict[str, float]:
        return {key: update(s, delta_ms) for key, s in self.components.items()}

    def set_target(self, target: Mapping[str, float]) -> None:
        for key, value in target.items():
            if key in self.components:
                set_target(self.components[key], value)

    def reset(
        self,
        values: Mapping[str, float] | None = None,
        targets: Mapping[str, float] | None = None,
    ) -> None:
        for key, s in self.components.items():
            reset(
                s,
                values.get(key) if values else None,
                targets.get(key) if targets else None,
            )
