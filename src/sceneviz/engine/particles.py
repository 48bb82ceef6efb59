"""Particle simulation: emission, forces, integration, collisions, boundaries.

Each :class:`ParticleSystem` owns its pool exclusively. Other systems only
see its particles through the interaction-group index passed to
:meth:`ParticleSystem.update`, which is used for force lookups and never for
ownership.

Units: velocities are px/s and forces px/s², integrated with
``dt = delta_ms / 1000``. Lifespans are milliseconds.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Mapping, Sequence

from sceneviz.models import BoundaryType, Bounds, ParticleSystemSpec

logger = logging.getLogger(__name__)

# Absorbs float drift when age accumulates non-integral frame deltas.
_LIFE_EPSILON = 1e-9

GroupIndex = Mapping[str, Sequence["Particle"]]


class ParticleOutcome(str, Enum):
    alive = "alive"
    expired = "expired"


@dataclass(eq=False)
class Particle:
    x: float
    y: float
    vx: float = 0.0
    vy: float = 0.0
    size: float = 3.0
    color: str = "#4ECDC4"
    mass: float = 1.0
    max_life: float = 1000.0  # ms
    age_ms: float = 0.0
    opacity: float = 1.0
    initial_opacity: float = 1.0
    initial_size: float = 3.0
    fade_out: bool = True
    shrink: bool = False
    interaction_group: str | None = None

    @property
    def life(self) -> float:
        """Remaining life in [0, 1]."""
        return max(0.0, 1.0 - self.age_ms / self.max_life)

    @property
    def kinetic_energy(self) -> float:
        return 0.5 * self.mass * (self.vx * self.vx + self.vy * self.vy)


def build_group_index(particles: Iterable[Particle]) -> dict[str, list[Particle]]:
    index: dict[str, list[Particle]] = {}
    for p in particles:
        if p.interaction_group:
            index.setdefault(p.interaction_group, []).append(p)
    return index


class ParticleSystem:
    """Runtime pool for one :class:`ParticleSystemSpec`."""

    def __init__(
        self,
        spec: ParticleSystemSpec,
        rng: random.Random | None = None,
        default_bounds: Bounds | None = None,
    ) -> None:
        self.spec = spec
        self.rng = rng or random.Random()
        self.bounds = spec.effective_bounds
        if self.bounds is None and spec.boundaries.type != BoundaryType.none:
            self.bounds = default_bounds
        self.particles: list[Particle] = []
        self.clock_ms = 0.0

    # ── Pool ──────────────────────────────────────────────────────

    def add_particle(self, particle: Particle) -> Particle:
        self.particles.append(particle)
        return particle

    def emit(self) -> list[Particle]:
        """Spawn ``floor(random * emissionRate)`` particles around the emitter."""
        spec = self.spec
        if not spec.active or spec.emission_rate <= 0:
            return []

        rng = self.rng
        colors = spec.colors or ["#ffffff"]
        count = int(math.floor(rng.random() * spec.emission_rate))
        born = []
        for _ in range(count):
            size = spec.particle_size + rng.random() * spec.size_variance
            max_life = spec.particle_life + (rng.random() * 2 - 1) * spec.life_variance
            born.append(
                self.add_particle(
                    Particle(
                        x=spec.x + rng.random() * spec.spread - spec.spread / 2,
                        y=spec.y + rng.random() * spec.spread - spec.spread / 2,
                        vx=rng.random() * spec.velocity - spec.velocity / 2,
                        vy=rng.random() * spec.velocity - spec.velocity / 2,
                        size=size,
                        color=colors[int(rng.random() * len(colors))],
                        mass=spec.particle_mass,
                        max_life=max(max_life, 1.0),
                        opacity=spec.opacity,
                        initial_opacity=spec.opacity,
                        initial_size=size,
                        fade_out=spec.fade_out,
                        shrink=spec.shrink,
                        interaction_group=spec.interaction_group,
                    )
                )
            )
        return born

    # ── Tick ──────────────────────────────────────────────────────

    def update(self, delta_ms: float, groups: GroupIndex | None = None) -> list[Particle]:
        """Advance one tick and return the live particles.

        ``groups`` is the interaction-group index across every system in the
        session; when omitted only this system's particles are visible.
        """
        dt = delta_ms / 1000
        self.clock_ms += delta_ms
        self.emit()

        index = groups if groups is not None else build_group_index(self.particles)
        for p in self.particles:
            self._apply_forces(p, dt, index)

        outcomes = [self._integrate(p, delta_ms, dt) for p in self.particles]

        if self.spec.collisions:
            self._resolve_collisions()

        outcomes = [
            outcome if outcome is ParticleOutcome.expired else self._apply_boundary(p)
            for p, outcome in zip(self.particles, outcomes)
        ]
        self.particles = [
            p for p, outcome in zip(self.particles, outcomes)
            if outcome is ParticleOutcome.alive
        ]
        return self.particles

    # ── Forces ────────────────────────────────────────────────────

    def _apply_forces(self, p: Particle, dt: float, groups: GroupIndex) -> None:
        spec = self.spec
        if spec.gravity:
            p.vy += spec.gravity * p.mass * dt

        p.vx *= spec.friction
        p.vy *= spec.friction

        self._apply_global_forces(p, dt)
        self._apply_force_fields(p, dt)
        self._apply_flow_fields(p, dt)
        self._apply_interactions(p, dt, groups)

    def _apply_global_forces(self, p: Particle, dt: float) -> None:
        for force in self.spec.global_forces:
            if force.type == "wind":
                p.vx += force.x * dt
                p.vy += force.y * dt
            elif force.type == "drag":
                speed = math.hypot(p.vx, p.vy)
                if speed > 0:
                    magnitude = force.strength * speed * speed
                    p.vx += -p.vx / speed * magnitude * dt
                    p.vy += -p.vy / speed * magnitude * dt

    def _apply_force_fields(self, p: Particle, dt: float) -> None:
        for field in self.spec.force_fields:
            dx = field.x - p.x
            dy = field.y - p.y
            dist = math.hypot(dx, dy)
            if dist == 0 or dist > field.radius:
                continue
            nx, ny = dx / dist, dy / dist
            falloff = 1 - dist / field.radius
            magnitude = field.strength * falloff * p.mass

            if field.type == "point":
                p.vx += nx * magnitude * dt
                p.vy += ny * magnitude * dt
            elif field.type == "vortex":
                p.vx += -ny * magnitude * dt
                p.vy += nx * magnitude * dt
            elif field.type == "directional":
                p.vx += field.direction_x * magnitude * dt
                p.vy += field.direction_y * magnitude * dt

    def _apply_flow_fields(self, p: Particle, dt: float) -> None:
        for field in self.spec.flow_fields:
            flow_x = flow_y = 0.0
            if field.type == "circular":
                dx = p.x - field.x
                dy = p.y - field.y
                dist = math.hypot(dx, dy)
                if 0 < dist <= field.radius:
                    nx, ny = dx / dist, dy / dist
                    strength = field.strength * (1 - dist / field.radius)
                    if field.clockwise:
                        flow_x, flow_y = -ny * strength, nx * strength
                    else:
                        flow_x, flow_y = ny * strength, -nx * strength
            elif field.type == "wave":
                normalized_x = (p.x - field.x) / field.width
                phase = self.clock_ms / 1000 * field.speed
                angle = normalized_x * field.frequency * 2 * math.pi + phase
                flow_y = math.sin(angle) * field.amplitude
                flow_x = math.cos(angle) * field.amplitude * 0.2
            p.vx += flow_x * dt
            p.vy += flow_y * dt

    def _apply_interactions(self, p: Particle, dt: float, groups: GroupIndex) -> None:
        group = p.interaction_group
        if not group:
            return
        for rule in self.spec.particle_interactions:
            if group not in rule.groups:
                continue
            if len(rule.groups) == 1:
                targets = [group]
            else:
                targets = [g for g in rule.groups if g != group] or [group]

            span = rule.max_distance - rule.min_distance
            for name in targets:
                for other in groups.get(name, ()):
                    if other is p:
                        continue
                    dx = other.x - p.x
                    dy = other.y - p.y
                    dist = math.hypot(dx, dy)
                    if dist == 0 or not rule.min_distance <= dist <= rule.max_distance:
                        continue
                    nx, ny = dx / dist, dy / dist
                    falloff = 1 - (dist - rule.min_distance) / span if span > 0 else 1.0
                    magnitude = rule.strength * falloff

                    if rule.type == "attract":
                        p.vx += nx * magnitude * dt
                        p.vy += ny * magnitude * dt
                    elif rule.type == "repel":
                        p.vx -= nx * magnitude * dt
                        p.vy -= ny * magnitude * dt
                    elif rule.type == "orbit":
                        p.vx += -ny * magnitude * dt
                        p.vy += nx * magnitude * dt

    # ── Integration ───────────────────────────────────────────────

    def _integrate(self, p: Particle, delta_ms: float, dt: float) -> ParticleOutcome:
        p.x += p.vx * dt
        p.y += p.vy * dt
        p.age_ms += delta_ms

        life = p.life
        if p.fade_out:
            p.opacity = p.initial_opacity * life
        if p.shrink:
            p.size = p.initial_size * life

        if p.age_ms + _LIFE_EPSILON >= p.max_life:
            return ParticleOutcome.expired
        return ParticleOutcome.alive

    # ── Collisions ────────────────────────────────────────────────

    def _resolve_collisions(self) -> None:
        restitution = self.spec.collision_damping
        particles = self.particles
        for i, p1 in enumerate(particles):
            for p2 in particles[i + 1:]:
                dx = p2.x - p1.x
                dy = p2.y - p1.y
                min_dist = p1.size + p2.size
                dist_sq = dx * dx + dy * dy
                if dist_sq >= min_dist * min_dist or dist_sq == 0:
                    continue

                dist = math.sqrt(dist_sq)
                nx, ny = dx / dist, dy / dist
                vel_along_normal = (p2.vx - p1.vx) * nx + (p2.vy - p1.vy) * ny
                if vel_along_normal > 0:
                    continue

                impulse = -(1 + restitution) * vel_along_normal / (1 / p1.mass + 1 / p2.mass)
                p1.vx -= impulse * nx / p1.mass
                p1.vy -= impulse * ny / p1.mass
                p2.vx += impulse * nx / p2.mass
                p2.vy += impulse * ny / p2.mass

                correction = (min_dist - dist) * 0.5
                p1.x -= correction * nx
                p1.y -= correction * ny
                p2.x += correction * nx
                p2.y += correction * ny

    # ── Boundaries ────────────────────────────────────────────────

    def _apply_boundary(self, p: Particle) -> ParticleOutcome:
        kind = self.spec.boundaries.type
        b = self.bounds
        if b is None or kind == BoundaryType.none:
            return ParticleOutcome.alive

        right = b.x + b.width
        bottom = b.y + b.height

        if kind == BoundaryType.bounce:
            damping = self.spec.collision_damping
            if p.x - p.size < b.x:
                p.x = b.x + p.size
                p.vx *= -damping
            elif p.x + p.size > right:
                p.x = right - p.size
                p.vx *= -damping
            if p.y - p.size < b.y:
                p.y = b.y + p.size
                p.vy *= -damping
            elif p.y + p.size > bottom:
                p.y = bottom - p.size
                p.vy *= -damping
        elif kind == BoundaryType.wrap:
            if p.x < b.x:
                p.x = right
            elif p.x > right:
                p.x = b.x
            if p.y < b.y:
                p.y = bottom
            elif p.y > bottom:
                p.y = b.y
        elif kind == BoundaryType.kill:
            if (
                p.x < b.x - p.size
                or p.x > right + p.size
                or p.y < b.y - p.size
                or p.y > bottom + p.size
            ):
                return ParticleOutcome.expired
        return ParticleOutcome.alive
