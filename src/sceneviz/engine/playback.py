"""Playback sessions: one timeline over a scene plus its runtime caches.

A session deep-copies the scene it is given and owns every piece of mutable
state derived from it (springs, particle pools, the play clock). Several
sessions can play the same scene independently.
"""

from __future__ import annotations

import logging
import random
import time
from dataclasses import asdict, dataclass, field
from itertools import chain
from typing import TYPE_CHECKING, Any, Callable

from sceneviz.engine.evaluator import EvaluatorState, resolve
from sceneviz.engine.particles import ParticleSystem, build_group_index
from sceneviz.models import Bounds, Scene

if TYPE_CHECKING:
    from sceneviz.config import SceneVizConfig

logger = logging.getLogger(__name__)


@dataclass
class ResolvedLayer:
    id: str
    type: str
    props: dict[str, Any]
    order: int

    @property
    def z_index(self) -> float:
        z = self.props.get("zIndex", 0)
        if isinstance(z, bool) or not isinstance(z, (int, float)):
            return 0.0
        return float(z)


@dataclass
class ParticleSprite:
    system_id: str
    x: float
    y: float
    size: float
    color: str
    opacity: float
    shape: str = "circle"


@dataclass
class Frame:
    """Everything a renderer needs to paint one instant."""

    elapsed_ms: float
    width: int
    height: int
    background: str
    layers: list[ResolvedLayer] = field(default_factory=list)
    particles: list[ParticleSprite] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "elapsedMs": self.elapsed_ms,
            "width": self.width,
            "height": self.height,
            "background": self.background,
            "layers": [
                {"id": l.id, "type": l.type, "props": l.props, "zIndex": l.z_index}
                for l in self.layers
            ],
            "particles": [asdict(p) for p in self.particles],
        }


def z_ordered(scene: Scene, resolved: dict[str, dict[str, Any]]) -> list[ResolvedLayer]:
    """Declared order, overridden by ascending ``props.zIndex`` where present."""
    layers = [
        ResolvedLayer(id=layer.id, type=layer.type, props=resolved[layer.id], order=i)
        for i, layer in enumerate(scene.layers)
        if layer.id in resolved
    ]
    return sorted(layers, key=lambda l: (l.z_index, l.order))


class PlaybackSession:
    """Frame-driven playback of one scene.

    ``clock`` returns seconds from a monotonic source and is only consulted
    by :meth:`elapsed` / :meth:`tick`; :meth:`frame` takes an explicit time.
    """

    def __init__(
        self,
        scene: Scene,
        config: SceneVizConfig | None = None,
        *,
        seed: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._authored = scene
        self.width = config.canvas_width if config else 800
        self.height = config.canvas_height if config else 500
        self.background = config.background if config else "#fffaf0"
        self.loop = config.loop_playback if config else True
        self.seed = seed if seed is not None else (config.particle_seed if config else None)
        self.state = EvaluatorState(spring_step_ms=config.spring_step_ms if config else 16.0)
        self._clock = clock

        self.scene: Scene = scene
        self.systems: dict[str, ParticleSystem] = {}
        self.simulated_ms = 0.0
        self._started_at: float | None = None
        self._paused_at: float | None = None
        self.reset()

    # ── Lifecycle ─────────────────────────────────────────────────

    def reset(self) -> None:
        """Discard springs, particles and the clock; replay from zero."""
        self.scene = self._authored.model_copy(deep=True)
        self.state.clear()
        self._build_particle_systems()
        self._started_at = None
        self._paused_at = None
        logger.debug("Session reset for scene %s", self.scene.id)

    def _build_particle_systems(self) -> None:
        rng = random.Random(self.seed)
        default_bounds = Bounds(width=self.width, height=self.height)
        self.systems = {}
        for i, spec in enumerate(self.scene.particle_systems):
            system_id = spec.id or f"particles_{i}"
            self.systems[system_id] = ParticleSystem(
                spec, rng=random.Random(rng.random()), default_bounds=default_bounds,
            )
        self.simulated_ms = 0.0

    @property
    def playing(self) -> bool:
        return self._started_at is not None and self._paused_at is None

    def play(self) -> None:
        if self._started_at is None:
            self._started_at = self._clock()
        elif self._paused_at is not None:
            self.resume()

    def pause(self) -> None:
        if self.playing:
            self._paused_at = self._clock()

    def resume(self) -> None:
        if self._paused_at is not None and self._started_at is not None:
            self._started_at += self._clock() - self._paused_at
            self._paused_at = None

    def trigger(self, layer_id: str, animation_index: int) -> None:
        """Re-arm a spring animation on its next evaluation."""
        self.state.triggers.add((layer_id, animation_index))

    def elapsed(self) -> float:
        if self._started_at is None:
            return 0.0
        now = self._paused_at if self._paused_at is not None else self._clock()
        elapsed = (now - self._started_at) * 1000
        if self.loop:
            elapsed %= self.scene.duration_ms
        return elapsed

    # ── Evaluation ────────────────────────────────────────────────

    @property
    def particle_step_ms(self) -> float:
        return 1000 / self.scene.fps

    def resolve(self, elapsed_ms: float) -> dict[str, dict[str, Any]]:
        return resolve(self.scene, elapsed_ms, self.state)

    def step_particles(self, elapsed_ms: float) -> None:
        """Advance every particle system in fixed ``1000/fps`` ticks up to ``elapsed_ms``.

        Seeking backwards rebuilds the pools and replays from zero, so a
        seeded session yields the same particles for the same time.
        """
        if not self.systems:
            return
        if elapsed_ms < self.simulated_ms:
            self._build_particle_systems()

        step = self.particle_step_ms
        while self.simulated_ms + step <= elapsed_ms:
            groups = build_group_index(
                chain.from_iterable(s.particles for s in self.systems.values())
            )
            for system in self.systems.values():
                system.update(step, groups)
            self.simulated_ms += step

    def sprites(self) -> list[ParticleSprite]:
        return [
            ParticleSprite(
                system_id=system_id,
                x=p.x,
                y=p.y,
                size=p.size,
                color=p.color,
                opacity=p.opacity,
                shape=system.spec.shape,
            )
            for system_id, system in self.systems.items()
            for p in system.particles
        ]

    def frame(self, elapsed_ms: float) -> Frame:
        resolved = self.resolve(elapsed_ms)
        self.step_particles(elapsed_ms)
        return Frame(
            elapsed_ms=elapsed_ms,
            width=self.width,
            height=self.height,
            background=self.background,
            layers=z_ordered(self.scene, resolved),
            particles=self.sprites(),
        )

    def tick(self) -> Frame:
        """Sample the session clock and build the frame for "now"."""
        return self.frame(self.elapsed())
