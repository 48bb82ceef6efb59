"""Tests for the particle simulation."""

from __future__ import annotations

import math
import random

import pytest

from sceneviz.engine.particles import Particle, ParticleSystem, build_group_index
from sceneviz.models import Bounds, ParticleSystemSpec


def _system(**fields) -> ParticleSystem:
    spec = ParticleSystemSpec.model_validate({"emissionRate": 0, "friction": 1.0, **fields})
    return ParticleSystem(spec, rng=random.Random(1))


class TestLifecycle:
    @pytest.mark.parametrize("delta_ms,ticks", [(100.0, 10), (16.0, 63)])
    def test_expires_after_exactly_max_life(self, delta_ms, ticks):
        system = _system()
        system.add_particle(Particle(x=0, y=0, max_life=1000))
        for _ in range(ticks - 1):
            system.update(delta_ms)
        assert len(system.particles) == 1
        system.update(delta_ms)
        assert system.particles == []

    def test_fade_and_shrink_follow_life(self):
        system = _system()
        p = system.add_particle(
            Particle(x=0, y=0, max_life=1000, size=4, initial_size=4, shrink=True)
        )
        system.update(250)
        assert p.life == pytest.approx(0.75)
        assert p.opacity == pytest.approx(0.75)
        assert p.size == pytest.approx(3.0)

    def test_inactive_system_never_emits(self):
        system = _system(emissionRate=50, active=False)
        for _ in range(10):
            system.update(16)
        assert system.particles == []

    def test_emission_is_bounded_by_rate(self):
        system = _system(emissionRate=5, particleLife=10000)
        born = system.emit()
        assert 0 <= len(born) < 5

    def test_lifespan_variance(self):
        system = _system(emissionRate=50, particleLife=1000, lifeVariance=200)
        for _ in range(5):
            system.emit()
        lives = [p.max_life for p in system.particles]
        assert lives
        assert all(800 <= life <= 1200 for life in lives)

    def test_seeded_systems_are_reproducible(self):
        fields = {"emissionRate": 10, "spread": 40, "velocity": 80, "particleLife": 5000}
        a = ParticleSystem(ParticleSystemSpec.model_validate(fields), rng=random.Random(42))
        b = ParticleSystem(ParticleSystemSpec.model_validate(fields), rng=random.Random(42))
        for _ in range(20):
            a.update(33)
            b.update(33)
        assert [(p.x, p.y) for p in a.particles] == [(p.x, p.y) for p in b.particles]


class TestForces:
    def test_gravity_pulls_down(self):
        system = _system(gravity=100)
        p = system.add_particle(Particle(x=0, y=0, max_life=10000))
        system.update(100)
        assert p.vy == pytest.approx(10.0)
        assert p.y == pytest.approx(1.0)

    def test_friction_slows(self):
        system = _system(friction=0.5)
        p = system.add_particle(Particle(x=0, y=0, vx=100, max_life=10000))
        system.update(16)
        assert p.vx == pytest.approx(50.0)

    def test_point_field_attracts(self):
        system = _system(forceFields=[{"type": "point", "x": 100, "y": 0, "radius": 200, "strength": 500}])
        p = system.add_particle(Particle(x=0, y=0, max_life=10000))
        system.update(100)
        assert p.vx > 0
        assert p.vy == pytest.approx(0.0)

    def test_field_ignores_particles_outside_radius(self):
        system = _system(forceFields=[{"type": "point", "x": 500, "y": 0, "radius": 50, "strength": 500}])
        p = system.add_particle(Particle(x=0, y=0, max_life=10000))
        system.update(100)
        assert p.vx == 0.0

    def test_particle_on_field_centre_is_skipped(self):
        system = _system(forceFields=[{"type": "point", "x": 0, "y": 0, "radius": 50, "strength": 500}])
        p = system.add_particle(Particle(x=0, y=0, max_life=10000))
        system.update(100)
        assert (p.vx, p.vy) == (0.0, 0.0)

    def test_vortex_is_tangential(self):
        system = _system(forceFields=[{"type": "vortex", "x": 100, "y": 0, "radius": 200, "strength": 500}])
        p = system.add_particle(Particle(x=0, y=0, max_life=10000))
        system.update(100)
        assert p.vx == pytest.approx(0.0)
        assert p.vy != 0.0

    def test_wind(self):
        system = _system(globalForces=[{"type": "wind", "x": 30, "y": 0}])
        p = system.add_particle(Particle(x=0, y=0, max_life=10000))
        system.update(1000)
        assert p.vx == pytest.approx(30.0)

    def test_drag_opposes_motion(self):
        system = _system(globalForces=[{"type": "drag", "strength": 0.001}])
        p = system.add_particle(Particle(x=0, y=0, vx=100, max_life=10000))
        system.update(100)
        assert 0 < p.vx < 100

    @pytest.mark.parametrize("clockwise,expected_vy", [(True, 5.0), (False, -5.0)])
    def test_circular_flow_direction(self, clockwise, expected_vy):
        system = _system(flowFields=[{
            "type": "circular", "x": 0, "y": 0, "radius": 100, "strength": 100, "clockwise": clockwise,
        }])
        # Right of the centre: falloff 0.5, flow is straight down (clockwise) or up.
        p = system.add_particle(Particle(x=50, y=0, max_life=10000))
        system.update(100)
        assert p.vx == pytest.approx(0.0)
        assert p.vy == pytest.approx(expected_vy)

    def test_circular_flow_outside_radius(self):
        system = _system(flowFields=[{"type": "circular", "radius": 100, "strength": 100}])
        p = system.add_particle(Particle(x=150, y=0, max_life=10000))
        system.update(100)
        assert (p.vx, p.vy) == (0.0, 0.0)

    def test_directional_field_ignores_offset_but_not_radius(self):
        system = _system(forceFields=[{
            "type": "directional", "x": 0, "y": 0, "radius": 100, "strength": 100, "directionX": 1,
        }])
        right = system.add_particle(Particle(x=50, y=0, max_life=10000))
        left = system.add_particle(Particle(x=-50, y=0, max_life=10000))
        far = system.add_particle(Particle(x=150, y=0, max_life=10000))
        system.update(100)
        assert right.vx == pytest.approx(5.0)
        assert left.vx == pytest.approx(5.0)
        assert right.vy == left.vy == 0.0
        assert far.vx == 0.0

    def test_wave_flow_uses_simulated_clock(self):
        spec = {"flowFields": [{"type": "wave", "amplitude": 50, "frequency": 1, "speed": 2}]}
        a, b = _system(**spec), _system(**spec)
        pa = a.add_particle(Particle(x=123, y=0, max_life=100000))
        pb = b.add_particle(Particle(x=123, y=0, max_life=100000))
        for _ in range(5):
            a.update(40)
            b.update(40)
        assert (pa.vx, pa.vy) == (pb.vx, pb.vy)
        assert a.clock_ms == 200


class TestInteractions:
    def test_attraction_across_systems(self):
        rule = [{"type": "attract", "groups": ["a", "b"], "strength": 100, "maxDistance": 200}]
        first = _system(interactionGroup="a", particleInteractions=rule)
        second = _system(interactionGroup="b")
        p = first.add_particle(Particle(x=0, y=0, max_life=10000, interaction_group="a"))
        second.add_particle(Particle(x=50, y=0, max_life=10000, interaction_group="b"))

        groups = build_group_index([*first.particles, *second.particles])
        first.update(100, groups)
        assert p.vx > 0

    @pytest.mark.parametrize("anchor,expected", [((50, 0), (0.0, 7.5)), ((0, 50), (-7.5, 0.0))])
    def test_orbit_is_tangential(self, anchor, expected):
        rule = [{"type": "orbit", "groups": ["a", "b"], "strength": 100, "maxDistance": 200}]
        orbiter = _system(particleInteractions=rule)
        centre = _system()
        p = orbiter.add_particle(Particle(x=0, y=0, max_life=10000, interaction_group="a"))
        centre.add_particle(Particle(x=anchor[0], y=anchor[1], max_life=10000, interaction_group="b"))

        groups = build_group_index([*orbiter.particles, *centre.particles])
        orbiter.update(100, groups)
        assert (p.vx, p.vy) == pytest.approx(expected)

    def test_repel_within_group(self):
        rule = [{"type": "repel", "groups": ["a"], "strength": 100, "maxDistance": 200}]
        system = _system(particleInteractions=rule)
        left = system.add_particle(Particle(x=0, y=0, max_life=10000, interaction_group="a"))
        right = system.add_particle(Particle(x=50, y=0, max_life=10000, interaction_group="a"))
        system.update(100)
        assert left.vx < 0
        assert right.vx > 0

    def test_outside_distance_band_has_no_effect(self):
        rule = [{"type": "attract", "groups": ["a"], "strength": 100, "minDistance": 10, "maxDistance": 20}]
        system = _system(particleInteractions=rule)
        p = system.add_particle(Particle(x=0, y=0, max_life=10000, interaction_group="a"))
        system.add_particle(Particle(x=100, y=0, max_life=10000, interaction_group="a"))
        system.update(100)
        assert p.vx == 0.0


class TestCollisions:
    def test_kinetic_energy_does_not_increase(self):
        system = _system(collisions=True, collisionDamping=0.5)
        a = system.add_particle(Particle(x=0, y=0, vx=50, size=5, max_life=10000))
        b = system.add_particle(Particle(x=8, y=0, vx=-50, size=5, max_life=10000))
        before = a.kinetic_energy + b.kinetic_energy
        system.update(16)
        assert a.kinetic_energy + b.kinetic_energy <= before + 1e-9

    def test_overlap_is_separated(self):
        system = _system(collisions=True)
        a = system.add_particle(Particle(x=0, y=0, vx=10, size=5, max_life=10000))
        b = system.add_particle(Particle(x=4, y=0, vx=-10, size=5, max_life=10000))
        system.update(1)
        assert math.hypot(b.x - a.x, b.y - a.y) == pytest.approx(10.0)

    def test_separating_particles_untouched(self):
        system = _system(collisions=True)
        a = system.add_particle(Particle(x=0, y=0, vx=-10, size=5, max_life=10000))
        b = system.add_particle(Particle(x=4, y=0, vx=10, size=5, max_life=10000))
        system.update(1)
        assert (a.vx, b.vx) == (-10, 10)


class TestBoundaries:
    BOUNDS = {"x": 0, "y": 0, "width": 100, "height": 100}

    def test_kill_removes_escaped_particles(self):
        system = _system(boundaries={"type": "kill", "bounds": self.BOUNDS})
        system.add_particle(Particle(x=150, y=50, max_life=10000))
        system.add_particle(Particle(x=50, y=50, max_life=10000))
        system.update(16)
        assert len(system.particles) == 1

    def test_wrap(self):
        system = _system(boundaries={"type": "wrap", "bounds": self.BOUNDS})
        p = system.add_particle(Particle(x=99, y=50, vx=1000, max_life=10000))
        system.update(16)
        assert p.x == 0

    def test_bounce_reflects_with_damping(self):
        system = _system(boundaries={"type": "bounce", "bounds": self.BOUNDS}, collisionDamping=0.5)
        p = system.add_particle(Particle(x=95, y=50, vx=1000, size=3, max_life=10000))
        system.update(16)
        assert p.x == 97
        assert p.vx == pytest.approx(-500)

    def test_top_level_bounds_are_used(self):
        system = _system(boundaries={"type": "kill"}, bounds=self.BOUNDS)
        assert system.bounds == Bounds(**self.BOUNDS)

    def test_missing_bounds_use_default(self):
        spec = ParticleSystemSpec.model_validate({"boundaries": {"type": "wrap"}})
        default = Bounds(width=800, height=500)
        assert ParticleSystem(spec, default_bounds=default).bounds == default

    def test_no_boundary_type_means_no_bounds(self):
        spec = ParticleSystemSpec.model_validate({"bounds": self.BOUNDS})
        system = ParticleSystem(spec)
        p = system.add_particle(Particle(x=1000, y=1000, max_life=10000))
        system.update(16)
        assert system.particles == [p]
