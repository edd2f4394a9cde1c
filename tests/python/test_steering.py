from __future__ import annotations

from pygame.math import Vector2
from pytest import approx

from swarmsketch.sim.core.agent import Boid
from swarmsketch.sim.core.config import FlockConfig, FlockingParams
from swarmsketch.sim.core.spatial_grid import neighbors_within
from swarmsketch.sim.systems import steering


def _boid(idx: int, x: float, y: float, vx: float = 0.0, vy: float = 0.0) -> Boid:
    return Boid(id=idx, position=Vector2(x, y), velocity=Vector2(vx, vy))


def test_rules_return_zero_without_neighbors_in_radius():
    boid = _boid(0, 100.0, 100.0, 2.0, 0.0)
    far = _boid(1, 160.0, 100.0, 0.0, 2.0)
    just_outside_separation = _boid(2, 124.0, 100.0, 0.0, 2.0)
    population = [boid, far]

    assert steering.alignment(boid, population) == Vector2()
    assert steering.cohesion(boid, population) == Vector2()
    assert steering.separation(boid, [boid, just_outside_separation]) == Vector2()


def test_alignment_turns_towards_neighbor_heading_within_force_cap():
    boid = _boid(0, 100.0, 100.0, 2.0, 0.0)
    other = _boid(1, 110.0, 100.0, 0.0, 2.0)

    steer = steering.alignment(boid, [boid, other])

    # desired (0, 2) minus velocity (2, 0) points to (-1, 1), capped at 0.05
    assert steer.length() == approx(0.05)
    assert steer.x == approx(-0.05 / 2 ** 0.5)
    assert steer.y == approx(0.05 / 2 ** 0.5)


def test_cohesion_pulls_towards_centre_of_mass():
    boid = _boid(0, 100.0, 100.0, 0.0, 0.0)
    others = [_boid(1, 100.0, 120.0), _boid(2, 100.0, 140.0)]

    steer = steering.cohesion(boid, [boid, *others])

    assert steer.x == approx(0.0, abs=1e-12)
    assert steer.y == approx(0.05)


def test_separation_pushes_away_from_close_neighbor():
    boid = _boid(0, 100.0, 100.0, 0.0, 0.0)
    close = _boid(1, 110.0, 100.0)

    steer = steering.separation(boid, [boid, close])

    assert steer.x == approx(-0.05)
    assert steer.y == approx(0.0, abs=1e-12)


def test_separation_skips_coincident_boids():
    boid = _boid(0, 50.0, 50.0, 1.0, 0.0)
    twin = _boid(1, 50.0, 50.0)

    assert steering.separation(boid, [boid, twin]) == Vector2()


def test_precomputed_neighbors_are_filtered_to_rule_radius():
    boid = _boid(0, 100.0, 100.0, 2.0, 0.0)
    mid = _boid(1, 140.0, 100.0)
    population = [boid, mid]
    wide = neighbors_within(boid, population, 50.0)

    assert steering.separation(boid, population, neighbors=wide) == Vector2()
    assert steering.cohesion(boid, population, neighbors=wide) == steering.cohesion(boid, population)


def test_disabled_rules_contribute_zero():
    config = FlockConfig()
    boid = _boid(0, 100.0, 100.0, 2.0, 0.0)
    population = [boid, _boid(1, 110.0, 105.0, 0.0, 2.0)]

    none_enabled = FlockingParams(enable_alignment=False, enable_cohesion=False, enable_separation=False)
    assert steering.combined_steering(boid, population, config, none_enabled) == Vector2()

    only_alignment = FlockingParams(enable_alignment=True, enable_cohesion=False, enable_separation=False)
    assert steering.combined_steering(boid, population, config, only_alignment) == steering.alignment(
        boid, population
    )

    combined = steering.combined_steering(boid, population, config)
    expected = (
        steering.alignment(boid, population)
        + steering.cohesion(boid, population)
        + steering.separation(boid, population)
    )
    assert combined.x == approx(expected.x)
    assert combined.y == approx(expected.y)
