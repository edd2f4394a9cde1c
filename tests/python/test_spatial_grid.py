from __future__ import annotations

from pygame.math import Vector2
from pytest import approx

from swarmsketch.sim.core.agent import Boid
from swarmsketch.sim.core.rng import DeterministicRng
from swarmsketch.sim.core.spatial_grid import SpatialGrid, neighbors_within


def _boid(idx: int, x: float, y: float) -> Boid:
    return Boid(id=idx, position=Vector2(x, y), velocity=Vector2())


def _random_population(count: int, seed: int = 11) -> list[Boid]:
    rng = DeterministicRng(seed)
    return [Boid(id=i, position=rng.next_position(200.0, 200.0), velocity=Vector2()) for i in range(count)]


def test_neighbors_within_excludes_self_and_uses_strict_radius():
    boids = [_boid(0, 0.0, 0.0), _boid(1, 3.0, 0.0), _boid(2, 5.0, 0.0), _boid(3, 4.0, 3.0)]

    found = neighbors_within(boids[0], boids, radius=5.0)

    ids = sorted(other.id for other, _ in found)
    assert ids == [1]
    assert found[0][1] == approx(3.0)


def test_neighbors_within_reports_distinct_agent_on_same_point():
    boids = [_boid(0, 10.0, 10.0), _boid(1, 10.0, 10.0)]

    found = neighbors_within(boids[0], boids, radius=1.0)

    assert [(other.id, distance) for other, distance in found] == [(1, 0.0)]


def test_neighbors_within_never_returns_query_agent():
    population = _random_population(80)
    for boid in population:
        assert all(other is not boid for other, _ in neighbors_within(boid, population, 40.0))


def test_empty_result_when_alone():
    lonely = _boid(0, 1.0, 1.0)
    assert neighbors_within(lonely, [lonely], 50.0) == []


def test_grid_query_matches_bruteforce():
    population = _random_population(120)
    radius = 24.0
    grid = SpatialGrid(cell_size=50.0)
    grid.rebuild(population)
    out: list = []

    for boid in population:
        grid.collect_neighbors(boid, radius, out)
        brute = neighbors_within(boid, population, radius)
        assert sorted(other.id for other, _ in out) == sorted(other.id for other, _ in brute)
        by_id = {other.id: distance for other, distance in brute}
        for other, distance in out:
            assert distance == approx(by_id[other.id])


def test_grid_clear_forgets_previous_frame():
    grid = SpatialGrid(cell_size=2.0)
    first = _boid(0, 0.5, 0.5)
    second = _boid(1, 1.0, 0.5)
    grid.insert(first)
    grid.insert(second)
    out: list = []

    assert [other.id for other, _ in grid.collect_neighbors(first, 1.6, out)] == [1]

    second.position = Vector2(50.0, 50.0)
    grid.rebuild([first, second])

    assert grid.collect_neighbors(first, 1.6, out) == []
    assert out == []
