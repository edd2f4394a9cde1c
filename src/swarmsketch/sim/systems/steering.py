from __future__ import annotations

from typing import List, Sequence, TYPE_CHECKING

from pygame.math import Vector2

from ..core.spatial_grid import Neighbor, neighbors_within
from ..utils.math2d import ZERO, limit, safe_normalize_xy

if TYPE_CHECKING:
    from ..core.agent import Boid
    from ..core.config import FlockConfig, FlockingParams

ALIGNMENT_RADIUS = 50.0
COHESION_RADIUS = 50.0
SEPARATION_RADIUS = 24.0
DESIRED_SPEED = 2.0
MAX_FORCE = 0.05


def _within(
    boid: Boid, population: Sequence[Boid], radius: float, neighbors: List[Neighbor] | None
) -> List[Neighbor] | Sequence[Neighbor]:
    if neighbors is None:
        return neighbors_within(boid, population, radius)
    # A precomputed list may have been gathered with a wider radius.
    return [entry for entry in neighbors if entry[1] < radius]


def _steer_towards(boid: Boid, x: float, y: float, desired_speed: float, max_force: float) -> Vector2:
    desired = safe_normalize_xy(x, y) * desired_speed
    return limit(desired - boid.velocity, max_force)


def alignment(
    boid: Boid,
    population: Sequence[Boid],
    radius: float = ALIGNMENT_RADIUS,
    desired_speed: float = DESIRED_SPEED,
    max_force: float = MAX_FORCE,
    neighbors: List[Neighbor] | None = None,
) -> Vector2:
    """Steer towards the mean velocity of the boids within ``radius``."""
    nearby = _within(boid, population, radius, neighbors)
    if not nearby:
        return Vector2(ZERO)
    sum_x = 0.0
    sum_y = 0.0
    for other, _distance in nearby:
        sum_x += other.velocity.x
        sum_y += other.velocity.y
    inv = 1.0 / len(nearby)
    return _steer_towards(boid, sum_x * inv, sum_y * inv, desired_speed, max_force)


def cohesion(
    boid: Boid,
    population: Sequence[Boid],
    radius: float = COHESION_RADIUS,
    desired_speed: float = DESIRED_SPEED,
    max_force: float = MAX_FORCE,
    neighbors: List[Neighbor] | None = None,
) -> Vector2:
    """Steer towards the centre of mass of the boids within ``radius``."""
    nearby = _within(boid, population, radius, neighbors)
    if not nearby:
        return Vector2(ZERO)
    sum_x = 0.0
    sum_y = 0.0
    for other, _distance in nearby:
        sum_x += other.position.x
        sum_y += other.position.y
    inv = 1.0 / len(nearby)
    return _steer_towards(
        boid,
        sum_x * inv - boid.position.x,
        sum_y * inv - boid.position.y,
        desired_speed,
        max_force,
    )


def separation(
    boid: Boid,
    population: Sequence[Boid],
    radius: float = SEPARATION_RADIUS,
    desired_speed: float = DESIRED_SPEED,
    max_force: float = MAX_FORCE,
    neighbors: List[Neighbor] | None = None,
) -> Vector2:
    """
    Steer away from crowding boids.

    Each neighbor inside ``radius`` pushes along ``(position - other.position) / distance``.
    Boids stacked on the exact same point have no defined push direction and are skipped.
    """

    nearby = _within(boid, population, radius, neighbors)
    accum_x = 0.0
    accum_y = 0.0
    count = 0
    for other, distance in nearby:
        if distance <= 0.0:
            continue
        accum_x += (boid.position.x - other.position.x) / distance
        accum_y += (boid.position.y - other.position.y) / distance
        count += 1
    if count == 0:
        return Vector2(ZERO)
    inv = 1.0 / count
    return _steer_towards(boid, accum_x * inv, accum_y * inv, desired_speed, max_force)


def combined_steering(
    boid: Boid,
    population: Sequence[Boid],
    config: FlockConfig,
    params: FlockingParams | None = None,
    neighbors: List[Neighbor] | None = None,
) -> Vector2:
    """Sum of the enabled rules; a disabled rule adds the zero vector."""
    params = config.params if params is None else params
    if neighbors is None and (params.enable_alignment or params.enable_cohesion or params.enable_separation):
        neighbors = neighbors_within(boid, population, max(config.perception_radius, config.separation_radius))
    desired_speed = config.max_speed
    max_force = config.max_force
    steer = Vector2()
    if params.enable_alignment:
        steer += alignment(boid, population, config.perception_radius, desired_speed, max_force, neighbors)
    if params.enable_cohesion:
        steer += cohesion(boid, population, config.perception_radius, desired_speed, max_force, neighbors)
    if params.enable_separation:
        steer += separation(boid, population, config.separation_radius, desired_speed, max_force, neighbors)
    return steer
