from __future__ import annotations

import logging
from dataclasses import asdict, replace
from time import perf_counter
from typing import Any, Dict, List

from pygame.math import Vector2

from .agent import Boid
from .config import FlockConfig, validate_flock_config
from .rng import DeterministicRng
from .spatial_grid import Neighbor, SpatialGrid, neighbors_within
from ..systems import metrics as metrics_system, steering
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotFields, SnapshotMetadata, SnapshotWorld
from ..utils.math2d import heading_from_velocity, safe_normalize, wrap_coordinate

logger = logging.getLogger(__name__)


class FlockSimulation:
    """
    Boids on a toroidal canvas.

    Each step runs two passes: every boid's steering is computed from the frame-start
    state of the whole flock, and only then are velocities and positions written. The
    order of ``boids`` therefore never changes the outcome of a step.
    """

    def __init__(self, config: FlockConfig):
        validate_flock_config(config)
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._query_radius = max(config.perception_radius, config.separation_radius)
        self._grid = SpatialGrid(max(self._query_radius, 1.0))
        self._cell_offsets = self._grid.build_neighbor_cell_offsets(self._query_radius)
        self._boids: List[Boid] = []
        self._neighbor_scratch: List[Neighbor] = []
        self._steer_scratch: List[Vector2] = []
        self._tick = 0
        self._metrics: TickMetrics | None = None
        self._bootstrap_population()
        logger.debug(
            "Flock created: %d boids on %sx%s canvas (seed=%s)",
            len(self._boids),
            config.width,
            config.height,
            config.seed,
        )

    @property
    def config(self) -> FlockConfig:
        return self._config

    @property
    def boids(self) -> List[Boid]:
        return self._boids

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def reset(self) -> None:
        self._rng.reset()
        self._boids.clear()
        self._grid.clear()
        self._neighbor_scratch.clear()
        self._steer_scratch.clear()
        self._tick = 0
        self._metrics = None
        self._bootstrap_population()
        logger.debug("Flock reset to seed %s", self._config.seed)

    def step(self) -> TickMetrics:
        start = perf_counter()
        config = self._config
        # Params may be edited live between frames; freeze them for this step.
        params = replace(config.params)
        boids = self._boids
        any_rule = params.enable_alignment or params.enable_cohesion or params.enable_separation

        if any_rule and config.use_spatial_grid:
            self._grid.rebuild(boids)

        steers = self._steer_scratch
        steers.clear()
        neighbor_checks = 0
        for boid in boids:
            if not any_rule:
                steers.append(Vector2())
                continue
            if config.use_spatial_grid:
                neighbors = self._grid.collect_neighbors(
                    boid, self._query_radius, self._neighbor_scratch, self._cell_offsets
                )
            else:
                neighbors = neighbors_within(boid, boids, self._query_radius)
            neighbor_checks += len(neighbors)
            steers.append(steering.combined_steering(boid, boids, config, params, neighbors))

        width = config.width
        height = config.height
        for boid, steer in zip(boids, steers):
            velocity = self._integrate_velocity(boid.velocity, steer)
            boid.velocity = velocity
            boid.position = Vector2(
                wrap_coordinate(boid.position.x + velocity.x, width),
                wrap_coordinate(boid.position.y + velocity.y, height),
            )

        self._tick += 1
        duration_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            tick=self._tick,
            population=len(boids),
            speed=metrics_system.average_speed(boid.velocity for boid in boids),
            duration_ms=duration_ms,
            neighbor_checks=neighbor_checks,
        )
        return self._metrics

    def snapshot(self) -> Snapshot:
        metrics = self._metrics if self._metrics is not None else self._metrics_from_state()
        return Snapshot(
            tick=self._tick,
            metrics=metrics,
            agents=[self._boid_snapshot(boid) for boid in self._boids],
            world=SnapshotWorld(width=self._config.width, height=self._config.height),
            metadata=SnapshotMetadata(
                sketch="flock",
                seed=self._config.seed,
                population=len(self._boids),
                params=asdict(self._config.params),
            ),
            fields=SnapshotFields(),
        )

    def _integrate_velocity(self, velocity: Vector2, steer: Vector2) -> Vector2:
        combined = velocity + steer
        direction = safe_normalize(combined)
        if direction.length_squared() == 0.0:
            # Steering cancelled the velocity exactly; keep the previous heading.
            direction = safe_normalize(velocity)
        return direction * self._config.max_speed

    def _bootstrap_population(self) -> None:
        config = self._config
        for index in range(config.population):
            position = self._rng.next_position(config.width, config.height)
            velocity = self._rng.next_unit_circle() * config.initial_speed
            self._boids.append(Boid(id=index, position=position, velocity=velocity))

    @staticmethod
    def _boid_snapshot(boid: Boid) -> Dict[str, Any]:
        return {
            "id": boid.id,
            "x": boid.position.x,
            "y": boid.position.y,
            "vx": boid.velocity.x,
            "vy": boid.velocity.y,
            "heading": heading_from_velocity(boid.velocity),
            "speed": boid.velocity.length(),
        }

    def _metrics_from_state(self) -> TickMetrics:
        return metrics_system.create_metrics(
            tick=self._tick,
            population=len(self._boids),
            speed=metrics_system.average_speed(boid.velocity for boid in self._boids),
            duration_ms=0.0,
        )
