from __future__ import annotations

import logging
from dataclasses import asdict
from time import perf_counter
from typing import Any, Dict, List

from pygame.math import Vector2

from .agent import ForagingAgent
from .config import ForagingConfig, validate_foraging_config
from .rng import DeterministicRng
from .trail_field import TrailField
from ..systems import fields, metrics as metrics_system
from ..types.metrics import TickMetrics
from ..types.snapshot import Snapshot, SnapshotFields, SnapshotMetadata, SnapshotWorld
from ..utils.math2d import unit_from_angle, wrap_coordinate

logger = logging.getLogger(__name__)


class ForagingSimulation:
    """
    Physarum-like trail following.

    Per step the trail field evaporates, agents stamp their current cells (when
    ``show_agents`` is on), then each agent probes the field once ahead of itself,
    turns towards brighter trail, and moves. Probes that leave the canvas make the
    agent pick a fresh uniformly random heading.
    """

    def __init__(self, config: ForagingConfig):
        validate_foraging_config(config)
        self._config = config
        self._rng = DeterministicRng(config.seed)
        self._field = TrailField(int(config.width), int(config.height), config.decay_factor)
        self._agents: List[ForagingAgent] = []
        self._tick = 0
        self._metrics: TickMetrics | None = None
        self._bootstrap_population()
        logger.debug(
            "Foraging simulation created: %d agents on %dx%d field (seed=%s)",
            len(self._agents),
            self._field.width,
            self._field.height,
            config.seed,
        )

    @property
    def config(self) -> ForagingConfig:
        return self._config

    @property
    def agents(self) -> List[ForagingAgent]:
        return self._agents

    @property
    def field(self) -> TrailField:
        return self._field

    @property
    def tick(self) -> int:
        return self._tick

    @property
    def metrics(self) -> TickMetrics | None:
        return self._metrics

    def reset(self) -> None:
        self._rng.reset()
        self._field.reset()
        self._agents.clear()
        self._tick = 0
        self._metrics = None
        self._bootstrap_population()
        logger.debug("Foraging simulation reset to seed %s", self._config.seed)

    def step(self) -> TickMetrics:
        start = perf_counter()
        config = self._config
        params = config.params
        move_speed = params.clamped_move_speed()
        turn_speed = params.clamped_turn_speed()
        show_agents = bool(params.show_agents)
        trail = self._field
        width = trail.width
        height = trail.height

        trail.decay_and_clear()
        if show_agents:
            fields.deposit_agents(trail, self._agents, config.deposit_value, config.deposit_radius)

        boundary_turns = 0
        for agent in self._agents:
            heading, turned_at_boundary = fields.choose_heading(
                trail, agent, self._rng, turn_speed, config.sensor_distance
            )
            if turned_at_boundary:
                boundary_turns += 1
            agent.heading = heading
            velocity = unit_from_angle(heading) * move_speed
            agent.velocity = velocity
            agent.position = Vector2(
                wrap_coordinate(agent.position.x + velocity.x, width),
                wrap_coordinate(agent.position.y + velocity.y, height),
            )

        self._tick += 1
        duration_ms = (perf_counter() - start) * 1000.0
        self._metrics = metrics_system.create_metrics(
            tick=self._tick,
            population=len(self._agents),
            speed=metrics_system.average_speed(agent.velocity for agent in self._agents),
            duration_ms=duration_ms,
            boundary_turns=boundary_turns,
            trail_mean=trail.mean(),
            trail_max=trail.max(),
        )
        return self._metrics

    def snapshot(self, include_field: bool = True, field_threshold: float = 1e-3) -> Snapshot:
        metrics = self._metrics if self._metrics is not None else self._metrics_from_state()
        return Snapshot(
            tick=self._tick,
            metrics=metrics,
            agents=[self._agent_snapshot(agent) for agent in self._agents],
            world=SnapshotWorld(width=self._field.width, height=self._field.height),
            metadata=SnapshotMetadata(
                sketch="foraging",
                seed=self._config.seed,
                population=len(self._agents),
                params=asdict(self._config.params),
            ),
            fields=SnapshotFields(trail=self._field.export(field_threshold) if include_field else None),
        )

    def _bootstrap_population(self) -> None:
        config = self._config
        move_speed = config.params.clamped_move_speed()
        for index in range(config.population):
            position = self._rng.next_position(self._field.width, self._field.height)
            heading = self._rng.next_angle()
            velocity = unit_from_angle(heading) * move_speed
            self._agents.append(ForagingAgent(id=index, position=position, heading=heading, velocity=velocity))

    @staticmethod
    def _agent_snapshot(agent: ForagingAgent) -> Dict[str, Any]:
        return {
            "id": agent.id,
            "x": agent.position.x,
            "y": agent.position.y,
            "vx": agent.velocity.x,
            "vy": agent.velocity.y,
            "heading": agent.heading,
            "speed": agent.velocity.length(),
        }

    def _metrics_from_state(self) -> TickMetrics:
        return metrics_system.create_metrics(
            tick=self._tick,
            population=len(self._agents),
            speed=metrics_system.average_speed(agent.velocity for agent in self._agents),
            duration_ms=0.0,
            trail_mean=self._field.mean(),
            trail_max=self._field.max(),
        )
