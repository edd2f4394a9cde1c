from __future__ import annotations

import math
from typing import Iterable

from pygame.math import Vector2

from ..types.metrics import TickMetrics


def average_speed(velocities: Iterable[Vector2]) -> float:
    total = 0.0
    count = 0
    for velocity in velocities:
        total += math.hypot(velocity.x, velocity.y)
        count += 1
    return 0.0 if count == 0 else total / count


def create_metrics(
    tick: int,
    population: int,
    speed: float,
    duration_ms: float,
    neighbor_checks: int = 0,
    boundary_turns: int = 0,
    trail_mean: float = 0.0,
    trail_max: float = 0.0,
) -> TickMetrics:
    return TickMetrics(
        tick=tick,
        population=population,
        average_speed=speed,
        neighbor_checks=neighbor_checks,
        boundary_turns=boundary_turns,
        trail_mean=trail_mean,
        trail_max=trail_max,
        tick_duration_ms=duration_ms,
    )
