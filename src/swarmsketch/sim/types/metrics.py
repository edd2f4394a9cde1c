from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class TickMetrics:
    tick: int
    population: int
    average_speed: float
    neighbor_checks: int = 0
    boundary_turns: int = 0
    trail_mean: float = 0.0
    trail_max: float = 0.0
    tick_duration_ms: float = 0.0
