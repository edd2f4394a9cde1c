from __future__ import annotations

from dataclasses import dataclass, field

from pygame.math import Vector2


@dataclass(slots=True)
class Boid:
    id: int
    position: Vector2
    velocity: Vector2


@dataclass(slots=True)
class ForagingAgent:
    id: int
    position: Vector2
    heading: float = 0.0
    velocity: Vector2 = field(default_factory=Vector2)
