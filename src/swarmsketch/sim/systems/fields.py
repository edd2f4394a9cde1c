from __future__ import annotations

from typing import Sequence, TYPE_CHECKING

from pygame.math import Vector2

from ..core.rng import DeterministicRng
from ..utils.math2d import unit_from_angle, wrap_angle

if TYPE_CHECKING:
    from ..core.agent import ForagingAgent
    from ..core.trail_field import TrailField


def sensor_point(position: Vector2, angle: float, distance: float) -> Vector2:
    return position + unit_from_angle(angle) * distance


def deposit_agents(field: TrailField, agents: Sequence[ForagingAgent], value: float, radius: float) -> None:
    for agent in agents:
        field.deposit_disc(agent.position, radius, value)


def choose_heading(
    field: TrailField,
    agent: ForagingAgent,
    rng: DeterministicRng,
    turn_speed: float,
    sensor_distance: float,
) -> tuple[float, bool]:
    """
    Pick the agent's next heading from one randomly jittered sensor probe.

    Returns the new heading (wrapped into ``[0, 2*pi)``) and whether the probe left the
    field, in which case the heading is drawn uniformly at random instead of sensed.
    """

    sensor_angle = agent.heading + rng.next_range(-turn_speed, turn_speed)
    probe = sensor_point(agent.position, sensor_angle, sensor_distance)
    if not field.in_bounds(probe):
        return rng.next_angle(), True
    sensed = field.sense(probe)
    return wrap_angle(sensor_angle + sensed * turn_speed), False
