from __future__ import annotations

import math

from pygame.math import Vector2
from pytest import approx

from swarmsketch.sim.core.agent import Boid, ForagingAgent
from swarmsketch.sim.core.config import FlockConfig, ForagingConfig
from swarmsketch.sim.core.flock import FlockSimulation
from swarmsketch.sim.core.foraging import ForagingSimulation


def test_agents_use_slots_and_isolate_defaults():
    boid = Boid(id=0, position=Vector2(), velocity=Vector2())
    agent_a = ForagingAgent(id=1, position=Vector2())
    agent_b = ForagingAgent(id=2, position=Vector2())

    assert not hasattr(boid, "__dict__")
    assert not hasattr(agent_a, "__dict__")
    assert hasattr(Boid, "__slots__")
    assert hasattr(ForagingAgent, "__slots__")

    assert agent_a.velocity is not agent_b.velocity
    agent_a.velocity.x = 1.5
    assert agent_b.velocity.x == 0.0


def test_populations_spawn_inside_canvas():
    flock = FlockSimulation(FlockConfig(width=120.0, height=80.0, population=60, seed=3))
    foraging = ForagingSimulation(ForagingConfig(width=120, height=80, population=60, seed=3))

    assert len(flock.boids) == 60
    assert len(foraging.agents) == 60
    for boid in flock.boids:
        assert 0.0 <= boid.position.x < 120.0
        assert 0.0 <= boid.position.y < 80.0
        assert boid.velocity.length() == approx(2.0)
    for agent in foraging.agents:
        assert 0.0 <= agent.position.x < 120.0
        assert 0.0 <= agent.position.y < 80.0
        assert 0.0 <= agent.heading < 2.0 * math.pi
    assert sorted(boid.id for boid in flock.boids) == list(range(60))
