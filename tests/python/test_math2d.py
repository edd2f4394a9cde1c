from __future__ import annotations

import math

from pygame.math import Vector2
from pytest import approx

from swarmsketch.sim.utils.math2d import (
    heading_from_velocity,
    limit,
    safe_normalize,
    unit_from_angle,
    wrap_angle,
    wrap_coordinate,
)


def test_safe_normalize_returns_zero_for_zero_vector():
    assert safe_normalize(Vector2()) == Vector2()
    assert safe_normalize(Vector2(3.0, 4.0)) == Vector2(0.6, 0.8)


def test_limit_caps_magnitude_only_when_longer():
    short = limit(Vector2(0.01, 0.02), 0.05)
    assert short == Vector2(0.01, 0.02)

    capped = limit(Vector2(3.0, 4.0), 0.05)
    assert capped.length() == approx(0.05)
    assert capped.normalize() == Vector2(0.6, 0.8)


def test_unit_from_angle_and_heading_agree():
    unit = unit_from_angle(math.pi)
    assert unit.x == approx(-1.0)
    assert heading_from_velocity(Vector2(0.0, 2.0)) == approx(math.pi / 2)
    assert heading_from_velocity(Vector2()) == 0.0


def test_wrap_coordinate_uses_half_open_interval():
    assert wrap_coordinate(100.001, 100.0) == approx(0.001, abs=1e-9)
    assert wrap_coordinate(-0.5, 100.0) == approx(99.5)
    assert wrap_coordinate(100.0, 100.0) == 0.0
    assert wrap_coordinate(0.0, 100.0) == 0.0
    assert wrap_coordinate(42.0, 100.0) == 42.0
    # a tiny negative must not land on the excluded upper edge
    assert wrap_coordinate(-1e-18, 100.0) < 100.0


def test_wrap_angle_stays_in_range():
    assert wrap_angle(-0.1) == approx(2.0 * math.pi - 0.1)
    assert wrap_angle(7.0) == approx(7.0 - 2.0 * math.pi)
    assert 0.0 <= wrap_angle(-1e-18) < 2.0 * math.pi
