from __future__ import annotations

import math

from pygame.math import Vector2

ZERO = Vector2()
TAU = 2.0 * math.pi


def safe_normalize(vector: Vector2) -> Vector2:
    """Unit vector in the direction of ``vector``; the zero vector normalizes to zero."""
    return safe_normalize_xy(vector.x, vector.y)


def safe_normalize_xy(x: float, y: float) -> Vector2:
    magnitude_sq = x * x + y * y
    if magnitude_sq < 1e-20:
        return Vector2()
    inv = 1.0 / math.sqrt(magnitude_sq)
    return Vector2(x * inv, y * inv)


def clamp_length_xy(x: float, y: float, max_length: float) -> tuple[float, float]:
    if max_length <= 0.0:
        return 0.0, 0.0
    magnitude_sq = x * x + y * y
    if magnitude_sq <= max_length * max_length:
        return x, y
    inv = max_length / math.sqrt(magnitude_sq)
    return x * inv, y * inv


def limit(vector: Vector2, max_length: float) -> Vector2:
    x, y = clamp_length_xy(vector.x, vector.y, max_length)
    return Vector2(x, y)


def unit_from_angle(angle: float) -> Vector2:
    return Vector2(math.cos(angle), math.sin(angle))


def heading_from_velocity(vector: Vector2) -> float:
    if vector.length_squared() < 1e-12:
        return 0.0
    return math.atan2(vector.y, vector.x)


def wrap_angle(angle: float) -> float:
    wrapped = angle % TAU
    # float modulo can round a tiny negative up to exactly TAU
    return 0.0 if wrapped >= TAU else wrapped


def wrap_coordinate(value: float, extent: float) -> float:
    """Map ``value`` into the half-open interval ``[0, extent)`` with toroidal re-entry."""
    if 0.0 <= value < extent:
        return value
    wrapped = value % extent
    if wrapped >= extent:
        return 0.0
    return wrapped


def clamp_value(value: float, min_value: float, max_value: float) -> float:
    return max(min_value, min(max_value, value))
