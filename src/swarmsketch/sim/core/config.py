from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict

import yaml

from ..utils.math2d import clamp_value

logger = logging.getLogger(__name__)

MOVE_SPEED_RANGE = (0.1, 10.0)
TURN_SPEED_RANGE = (0.1, 5.0)
SKETCHES = ("flock", "foraging")


@dataclass
class FlockingParams:
    """Live toggles for the three boid rules, read at the start of every step."""

    enable_alignment: bool = True
    enable_cohesion: bool = True
    enable_separation: bool = True

    def update(self, **changes: Any) -> "FlockingParams":
        candidate = _with_changes(self, changes)
        for name in ("enable_alignment", "enable_cohesion", "enable_separation"):
            setattr(candidate, name, bool(getattr(candidate, name)))
        _copy_into(self, candidate)
        return self


@dataclass
class ForagingParams:
    """Live foraging controls; speeds are clamped into their slider ranges when read."""

    move_speed: float = 1.0
    turn_speed: float = 0.3
    show_agents: bool = True

    def update(self, **changes: Any) -> "ForagingParams":
        candidate = _with_changes(self, changes)
        candidate.move_speed = candidate.clamped_move_speed()
        candidate.turn_speed = candidate.clamped_turn_speed()
        candidate.show_agents = bool(candidate.show_agents)
        _copy_into(self, candidate)
        return self

    def clamped_move_speed(self) -> float:
        return _clamp_logged("move_speed", float(self.move_speed), MOVE_SPEED_RANGE)

    def clamped_turn_speed(self) -> float:
        return _clamp_logged("turn_speed", float(self.turn_speed), TURN_SPEED_RANGE)


@dataclass
class FlockConfig:
    width: float = 800.0
    height: float = 800.0
    population: int = 100
    seed: int = 42
    initial_speed: float = 2.0
    max_speed: float = 2.0
    max_force: float = 0.05
    perception_radius: float = 50.0
    separation_radius: float = 24.0
    use_spatial_grid: bool = True
    params: FlockingParams = field(default_factory=FlockingParams)


@dataclass
class ForagingConfig:
    width: int = 800
    height: int = 800
    population: int = 1000
    seed: int = 42
    sensor_distance: float = 5.0
    decay_factor: float = 0.9
    deposit_value: float = 1.0
    # 0 stamps only the truncated cell under the agent
    deposit_radius: float = 0.0
    params: ForagingParams = field(default_factory=ForagingParams)


@dataclass
class AppConfig:
    sketch: str = "flock"
    flock: FlockConfig = field(default_factory=FlockConfig)
    foraging: ForagingConfig = field(default_factory=ForagingConfig)
    frame_interval: float = 1.0 / 60.0
    broadcast_interval: int = 1
    # oldest unacknowledged snapshots are dropped past this many
    snapshot_queue_limit: int = 8

    @staticmethod
    def from_yaml(path: Path) -> "AppConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


def load_config(raw: Dict[str, Any]) -> AppConfig:
    flock_raw = dict(raw.get("flock", {}))
    flock_params = FlockingParams(**flock_raw.pop("params", {}))
    flock = FlockConfig(params=flock_params, **flock_raw)

    foraging_raw = dict(raw.get("foraging", {}))
    foraging_params = ForagingParams(**foraging_raw.pop("params", {}))
    foraging_params.update()
    foraging = ForagingConfig(params=foraging_params, **foraging_raw)

    app_values = {k: v for k, v in raw.items() if k not in {"flock", "foraging"}}
    config = AppConfig(flock=flock, foraging=foraging, **app_values)
    if config.sketch not in SKETCHES:
        raise ValueError(f"Unknown sketch: {config.sketch!r} (expected one of {', '.join(SKETCHES)})")
    return config


def validate_flock_config(config: FlockConfig) -> None:
    _require_canvas(config.width, config.height)
    _require_population(config.population)
    if config.perception_radius < 0 or config.separation_radius < 0:
        raise ValueError("Perception radii must be non-negative")
    if config.max_speed <= 0:
        raise ValueError(f"max_speed must be positive, got {config.max_speed}")


def validate_foraging_config(config: ForagingConfig) -> None:
    _require_canvas(config.width, config.height)
    _require_population(config.population)
    if int(config.width) != config.width or int(config.height) != config.height:
        raise ValueError("Foraging canvas dimensions must be whole cells")
    if not 0.0 < config.decay_factor < 1.0:
        raise ValueError(f"decay_factor must lie in (0, 1), got {config.decay_factor}")
    if not 0.0 <= config.deposit_value <= 1.0:
        raise ValueError(f"deposit_value must lie in [0, 1], got {config.deposit_value}")
    if config.deposit_radius < 0:
        raise ValueError(f"deposit_radius must be non-negative, got {config.deposit_radius}")


def _require_canvas(width: float, height: float) -> None:
    if width <= 0 or height <= 0:
        raise ValueError(f"Canvas must have positive size, got {width}x{height}")


def _require_population(population: int) -> None:
    if population < 0:
        raise ValueError(f"Population must be non-negative, got {population}")


def _with_changes(params: Any, changes: Dict[str, Any]) -> Any:
    known = {f.name for f in fields(params)}
    unknown = sorted(set(changes) - known)
    if unknown:
        raise TypeError(f"Unknown parameter(s) for {type(params).__name__}: {', '.join(unknown)}")
    return replace(params, **changes)


def _copy_into(target: Any, source: Any) -> None:
    for f in fields(source):
        setattr(target, f.name, getattr(source, f.name))


def _clamp_logged(name: str, value: float, bounds: tuple[float, float]) -> float:
    clamped = clamp_value(value, bounds[0], bounds[1])
    if clamped != value:
        logger.debug("Clamped %s from %s to %s", name, value, clamped)
    return clamped
