from __future__ import annotations

import argparse
import csv
import json
import logging
import math
from dataclasses import replace
from pathlib import Path
from typing import Optional, Union

from ..sim.core.config import SKETCHES, AppConfig
from ..sim.core.flock import FlockSimulation
from ..sim.core.foraging import ForagingSimulation
from ..sim.types.metrics import TickMetrics

logger = logging.getLogger(__name__)

Simulation = Union[FlockSimulation, ForagingSimulation]

_HEADER = [
    "tick",
    "population",
    "avg_speed",
    "neighbor_checks",
    "boundary_turns",
    "trail_mean",
    "trail_max",
    "tick_ms",
]


def build_simulation(config: AppConfig, seed: Optional[int] = None) -> Simulation:
    if config.sketch == "flock":
        flock_config = config.flock if seed is None else replace(config.flock, seed=seed)
        return FlockSimulation(flock_config)
    if config.sketch == "foraging":
        foraging_config = config.foraging if seed is None else replace(config.foraging, seed=seed)
        return ForagingSimulation(foraging_config)
    raise ValueError(f"Unknown sketch: {config.sketch!r}")


def _format_row(metrics: TickMetrics, tick_ms: float) -> list[object]:
    return [
        metrics.tick,
        metrics.population,
        f"{metrics.average_speed:.4f}",
        metrics.neighbor_checks,
        metrics.boundary_turns,
        f"{metrics.trail_mean:.6f}",
        f"{metrics.trail_max:.4f}",
        f"{tick_ms:.3f}",
    ]


def _percentile(sorted_values: list[float], percentile: float) -> float:
    if not sorted_values:
        return 0.0
    if len(sorted_values) == 1:
        return float(sorted_values[0])
    pos = (len(sorted_values) - 1) * percentile
    low = int(math.floor(pos))
    high = int(math.ceil(pos))
    if low == high:
        return float(sorted_values[low])
    weight = pos - low
    return float(sorted_values[low] + (sorted_values[high] - sorted_values[low]) * weight)


def _summary_stats(values: list[float]) -> dict[str, float]:
    if not values:
        return {"min": 0.0, "max": 0.0, "avg": 0.0, "p50": 0.0, "p95": 0.0}
    sorted_values = sorted(values)
    return {
        "min": float(sorted_values[0]),
        "max": float(sorted_values[-1]),
        "avg": float(sum(values) / len(values)),
        "p50": _percentile(sorted_values, 0.50),
        "p95": _percentile(sorted_values, 0.95),
    }


def run_headless(
    sketch: str,
    steps: int,
    seed: Optional[int] = None,
    log_path: Optional[Path] = None,
    deterministic_log: bool = False,
    summary_path: Optional[Path] = None,
    config: Optional[AppConfig] = None,
) -> Simulation:
    if sketch not in SKETCHES:
        raise ValueError(f"Unknown sketch: {sketch!r}")
    app_config = replace(config if config is not None else AppConfig(), sketch=sketch)
    simulation = build_simulation(app_config, seed)
    logger.info("Running %s headless for %d steps", sketch, steps)

    tick_ms_series: list[float] = []
    speed_series: list[float] = []
    neighbor_series: list[float] = []
    boundary_series: list[float] = []
    trail_mean_series: list[float] = []

    csv_file = Path(log_path).open("w", newline="") if log_path else None
    try:
        writer = None
        if csv_file is not None:
            writer = csv.writer(csv_file)
            writer.writerow(_HEADER)

        for _ in range(steps):
            metrics = simulation.step()
            tick_ms = 0.0 if deterministic_log else metrics.tick_duration_ms
            if summary_path:
                tick_ms_series.append(tick_ms)
                speed_series.append(metrics.average_speed)
                neighbor_series.append(float(metrics.neighbor_checks))
                boundary_series.append(float(metrics.boundary_turns))
                trail_mean_series.append(metrics.trail_mean)
            if writer:
                writer.writerow(_format_row(metrics, tick_ms))
    finally:
        if csv_file is not None:
            csv_file.close()

    if summary_path:
        summary = {
            "sketch": sketch,
            "steps": steps,
            "seed": simulation.config.seed,
            "population": simulation.config.population,
            "deterministic_log": deterministic_log,
            "tick_ms": _summary_stats(tick_ms_series),
            "average_speed": _summary_stats(speed_series),
            "neighbor_checks": _summary_stats(neighbor_series),
            "boundary_turns": _summary_stats(boundary_series),
            "trail_mean": _summary_stats(trail_mean_series),
        }
        Path(summary_path).write_text(json.dumps(summary, indent=2))
        logger.info("Wrote summary to %s", summary_path)
    return simulation


def main() -> None:
    parser = argparse.ArgumentParser(description="Headless swarm sketch simulation")
    parser.add_argument("--sketch", choices=list(SKETCHES), default=None)
    parser.add_argument("--steps", type=int, default=600)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--config", type=Path, default=None, help="YAML file with sketch settings")
    parser.add_argument("--log", type=Path, default=None, help="CSV file to write per-frame metrics")
    parser.add_argument(
        "--summary",
        type=Path,
        default=None,
        help="Optional JSON file to write summary stats for the run.",
    )
    parser.add_argument(
        "--deterministic-log",
        action="store_true",
        help="Write deterministic CSV (tick_ms is forced to 0.000 so identical seeds match).",
    )
    parser.add_argument("--log-level", default="INFO", help="Logging level (DEBUG, INFO, WARNING, ...)")
    args = parser.parse_args()

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    config = AppConfig.from_yaml(args.config) if args.config else AppConfig()
    run_headless(
        args.sketch or config.sketch,
        args.steps,
        args.seed,
        args.log,
        deterministic_log=args.deterministic_log,
        summary_path=args.summary,
        config=config,
    )


if __name__ == "__main__":
    main()
