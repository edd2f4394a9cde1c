from __future__ import annotations

import math
from typing import Any, Dict, Tuple

import numpy as np
from pygame.math import Vector2


class TrailFieldBoundsError(IndexError):
    """Raised when the trail field is sensed outside its grid."""


class TrailField:
    """
    Dense scalar grid of agent presence, one cell per canvas unit.

    Cells are stored row-major as ``values[y, x]`` so the array can be shown directly
    as a grayscale image. Every value stays within ``[0, 1]``: deposits never write
    above their (clamped) value and decay only shrinks cells.
    """

    def __init__(self, width: int, height: int, decay_factor: float = 0.9) -> None:
        if width <= 0 or height <= 0:
            raise ValueError(f"Trail field needs a positive size, got {width}x{height}")
        if not 0.0 < decay_factor < 1.0:
            raise ValueError(f"decay_factor must lie in (0, 1), got {decay_factor}")
        self._width = int(width)
        self._height = int(height)
        self._decay_factor = float(decay_factor)
        self._cells = np.zeros((self._height, self._width), dtype=np.float64)

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def decay_factor(self) -> float:
        return self._decay_factor

    @property
    def values(self) -> np.ndarray:
        view = self._cells.view()
        view.flags.writeable = False
        return view

    def reset(self) -> None:
        self._cells.fill(0.0)

    def decay_and_clear(self) -> None:
        self._cells *= self._decay_factor

    def in_bounds(self, position: Vector2) -> bool:
        return 0.0 <= position.x < self._width and 0.0 <= position.y < self._height

    def cell_of(self, position: Vector2) -> Tuple[int, int]:
        return int(position.x), int(position.y)

    def deposit(self, cell_x: int, cell_y: int, value: float = 1.0) -> None:
        """Raise one cell to at least ``value``; cells outside the grid are ignored."""
        if not (0 <= cell_x < self._width and 0 <= cell_y < self._height):
            return
        value = _clamp_unit(value)
        if self._cells[cell_y, cell_x] < value:
            self._cells[cell_y, cell_x] = value

    def deposit_disc(self, position: Vector2, radius: float, value: float = 1.0) -> None:
        """Raise every cell whose centre lies within ``radius`` of ``position`` to at least ``value``."""
        if radius <= 0.0:
            if self.in_bounds(position):
                cell_x, cell_y = self.cell_of(position)
                self.deposit(cell_x, cell_y, value)
            return

        value = _clamp_unit(value)
        x0 = max(0, int(math.floor(position.x - radius)))
        x1 = min(self._width, int(math.ceil(position.x + radius)) + 1)
        y0 = max(0, int(math.floor(position.y - radius)))
        y1 = min(self._height, int(math.ceil(position.y + radius)) + 1)
        if x0 >= x1 or y0 >= y1:
            return
        ys, xs = np.ogrid[y0:y1, x0:x1]
        centre_dx = xs + 0.5 - position.x
        centre_dy = ys + 0.5 - position.y
        mask = centre_dx * centre_dx + centre_dy * centre_dy <= radius * radius
        region = self._cells[y0:y1, x0:x1]
        np.maximum(region, value, out=region, where=mask)

    def sense(self, position: Vector2) -> float:
        if not self.in_bounds(position):
            raise TrailFieldBoundsError(
                f"Sensor at ({position.x:.3f}, {position.y:.3f}) is outside the {self._width}x{self._height} trail field"
            )
        cell_x, cell_y = self.cell_of(position)
        return float(self._cells[cell_y, cell_x])

    def total(self) -> float:
        return float(self._cells.sum())

    def max(self) -> float:
        return float(self._cells.max())

    def mean(self) -> float:
        return float(self._cells.mean())

    def export(self, threshold: float = 1e-3) -> Dict[str, Any]:
        ys, xs = np.nonzero(self._cells > threshold)
        cells = [
            {"x": int(x), "y": int(y), "value": float(self._cells[y, x])}
            for y, x in zip(ys.tolist(), xs.tolist())
        ]
        return {"cells": cells, "width": self._width, "height": self._height, "threshold": threshold}


def _clamp_unit(value: float) -> float:
    return max(0.0, min(1.0, float(value)))
