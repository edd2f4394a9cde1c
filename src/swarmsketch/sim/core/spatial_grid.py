from __future__ import annotations

import math
from typing import Dict, Iterable, List, Protocol, Sequence, Tuple

from pygame.math import Vector2


class Positioned(Protocol):
    position: Vector2


Neighbor = Tuple[Positioned, float]


def neighbors_within(agent: Positioned, population: Iterable[Positioned], radius: float) -> List[Neighbor]:
    """
    Reference O(n^2) neighbor scan.

    Returns every other member of ``population`` whose Euclidean distance to ``agent``
    is strictly below ``radius``, paired with that distance. The agent itself is
    excluded by identity, so a distinct agent sharing its position is still reported.
    """

    found: List[Neighbor] = []
    radius_sq = radius * radius
    pos_x = agent.position.x
    pos_y = agent.position.y
    for other in population:
        if other is agent:
            continue
        offset_x = other.position.x - pos_x
        offset_y = other.position.y - pos_y
        dist_sq = offset_x * offset_x + offset_y * offset_y
        if dist_sq < radius_sq:
            found.append((other, math.sqrt(dist_sq)))
    return found


class SpatialGrid:
    """Uniform hash grid that answers the same queries as :func:`neighbors_within`."""

    def __init__(self, cell_size: float) -> None:
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self._cell_size = cell_size
        self._cells: Dict[Tuple[int, int], List[Positioned]] = {}
        self._active_keys: List[Tuple[int, int]] = []

    @property
    def cell_size(self) -> float:
        return self._cell_size

    def build_neighbor_cell_offsets(self, radius: float) -> List[Tuple[int, int]]:
        cell_range = int(math.ceil(radius / self._cell_size))
        return [(dx, dy) for dx in range(-cell_range, cell_range + 1) for dy in range(-cell_range, cell_range + 1)]

    def clear(self) -> None:
        for key in self._active_keys:
            bucket = self._cells.get(key)
            if bucket:
                bucket.clear()
        self._active_keys.clear()

    def insert(self, agent: Positioned) -> None:
        key = self._cell_key(agent.position)
        bucket = self._cells.get(key)
        if bucket is None:
            bucket = []
            self._cells[key] = bucket
            self._active_keys.append(key)
        elif not bucket:
            # Bucket survived a clear(); mark it active again.
            self._active_keys.append(key)
        bucket.append(agent)

    def rebuild(self, population: Sequence[Positioned]) -> None:
        self.clear()
        for agent in population:
            self.insert(agent)

    def collect_neighbors(
        self,
        agent: Positioned,
        radius: float,
        out: List[Neighbor],
        cell_offsets: List[Tuple[int, int]] | None = None,
    ) -> List[Neighbor]:
        """
        Fill ``out`` with ``(other, distance)`` pairs for every inserted agent strictly
        closer than ``radius``, excluding ``agent`` itself.

        ``out`` is cleared first so callers can reuse one buffer for a whole step.
        """

        out.clear()
        if cell_offsets is None:
            cell_offsets = self.build_neighbor_cell_offsets(radius)
        base_x, base_y = self._cell_key(agent.position)
        pos_x = agent.position.x
        pos_y = agent.position.y
        radius_sq = radius * radius
        cells = self._cells
        append = out.append

        for dx, dy in cell_offsets:
            bucket = cells.get((base_x + dx, base_y + dy))
            if not bucket:
                continue
            for other in bucket:
                if other is agent:
                    continue
                offset_x = other.position.x - pos_x
                offset_y = other.position.y - pos_y
                dist_sq = offset_x * offset_x + offset_y * offset_y
                if dist_sq < radius_sq:
                    append((other, math.sqrt(dist_sq)))
        return out

    def _cell_key(self, position: Vector2) -> Tuple[int, int]:
        return (int(position.x // self._cell_size), int(position.y // self._cell_size))
