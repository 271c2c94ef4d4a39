"""Grid-bucket spatial index for radius-bounded neighbor search."""

import math
from collections import defaultdict
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .agent import Agent

# (region, cell_x, cell_y)
CellKey = Tuple[int, int, int]


def cell_of(x: float, y: float, cell_size: float) -> Tuple[int, int]:
    """Integer cell coordinates containing the point."""
    return math.floor(x / cell_size), math.floor(y / cell_size)


def nearby_cells(x: float, y: float, radius: float,
                 cell_size: float) -> List[Tuple[int, int]]:
    """
    Enumerate every cell overlapping the square that bounds the circle.

    This is a superset of the cells holding true neighbors; callers check
    exact containment with a squared-distance comparison.
    """
    min_cx, min_cy = cell_of(x - radius, y - radius, cell_size)
    max_cx, max_cy = cell_of(x + radius, y + radius, cell_size)
    return [(cx, cy)
            for cx in range(min_cx, max_cx + 1)
            for cy in range(min_cy, max_cy + 1)]


class SpatialIndex:
    """
    Buckets agents by (region, cell) for one tick.

    The region is part of every key, so agents in different regions never
    share a bucket even at identical coordinates. Dead agents are left
    out. The index is only valid for the positions it was built from and
    must be rebuilt after agents move.
    """

    def __init__(self, cell_size: float):
        if cell_size <= 0:
            raise ValueError(f"cell_size must be positive, got {cell_size}")
        self.cell_size = cell_size
        self.buckets: Dict[CellKey, List[int]] = defaultdict(list)

    @classmethod
    def build(cls, agents: Sequence["Agent"], cell_size: float,
              region_filter: Optional[int] = None) -> "SpatialIndex":
        """Index living agents, optionally only those in one region."""
        index = cls(cell_size)
        for agent in agents:
            if agent.is_dead():
                continue
            if region_filter is not None and agent.current_region != region_filter:
                continue
            cx, cy = cell_of(agent.x, agent.y, cell_size)
            index.buckets[(agent.current_region, cx, cy)].append(agent.id)
        return index

    def neighbors(self, region: int, x: float, y: float,
                  radius: float) -> List[CellKey]:
        """Candidate cell keys around (x, y) within the given region."""
        return [(region, cx, cy)
                for cx, cy in nearby_cells(x, y, radius, self.cell_size)]

    def candidates(self, region: int, x: float, y: float,
                   radius: float) -> Iterator[int]:
        """Yield ids of agents in the candidate cells (each at most once)."""
        for key in self.neighbors(region, x, y, radius):
            bucket = self.buckets.get(key)
            if bucket:
                yield from bucket

    def __len__(self) -> int:
        return sum(len(bucket) for bucket in self.buckets.values())
