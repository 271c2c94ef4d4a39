"""Tests for contagion_sim.model.spatial: grid-bucket neighbor search."""

import math

import numpy as np
import pytest

from contagion_sim.model.agent import Agent, HealthStatus
from contagion_sim.model.spatial import SpatialIndex, cell_of, nearby_cells


def place(agent_id, x, y, region=0):
    agent = Agent(agent_id, (x, y), (0.0, 0.0), home_region=region)
    return agent


class TestCells:
    def test_cell_of(self):
        assert cell_of(25.0, 49.9, 10.0) == (2, 4)

    def test_cell_of_negative_floors(self):
        assert cell_of(-1.0, -0.1, 10.0) == (-1, -1)

    def test_nearby_cells_covers_bounding_square(self):
        cells = nearby_cells(50.0, 50.0, 10.0, 23.0)
        assert sorted(cells) == [(1, 1), (1, 2), (2, 1), (2, 2)]

    def test_nearby_cells_single_cell(self):
        assert nearby_cells(15.0, 15.0, 2.0, 10.0) == [(1, 1)]


class TestSpatialIndex:
    def test_rejects_bad_cell_size(self):
        with pytest.raises(ValueError):
            SpatialIndex(0.0)

    def test_same_coordinates_different_regions_never_share(self):
        a = place(0, 100.0, 100.0, region=0)
        b = place(1, 100.0, 100.0, region=1)
        index = SpatialIndex.build([a, b], 23.0)
        assert len(index.buckets) == 2
        assert list(index.candidates(0, 100.0, 100.0, 20.0)) == [0]
        assert list(index.candidates(1, 100.0, 100.0, 20.0)) == [1]

    def test_dead_agents_excluded(self):
        a = place(0, 100.0, 100.0)
        b = place(1, 101.0, 100.0)
        b.health = HealthStatus.DEAD
        index = SpatialIndex.build([a, b], 23.0)
        assert len(index) == 1

    def test_region_filter(self):
        agents = [place(0, 100.0, 100.0, 0), place(1, 300.0, 100.0, 1),
                  place(2, 110.0, 100.0, 0)]
        index = SpatialIndex.build(agents, 23.0, region_filter=0)
        assert len(index) == 2
        assert all(key[0] == 0 for key in index.buckets)

    def test_neighbors_keys_carry_region(self):
        index = SpatialIndex(10.0)
        keys = index.neighbors(3, 15.0, 15.0, 2.0)
        assert keys == [(3, 1, 1)]

    def test_candidates_superset_of_true_neighbors(self):
        """Every agent within the radius is among the candidates."""
        rng = np.random.default_rng(3)
        agents = [place(i, *rng.uniform(40, 250, size=2)) for i in range(300)]
        radius = 20.0
        index = SpatialIndex.build(agents, radius + 3.0)
        for query in agents[:30]:
            found = set(index.candidates(0, query.x, query.y, radius))
            for other in agents:
                if math.hypot(other.x - query.x, other.y - query.y) < radius:
                    assert other.id in found

    def test_candidates_unique(self):
        agents = [place(i, 100.0 + i, 100.0) for i in range(10)]
        index = SpatialIndex.build(agents, 5.0)
        ids = list(index.candidates(0, 105.0, 100.0, 15.0))
        assert len(ids) == len(set(ids))
