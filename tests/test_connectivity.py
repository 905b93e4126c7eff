"""
Tests for road-network connectivity.
"""

import pytest

from city_sim.core.connectivity import RoadNetworkAnalyzer
from city_sim.core.facility import Position


class TestRoadNetworkAnalyzer:
    """Test edge connectivity and the recompute pass."""

    @pytest.fixture(autouse=True)
    def setup(self, store, grid, registry, make_facility):
        self.store = store
        self.make = make_facility
        self.analyzer = RoadNetworkAnalyzer(store, grid, registry)

    def _road_chain(self, x_range, y):
        roads = {}
        for x in x_range:
            road = self.make("road", x, y)
            self.store.add(road)
            roads[x] = road
        return roads

    def test_road_chain_scenario(self):
        roads = self._road_chain(range(0, 11), 10)
        house = self.make("house", 10, 11)
        self.store.add(house)

        self.analyzer.recompute()
        assert house.is_connected
        assert house.is_active

        self.store.remove(roads[5].id)
        self.analyzer.recompute()
        assert not house.is_connected
        assert not house.is_active

    def test_edge_connected_memoizes_component(self):
        self._road_chain(range(0, 6), 4)
        assert self.analyzer.is_edge_connected(Position(5, 4))
        memo = self.store.caches.edge_connected
        for x in range(0, 6):
            assert memo[Position(x, 4)] is True

    def test_isolated_road_not_edge_connected(self):
        self._road_chain(range(5, 9), 5)
        assert not self.analyzer.is_edge_connected(Position(6, 5))

    def test_non_road_tile_not_edge_connected(self):
        assert not self.analyzer.is_edge_connected(Position(0, 0))

    def test_boundary_neighbor_must_be_road(self):
        # Road at x=1 is next to the boundary column but does not reach it
        self._road_chain(range(1, 4), 7)
        assert not self.analyzer.is_edge_connected(Position(1, 7))

    def test_roads_always_connected_and_active(self):
        road = self.make("road", 9, 9)
        self.store.add(road)
        summary = self.analyzer.recompute()
        assert road.is_connected
        assert road.is_active
        assert summary.total == 1
        assert summary.connected == 1
        assert summary.active == 1

    def test_facility_without_road_is_disconnected(self):
        block = self.make("block", 5, 5, is_active=True)
        self.store.add(block)
        self.analyzer.recompute()
        assert not block.is_connected
        assert not block.is_active

    def test_diagonal_road_does_not_connect(self):
        self._road_chain(range(0, 5), 3)
        house = self.make("house", 5, 4)
        self.store.add(house)
        self.analyzer.recompute()
        assert not house.is_connected

    def test_large_footprint_uses_any_side(self):
        self._road_chain(range(0, 4), 6)
        block = self.make("block", 5, 6)  # footprint 4..6, left neighbor (3, 6)
        self.store.add(block)
        self.analyzer.recompute()
        assert block.is_connected

    def test_monotonic_under_road_extension(self):
        self._road_chain(range(0, 6), 10)
        house = self.make("house", 5, 11)
        self.store.add(house)
        self.analyzer.recompute()
        assert house.is_connected

        for x in range(6, 15):
            self.store.add(self.make("road", x, 10))
            self.analyzer.recompute()
            assert house.is_connected

    def test_flags_stale_until_recompute(self):
        roads = self._road_chain(range(0, 4), 2)
        house = self.make("house", 3, 3)
        self.store.add(house)
        self.analyzer.recompute()
        assert house.is_connected

        self.store.remove(roads[1].id)
        assert house.is_connected
        self.analyzer.recompute()
        assert not house.is_connected

    def test_connected_road_ids(self):
        roads = self._road_chain(range(2, 6), 8)
        self._road_chain(range(10, 12), 8)
        ids = self.analyzer.connected_road_ids(Position(3, 8))
        assert sorted(ids) == sorted(r.id for r in roads.values())
        assert self.analyzer.connected_road_ids(Position(0, 0)) == []
