"""
Road-network connectivity analysis.

A road tile is edge-connected when a road tile on the outer ring of the grid
can be reached from it by stepping between 4-adjacent road tiles. A
non-road facility is connected when any road tile adjacent to its footprint
is edge-connected. Roads themselves are always connected and active.

Results are memoized in the store's ``FacilityCaches``; the store clears
them on every add/remove, so the analyzer never sees stale entries.
"""

from dataclasses import dataclass
from typing import List, Set

import structlog

from .facility import Facility, Position
from .facility_store import FacilityStore
from .grid import Grid
from .registry import FacilityRegistry

logger = structlog.get_logger()


@dataclass
class ConnectivitySummary:
    """Counts produced by a recompute pass."""
    total: int
    connected: int
    active: int


class RoadNetworkAnalyzer:
    """Answers connectivity queries against the current store contents."""

    def __init__(self, store: FacilityStore, grid: Grid, registry: FacilityRegistry):
        self.store = store
        self.grid = grid
        self.registry = registry

    @property
    def _road_type(self) -> str:
        return self.registry.backbone_type

    def is_road(self, position: Position) -> bool:
        return self.store.has_type_at(position, self._road_type)

    def _road_component(self, start: Position) -> List[Position]:
        """Flood fill the road component containing ``start``."""
        seen: Set[Position] = {start}
        stack = [start]
        component = []

        while stack:
            tile = stack.pop()
            component.append(tile)
            for neighbor in self.grid.neighbors4(tile.x, tile.y):
                if neighbor not in seen and self.is_road(neighbor):
                    seen.add(neighbor)
                    stack.append(neighbor)

        return component

    def is_edge_connected(self, position: Position) -> bool:
        """
        Whether a boundary road tile is reachable from ``position``.

        Non-road tiles are never edge-connected. The whole explored
        component shares one answer, so every tile in it is memoized.
        """
        position = Position(*position)
        memo = self.store.caches.edge_connected
        if position in memo:
            return memo[position]

        if not self.grid.in_bounds(position.x, position.y) or not self.is_road(position):
            memo[position] = False
            return False

        component = self._road_component(position)
        reaches_edge = any(self.grid.is_boundary(t.x, t.y) for t in component)
        for tile in component:
            memo[tile] = reaches_edge
        return reaches_edge

    def adjacent_road_tiles(self, facility: Facility) -> List[Position]:
        """In-bounds road tiles 4-adjacent to the footprint, outside it."""
        footprint = set(facility.occupied_tiles)
        roads = []
        seen: Set[Position] = set()
        for tile in facility.occupied_tiles:
            for neighbor in self.grid.neighbors4(tile.x, tile.y):
                if neighbor in footprint or neighbor in seen:
                    continue
                seen.add(neighbor)
                if self.is_road(neighbor):
                    roads.append(neighbor)
        return roads

    def is_facility_connected(self, facility: Facility) -> bool:
        if self.registry.is_backbone(facility.type):
            return True

        memo = self.store.caches.facility_connected
        if facility.id in memo:
            return memo[facility.id]

        connected = any(self.is_edge_connected(road) for road in self.adjacent_road_tiles(facility))
        memo[facility.id] = connected
        return connected

    def connected_road_ids(self, start: Position) -> List[str]:
        """Ids of every road facility in the component containing ``start``."""
        start = Position(*start)
        if not self.is_road(start):
            return []
        ids = []
        for tile in self._road_component(start):
            road = self.store.facility_at(tile)
            if road is not None and road.id not in ids:
                ids.append(road.id)
        return ids

    def recompute(self) -> ConnectivitySummary:
        """
        Full pass over all facilities updating ``is_connected``/``is_active``.

        Callers run this after a batch of mutations; flags are stale between
        the last mutation and the next call.
        """
        facilities = self.store.facilities
        connected = 0
        active = 0

        for facility in facilities:
            facility.is_connected = self.is_facility_connected(facility)
            facility.is_active = facility.is_connected or self.registry.is_backbone(facility.type)
            connected += facility.is_connected
            active += facility.is_active

        summary = ConnectivitySummary(total=len(facilities), connected=connected, active=active)
        logger.debug(
            "Connectivity recomputed",
            total=summary.total,
            connected=summary.connected,
            active=summary.active,
        )
        return summary
