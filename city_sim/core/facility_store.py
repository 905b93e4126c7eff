"""
Authoritative store of placed facilities.

The store is the single writer of the facility list: only ``add`` and
``remove`` change it, and both invalidate every derived cache in full
before returning. Adding or removing a single road tile can change
edge-connectivity for a whole road component, so caches are never patched
partially.
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Set, Tuple

import structlog

from .facility import Facility, Position

logger = structlog.get_logger()

StoreListener = Callable[[str, Facility], None]


class FacilityStoreError(Exception):
    """Base class for facility store invariant violations."""


class DuplicateFacilityError(FacilityStoreError):
    """A facility id is already in use or was used by a removed facility."""


class OverlappingFacilityError(FacilityStoreError):
    """A facility's footprint intersects an existing facility."""


class FacilityNotFoundError(FacilityStoreError, KeyError):
    """No facility with the given id exists."""


@dataclass
class FacilityCaches:
    """Memoized results derived from the facility list."""

    edge_connected: Dict[Position, bool] = field(default_factory=dict)
    facility_connected: Dict[str, bool] = field(default_factory=dict)
    workforce: Optional[Tuple[int, list]] = None
    generation: int = 0

    def invalidate(self) -> None:
        self.edge_connected.clear()
        self.facility_connected.clear()
        self.workforce = None
        self.generation += 1


class FacilityStore:
    """Owns the placed facilities and the caches derived from them."""

    def __init__(self) -> None:
        self._facilities: List[Facility] = []
        self._by_id: Dict[str, Facility] = {}
        self._tile_index: Dict[Position, str] = {}
        self._retired_ids: Set[str] = set()
        self._listeners: List[StoreListener] = []
        self.caches = FacilityCaches()

    def __len__(self) -> int:
        return len(self._facilities)

    def __iter__(self) -> Iterator[Facility]:
        return iter(tuple(self._facilities))

    def __contains__(self, facility_id: object) -> bool:
        return facility_id in self._by_id

    @property
    def facilities(self) -> Tuple[Facility, ...]:
        """Snapshot of the facility list in insertion order."""
        return tuple(self._facilities)

    def subscribe(self, listener: StoreListener) -> None:
        """Register a callback receiving ``("add" | "remove", facility)``."""
        self._listeners.append(listener)

    # Mutation

    def add(self, facility: Facility) -> None:
        """
        Append a facility.

        Raises:
            DuplicateFacilityError: id is live or was retired
            OverlappingFacilityError: footprint intersects an existing facility
        """
        if facility.id in self._by_id or facility.id in self._retired_ids:
            raise DuplicateFacilityError(f"Facility id {facility.id!r} is already taken")

        for tile in facility.occupied_tiles:
            owner = self._tile_index.get(tile)
            if owner is not None:
                raise OverlappingFacilityError(
                    f"Facility {facility.id!r} overlaps {owner!r} at ({tile.x}, {tile.y})"
                )

        self._facilities.append(facility)
        self._by_id[facility.id] = facility
        for tile in facility.occupied_tiles:
            self._tile_index[tile] = facility.id

        self.caches.invalidate()
        logger.debug("Facility added", facility_id=facility.id, type=facility.type)
        self._notify("add", facility)

    def remove(self, facility_id: str) -> Facility:
        """
        Remove a facility by id and retire the id.

        Raises:
            FacilityNotFoundError: no facility with that id
        """
        facility = self._by_id.pop(facility_id, None)
        if facility is None:
            raise FacilityNotFoundError(facility_id)

        self._facilities = [f for f in self._facilities if f.id != facility_id]
        for tile in facility.occupied_tiles:
            self._tile_index.pop(tile, None)
        self._retired_ids.add(facility_id)

        self.caches.invalidate()
        logger.debug("Facility removed", facility_id=facility_id, type=facility.type)
        self._notify("remove", facility)
        return facility

    def _notify(self, event: str, facility: Facility) -> None:
        for listener in self._listeners:
            listener(event, facility)

    # Queries

    def get(self, facility_id: str) -> Optional[Facility]:
        return self._by_id.get(facility_id)

    def facility_at(self, position: Position) -> Optional[Facility]:
        facility_id = self._tile_index.get(Position(*position))
        return self._by_id[facility_id] if facility_id is not None else None

    def is_occupied(self, position: Position) -> bool:
        return Position(*position) in self._tile_index

    def any_occupied(self, tiles: Iterable[Position]) -> bool:
        return any(tile in self._tile_index for tile in tiles)

    def has_type_at(self, position: Position, facility_type: str) -> bool:
        facility = self.facility_at(position)
        return facility is not None and facility.type == facility_type

    def of_type(self, facility_type: str) -> List[Facility]:
        return [f for f in self._facilities if f.type == facility_type]

    def count_of_type(self, facility_type: str) -> int:
        return sum(1 for f in self._facilities if f.type == facility_type)
