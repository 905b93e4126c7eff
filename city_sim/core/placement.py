"""
Placement validation.

Validation is a pure function of the grid, registry, store and available
funds: it never mutates anything, so collaborators can call it for previews
as often as they like. A rejection is returned as a value carrying the
reason; it is never raised.

Checks run in a fixed order and the first failing one wins:

1. OUT_OF_BOUNDS - a footprint tile lies outside the grid
2. UNBUILDABLE_TERRAIN - a footprint tile is on unbuildable terrain or a slope
3. OCCUPIED - a footprint tile belongs to an existing facility
4. INSUFFICIENT_FUNDS - funds are below the registry cost
5. DUPLICATE_UNIQUE - the type is a singleton and one already exists
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

import structlog

from .facility import Facility, Position, compute_footprint, new_facility_id
from .facility_store import FacilityStore
from .grid import Grid
from .registry import FacilityRegistry

logger = structlog.get_logger()


class PlacementRejection(str, Enum):
    OUT_OF_BOUNDS = "out_of_bounds"
    UNBUILDABLE_TERRAIN = "unbuildable_terrain"
    OCCUPIED = "occupied"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    DUPLICATE_UNIQUE = "duplicate_unique"
    # Only produced by the City coordinator, before validation runs
    FACILITY_LOCKED = "facility_locked"


@dataclass
class PlacementResult:
    """Outcome of a placement check."""

    accepted: bool
    tiles: Tuple[Position, ...] = field(default_factory=tuple)
    facility: Optional[Facility] = None
    reason: Optional[PlacementRejection] = None

    @classmethod
    def reject(cls, reason: PlacementRejection, tiles: Tuple[Position, ...] = ()) -> "PlacementResult":
        return cls(accepted=False, tiles=tiles, reason=reason)


def validate_placement(
    center: Position,
    facility_type: str,
    grid: Grid,
    registry: FacilityRegistry,
    store: FacilityStore,
    funds: float,
    variant_index: int = 0,
) -> PlacementResult:
    """
    Decide whether ``facility_type`` may be placed centered on ``center``.

    Args:
        center: Footprint center tile
        facility_type: Registry key of the facility to place
        grid: Grid providing bounds and terrain
        registry: Facility registry
        store: Current facility store (read only)
        funds: Money currently available
        variant_index: Rendering variant to stamp on the new facility

    Returns:
        PlacementResult; on success ``facility`` is a new, unconnected and
        inactive Facility that has not been added to the store.

    Raises:
        UnknownFacilityTypeError: if the registry has no such type
    """
    info = registry.info(facility_type)
    center = Position(*center)
    tiles = compute_footprint(center, info.size)

    if not all(grid.in_bounds(t.x, t.y) for t in tiles):
        return PlacementResult.reject(PlacementRejection.OUT_OF_BOUNDS, tiles)

    if not grid.all_buildable(tiles):
        return PlacementResult.reject(PlacementRejection.UNBUILDABLE_TERRAIN, tiles)

    if store.any_occupied(tiles):
        return PlacementResult.reject(PlacementRejection.OCCUPIED, tiles)

    if funds < info.cost:
        return PlacementResult.reject(PlacementRejection.INSUFFICIENT_FUNDS, tiles)

    if info.unique and store.count_of_type(facility_type) > 0:
        return PlacementResult.reject(PlacementRejection.DUPLICATE_UNIQUE, tiles)

    facility = Facility(
        id=new_facility_id(facility_type, center),
        type=facility_type,
        position=center,
        occupied_tiles=tiles,
        variant_index=variant_index,
        effect_radius=info.effect_radius,
        is_connected=False,
        is_active=False,
    )
    logger.debug("Placement validated", facility_type=facility_type, x=center.x, y=center.y)
    return PlacementResult(accepted=True, tiles=tiles, facility=facility)
