"""Placed facility instances and footprint geometry."""

import uuid
from dataclasses import dataclass
from typing import NamedTuple, Optional, Tuple


class Position(NamedTuple):
    """Integer tile coordinate."""
    x: int
    y: int


def compute_footprint(center: Position, size: int) -> Tuple[Position, ...]:
    """
    All tiles within ``size // 2`` of ``center`` (Chebyshev distance).

    Returned row by row (dy outer, dx inner) so the order is deterministic.
    """
    radius = size // 2
    return tuple(
        Position(center.x + dx, center.y + dy)
        for dy in range(-radius, radius + 1)
        for dx in range(-radius, radius + 1)
    )


def new_facility_id(facility_type: str, center: Position) -> str:
    """Ids embed a random suffix so they are never reused after removal."""
    return f"{facility_type}_{center.x}_{center.y}_{uuid.uuid4().hex[:12]}"


@dataclass
class Facility:
    """
    A facility placed on the grid.

    ``position`` and ``occupied_tiles`` never change after creation.
    ``is_connected`` / ``is_active`` are only written by the connectivity
    recompute pass.
    """

    id: str
    type: str
    position: Position
    occupied_tiles: Tuple[Position, ...]
    variant_index: int = 0
    effect_radius: Optional[float] = None
    is_connected: bool = False
    is_active: bool = False

    @property
    def half_extent(self) -> int:
        """Footprint radius, derived from the occupied tile count."""
        side = int(round(len(self.occupied_tiles) ** 0.5))
        return side // 2
