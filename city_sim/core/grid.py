"""Tile grid model: bounds, terrain and optional height terrain."""

from dataclasses import dataclass
from typing import Iterator, NamedTuple, Optional, Sequence

import numpy as np
import structlog

from .facility import Position
from .registry import FacilityRegistry

logger = structlog.get_logger()

DEFAULT_TERRAIN = "grass"
MAX_HEIGHT_LEVEL = 4

# 4-directional neighbor offsets: left, right, up, down
NEIGHBOR_OFFSETS = ((-1, 0), (1, 0), (0, -1), (0, 1))


class GridConfig(NamedTuple):
    """Configuration for grid creation."""
    width: int
    height: int


@dataclass
class SlopeInfo:
    """Slope analysis of a single tile's corner heights."""
    is_slope: bool
    direction: str  # none, north, south, east, west, diagonal
    height_difference: int


class Grid:
    """
    Fixed-size rectangular tile grid.

    Terrain is stored as a ``(height, width)`` numpy array of terrain type
    names, indexed ``[y, x]``. Corner heights (top-left, top-right,
    bottom-right, bottom-left) are optional; when ``height_terrain_enabled``
    is set, slope tiles count as unbuildable.
    """

    def __init__(
        self,
        config: GridConfig,
        registry: FacilityRegistry,
        height_terrain_enabled: bool = False,
        default_terrain: str = DEFAULT_TERRAIN,
    ):
        if config.width <= 0 or config.height <= 0:
            raise ValueError(f"Grid dimensions must be positive, got {config}")
        self.config = config
        self.width = config.width
        self.height = config.height
        self.registry = registry
        self.height_terrain_enabled = height_terrain_enabled
        self.terrain = np.full((self.height, self.width), default_terrain, dtype="<U16")
        self.corner_heights: Optional[np.ndarray] = None

    def in_bounds(self, x: int, y: int) -> bool:
        return 0 <= x < self.width and 0 <= y < self.height

    def is_boundary(self, x: int, y: int) -> bool:
        """True for tiles on the outer ring, which stand for the outside world."""
        return x == 0 or y == 0 or x == self.width - 1 or y == self.height - 1

    def neighbors4(self, x: int, y: int) -> Iterator[Position]:
        """Yield the in-bounds 4-directional neighbors of a tile."""
        for dx, dy in NEIGHBOR_OFFSETS:
            nx, ny = x + dx, y + dy
            if 0 <= nx < self.width and 0 <= ny < self.height:
                yield Position(nx, ny)

    # Terrain

    def terrain_at(self, x: int, y: int) -> str:
        if not self.in_bounds(x, y):
            raise IndexError(f"Tile ({x}, {y}) is outside the {self.width}x{self.height} grid")
        return str(self.terrain[y, x])

    def set_terrain(self, x: int, y: int, terrain_type: str) -> None:
        if not self.in_bounds(x, y):
            raise IndexError(f"Tile ({x}, {y}) is outside the {self.width}x{self.height} grid")
        self.terrain[y, x] = terrain_type

    def fill_terrain(self, terrain: np.ndarray) -> None:
        """Replace the whole terrain array (shape must match the grid)."""
        if terrain.shape != (self.height, self.width):
            raise ValueError(
                f"Terrain shape {terrain.shape} does not match grid {(self.height, self.width)}"
            )
        self.terrain = terrain.astype("<U16")

    # Height terrain

    def set_corner_heights(self, heights: np.ndarray) -> None:
        if heights.shape != (self.height, self.width, 4):
            raise ValueError(f"Corner heights must have shape {(self.height, self.width, 4)}")
        self.corner_heights = np.clip(heights, 0, MAX_HEIGHT_LEVEL).astype(np.uint8)

    def is_slope(self, x: int, y: int) -> bool:
        if self.corner_heights is None:
            return False
        corners = self.corner_heights[y, x]
        return bool(np.any(corners != corners[0]))

    def analyze_slope(self, x: int, y: int) -> SlopeInfo:
        if self.corner_heights is None:
            return SlopeInfo(False, "none", 0)
        top_left, top_right, bottom_right, bottom_left = (int(h) for h in self.corner_heights[y, x])
        difference = max(top_left, top_right, bottom_right, bottom_left) - min(
            top_left, top_right, bottom_right, bottom_left
        )
        if difference == 0:
            return SlopeInfo(False, "none", 0)
        if top_left == top_right and bottom_left == bottom_right:
            return SlopeInfo(True, "north" if top_left < bottom_left else "south", difference)
        if top_left == bottom_left and top_right == bottom_right:
            return SlopeInfo(True, "east" if top_left > top_right else "west", difference)
        return SlopeInfo(True, "diagonal", difference)

    # Buildability

    def is_buildable(self, x: int, y: int) -> bool:
        """Terrain allows building and, with height terrain on, the tile is flat."""
        if not self.registry.is_buildable_terrain(self.terrain_at(x, y)):
            return False
        if self.height_terrain_enabled and self.is_slope(x, y):
            return False
        return True

    def all_buildable(self, tiles: Sequence[Position]) -> bool:
        return all(self.is_buildable(t.x, t.y) for t in tiles)
