"""
City parameter maps.

Each city parameter (entertainment, security, ...) has a float32 map the
size of the grid. Active facilities with ``parameter_effects`` stamp a
disc of linearly decaying strength around their center; residents sample
the maps under their footprint. Maps are tracked in chunks so callers can
redraw only what changed.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

import numpy as np
import structlog

from .facility import Facility, Position
from .registry import FacilityRegistry

logger = structlog.get_logger()

CITY_PARAMETERS = (
    "entertainment",
    "security",
    "sanitation",
    "transit",
    "environment",
    "education",
    "disaster_prevention",
    "tourism",
)


class CityParameterMap:
    """Per-parameter influence maps indexed ``[y, x]``."""

    def __init__(self, width: int, height: int, chunk_size: int = 32):
        self.reset(width, height, chunk_size)

    def reset(self, width: int, height: int, chunk_size: Optional[int] = None) -> None:
        self.width = width
        self.height = height
        if chunk_size is not None:
            self.chunk_size = chunk_size
        self.maps: Dict[str, np.ndarray] = {
            p: np.zeros((height, width), dtype=np.float32) for p in CITY_PARAMETERS
        }
        self._dirty: Set[Tuple[int, int]] = set()

    def _map(self, param: str) -> np.ndarray:
        try:
            return self.maps[param]
        except KeyError:
            raise KeyError(f"Unknown city parameter: {param}") from None

    def apply_stamp(
        self, param: str, cx: int, cy: int, radius: float, strength: float, mode: str = "add"
    ) -> None:
        """
        Add (or subtract) ``strength * max(0, 1 - d / radius)`` within ``radius``.

        Stamping with ``mode="sub"`` and the same arguments exactly undoes
        an earlier ``"add"``.
        """
        if mode not in ("add", "sub"):
            raise ValueError(f"mode must be 'add' or 'sub', got {mode!r}")
        if self.width <= 0 or self.height <= 0 or radius <= 0 or strength == 0:
            return

        target = self._map(param)
        r = int(radius)
        min_x, max_x = max(0, cx - r), min(self.width - 1, cx + r)
        min_y, max_y = max(0, cy - r), min(self.height - 1, cy + r)
        if min_x > max_x or min_y > max_y:
            return

        ys, xs = np.mgrid[min_y:max_y + 1, min_x:max_x + 1]
        dist = np.hypot(xs - cx, ys - cy)
        falloff = np.where(dist <= radius, np.maximum(0.0, 1.0 - dist / max(1.0, radius)), 0.0)
        sign = -1.0 if mode == "sub" else 1.0
        target[min_y:max_y + 1, min_x:max_x + 1] += (sign * strength * falloff).astype(np.float32)

        size = self.chunk_size
        for chunk_y in range(min_y // size, max_y // size + 1):
            for chunk_x in range(min_x // size, max_x // size + 1):
                self._dirty.add((chunk_x, chunk_y))

    def sample_at(self, param: str, x: int, y: int) -> float:
        """Map value at a tile; coordinates are clamped to the grid."""
        if self.width <= 0 or self.height <= 0:
            return 0.0
        ix = min(max(int(x), 0), self.width - 1)
        iy = min(max(int(y), 0), self.height - 1)
        return float(self._map(param)[iy, ix])

    def sample_average(self, param: str, positions: Sequence[Position]) -> float:
        if not positions:
            return 0.0
        return sum(self.sample_at(param, p[0], p[1]) for p in positions) / len(positions)

    def dirty_chunks(self) -> List[Tuple[int, int]]:
        return sorted(self._dirty)

    def clear_dirty(self) -> None:
        self._dirty.clear()


class ParameterAggregator:
    """
    Keeps the parameter maps in step with the set of active facilities.

    Every stamp applied is remembered with the exact arguments used, so it
    can be removed later even if the facility has since left the store.
    """

    def __init__(self, registry: FacilityRegistry, param_map: CityParameterMap):
        self.registry = registry
        self.param_map = param_map
        self._stamped: Dict[str, List[Tuple[str, int, int, float, float]]] = {}

    @property
    def stamped_ids(self) -> Set[str]:
        return set(self._stamped)

    def _stamps_for(self, facility: Facility) -> List[Tuple[str, int, int, float, float]]:
        info = self.registry.get(facility.type)
        if info is None or not info.parameter_effects:
            return []
        radius = facility.effect_radius if facility.effect_radius is not None else info.effect_radius
        if not radius:
            return []
        return [
            (param, facility.position.x, facility.position.y, radius, strength)
            for param, strength in info.parameter_effects.items()
            if param in CITY_PARAMETERS
        ]

    def _stamp(self, facility: Facility) -> None:
        stamps = self._stamps_for(facility)
        if not stamps:
            return
        for param, x, y, radius, strength in stamps:
            self.param_map.apply_stamp(param, x, y, radius, strength, "add")
        self._stamped[facility.id] = stamps

    def _unstamp(self, facility_id: str) -> None:
        for param, x, y, radius, strength in self._stamped.pop(facility_id, []):
            self.param_map.apply_stamp(param, x, y, radius, strength, "sub")

    def sync(self, facilities: Iterable[Facility]) -> None:
        """Stamp newly active facilities and unstamp removed or inactive ones."""
        active = {f.id: f for f in facilities if f.is_active}

        for facility_id in list(self._stamped):
            if facility_id not in active:
                self._unstamp(facility_id)

        for facility_id, facility in active.items():
            if facility_id not in self._stamped:
                self._stamp(facility)

    def on_store_event(self, event: str, facility: Facility) -> None:
        if event == "remove":
            self._unstamp(facility.id)

    def clear(self) -> None:
        self._stamped.clear()
        self.param_map.reset(self.param_map.width, self.param_map.height)

    def city_parameters(self, facilities: Iterable[Facility]) -> Optional[Dict[str, float]]:
        """
        Citywide parameter values (0-100) averaged over residential tiles.

        Returns None when there are no residential facilities.
        """
        tiles: List[Position] = []
        for f in facilities:
            info = self.registry.get(f.type)
            if info is not None and info.category == "residential":
                tiles.extend(f.occupied_tiles)
        if not tiles:
            return None

        return {
            param: min(100.0, max(0.0, self.param_map.sample_average(param, tiles)))
            for param in CITY_PARAMETERS
        }
