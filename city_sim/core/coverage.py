"""
Spatial coverage of residential facilities by service facilities.

A residential facility is covered when the Euclidean distance from a
service facility's center to the nearest tile of the residential footprint
is at most the service's effect radius (inclusive). Coverage is computed on
demand and never cached.
"""

import math
from typing import Iterable, List, Optional, Sequence

import numpy as np
import structlog
from scipy.spatial import cKDTree

from .facility import Facility
from .registry import FacilityRegistry

logger = structlog.get_logger()

# Tolerance so boundary distances survive float rounding in the prefilter
_EPSILON = 1e-9


def min_footprint_distance(service: Facility, residential: Facility) -> float:
    """Distance from the service center to the closest residential tile."""
    cx, cy = service.position
    return min(math.hypot(t.x - cx, t.y - cy) for t in residential.occupied_tiles)


def service_radius(service: Facility, registry: FacilityRegistry) -> Optional[float]:
    """Effect radius stamped on the facility, else the registry value."""
    if service.effect_radius is not None:
        return service.effect_radius
    info = registry.get(service.type)
    return info.effect_radius if info is not None else None


def is_covered(
    residential: Facility, services: Sequence[Facility], registry: FacilityRegistry
) -> bool:
    for service in services:
        radius = service_radius(service, registry)
        if radius is None:
            continue
        if min_footprint_distance(service, residential) <= radius:
            return True
    return False


def _residentials(facilities: Iterable[Facility], registry: FacilityRegistry) -> List[Facility]:
    return [
        f
        for f in facilities
        if registry.get(f.type) is not None and registry.info(f.type).category == "residential"
    ]


def _services(
    facilities: Iterable[Facility], service_type: str, active_only: bool
) -> List[Facility]:
    return [f for f in facilities if f.type == service_type and (f.is_active or not active_only)]


def uncovered_residentials(
    facilities: Sequence[Facility],
    registry: FacilityRegistry,
    service_type: str,
    active_only: bool = False,
) -> List[Facility]:
    """
    Residential facilities not covered by any ``service_type`` facility.

    Args:
        facilities: Current facility list
        registry: Registry used for categories and radii
        service_type: Facility type providing the coverage (e.g. "park")
        active_only: Only count services that are currently active

    Returns:
        Uncovered residentials in store order
    """
    residentials = _residentials(facilities, registry)
    services = _services(facilities, service_type, active_only)
    if not residentials:
        return []
    if not services:
        return residentials

    index = CoverageIndex(services, registry)
    return [r for r in residentials if not index.covers(r)]


class CoverageIndex:
    """
    KD-tree over service centers.

    Candidates are prefiltered by center-to-center distance, widened by the
    residential footprint's half diagonal so no covering service is missed;
    the exact footprint distance is then checked per candidate.
    """

    def __init__(self, services: Sequence[Facility], registry: FacilityRegistry):
        self.registry = registry
        self.services = [s for s in services if service_radius(s, registry) is not None]
        self.radii = np.array([service_radius(s, registry) for s in self.services], dtype=float)
        self.max_radius = float(self.radii.max()) if len(self.radii) else 0.0
        self.tree: Optional[cKDTree] = None
        if self.services:
            centers = np.array([[s.position.x, s.position.y] for s in self.services], dtype=float)
            self.tree = cKDTree(centers)

    def covers(self, residential: Facility) -> bool:
        if self.tree is None:
            return False

        search_radius = (
            self.max_radius + residential.half_extent * math.sqrt(2) + _EPSILON
        )
        candidates = self.tree.query_ball_point(
            [residential.position.x, residential.position.y], r=search_radius
        )
        for i in sorted(candidates):
            if min_footprint_distance(self.services[i], residential) <= self.radii[i]:
                return True
        return False
