"""
Workforce allocation.

Facilities that declare ``workforce_required`` compete for a single pool of
workers. They are served in descending attractiveness order (stable, so
ties keep their original relative order) and each facility takes as much
as it can up to its ``max`` once the remaining pool covers its ``min``.
There is no rebalancing: a high-priority facility can take the workers a
lower-priority facility would have needed to reach its own minimum.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

import structlog

from .facility import Facility
from .registry import FacilityRegistry, WorkforceRequirement

logger = structlog.get_logger()


@dataclass
class WorkforceAllocation:
    facility: Facility
    assigned_workforce: int
    efficiency: float


def needs_workforce(facility: Facility, registry: FacilityRegistry) -> bool:
    info = registry.get(facility.type)
    return info is not None and info.workforce_required is not None


def calculate_efficiency(assigned: int, requirement: Optional[WorkforceRequirement]) -> float:
    """
    Operating efficiency for a given staffing level.

    0 below ``min``, exactly 1.0 at or above ``max``, ``assigned / max``
    in between. Facilities without a requirement always run at 1.0.
    """
    if requirement is None:
        return 1.0
    if assigned < requirement.min:
        return 0.0
    if assigned >= requirement.max:
        return 1.0
    return assigned / requirement.max


def allocate_workforce(
    facilities: Iterable[Facility], available: int, registry: FacilityRegistry
) -> List[WorkforceAllocation]:
    """
    Distribute ``available`` workers across facilities that need them.

    Args:
        facilities: Facilities in store order
        available: Size of the worker pool
        registry: Registry providing workforce bounds and attractiveness

    Returns:
        Allocations in the order they were served. The sum of
        ``assigned_workforce`` never exceeds ``available``.
    """
    candidates = [f for f in facilities if needs_workforce(f, registry)]
    # sorted() is stable, so equal attractiveness keeps store order
    ordered = sorted(
        candidates,
        key=lambda f: registry.info(f.type).attractiveness or 0,
        reverse=True,
    )

    remaining = max(0, int(available))
    allocations = []
    for facility in ordered:
        requirement = registry.info(facility.type).workforce_required
        if remaining >= requirement.min:
            assigned = min(remaining, requirement.max)
            remaining -= assigned
        else:
            assigned = 0
        allocations.append(
            WorkforceAllocation(
                facility=facility,
                assigned_workforce=assigned,
                efficiency=calculate_efficiency(assigned, requirement),
            )
        )

    logger.debug(
        "Workforce allocated",
        facilities=len(allocations),
        available=available,
        unassigned=remaining,
    )
    return allocations


def total_required(facilities: Iterable[Facility], registry: FacilityRegistry) -> int:
    """Workers needed to run every staffed facility at full efficiency."""
    return sum(
        registry.info(f.type).workforce_required.max
        for f in facilities
        if needs_workforce(f, registry)
    )


def total_assigned(allocations: Sequence[WorkforceAllocation]) -> int:
    return sum(a.assigned_workforce for a in allocations)
