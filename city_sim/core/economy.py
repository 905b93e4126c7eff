"""
Goods production, consumption and revenue.

Producers turn workforce into goods; commercial facilities sell goods for
revenue. Only active facilities take part.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, Sequence

from .facility import Facility
from .registry import FacilityRegistry
from .workforce import WorkforceAllocation

DEFAULT_REVENUE_PER_GOOD = 50


@dataclass
class ConsumptionResult:
    consumed: int
    revenue: int


def calculate_production(
    facilities: Iterable[Facility],
    allocations: Sequence[WorkforceAllocation],
    registry: FacilityRegistry,
) -> int:
    """
    Goods produced this step.

    Each active producer contributes ``produce_goods`` scaled by its
    workforce efficiency; producers without a workforce requirement run at
    full output.
    """
    efficiency: Dict[str, float] = {a.facility.id: a.efficiency for a in allocations}
    total = 0.0
    for facility in facilities:
        if not facility.is_active:
            continue
        info = registry.get(facility.type)
        if info is None or not info.produce_goods:
            continue
        if info.workforce_required is not None:
            total += info.produce_goods * efficiency.get(facility.id, 0.0)
        else:
            total += info.produce_goods
    return int(total)


def calculate_consumption_and_revenue(
    goods: int,
    facilities: Iterable[Facility],
    registry: FacilityRegistry,
    revenue_per_good: int = DEFAULT_REVENUE_PER_GOOD,
) -> ConsumptionResult:
    """Commercial facilities consume in store order while stock lasts."""
    available = goods
    consumed = 0
    for facility in facilities:
        if not facility.is_active:
            continue
        info = registry.get(facility.type)
        if info is None or info.category != "commercial" or not info.consume_goods:
            continue
        if available >= info.consume_goods:
            available -= info.consume_goods
            consumed += info.consume_goods
    return ConsumptionResult(consumed=consumed, revenue=consumed * revenue_per_good)


def maintenance_cost(facilities: Iterable[Facility], registry: FacilityRegistry) -> int:
    """Monthly upkeep of every placed facility."""
    total = 0
    for facility in facilities:
        info = registry.get(facility.type)
        if info is not None:
            total += info.maintenance_cost
    return total
