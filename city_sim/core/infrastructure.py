"""Water and electricity demand versus supply."""

from dataclasses import dataclass, field
from typing import Dict, Iterable

from .facility import Facility
from .registry import FacilityRegistry

RESOURCES = ("water", "electricity")


@dataclass
class ResourceBalance:
    demand: float = 0.0
    supply: float = 0.0

    @property
    def balance(self) -> float:
        return self.supply - self.demand

    @property
    def shortage(self) -> float:
        return max(0.0, self.demand - self.supply)


@dataclass
class InfrastructureStatus:
    water: ResourceBalance = field(default_factory=ResourceBalance)
    electricity: ResourceBalance = field(default_factory=ResourceBalance)

    def shortage(self) -> Dict[str, float]:
        return {"water": self.water.shortage, "electricity": self.electricity.shortage}

    def to_dict(self) -> Dict[str, Dict[str, float]]:
        return {
            name: {"demand": r.demand, "supply": r.supply, "balance": r.balance}
            for name, r in (("water", self.water), ("electricity", self.electricity))
        }


def infrastructure_status(
    facilities: Iterable[Facility], registry: FacilityRegistry
) -> InfrastructureStatus:
    """Sum demand and supply over active facilities."""
    status = InfrastructureStatus()
    for facility in facilities:
        if not facility.is_active:
            continue
        info = registry.get(facility.type)
        if info is None:
            continue
        if info.infrastructure_demand is not None:
            status.water.demand += info.infrastructure_demand.water
            status.electricity.demand += info.infrastructure_demand.electricity
        if info.infrastructure_supply is not None:
            status.water.supply += info.infrastructure_supply.water
            status.electricity.supply += info.infrastructure_supply.electricity
    return status
