"""
City coordinator.

``City`` is the explicit context object that owns one running city: the
facility store and its caches, the connectivity analyzer, the parameter
maps, the feed log, the game clock and the player's stats. Collaborators
receive it (or the pieces they need) through constructors; there are no
module-level stores.
"""

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

import numpy as np
import structlog

from ..config import Settings
from ..utils.random import make_rng
from .connectivity import ConnectivitySummary, RoadNetworkAnalyzer
from .coverage import uncovered_residentials
from .economy import calculate_consumption_and_revenue, calculate_production, maintenance_cost
from .facility import Facility, Position, compute_footprint
from .facility_store import FacilityStore
from .feed import CitySnapshot, FeedEvent, FeedLog, FeedOptions, FeedScanner
from .grid import Grid, GridConfig
from .infrastructure import InfrastructureStatus, infrastructure_status
from .parameter_map import CityParameterMap, ParameterAggregator
from .placement import PlacementRejection, PlacementResult, validate_placement
from .registry import FacilityRegistry
from .road_connection import RoadConnection, classify_store_road
from .satisfaction import calculate_satisfaction_from_parameters
from .scheduler import GameClock, GameDate
from .terrain_generator import TerrainOptions, generate_terrain
from .workforce import WorkforceAllocation, allocate_workforce, total_assigned, total_required

logger = structlog.get_logger()


@dataclass
class GameStats:
    money: int = 10000
    population: int = 0
    satisfaction: float = 50
    goods: int = 0
    date: GameDate = field(default_factory=GameDate)


@dataclass
class WeekReport:
    produced: int
    consumed: int
    revenue: int
    new_month: bool


class City:
    """One simulated city and every piece of state derived from it."""

    def __init__(
        self,
        registry: FacilityRegistry,
        grid: Grid,
        settings: Optional[Settings] = None,
        rng: Optional[np.random.Generator] = None,
        store: Optional[FacilityStore] = None,
        stats: Optional[GameStats] = None,
        unlocked: Optional[Iterable[str]] = None,
        name: str = "New City",
    ):
        self.settings = settings or Settings()
        self.registry = registry
        self.grid = grid
        self.name = name
        self.store = store if store is not None else FacilityStore()
        self.stats = stats or GameStats(
            money=self.settings.initial_money,
            satisfaction=self.settings.initial_satisfaction,
        )
        self.unlocked: Set[str] = (
            set(unlocked) if unlocked is not None else registry.initially_unlocked()
        )

        self.analyzer = RoadNetworkAnalyzer(self.store, grid, registry)
        self.param_map = CityParameterMap(grid.width, grid.height)
        self.aggregator = ParameterAggregator(registry, self.param_map)
        self.store.subscribe(self.aggregator.on_store_event)

        self.clock = GameClock(self.stats.date)
        self.clock.on_month(self._on_new_month)

        self.feed = FeedLog(self.settings.feed_max_entries)
        self.scanner = FeedScanner(
            FeedOptions.from_settings(self.settings),
            rng if rng is not None else make_rng(self.settings.feed_seed),
        )

    @property
    def facilities(self) -> tuple:
        return self.store.facilities

    # Placement

    def is_unlocked(self, facility_type: str) -> bool:
        return facility_type in self.unlocked

    def preview(self, center: Position, facility_type: str) -> PlacementResult:
        """Validate a placement against current funds without changing anything."""
        info = self.registry.info(facility_type)
        if not self.is_unlocked(facility_type):
            return PlacementResult.reject(
                PlacementRejection.FACILITY_LOCKED, compute_footprint(Position(*center), info.size)
            )
        return validate_placement(
            center, facility_type, self.grid, self.registry, self.store, self.stats.money
        )

    def place_facility(
        self, center: Position, facility_type: str, variant_index: int = 0
    ) -> PlacementResult:
        """
        Validate, add to the store and charge the construction cost.

        A rejected placement leaves store, caches and funds untouched.
        """
        result = self.preview(center, facility_type)
        if not result.accepted:
            logger.info(
                "Placement rejected",
                facility_type=facility_type,
                x=center[0],
                y=center[1],
                reason=result.reason.value,
            )
            return result

        result.facility.variant_index = variant_index
        self.store.add(result.facility)
        cost = self.registry.info(facility_type).cost
        self.stats.money -= cost
        logger.info(
            "Facility placed",
            facility_id=result.facility.id,
            facility_type=facility_type,
            cost=cost,
            money=self.stats.money,
        )
        return result

    def remove_facility(self, facility_id: str) -> Facility:
        facility = self.store.remove(facility_id)
        logger.info("Facility removed", facility_id=facility_id, facility_type=facility.type)
        return facility

    # Derived state

    def recompute(self) -> ConnectivitySummary:
        """Connectivity pass, parameter map sync and population update."""
        summary = self.analyzer.recompute()
        self.aggregator.sync(self.store.facilities)
        self.stats.population = self.population()
        return summary

    def population(self) -> int:
        total = 0
        for facility in self.store.facilities:
            info = self.registry.get(facility.type)
            if facility.is_active and info is not None and info.category == "residential":
                total += info.base_population or 0
        return total

    def workforce_pool(self) -> int:
        return math.floor(self.stats.population * self.settings.workforce_ratio)

    def allocate_workforce(self) -> List[WorkforceAllocation]:
        """Allocation for the current pool, cached until the next store mutation."""
        pool = self.workforce_pool()
        cached = self.store.caches.workforce
        if cached is not None and cached[0] == pool:
            return cached[1]
        allocations = allocate_workforce(self.store.facilities, pool, self.registry)
        self.store.caches.workforce = (pool, allocations)
        return allocations

    def uncovered(self, service_type: Optional[str] = None, active_only: bool = False) -> List[Facility]:
        return uncovered_residentials(
            self.store.facilities,
            self.registry,
            service_type or self.settings.coverage_service_type,
            active_only=active_only,
        )

    def infrastructure(self) -> InfrastructureStatus:
        return infrastructure_status(self.store.facilities, self.registry)

    def city_parameters(self):
        return self.aggregator.city_parameters(self.store.facilities)

    def recalculate_satisfaction(self) -> int:
        """
        Set satisfaction from the city parameters, less the standing
        uncovered-residential penalty.
        """
        penalty = len(self.uncovered()) * self.settings.uncovered_penalty
        satisfaction = calculate_satisfaction_from_parameters(self.city_parameters(), penalty)
        self.stats.satisfaction = satisfaction
        logger.info("Satisfaction recalculated", satisfaction=satisfaction, penalty=penalty)
        return satisfaction

    def road_shape(self, facility: Facility) -> Optional[RoadConnection]:
        """Sprite shape of a backbone tile; None for other facilities."""
        if not self.registry.is_backbone(facility.type):
            return None
        return classify_store_road(
            self.store, facility.position.x, facility.position.y, self.registry.backbone_type
        )

    # Time

    def advance_week(self) -> WeekReport:
        """One simulated week: produce goods, sell them, advance the calendar."""
        facilities = self.store.facilities
        produced = calculate_production(facilities, self.allocate_workforce(), self.registry)
        self.stats.goods += produced

        sales = calculate_consumption_and_revenue(
            self.stats.goods, facilities, self.registry, self.settings.revenue_per_good
        )
        self.stats.goods -= sales.consumed
        self.stats.money += sales.revenue

        new_month = self.clock.advance_week()
        return WeekReport(
            produced=produced, consumed=sales.consumed, revenue=sales.revenue, new_month=new_month
        )

    def _on_new_month(self, date: GameDate) -> None:
        penalty = self.apply_monthly_penalty()
        upkeep = maintenance_cost(self.store.facilities, self.registry)
        self.stats.money -= upkeep
        logger.info(
            "Month started",
            year=date.year,
            month=date.month,
            penalty=penalty,
            maintenance=upkeep,
        )

    def apply_monthly_penalty(self) -> float:
        """Lower satisfaction for every uncovered residential, floored at 0."""
        count = len(self.uncovered())
        penalty = count * self.settings.uncovered_penalty
        if penalty > 0:
            self.stats.satisfaction = max(0, self.stats.satisfaction - penalty)
        return penalty

    # Feed

    def snapshot(self) -> CitySnapshot:
        facilities = self.store.facilities
        shortage = self.infrastructure().shortage()
        has_commercial = any(
            self.registry.get(f.type) is not None
            and self.registry.info(f.type).category == "commercial"
            for f in facilities
        )
        return CitySnapshot(
            goods=self.stats.goods,
            has_commercial=has_commercial,
            water_shortage=shortage["water"],
            electricity_shortage=shortage["electricity"],
            workforce_required=total_required(facilities, self.registry),
            workforce_assigned=total_assigned(self.allocate_workforce()),
            uncovered_residentials=len(self.uncovered()),
            satisfaction=self.stats.satisfaction,
        )

    def scan_feed(self, now: Optional[float] = None) -> List[FeedEvent]:
        events = self.scanner.scan(self.snapshot(), now)
        self.feed.extend(events)
        return events

    # Unlocking

    def unlock(self, facility_types: Iterable[str]) -> List[str]:
        """Unlock types; returns those that were newly unlocked."""
        newly = []
        for facility_type in facility_types:
            self.registry.info(facility_type)
            if facility_type not in self.unlocked:
                self.unlocked.add(facility_type)
                newly.append(facility_type)
        if newly:
            logger.info("Facilities unlocked", facility_types=newly)
        return newly

    def complete_mission(self, mission_id: str) -> List[str]:
        return self.unlock(self.registry.unlockable_by_mission(mission_id))

    def unlock_achievement(self, achievement_id: str) -> List[str]:
        return self.unlock(self.registry.unlockable_by_achievement(achievement_id))


def build_city(
    registry: FacilityRegistry, settings: Settings, rng: Optional[np.random.Generator] = None
) -> City:
    """
    Create an empty city sized from settings.

    Terrain is generated when ``settings.terrain_seed`` is set, otherwise
    the grid is all grass.
    """
    grid = Grid(
        GridConfig(settings.grid_width, settings.grid_height),
        registry,
        height_terrain_enabled=settings.height_terrain_enabled,
    )
    if settings.terrain_seed is not None:
        grid.fill_terrain(generate_terrain(grid.config, TerrainOptions(seed=settings.terrain_seed)))
    return City(registry, grid, settings=settings, rng=rng)
