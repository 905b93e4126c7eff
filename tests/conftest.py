"""Shared fixtures for the city simulation tests."""

import numpy as np
import pytest

from city_sim.config import Settings
from city_sim.core.city import City
from city_sim.core.facility import Facility, Position, compute_footprint
from city_sim.core.facility_store import FacilityStore
from city_sim.core.grid import Grid, GridConfig
from city_sim.core.registry import load_registry


TEST_REGISTRY = {
    "backboneType": "road",
    "facilities": [
        {"type": "road", "size": 1, "cost": 50, "category": "infrastructure"},
        {
            "type": "house",
            "size": 1,
            "cost": 500,
            "category": "residential",
            "basePopulation": 100,
            "infrastructureDemand": {"water": 10, "electricity": 10},
        },
        {
            "type": "block",
            "size": 3,
            "cost": 100,
            "maintenanceCost": 30,
            "category": "residential",
            "basePopulation": 50,
        },
        {
            "type": "park",
            "size": 3,
            "cost": 300,
            "category": "government",
            "effectRadius": 5,
            "parameterEffects": {"environment": 40},
        },
        {
            "type": "shop",
            "size": 1,
            "cost": 150,
            "category": "commercial",
            "workforceRequired": {"min": 5, "max": 10},
            "attractiveness": 2,
            "consumeGoods": 5,
        },
        {
            "type": "factory",
            "size": 1,
            "cost": 200,
            "category": "industrial",
            "workforceRequired": {"min": 10, "max": 20},
            "attractiveness": 5,
            "produceGoods": 10,
        },
        {"type": "hall", "size": 1, "cost": 100, "category": "government", "unique": True},
        {
            "type": "plant",
            "size": 1,
            "cost": 100,
            "category": "infrastructure",
            "infrastructureSupply": {"water": 100, "electricity": 100},
            "initiallyUnlocked": False,
            "unlockCondition": "mission",
            "unlockRequirements": {"missionId": "m1"},
        },
    ],
}


@pytest.fixture
def registry():
    return load_registry(TEST_REGISTRY)


@pytest.fixture
def grid(registry):
    return Grid(GridConfig(20, 20), registry)


@pytest.fixture
def store():
    return FacilityStore()


@pytest.fixture
def settings():
    return Settings(
        grid_width=20,
        grid_height=20,
        initial_money=10000,
        feed_interval_seconds=0.01,
        week_seconds=0.01,
    )


@pytest.fixture
def city(registry, grid, settings):
    return City(registry, grid, settings=settings, rng=np.random.default_rng(0))


@pytest.fixture
def make_facility(registry):
    """Build a Facility directly, bypassing validation."""
    counter = {"n": 0}

    def _make(facility_type, x, y, is_active=False, facility_id=None):
        info = registry.info(facility_type)
        counter["n"] += 1
        return Facility(
            id=facility_id or f"{facility_type}_{x}_{y}_{counter['n']}",
            type=facility_type,
            position=Position(x, y),
            occupied_tiles=compute_footprint(Position(x, y), info.size),
            effect_radius=info.effect_radius,
            is_connected=is_active,
            is_active=is_active,
        )

    return _make
