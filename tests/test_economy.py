"""
Tests for infrastructure balance, the goods economy and satisfaction.
"""

import pytest

from city_sim.core.economy import (
    calculate_consumption_and_revenue,
    calculate_production,
    maintenance_cost,
)
from city_sim.core.infrastructure import infrastructure_status
from city_sim.core.satisfaction import calculate_satisfaction_from_parameters
from city_sim.core.workforce import WorkforceAllocation


class TestInfrastructure:
    """Test demand versus supply."""

    def test_shortage_from_active_facilities(self, registry, make_facility):
        houses = [make_facility("house", x, 1, is_active=True) for x in range(3)]
        idle = make_facility("house", 9, 9, is_active=False)

        status = infrastructure_status(houses + [idle], registry)

        assert status.water.demand == 30
        assert status.electricity.supply == 0
        assert status.shortage() == {"water": 30, "electricity": 30}

    def test_supply_covers_demand(self, registry, make_facility):
        facilities = [
            make_facility("house", 1, 1, is_active=True),
            make_facility("plant", 3, 3, is_active=True),
        ]
        status = infrastructure_status(facilities, registry)
        assert status.water.balance == 90
        assert status.shortage() == {"water": 0, "electricity": 0}
        assert status.to_dict()["electricity"] == {"demand": 10, "supply": 100, "balance": 90}


class TestEconomy:
    """Test production, consumption and upkeep."""

    def test_production_scaled_by_efficiency(self, registry, make_facility):
        factory = make_facility("factory", 1, 1, is_active=True)
        allocations = [WorkforceAllocation(factory, 15, 0.75)]
        assert calculate_production([factory], allocations, registry) == 7

    def test_unstaffed_or_inactive_produces_nothing(self, registry, make_facility):
        staffed_inactive = make_facility("factory", 1, 1, is_active=False)
        unstaffed = make_facility("factory", 2, 2, is_active=True)
        allocations = [WorkforceAllocation(staffed_inactive, 20, 1.0)]
        assert calculate_production([staffed_inactive, unstaffed], allocations, registry) == 0

    def test_consumption_while_stock_lasts(self, registry, make_facility):
        shops = [make_facility("shop", x, 1, is_active=True) for x in range(3)]
        result = calculate_consumption_and_revenue(12, shops, registry, revenue_per_good=50)
        assert result.consumed == 10
        assert result.revenue == 500

    def test_maintenance_cost(self, registry, make_facility):
        facilities = [make_facility("block", 5, 5), make_facility("road", 1, 1)]
        assert maintenance_cost(facilities, registry) == 30


class TestSatisfaction:
    """Test the weighted satisfaction formula."""

    def test_unknown_parameters_are_neutral(self):
        assert calculate_satisfaction_from_parameters(None) == 50

    def test_weighted_mean(self):
        params = {k: 80 for k in (
            "entertainment", "security", "sanitation", "transit",
            "environment", "education", "disaster_prevention", "tourism",
        )}
        assert calculate_satisfaction_from_parameters(params) == 80

    def test_penalty_and_clamp(self):
        params = {"environment": 100}
        # 100 * 0.2 / 1.25
        assert calculate_satisfaction_from_parameters(params) == 16
        assert calculate_satisfaction_from_parameters(params, penalty=5) == 11
        assert calculate_satisfaction_from_parameters(params, penalty=50) == 0
