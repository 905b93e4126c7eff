"""
Core city simulation functionality.
"""

from .registry import FacilityInfo, FacilityRegistry, load_registry, default_registry
from .grid import Grid, GridConfig
from .facility import Facility, Position, compute_footprint
from .facility_store import FacilityStore, FacilityCaches
from .placement import PlacementRejection, PlacementResult, validate_placement
from .connectivity import RoadNetworkAnalyzer, ConnectivitySummary
from .workforce import WorkforceAllocation, allocate_workforce, calculate_efficiency
from .coverage import CoverageIndex, uncovered_residentials
from .road_connection import RoadConnection, classify_road
from .satisfaction import calculate_satisfaction_from_parameters
from .city import City, GameStats, build_city

__all__ = ['FacilityInfo', 'FacilityRegistry', 'load_registry', 'default_registry',
           'Grid', 'GridConfig', 'Facility', 'Position', 'compute_footprint',
           'FacilityStore', 'FacilityCaches',
           'PlacementRejection', 'PlacementResult', 'validate_placement',
           'RoadNetworkAnalyzer', 'ConnectivitySummary',
           'WorkforceAllocation', 'allocate_workforce', 'calculate_efficiency',
           'CoverageIndex', 'uncovered_residentials',
           'RoadConnection', 'classify_road', 'calculate_satisfaction_from_parameters',
           'City', 'GameStats', 'build_city']
