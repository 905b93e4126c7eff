"""
Tests for service coverage of residential facilities.
"""

import math

from city_sim.core.coverage import (
    CoverageIndex,
    is_covered,
    min_footprint_distance,
    uncovered_residentials,
)


class TestCoverage:
    """Test inclusive radius semantics and the KD-tree index."""

    def test_exactly_at_radius_is_covered(self, registry, make_facility):
        park = make_facility("park", 10, 10)
        house = make_facility("house", 15, 10)
        assert min_footprint_distance(park, house) == 5
        assert is_covered(house, [park], registry)

    def test_one_unit_beyond_is_not_covered(self, registry, make_facility):
        park = make_facility("park", 10, 10)
        house = make_facility("house", 16, 10)
        assert not is_covered(house, [park], registry)

    def test_nearest_footprint_tile_counts(self, registry, make_facility):
        park = make_facility("park", 10, 10)
        block = make_facility("block", 16, 10)  # nearest tile (15, 10)
        assert min_footprint_distance(park, block) == 5
        assert is_covered(block, [park], registry)

    def test_index_widens_search_for_footprints(self, registry, make_facility):
        park = make_facility("park", 10, 10)
        # center is sqrt(32) away, nearest tile (13, 13) is sqrt(18) away
        block = make_facility("block", 14, 14)
        assert math.hypot(4, 4) > 5
        index = CoverageIndex([park], registry)
        assert index.covers(block)

    def test_uncovered_residentials(self, registry, make_facility):
        park = make_facility("park", 10, 10)
        near = make_facility("house", 12, 10)
        far = make_facility("house", 1, 1)
        road = make_facility("road", 5, 5)

        uncovered = uncovered_residentials([park, near, far, road], registry, "park")

        assert uncovered == [far]

    def test_no_services_leaves_all_uncovered(self, registry, make_facility):
        houses = [make_facility("house", 1, 1), make_facility("house", 3, 3)]
        assert uncovered_residentials(houses, registry, "park") == houses

    def test_active_only(self, registry, make_facility):
        park = make_facility("park", 10, 10, is_active=False)
        house = make_facility("house", 12, 10)
        assert uncovered_residentials([park, house], registry, "park") == []
        assert uncovered_residentials([park, house], registry, "park", active_only=True) == [house]

    def test_index_matches_brute_force(self, registry, make_facility):
        parks = [make_facility("park", x, y) for x, y in ((3, 3), (15, 4), (9, 16))]
        houses = [make_facility("house", x, y) for x in range(0, 20, 3) for y in range(0, 20, 3)]
        index = CoverageIndex(parks, registry)
        for house in houses:
            assert index.covers(house) == is_covered(house, parks, registry)
