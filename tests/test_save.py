"""
Tests for saving and restoring cities.
"""

import json

import pytest

from city_sim.core.facility import Position
from city_sim.core.save import (
    FacilityRecord,
    SaveDataError,
    create_save_data,
    load_from_path,
    parse_save_data,
    restore_city,
    save_to_path,
)


def facility_entry(facility_id, facility_type, x, y, tiles=None, **extra):
    entry = {
        "id": facility_id,
        "type": facility_type,
        "position": {"x": x, "y": y},
        "occupiedTiles": tiles or [{"x": x, "y": y}],
        "variantIndex": 0,
        "isConnected": True,
    }
    entry.update(extra)
    return entry


def document(facilities, **extra):
    doc = {
        "version": "1.0.0",
        "cityName": "Testville",
        "timestamp": 0,
        "grid": {"width": 20, "height": 20},
        "stats": {"money": 1234, "population": 0, "satisfaction": 40, "goods": 3},
        "facilities": facilities,
    }
    doc.update(extra)
    return doc


class TestFacilityRecord:
    """Test schema tolerance."""

    def test_missing_is_active_defaults_to_is_connected(self):
        record = FacilityRecord.model_validate(facility_entry("r1", "road", 1, 1))
        assert record.is_active is True

        record = FacilityRecord.model_validate(facility_entry("r2", "road", 1, 1, isConnected=False))
        assert record.is_active is False

    def test_explicit_is_active_kept(self):
        record = FacilityRecord.model_validate(facility_entry("r1", "road", 1, 1, isActive=False))
        assert record.is_active is False
        assert record.is_connected is True

    def test_serializes_camel_case(self, make_facility):
        dumped = FacilityRecord.from_facility(make_facility("block", 5, 5)).model_dump(by_alias=True)
        assert len(dumped["occupiedTiles"]) == 9
        assert "isActive" in dumped
        assert "variantIndex" in dumped


class TestRestore:
    """Test rebuilding cities from documents."""

    def test_restore(self, registry, settings):
        data = parse_save_data(document([
            facility_entry("road_1", "road", 0, 5),
            facility_entry("house_1", "house", 1, 5),
        ]))

        city = restore_city(data, registry, settings)

        assert city.name == "Testville"
        assert city.stats.money == 1234
        assert city.stats.goods == 3
        assert len(city.store) == 2
        assert city.store.facility_at(Position(1, 5)).id == "house_1"
        assert city.store.get("house_1").is_active

    def test_unlocked_defaults_to_registry(self, registry, settings):
        city = restore_city(parse_save_data(document([])), registry, settings)
        assert city.unlocked == registry.initially_unlocked()

    def test_unlocked_types_restored(self, registry, settings):
        city = restore_city(
            parse_save_data(document([], unlockedTypes=["road", "plant"])), registry, settings
        )
        assert city.unlocked == {"road", "plant"}

    def test_overlap_raises(self, registry, settings):
        data = parse_save_data(document([
            facility_entry("a", "house", 3, 3),
            facility_entry("b", "house", 3, 3),
        ]))
        with pytest.raises(SaveDataError):
            restore_city(data, registry, settings)

    def test_id_collision_raises(self, registry, settings):
        data = parse_save_data(document([
            facility_entry("a", "house", 3, 3),
            facility_entry("a", "house", 4, 4),
        ]))
        with pytest.raises(SaveDataError):
            restore_city(data, registry, settings)

    def test_unknown_type_raises(self, registry, settings):
        data = parse_save_data(document([facility_entry("a", "castle", 3, 3)]))
        with pytest.raises(SaveDataError):
            restore_city(data, registry, settings)

    def test_out_of_bounds_raises(self, registry, settings):
        data = parse_save_data(document([facility_entry("a", "house", 25, 3)]))
        with pytest.raises(SaveDataError):
            restore_city(data, registry, settings)

    def test_tiles_must_match_footprint(self, registry, settings):
        wrong_count = facility_entry("p1", "park", 10, 10)
        wrong_place = facility_entry("h1", "house", 5, 5, tiles=[{"x": 2, "y": 2}])
        no_tiles = facility_entry("h2", "house", 5, 5)
        no_tiles["occupiedTiles"] = []

        for entry in (wrong_count, wrong_place, no_tiles):
            with pytest.raises(SaveDataError):
                restore_city(parse_save_data(document([entry])), registry, settings)

    def test_footprint_order_does_not_matter(self, registry, settings):
        tiles = [{"x": x, "y": y} for y in (11, 10, 9) for x in (9, 10, 11)]
        city = restore_city(
            parse_save_data(document([facility_entry("p1", "park", 10, 10, tiles=tiles)])),
            registry,
            settings,
        )
        assert city.store.is_occupied(Position(11, 11))
        assert city.store.is_occupied(Position(9, 9))

    def test_malformed_document_raises(self):
        with pytest.raises(SaveDataError):
            parse_save_data({"facilities": [{"id": "x"}]})
        with pytest.raises(SaveDataError):
            parse_save_data("{not json")

    def test_terrain_shape_mismatch_raises(self, registry, settings):
        data = parse_save_data(document([], terrain=[["grass"] * 3] * 3))
        with pytest.raises(SaveDataError):
            restore_city(data, registry, settings)


class TestRoundTrip:
    """Test saving a live city and loading it back."""

    def test_save_and_load(self, city, registry, settings, tmp_path):
        for x in range(0, 4):
            city.place_facility((x, 4), "road")
        city.place_facility((3, 6), "block")
        city.place_facility((10, 10), "park")
        city.grid.set_terrain(15, 15, "water")
        city.recompute()

        path = save_to_path(city, tmp_path / "city.json")
        raw = json.loads(path.read_text())
        assert raw["cityName"] == city.name
        assert "unlockedTypes" in raw

        loaded = load_from_path(path, registry, settings)

        assert [f.id for f in loaded.store.facilities] == [f.id for f in city.store.facilities]
        for original, restored in zip(city.store.facilities, loaded.store.facilities):
            assert restored.occupied_tiles == original.occupied_tiles
            assert restored.is_active == original.is_active
        assert loaded.stats.money == city.stats.money
        assert loaded.unlocked == city.unlocked
        assert loaded.grid.terrain_at(15, 15) == "water"

    def test_create_save_data_without_terrain(self, city):
        data = create_save_data(city, include_terrain=False)
        assert data.terrain is None
        assert data.grid.width == 20
