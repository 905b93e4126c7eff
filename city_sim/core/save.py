"""
Saving and loading a city.

A save is a JSON document with camelCase keys holding the facility list,
the unlocked facility types, the player's stats and optionally the terrain.
Older saves without ``isActive`` load with ``isActive = isConnected``, and
saves without an unlocked list fall back to the registry's initially
unlocked types. Anything else that is inconsistent (overlapping
footprints, reused ids, tiles off the grid, unknown facility types, tiles
that are not the footprint of the facility's center and size) is refused
with ``SaveDataError``.
"""

import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np
import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from ..config import Settings
from .city import City, GameStats
from .facility import Facility, Position, compute_footprint
from .facility_store import FacilityStore, FacilityStoreError
from .grid import Grid, GridConfig
from .registry import FacilityRegistry
from .scheduler import GameDate

logger = structlog.get_logger()

SAVE_VERSION = "1.0.0"


class SaveDataError(ValueError):
    """A save document is malformed or describes an impossible city."""


class _SaveModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PositionRecord(_SaveModel):
    x: int
    y: int


class FacilityRecord(_SaveModel):
    id: str
    type: str
    position: PositionRecord
    occupied_tiles: List[PositionRecord]
    variant_index: int = 0
    effect_radius: Optional[float] = None
    is_connected: bool = False
    is_active: bool

    @model_validator(mode="before")
    @classmethod
    def _default_is_active(cls, data: Any) -> Any:
        if isinstance(data, dict) and "isActive" not in data and "is_active" not in data:
            data = dict(data)
            data["isActive"] = data.get("isConnected", data.get("is_connected", False))
        return data

    @classmethod
    def from_facility(cls, facility: Facility) -> "FacilityRecord":
        return cls(
            id=facility.id,
            type=facility.type,
            position=PositionRecord(x=facility.position.x, y=facility.position.y),
            occupied_tiles=[PositionRecord(x=t.x, y=t.y) for t in facility.occupied_tiles],
            variant_index=facility.variant_index,
            effect_radius=facility.effect_radius,
            is_connected=facility.is_connected,
            is_active=facility.is_active,
        )

    def to_facility(self) -> Facility:
        return Facility(
            id=self.id,
            type=self.type,
            position=Position(self.position.x, self.position.y),
            occupied_tiles=tuple(Position(t.x, t.y) for t in self.occupied_tiles),
            variant_index=self.variant_index,
            effect_radius=self.effect_radius,
            is_connected=self.is_connected,
            is_active=self.is_active,
        )


class GridRecord(_SaveModel):
    width: int = Field(gt=0)
    height: int = Field(gt=0)


class DateRecord(_SaveModel):
    year: int = 2024
    month: int = Field(default=1, ge=1, le=12)
    week: int = Field(default=1, ge=1, le=4)


class StatsRecord(_SaveModel):
    money: int
    population: int = 0
    satisfaction: float = 50
    goods: int = 0
    date: DateRecord = Field(default_factory=DateRecord)


class SaveData(_SaveModel):
    version: str = SAVE_VERSION
    city_name: str = "New City"
    timestamp: float = Field(default_factory=time.time)
    grid: Optional[GridRecord] = None
    stats: Optional[StatsRecord] = None
    facilities: List[FacilityRecord] = Field(default_factory=list)
    unlocked_types: Optional[List[str]] = None
    terrain: Optional[List[List[str]]] = None

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


def create_save_data(city: City, include_terrain: bool = True) -> SaveData:
    """Capture a city's persistent state."""
    stats = city.stats
    return SaveData(
        city_name=city.name,
        grid=GridRecord(width=city.grid.width, height=city.grid.height),
        stats=StatsRecord(
            money=stats.money,
            population=stats.population,
            satisfaction=stats.satisfaction,
            goods=stats.goods,
            date=DateRecord(year=stats.date.year, month=stats.date.month, week=stats.date.week),
        ),
        facilities=[FacilityRecord.from_facility(f) for f in city.store.facilities],
        unlocked_types=sorted(city.unlocked),
        terrain=city.grid.terrain.tolist() if include_terrain else None,
    )


def parse_save_data(document: Union[str, bytes, Dict[str, Any]]) -> SaveData:
    """Validate a raw document (JSON text or parsed dict)."""
    try:
        if isinstance(document, (str, bytes)):
            return SaveData.model_validate_json(document)
        return SaveData.model_validate(document)
    except ValidationError as e:
        raise SaveDataError(f"Invalid save data: {e.error_count()} error(s)\n{e}") from e


def _restore_store(data: SaveData, grid: Grid, registry: FacilityRegistry) -> FacilityStore:
    store = FacilityStore()
    for record in data.facilities:
        if record.type not in registry:
            raise SaveDataError(f"Facility {record.id!r} has unknown type {record.type!r}")
        facility = record.to_facility()
        size = registry.info(record.type).size
        if sorted(facility.occupied_tiles) != sorted(compute_footprint(facility.position, size)):
            raise SaveDataError(
                f"Facility {record.id!r} tiles do not match a size-{size} "
                f"footprint centered on ({facility.position.x}, {facility.position.y})"
            )
        for tile in facility.occupied_tiles:
            if not grid.in_bounds(tile.x, tile.y):
                raise SaveDataError(
                    f"Facility {record.id!r} occupies ({tile.x}, {tile.y}) outside the grid"
                )
        try:
            store.add(facility)
        except FacilityStoreError as e:
            raise SaveDataError(str(e)) from e
    return store


def restore_city(
    data: SaveData,
    registry: FacilityRegistry,
    settings: Optional[Settings] = None,
    rng: Optional[np.random.Generator] = None,
) -> City:
    """
    Rebuild a City from save data.

    Raises:
        SaveDataError: if the save describes an inconsistent city
    """
    settings = settings or Settings()
    if data.grid is not None:
        config = GridConfig(data.grid.width, data.grid.height)
    else:
        config = GridConfig(settings.grid_width, settings.grid_height)
    grid = Grid(config, registry, height_terrain_enabled=settings.height_terrain_enabled)
    if data.terrain is not None:
        try:
            grid.fill_terrain(np.array(data.terrain, dtype="<U16"))
        except ValueError as e:
            raise SaveDataError(f"Terrain does not match the grid: {e}") from e

    store = _restore_store(data, grid, registry)

    if data.unlocked_types is None:
        unlocked = registry.initially_unlocked()
    else:
        unlocked = set()
        for facility_type in data.unlocked_types:
            if facility_type in registry:
                unlocked.add(facility_type)
            else:
                logger.warning("Ignoring unknown unlocked type", facility_type=facility_type)

    record = data.stats
    if record is None:
        stats = GameStats(money=settings.initial_money, satisfaction=settings.initial_satisfaction)
    else:
        stats = GameStats(
            money=record.money,
            population=record.population,
            satisfaction=record.satisfaction,
            goods=record.goods,
            date=GameDate(year=record.date.year, month=record.date.month, week=record.date.week),
        )

    city = City(
        registry,
        grid,
        settings=settings,
        rng=rng,
        store=store,
        stats=stats,
        unlocked=unlocked,
        name=data.city_name,
    )
    city.aggregator.sync(store.facilities)
    logger.info(
        "City restored",
        city_name=data.city_name,
        facilities=len(store),
        version=data.version,
    )
    return city


def save_to_path(city: City, path: Union[str, Path]) -> Path:
    path = Path(path)
    path.write_text(create_save_data(city).to_json(), encoding="utf-8")
    logger.info("City saved", path=str(path), facilities=len(city.store))
    return path


def load_from_path(
    path: Union[str, Path],
    registry: FacilityRegistry,
    settings: Optional[Settings] = None,
    rng: Optional[np.random.Generator] = None,
) -> City:
    text = Path(path).read_text(encoding="utf-8")
    return restore_city(parse_save_data(text), registry, settings, rng)
