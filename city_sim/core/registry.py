"""
Facility and terrain registry.

The registry is the read-only table of facility metadata (size, cost,
workforce bounds, effect radius, ...) and terrain buildability that every
other component queries by key. It is loaded once from a JSON document and
never mutated at runtime.

Fields that are absent for a facility type mean the feature does not apply
to it (no ``workforce_required`` means the facility does not take part in
workforce allocation), never that the value is zero.
"""

import json
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Literal, Optional, Set, Union

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

logger = structlog.get_logger()

DEFAULT_REGISTRY_PATH = Path(__file__).resolve().parent.parent / "data" / "facilities.json"

BACKBONE_TYPE = "road"

Category = Literal[
    "residential", "commercial", "industrial", "infrastructure", "government", "others"
]
UnlockCondition = Literal["initial", "mission", "achievement"]


class RegistryError(ValueError):
    """The registry document is malformed as a whole."""


class UnknownFacilityTypeError(KeyError):
    """A facility type was looked up that the registry does not define."""


class _RegistryModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class WorkforceRequirement(_RegistryModel):
    """Workforce bounds for a facility: stopped below min, full output at max."""

    min: int = Field(ge=0, description="Minimum workforce to operate")
    max: int = Field(ge=0, description="Workforce for full efficiency")

    @model_validator(mode="after")
    def _check_bounds(self) -> "WorkforceRequirement":
        if self.min > self.max:
            raise ValueError(f"workforce min {self.min} exceeds max {self.max}")
        return self


class InfrastructureAmount(_RegistryModel):
    """Water/electricity amounts, used for both demand and supply."""

    water: float = Field(default=0.0, ge=0)
    electricity: float = Field(default=0.0, ge=0)


class UnlockRequirements(_RegistryModel):
    mission_id: Optional[str] = None
    achievement_id: Optional[str] = None


class FacilityInfo(_RegistryModel):
    """Registry entry for one facility type."""

    type: str = Field(description="Facility type key")
    name: str = Field(default="", description="Display name")
    size: int = Field(ge=1, description="Footprint side length (odd)")
    cost: int = Field(ge=0, description="Construction cost")
    maintenance_cost: int = Field(default=0, ge=0, description="Monthly upkeep")
    category: Category = Field(description="Facility category")
    description: str = Field(default="")
    satisfaction: float = Field(default=0.0, description="Satisfaction contribution")

    workforce_required: Optional[WorkforceRequirement] = None
    attractiveness: Optional[float] = Field(
        default=None, description="Priority weight for workforce allocation"
    )
    effect_radius: Optional[float] = Field(
        default=None, ge=0, description="Radius of the facility's area effect"
    )
    parameter_effects: Dict[str, float] = Field(
        default_factory=dict, description="City parameter strengths stamped in effect_radius"
    )
    infrastructure_demand: Optional[InfrastructureAmount] = None
    infrastructure_supply: Optional[InfrastructureAmount] = None
    base_population: Optional[int] = Field(default=None, ge=0)
    produce_goods: Optional[int] = Field(default=None, ge=0)
    consume_goods: Optional[int] = Field(default=None, ge=0)

    unique: bool = Field(default=False, description="Only one may exist per city")
    initially_unlocked: bool = Field(default=True)
    unlock_condition: UnlockCondition = Field(default="initial")
    unlock_requirements: Optional[UnlockRequirements] = None

    @field_validator("size")
    @classmethod
    def _size_is_odd(cls, value: int) -> int:
        if value % 2 == 0:
            raise ValueError(f"size must be odd, got {value}")
        return value

    @property
    def radius(self) -> int:
        """Footprint half-extent around the center tile."""
        return self.size // 2


class TerrainInfo(_RegistryModel):
    """Registry entry for one terrain type."""

    type: str
    name: str = ""
    buildable: bool = True
    satisfaction_modifier: float = 0.0


DEFAULT_TERRAINS: List[TerrainInfo] = [
    TerrainInfo(type="grass", name="Grassland", buildable=True, satisfaction_modifier=0),
    TerrainInfo(type="water", name="Water", buildable=False, satisfaction_modifier=5),
    TerrainInfo(type="forest", name="Forest", buildable=True, satisfaction_modifier=3),
    TerrainInfo(type="desert", name="Desert", buildable=True, satisfaction_modifier=-2),
    TerrainInfo(type="mountain", name="Mountain", buildable=False, satisfaction_modifier=1),
    TerrainInfo(type="beach", name="Beach", buildable=True, satisfaction_modifier=4),
    TerrainInfo(type="swamp", name="Swamp", buildable=True, satisfaction_modifier=-3),
    TerrainInfo(type="rocky", name="Rocky ground", buildable=True, satisfaction_modifier=-1),
]


class FacilityRegistry:
    """Read-only lookup of facility and terrain metadata."""

    def __init__(
        self,
        facilities: Iterable[FacilityInfo],
        terrains: Optional[Iterable[TerrainInfo]] = None,
        backbone_type: str = BACKBONE_TYPE,
    ) -> None:
        self._facilities: Dict[str, FacilityInfo] = {}
        for info in facilities:
            # later entries replace earlier ones
            self._facilities[info.type] = info
        self._terrains: Dict[str, TerrainInfo] = {
            t.type: t for t in (terrains if terrains is not None else DEFAULT_TERRAINS)
        }
        self.backbone_type = backbone_type

    def __contains__(self, facility_type: object) -> bool:
        return facility_type in self._facilities

    def __iter__(self) -> Iterator[str]:
        return iter(self._facilities)

    def __len__(self) -> int:
        return len(self._facilities)

    @property
    def types(self) -> List[str]:
        return list(self._facilities)

    def info(self, facility_type: str) -> FacilityInfo:
        """Look up a facility type, raising if it is not registered."""
        try:
            return self._facilities[facility_type]
        except KeyError:
            raise UnknownFacilityTypeError(facility_type) from None

    def get(self, facility_type: str) -> Optional[FacilityInfo]:
        return self._facilities.get(facility_type)

    def is_backbone(self, facility_type: str) -> bool:
        return facility_type == self.backbone_type

    def of_category(self, category: str) -> List[str]:
        return [t for t, info in self._facilities.items() if info.category == category]

    # Unlocking

    def initially_unlocked(self) -> Set[str]:
        return {t for t, info in self._facilities.items() if info.initially_unlocked}

    def unlockable_by_mission(self, mission_id: str) -> List[str]:
        return [
            t
            for t, info in self._facilities.items()
            if info.unlock_condition == "mission"
            and info.unlock_requirements is not None
            and info.unlock_requirements.mission_id == mission_id
        ]

    def unlockable_by_achievement(self, achievement_id: str) -> List[str]:
        return [
            t
            for t, info in self._facilities.items()
            if info.unlock_condition == "achievement"
            and info.unlock_requirements is not None
            and info.unlock_requirements.achievement_id == achievement_id
        ]

    def validate_unlock_configuration(self) -> List[str]:
        """Return a list of inconsistencies in the unlock settings."""
        errors = []
        for t, info in self._facilities.items():
            requirements = info.unlock_requirements
            if info.unlock_condition == "mission" and not (requirements and requirements.mission_id):
                errors.append(f"{t}: mission unlock requires a mission_id")
            if info.unlock_condition == "achievement" and not (
                requirements and requirements.achievement_id
            ):
                errors.append(f"{t}: achievement unlock requires an achievement_id")
            if info.initially_unlocked and info.unlock_condition != "initial":
                errors.append(f"{t}: initially unlocked facilities must use the 'initial' condition")
        return errors

    # Terrain

    @property
    def terrain_types(self) -> List[str]:
        return list(self._terrains)

    def terrain(self, terrain_type: str) -> TerrainInfo:
        return self._terrains[terrain_type]

    def is_buildable_terrain(self, terrain_type: str) -> bool:
        info = self._terrains.get(terrain_type)
        return info.buildable if info is not None else False


def _parse_entries(items: Iterable[Any], model: type, kind: str) -> List[Any]:
    parsed = []
    for item in items:
        try:
            parsed.append(model.model_validate(item))
        except ValidationError as e:
            logger.warning(
                "Skipping invalid registry entry",
                kind=kind,
                entry=item.get("type") if isinstance(item, dict) else None,
                errors=e.error_count(),
            )
    return parsed


def load_registry(source: Union[str, Path, Dict[str, Any], None] = None) -> FacilityRegistry:
    """
    Build a registry from a JSON document.

    Args:
        source: Path to a JSON file, an already-parsed document, or None for
            the packaged default table.

    Returns:
        FacilityRegistry

    Raises:
        RegistryError: if the document has no ``facilities`` list.
    """
    if source is None:
        source = DEFAULT_REGISTRY_PATH

    if isinstance(source, dict):
        document = source
    else:
        path = Path(source)
        with path.open(encoding="utf-8") as f:
            document = json.load(f)

    if not isinstance(document, dict) or not isinstance(document.get("facilities"), list):
        raise RegistryError("Registry document must contain a 'facilities' list")

    facilities = _parse_entries(document["facilities"], FacilityInfo, "facility")

    terrains = None
    if isinstance(document.get("terrains"), list):
        terrains = _parse_entries(document["terrains"], TerrainInfo, "terrain")

    registry = FacilityRegistry(
        facilities,
        terrains=terrains,
        backbone_type=document.get("backboneType", BACKBONE_TYPE),
    )
    logger.info(
        "Registry loaded",
        facilities=len(registry),
        terrains=len(registry.terrain_types),
    )
    return registry


def default_registry() -> FacilityRegistry:
    """Load the packaged default registry."""
    return load_registry(DEFAULT_REGISTRY_PATH)
