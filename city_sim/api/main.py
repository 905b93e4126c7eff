"""FastAPI main application."""

import logging
from typing import Any, Dict, List, Optional

import structlog
from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from .. import __version__
from ..config import Settings, settings
from ..core.city import City, build_city
from ..core.facility_store import FacilityNotFoundError
from ..core.placement import PlacementResult
from ..core.registry import FacilityRegistry, UnknownFacilityTypeError, load_registry
from ..core.save import FacilityRecord, SaveDataError, create_save_data, parse_save_data, restore_city
from ..core.scheduler import EffectsScheduler
from ..utils.random import make_rng

# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level.upper(), logging.INFO))
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        structlog.processors.JSONRenderer()
        if settings.log_format == "json"
        else structlog.dev.ConsoleRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Initialize FastAPI app
app = FastAPI(
    title="City Sim API",
    description="Tile-based city-building simulation",
    version=__version__,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class CityRuntime:
    """The city served by this process and the timers driving it."""

    def __init__(self):
        self.settings: Optional[Settings] = None
        self.registry: Optional[FacilityRegistry] = None
        self.city: Optional[City] = None
        self.scheduler: Optional[EffectsScheduler] = None

    def initialize(self, app_settings: Settings, registry: Optional[FacilityRegistry] = None) -> City:
        self.settings = app_settings
        self.registry = registry or load_registry(app_settings.registry_path)
        city = build_city(self.registry, app_settings, make_rng(app_settings.feed_seed))
        self.replace_city(city)
        return city

    def replace_city(self, city: City) -> None:
        """Swap in a new city, carrying the timers over if they were running."""
        was_running = self.scheduler is not None and self.scheduler.is_running
        self.stop()
        self.city = city
        self.scheduler = EffectsScheduler(city, self.settings)
        if was_running:
            self.scheduler.start()

    def start(self) -> None:
        if self.scheduler is not None:
            self.scheduler.start()

    def stop(self) -> None:
        if self.scheduler is not None:
            self.scheduler.stop()

    def require_city(self) -> City:
        if self.city is None:
            raise HTTPException(status_code=503, detail="City not initialized")
        return self.city


runtime = CityRuntime()


# Request/Response models
class PlacementRequest(BaseModel):
    """Request to place (or preview) a facility."""

    x: int = Field(..., description="Center tile x")
    y: int = Field(..., description="Center tile y")
    facility_type: str = Field(..., description="Registry facility type")
    variant_index: int = Field(0, ge=0, description="Rendering variant")


class PlacementResponse(BaseModel):
    accepted: bool
    reason: Optional[str] = None
    tiles: List[Dict[str, int]]
    facility: Optional[Dict[str, Any]] = None


class CityResponse(BaseModel):
    name: str
    width: int
    height: int
    money: int
    population: int
    satisfaction: float
    goods: int
    date: Dict[str, int]
    facilities: int
    unlocked_types: List[str]


def _facility_dict(facility) -> Dict[str, Any]:
    return FacilityRecord.from_facility(facility).model_dump(by_alias=True)


def _placement_response(result: PlacementResult) -> PlacementResponse:
    return PlacementResponse(
        accepted=result.accepted,
        reason=result.reason.value if result.reason is not None else None,
        tiles=[{"x": t.x, "y": t.y} for t in result.tiles],
        facility=_facility_dict(result.facility) if result.facility is not None else None,
    )


@app.on_event("startup")
async def startup_event():
    """Build the city and start its timers."""
    if runtime.city is None:
        runtime.initialize(settings)
    runtime.start()
    logger.info("City Sim API started")


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the timers."""
    runtime.stop()
    logger.info("City Sim API shutdown")


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "City Sim API",
        "version": __version__,
        "docs": "/docs",
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "city_loaded": runtime.city is not None,
        "timers_running": runtime.scheduler is not None and runtime.scheduler.is_running,
    }


@app.get("/city", response_model=CityResponse)
async def get_city():
    city = runtime.require_city()
    stats = city.stats
    return CityResponse(
        name=city.name,
        width=city.grid.width,
        height=city.grid.height,
        money=stats.money,
        population=stats.population,
        satisfaction=stats.satisfaction,
        goods=stats.goods,
        date={"year": stats.date.year, "month": stats.date.month, "week": stats.date.week},
        facilities=len(city.store),
        unlocked_types=sorted(city.unlocked),
    )


@app.get("/facilities")
async def list_facilities():
    """Placed facilities; roads also carry their sprite shape."""
    city = runtime.require_city()
    facilities = []
    for facility in city.store.facilities:
        entry = _facility_dict(facility)
        shape = city.road_shape(facility)
        if shape is not None:
            entry["roadConnection"] = shape._asdict()
        facilities.append(entry)
    return facilities


@app.post("/facilities/preview", response_model=PlacementResponse)
async def preview_facility(request: PlacementRequest):
    """Validate a placement without changing anything."""
    city = runtime.require_city()
    try:
        result = city.preview((request.x, request.y), request.facility_type)
    except UnknownFacilityTypeError:
        raise HTTPException(status_code=404, detail=f"Unknown facility type: {request.facility_type}")
    return _placement_response(result)


@app.post("/facilities", response_model=PlacementResponse, status_code=201)
async def place_facility(request: PlacementRequest):
    """Place a facility and recompute connectivity."""
    city = runtime.require_city()
    try:
        result = city.place_facility((request.x, request.y), request.facility_type, request.variant_index)
    except UnknownFacilityTypeError:
        raise HTTPException(status_code=404, detail=f"Unknown facility type: {request.facility_type}")

    if not result.accepted:
        raise HTTPException(
            status_code=409,
            detail={"reason": result.reason.value, "message": "Placement rejected"},
        )

    city.recompute()
    return _placement_response(result)


@app.delete("/facilities/{facility_id}")
async def remove_facility(facility_id: str):
    city = runtime.require_city()
    try:
        facility = city.remove_facility(facility_id)
    except FacilityNotFoundError:
        raise HTTPException(status_code=404, detail="Facility not found")
    city.recompute()
    return {"removed": facility.id, "type": facility.type}


@app.post("/city/recompute")
async def recompute_city():
    """Run a full connectivity pass."""
    city = runtime.require_city()
    summary = city.recompute()
    return {
        "total": summary.total,
        "connected": summary.connected,
        "active": summary.active,
        "population": city.stats.population,
    }


@app.post("/city/satisfaction")
async def recalculate_satisfaction():
    """Recompute satisfaction from the city parameters and coverage."""
    city = runtime.require_city()
    return {
        "satisfaction": city.recalculate_satisfaction(),
        "parameters": city.city_parameters(),
    }


@app.get("/workforce")
async def get_workforce():
    city = runtime.require_city()
    allocations = city.allocate_workforce()
    snapshot = city.snapshot()
    return {
        "pool": city.workforce_pool(),
        "required": snapshot.workforce_required,
        "assigned": snapshot.workforce_assigned,
        "allocations": [
            {
                "facility_id": a.facility.id,
                "type": a.facility.type,
                "assigned_workforce": a.assigned_workforce,
                "efficiency": a.efficiency,
            }
            for a in allocations
        ],
    }


@app.get("/coverage/{service_type}")
async def get_coverage(service_type: str, active_only: bool = False):
    """Residential facilities outside every ``service_type`` radius."""
    city = runtime.require_city()
    uncovered = city.uncovered(service_type, active_only=active_only)
    return {
        "service_type": service_type,
        "uncovered_count": len(uncovered),
        "uncovered": [f.id for f in uncovered],
    }


@app.get("/infrastructure")
async def get_infrastructure():
    city = runtime.require_city()
    status = city.infrastructure()
    return {"status": status.to_dict(), "shortage": status.shortage()}


@app.get("/feed")
async def get_feed():
    city = runtime.require_city()
    return [event.to_dict() for event in city.feed.events]


@app.get("/save")
async def save_city():
    city = runtime.require_city()
    return create_save_data(city).model_dump(by_alias=True)


@app.post("/load")
async def load_city(document: Dict[str, Any]):
    """Replace the running city with a saved one."""
    runtime.require_city()
    try:
        data = parse_save_data(document)
        city = restore_city(data, runtime.registry, runtime.settings, make_rng(runtime.settings.feed_seed))
    except SaveDataError as e:
        logger.warning("Rejected save data", error=str(e))
        raise HTTPException(status_code=422, detail=str(e))

    runtime.replace_city(city)
    return {"loaded": city.name, "facilities": len(city.store)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
