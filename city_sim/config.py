"""Configuration management."""

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CITY_SIM_",
        extra="ignore",
    )

    # Grid
    grid_width: int = Field(default=120, ge=3, description="Grid width in tiles")
    grid_height: int = Field(default=120, ge=3, description="Grid height in tiles")
    height_terrain_enabled: bool = Field(
        default=False, description="Treat slope tiles as unbuildable"
    )
    terrain_seed: Optional[int] = Field(
        default=None, description="Seed for procedural terrain (None = all grass)"
    )

    # Registry
    registry_path: Optional[str] = Field(
        default=None, description="Facility registry JSON (None = packaged default)"
    )

    # Starting state
    initial_money: int = Field(default=10000, description="Funds at session start")
    initial_satisfaction: int = Field(
        default=50, description="Satisfaction at session start (0-100)"
    )
    workforce_ratio: float = Field(
        default=0.6, description="Share of the population available as workforce"
    )
    revenue_per_good: int = Field(default=50, description="Tax revenue per good sold")

    # Periodic effects
    feed_interval_seconds: float = Field(
        default=10.0, gt=0, description="Real-time interval of the feed scan"
    )
    week_seconds: float = Field(
        default=5.0, gt=0, description="Real-time length of one simulated week"
    )
    feed_max_entries: int = Field(default=10, ge=1, description="Feed events retained")
    goods_shortage_threshold: int = Field(
        default=5, description="Goods at or below this count as a shortage"
    )
    workforce_slack: int = Field(
        default=10, description="Tolerated workforce shortfall before complaining"
    )
    satisfaction_low: int = Field(default=30, description="Unhappy below this value")
    satisfaction_high: int = Field(default=80, description="Happy above this value")
    uncovered_penalty: int = Field(
        default=2, description="Monthly satisfaction penalty per uncovered residential"
    )
    coverage_service_type: str = Field(
        default="park", description="Service facility type residentials need nearby"
    )
    feed_seed: Optional[int] = Field(
        default=None, description="Seed for feed message selection"
    )

    # API
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=8000, description="API port")

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="Logging format (plain, json)")


settings = Settings()
