"""
Runtime configuration for zipweather.

Settings come from environment variables, or from a .dev.env file in the
working directory. Validated on instantiation.

Usage:
    from zipweather.config import Settings

    settings = Settings()
    print(settings.database_url)
"""

import logging
from typing import Annotated, List

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)

# Cache durations in seconds
COORDINATES_TTL = 30 * 24 * 60 * 60  # 30 days
CURRENT_WEATHER_TTL = 5 * 60  # 5 minutes
FORECAST_TTL = 60 * 60  # 1 hour

DEFAULT_DATABASE_URL = "sqlite:///weather_cache.db"
DEFAULT_OPENWEATHER_BASE_URL = "https://api.openweathermap.org"


class Settings(BaseSettings):
    """Service settings from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".dev.env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    openweather_api_key: str = Field(default="", validation_alias="OPENWEATHER_API_KEY")
    openweather_base_url: str = Field(
        default=DEFAULT_OPENWEATHER_BASE_URL, validation_alias="OPENWEATHER_BASE_URL"
    )
    database_url: str = Field(default=DEFAULT_DATABASE_URL, validation_alias="DATABASE_URL")

    # 0 disables the sweeper
    cache_sweep_interval: int = Field(
        default=60, ge=0, validation_alias="CACHE_SWEEP_INTERVAL_SECONDS"
    )
    upstream_timeout: float = Field(default=30.0, gt=0, validation_alias="UPSTREAM_TIMEOUT_SECONDS")
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: ["*"], validation_alias="CORS_ORIGINS"
    )
    recent_locations_limit: int = Field(default=5, ge=0, validation_alias="RECENT_LOCATIONS_LIMIT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    port: int = Field(default=3000, ge=0, validation_alias="PORT")

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, v):
        """Accept a comma separated string."""
        if isinstance(v, str):
            v = [origin.strip() for origin in v.split(",")]
        origins = [origin for origin in v if origin]
        return origins or ["*"]

    @field_validator("openweather_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("database_url")
    @classmethod
    def default_database_url(cls, v: str) -> str:
        return v or DEFAULT_DATABASE_URL

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid:
            raise ValueError(f"log_level must be one of {valid}, got {v}")
        return v_upper

    @model_validator(mode="after")
    def warn_missing_api_key(self) -> "Settings":
        if not self.openweather_api_key:
            logger.warning("OPENWEATHER_API_KEY is not set; upstream requests will be rejected")
        return self
