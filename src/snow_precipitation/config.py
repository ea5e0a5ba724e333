"""Typed settings loader for the snow precipitation service."""

from __future__ import annotations

import logging
from typing import Any, Literal

from pydantic import Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError

DEFAULT_USER_AGENT = "SnowPrecipitationApp/1.0 github.com/snow-precipitation-app"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: Literal["dev", "staging", "prod"] = Field(default="dev", alias="APP_ENV")

    frost_client_id: str | None = Field(default=None, alias="FROST_CLIENT_ID", repr=False)
    frost_api_url: str = Field(default="https://frost.met.no", alias="FROST_API_URL")
    locationforecast_api_url: str = Field(
        default="https://api.met.no/weatherapi/locationforecast/2.0",
        alias="LOCATIONFORECAST_API_URL",
    )
    nominatim_api_url: str = Field(
        default="https://nominatim.openstreetmap.org",
        alias="NOMINATIM_API_URL",
    )
    user_agent: str = Field(default=DEFAULT_USER_AGENT, alias="USER_AGENT")
    http_timeout_seconds: float = Field(default=15.0, alias="HTTP_TIMEOUT_SECONDS")

    forecast_cache_ttl_seconds: int = Field(default=1800, alias="FORECAST_CACHE_TTL_SECONDS")
    frost_cache_ttl_seconds: int = Field(default=3600, alias="FROST_CACHE_TTL_SECONDS")
    geocode_cache_ttl_seconds: int = Field(default=86400, alias="GEOCODE_CACHE_TTL_SECONDS")

    station_max_results: int = Field(default=10, alias="STATION_MAX_RESULTS")
    station_max_distance_m: float = Field(default=50000.0, alias="STATION_MAX_DISTANCE_M")

    snow_temperature_threshold_c: float = Field(
        default=2.0, alias="SNOW_TEMPERATURE_THRESHOLD_C"
    )
    snow_melt_rate_per_degree_hour: float = Field(
        default=0.1, alias="SNOW_MELT_RATE_PER_DEGREE_HOUR"
    )
    snow_to_liquid_ratio: float = Field(default=1.0, alias="SNOW_TO_LIQUID_RATIO")

    series_max_days: int = Field(default=31, alias="SERIES_MAX_DAYS")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    @field_validator("frost_client_id", mode="before")
    @classmethod
    def empty_string_to_none(cls, value: Any) -> Any:
        """Treat an empty env-string client id as unset."""
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @model_validator(mode="after")
    def validate_values(self) -> Settings:
        """Validate numeric bounds and endpoint strings."""
        if not self.user_agent.strip():
            raise ValueError("USER_AGENT must not be empty.")
        for name, url in (
            ("FROST_API_URL", self.frost_api_url),
            ("LOCATIONFORECAST_API_URL", self.locationforecast_api_url),
            ("NOMINATIM_API_URL", self.nominatim_api_url),
        ):
            if not url.startswith(("http://", "https://")):
                raise ValueError(f"{name} must be an http(s) URL.")
        if self.http_timeout_seconds <= 0:
            raise ValueError("HTTP_TIMEOUT_SECONDS must be > 0.")
        if self.forecast_cache_ttl_seconds <= 0:
            raise ValueError("FORECAST_CACHE_TTL_SECONDS must be > 0.")
        if self.frost_cache_ttl_seconds <= 0:
            raise ValueError("FROST_CACHE_TTL_SECONDS must be > 0.")
        if self.geocode_cache_ttl_seconds <= 0:
            raise ValueError("GEOCODE_CACHE_TTL_SECONDS must be > 0.")
        if self.station_max_results <= 0:
            raise ValueError("STATION_MAX_RESULTS must be > 0.")
        if self.station_max_distance_m <= 0:
            raise ValueError("STATION_MAX_DISTANCE_M must be > 0.")
        if self.snow_melt_rate_per_degree_hour < 0:
            raise ValueError("SNOW_MELT_RATE_PER_DEGREE_HOUR must be >= 0.")
        if self.snow_to_liquid_ratio <= 0:
            raise ValueError("SNOW_TO_LIQUID_RATIO must be > 0.")
        if self.series_max_days <= 0:
            raise ValueError("SERIES_MAX_DAYS must be > 0.")
        level = self.log_level.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"LOG_LEVEL {self.log_level!r} is not a logging level name.")
        self.log_level = level
        return self

    @property
    def frost_configured(self) -> bool:
        """Whether historical (Frost) endpoints can be called at all."""
        return bool(self.frost_client_id)

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for logging (no credentials)."""
        return {
            "app_env": self.app_env,
            "frost_configured": self.frost_configured,
            "frost_api_url": self.frost_api_url,
            "locationforecast_api_url": self.locationforecast_api_url,
            "nominatim_api_url": self.nominatim_api_url,
            "http_timeout_seconds": self.http_timeout_seconds,
            "forecast_cache_ttl_seconds": self.forecast_cache_ttl_seconds,
            "frost_cache_ttl_seconds": self.frost_cache_ttl_seconds,
            "station_max_results": self.station_max_results,
            "station_max_distance_m": self.station_max_distance_m,
            "snow_temperature_threshold_c": self.snow_temperature_threshold_c,
            "snow_melt_rate_per_degree_hour": self.snow_melt_rate_per_degree_hour,
            "snow_to_liquid_ratio": self.snow_to_liquid_ratio,
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        return Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc
