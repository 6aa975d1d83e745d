"""Typed settings loader for the sunset forecaster."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import AnyUrl, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError


class Settings(BaseSettings):
    """Application settings loaded from environment variables and `.env`."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    app_env: Literal["dev", "staging", "prod"] = Field(default="dev", alias="APP_ENV")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )

    open_meteo_forecast_url: AnyUrl = Field(
        default=AnyUrl("https://api.open-meteo.com/v1/forecast"),
        alias="OPEN_METEO_FORECAST_URL",
    )
    open_meteo_air_quality_url: AnyUrl = Field(
        default=AnyUrl("https://air-quality-api.open-meteo.com/v1/air-quality"),
        alias="OPEN_METEO_AIR_QUALITY_URL",
    )
    open_meteo_archive_url: AnyUrl = Field(
        default=AnyUrl("https://archive-api.open-meteo.com/v1/archive"),
        alias="OPEN_METEO_ARCHIVE_URL",
    )
    open_meteo_api_key: str | None = Field(
        default=None, alias="OPEN_METEO_API_KEY", repr=False
    )
    weather_timeout_seconds: float = Field(default=15.0, alias="WEATHER_TIMEOUT_SECONDS")
    weather_max_retries: int = Field(default=1, alias="WEATHER_MAX_RETRIES")
    weather_retry_delay_seconds: float = Field(
        default=1.0, alias="WEATHER_RETRY_DELAY_SECONDS"
    )
    weather_default_lat: float | None = Field(default=None, alias="WEATHER_DEFAULT_LAT")
    weather_default_lon: float | None = Field(default=None, alias="WEATHER_DEFAULT_LON")

    forecast_days: int = Field(default=7, alias="FORECAST_DAYS")
    sunset_reference_hour: int = Field(default=18, alias="SUNSET_REFERENCE_HOUR")
    historical_top_n: int = Field(default=5, alias="HISTORICAL_TOP_N")
    scoring_rules_path: Path | None = Field(default=None, alias="SCORING_RULES_PATH")

    cache_enabled: bool = Field(default=True, alias="CACHE_ENABLED")
    redis_url: str = Field(
        default="redis://localhost:6379", alias="REDIS_URL", repr=False
    )
    cache_ttl_forecast_seconds: int = Field(
        default=2 * 60 * 60, alias="CACHE_TTL_FORECAST_SECONDS"
    )
    cache_ttl_historical_seconds: int = Field(
        default=24 * 60 * 60, alias="CACHE_TTL_HISTORICAL_SECONDS"
    )

    journal_dir: Path = Field(default=Path("./data/journal"), alias="JOURNAL_DIR")
    raw_payload_dir: Path = Field(default=Path("./data/raw"), alias="RAW_PAYLOAD_DIR")
    weather_journal_raw_payloads: bool = Field(
        default=False, alias="WEATHER_JOURNAL_RAW_PAYLOADS"
    )
    max_print: int = Field(default=10, alias="MAX_PRINT")

    @field_validator(
        "weather_default_lat",
        "weather_default_lon",
        "open_meteo_api_key",
        "scoring_rules_path",
        mode="before",
    )
    @classmethod
    def empty_string_to_none(cls, value: Any) -> Any:
        """Treat empty env-string values as unset optionals."""
        if isinstance(value, str) and value.strip() == "":
            return None
        return value

    @model_validator(mode="after")
    def validate_ranges(self) -> Settings:
        """Validate numeric ranges and paired options."""
        if self.weather_timeout_seconds <= 0:
            raise ValueError("WEATHER_TIMEOUT_SECONDS must be > 0.")
        if self.weather_max_retries < 0:
            raise ValueError("WEATHER_MAX_RETRIES must be >= 0.")
        if self.weather_retry_delay_seconds < 0:
            raise ValueError("WEATHER_RETRY_DELAY_SECONDS must be >= 0.")
        if not (1 <= self.forecast_days <= 16):
            raise ValueError("FORECAST_DAYS must be between 1 and 16.")
        if not (0 <= self.sunset_reference_hour <= 23):
            raise ValueError("SUNSET_REFERENCE_HOUR must be between 0 and 23.")
        if self.historical_top_n <= 0:
            raise ValueError("HISTORICAL_TOP_N must be > 0.")
        if self.cache_ttl_forecast_seconds <= 0:
            raise ValueError("CACHE_TTL_FORECAST_SECONDS must be > 0.")
        if self.cache_ttl_historical_seconds <= 0:
            raise ValueError("CACHE_TTL_HISTORICAL_SECONDS must be > 0.")
        if self.max_print <= 0:
            raise ValueError("MAX_PRINT must be > 0.")
        if self.scoring_rules_path is not None and not self.scoring_rules_path.exists():
            raise ValueError(f"SCORING_RULES_PATH does not exist: {self.scoring_rules_path}")

        has_default_lat = self.weather_default_lat is not None
        has_default_lon = self.weather_default_lon is not None
        if has_default_lat != has_default_lon:
            raise ValueError("WEATHER_DEFAULT_LAT and WEATHER_DEFAULT_LON must be set together.")
        if has_default_lat and not (-90 <= self.weather_default_lat <= 90):
            raise ValueError("WEATHER_DEFAULT_LAT must be between -90 and 90.")
        if has_default_lon and not (-180 <= self.weather_default_lon <= 180):
            raise ValueError("WEATHER_DEFAULT_LON must be between -180 and 180.")
        return self

    def safe_summary(self) -> dict[str, Any]:
        """Return config summary safe for journaling (no credentials)."""
        return {
            "app_env": self.app_env,
            "forecast_url": str(self.open_meteo_forecast_url),
            "air_quality_url": str(self.open_meteo_air_quality_url),
            "archive_url": str(self.open_meteo_archive_url),
            "api_key_configured": self.open_meteo_api_key is not None,
            "weather_timeout_seconds": self.weather_timeout_seconds,
            "weather_max_retries": self.weather_max_retries,
            "forecast_days": self.forecast_days,
            "sunset_reference_hour": self.sunset_reference_hour,
            "historical_top_n": self.historical_top_n,
            "scoring_rules_path": str(self.scoring_rules_path)
            if self.scoring_rules_path
            else None,
            "cache_enabled": self.cache_enabled,
            "cache_ttl_forecast_seconds": self.cache_ttl_forecast_seconds,
            "cache_ttl_historical_seconds": self.cache_ttl_historical_seconds,
            "weather_raw_journaling": self.weather_journal_raw_payloads,
        }


def load_settings() -> Settings:
    """Load and validate settings, raising ConfigError on failure."""
    try:
        settings = Settings()
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Failed reading environment/.env: {exc}") from exc

    try:
        settings.journal_dir.mkdir(parents=True, exist_ok=True)
        settings.raw_payload_dir.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise ConfigError(f"Failed creating data directories: {exc}") from exc
    return settings
