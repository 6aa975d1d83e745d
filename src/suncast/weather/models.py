"""Typed models for Open-Meteo forecast, archive and air-quality payloads."""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator


def _none_to_empty(value: Any) -> Any:
    return [] if value is None else value


class HourlySeries(BaseModel):
    """Hourly arrays requested from the forecast and archive endpoints."""

    time: list[str] = Field(default_factory=list)
    temperature_2m: list[float | None] = Field(default_factory=list)
    relative_humidity_2m: list[float | None] = Field(default_factory=list)
    precipitation_probability: list[float | None] = Field(default_factory=list)
    weather_code: list[float | None] = Field(default_factory=list)
    cloud_cover: list[float | None] = Field(default_factory=list)
    visibility: list[float | None] = Field(default_factory=list)
    wind_speed_10m: list[float | None] = Field(default_factory=list)

    @field_validator("*", mode="before")
    @classmethod
    def missing_series_to_empty(cls, value: Any) -> Any:
        """Archive responses return null for variables a model does not provide."""
        return _none_to_empty(value)


class DailySeries(BaseModel):
    """Daily arrays requested from the forecast and archive endpoints."""

    time: list[str] = Field(default_factory=list)
    weather_code: list[float | None] = Field(default_factory=list)
    temperature_2m_max: list[float | None] = Field(default_factory=list)
    temperature_2m_min: list[float | None] = Field(default_factory=list)
    sunset: list[str | None] = Field(default_factory=list)
    sunrise: list[str | None] = Field(default_factory=list)

    @field_validator("*", mode="before")
    @classmethod
    def missing_series_to_empty(cls, value: Any) -> Any:
        return _none_to_empty(value)


class WeatherPayload(BaseModel):
    """Normalized forecast or archive response."""

    latitude: float | None = None
    longitude: float | None = None
    timezone: str | None = None
    hourly: HourlySeries
    daily: DailySeries = Field(default_factory=DailySeries)


class AirQualityHourly(BaseModel):
    time: list[str] = Field(default_factory=list)
    us_aqi: list[float | None] = Field(default_factory=list)

    @field_validator("*", mode="before")
    @classmethod
    def missing_series_to_empty(cls, value: Any) -> Any:
        return _none_to_empty(value)


class AirQualityPayload(BaseModel):
    """Normalized air-quality response (hourly US AQI)."""

    latitude: float | None = None
    longitude: float | None = None
    hourly: AirQualityHourly = Field(default_factory=AirQualityHourly)


class ForecastFetchResult(BaseModel):
    """Raw + normalized result of a forecast fetch."""

    retrieval_timestamp: datetime
    source_url: str
    weather: WeatherPayload
    air_quality: AirQualityPayload | None = None
    raw_weather_payload: dict[str, Any]
    raw_air_quality_payload: dict[str, Any] | None = None


class ArchiveFetchResult(BaseModel):
    """Raw + normalized result of a historical archive fetch."""

    retrieval_timestamp: datetime
    source_url: str
    start_date: date
    end_date: date
    weather: WeatherPayload
    raw_weather_payload: dict[str, Any]
