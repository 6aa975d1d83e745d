"""Shared typed models for assembled forecast and historical results."""

from __future__ import annotations

import datetime as dt

from pydantic import BaseModel, ConfigDict, Field

from .scoring.models import DurationEstimate


class ForecastDay(BaseModel):
    """One calendar day's sunset-hour conditions, score and duration."""

    model_config = ConfigDict(frozen=True)

    date: dt.date
    date_label: str = Field(description="Short display date, e.g. 'Thu, Oct 23'")
    day_of_week: str = Field(description="Full weekday name, e.g. 'Thursday'")
    temperature: int
    cloud_coverage: float
    cloud_type: str
    cloud_height_km: float
    precipitation_chance: float
    humidity: float
    wind_speed: int
    visibility: float
    air_quality_index: int
    temperature_stable: bool
    sunset_time: str = Field(description="Local sunset time as HH:MM")
    conditions: str
    weather_code: int
    sunset_score: int = Field(ge=0, le=100)
    sunset_duration: DurationEstimate


class ForecastResult(BaseModel):
    """Multi-day sunset forecast for one location."""

    location: str
    latitude: float
    longitude: float
    days: list[ForecastDay] = Field(default_factory=list)
    rules_version: str
    last_updated: dt.datetime
    cached: bool = False


class HistoricalStatistics(BaseModel):
    """Aggregate view over a year of scored sunsets."""

    day_count: int = 0
    average_score: float = 0.0
    median_score: float = 0.0
    best_score: int = 0
    worst_score: int = 0
    best_date: dt.date | None = None
    distribution: dict[str, int] = Field(default_factory=dict)


class HistoricalResult(BaseModel):
    """Scored archive days for one location and year plus the best sunsets."""

    latitude: float
    longitude: float
    year: int
    days: list[ForecastDay] = Field(default_factory=list)
    top: list[ForecastDay] = Field(default_factory=list)
    statistics: HistoricalStatistics = Field(default_factory=HistoricalStatistics)
    rules_version: str
    last_updated: dt.datetime
    cached: bool = False
