"""Typed models for the sunset scoring engine."""

from __future__ import annotations

import math
import numbers
from decimal import Decimal
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

DurationDescription = Literal[
    "Quick sunset",
    "Brief sunset",
    "Normal sunset",
    "Long sunset",
    "Extended sunset",
]
FactorEffect = Literal["Extends", "Shortens", "Neutral"]

_NUMERIC_FIELDS = (
    "cloud_height_km",
    "cloud_coverage",
    "precipitation_chance",
    "air_quality_index",
    "humidity",
    "visibility",
    "wind_speed",
)


def parse_numeric(value: Any) -> float | None:
    """Parse a loosely typed numeric value, returning None when it is not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    elif not isinstance(value, (numbers.Real, Decimal)):
        return None
    try:
        numeric = float(value)
    except (OverflowError, ValueError):
        return None
    if not math.isfinite(numeric):
        return None
    return numeric


class CloudClassification(BaseModel):
    """Qualitative cloud type and representative altitude for a weather code."""

    model_config = ConfigDict(frozen=True)

    type: str
    height_km: float = Field(ge=0.0)


class WeatherObservation(BaseModel):
    """One sunset-hour weather sample as consumed by the scorer and duration estimator.

    Every field is optional. Missing values are replaced by the defaults of the
    active rule set at evaluation time, never here, so the same observation can
    be scored under different rule versions.

    ``visibility`` is numeric meters (scorer). ``visibility_hint`` is a
    qualitative label such as ``"excellent"`` or ``"poor"`` used only by the
    duration estimator. A string passed as ``visibility`` is treated as the hint.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    cloud_type: str = ""
    cloud_height_km: float | None = None
    cloud_coverage: float | None = None
    precipitation_chance: float | None = None
    air_quality_index: float | None = None
    humidity: float | None = None
    visibility: float | None = None
    wind_speed: float | None = None
    temperature_stable: bool | None = None
    visibility_hint: str | None = None

    @model_validator(mode="before")
    @classmethod
    def route_qualitative_visibility(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        visibility = data.get("visibility")
        if isinstance(visibility, str) and parse_numeric(visibility) is None:
            data = dict(data)
            data["visibility"] = None
            if visibility.strip() and data.get("visibility_hint") is None:
                data["visibility_hint"] = visibility
        return data

    @field_validator("cloud_type", mode="before")
    @classmethod
    def coerce_cloud_type(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)

    @field_validator(*_NUMERIC_FIELDS, mode="before")
    @classmethod
    def coerce_numeric(cls, value: Any) -> float | None:
        return parse_numeric(value)

    @field_validator("temperature_stable", mode="before")
    @classmethod
    def coerce_flag(cls, value: Any) -> bool | None:
        if value is None or isinstance(value, bool):
            return value
        if isinstance(value, (numbers.Real, Decimal)):
            return bool(value)
        return None

    @field_validator("visibility_hint", mode="before")
    @classmethod
    def coerce_hint(cls, value: Any) -> str | None:
        if value is None:
            return None
        return str(value)


class SunsetScore(BaseModel):
    """Bounded sunset quality score with the per-factor contributions that produced it."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    raw_score: int
    contributions: dict[str, int] = Field(default_factory=dict)
    rules_version: str


class DurationEstimate(BaseModel):
    """Estimated length of visible sunset color in minutes."""

    model_config = ConfigDict(frozen=True)

    duration_minutes: int = Field(ge=0)
    description: DurationDescription
    factors: dict[str, FactorEffect] = Field(default_factory=dict)


def value_or_default(observed: float | None, default: float) -> float:
    """Return ``observed`` unless it is absent."""
    return default if observed is None else observed
