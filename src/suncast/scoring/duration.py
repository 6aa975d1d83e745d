"""Sunset duration estimator, independent of the quality score."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from .models import (
    DurationDescription,
    DurationEstimate,
    FactorEffect,
    WeatherObservation,
    value_or_default,
)
from .rules import DEFAULT_RULES, ScoringRules
from .scorer import as_observation


class SunsetDurationEstimator:
    """Estimate how many minutes of sunset color to expect."""

    def __init__(self, rules: ScoringRules | None = None) -> None:
        self.rules = rules or DEFAULT_RULES

    def estimate(self, observation: WeatherObservation | Mapping[str, Any]) -> DurationEstimate:
        obs = as_observation(observation)
        rules = self.rules.duration
        defaults = self.rules.defaults

        values = {
            "cloud_coverage": value_or_default(obs.cloud_coverage, defaults.cloud_coverage),
            "cloud_height_km": value_or_default(obs.cloud_height_km, defaults.cloud_height_km),
            "wind_speed": value_or_default(obs.wind_speed, defaults.wind_speed),
            "humidity": value_or_default(obs.humidity, defaults.humidity),
        }
        hint = (obs.visibility_hint or defaults.visibility_hint).strip().lower()

        total = rules.base_minutes
        total += rules.cloud_coverage.evaluate(values["cloud_coverage"])
        total += rules.cloud_height.evaluate(values["cloud_height_km"])
        total += rules.wind_speed.evaluate(values["wind_speed"])
        total += rules.humidity.evaluate(values["humidity"])
        total += rules.visibility_hints.get(hint, 0)

        duration = max(rules.min_minutes, min(rules.max_minutes, round(total)))

        factors: dict[str, FactorEffect] = {}
        for display in rules.factor_displays:
            value = values.get(display.attribute)
            if value is None:
                continue
            factors[display.name] = (
                display.when_true if display.matches(value) else display.when_false
            )

        return DurationEstimate(
            duration_minutes=duration,
            description=self._describe(duration),
            factors=factors,
        )

    def _describe(self, duration: int) -> DurationDescription:
        for band in self.rules.duration.descriptions:
            if duration >= band.min_minutes:
                return band.label
        return self.rules.duration.fallback_description


def estimate_duration(
    observation: WeatherObservation | Mapping[str, Any],
    rules: ScoringRules | None = None,
) -> DurationEstimate:
    """Estimate sunset duration for one observation with the given (or default) rules."""
    return SunsetDurationEstimator(rules).estimate(observation)
