"""Sunset quality scorer: weather observation to a bounded 0-100 score."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from .models import SunsetScore, WeatherObservation, value_or_default
from .rules import DEFAULT_RULES, ObservationDefaults, ScoringRules


def as_observation(observation: WeatherObservation | Mapping[str, Any]) -> WeatherObservation:
    """Accept a model or a plain field mapping and return a WeatherObservation."""
    if isinstance(observation, WeatherObservation):
        return observation
    return WeatherObservation.model_validate(dict(observation))


class SunsetQualityScorer:
    """Score sunset quality from cloud, precipitation, air and wind conditions.

    Rule groups are evaluated in a fixed order and summed:

    1. cloud height and type (exactly one height branch fires)
    2. cloud coverage
    3. precipitation chance
    4. air quality index
    5. humidity
    6. visibility
    7. wind speed
    8. severe weather penalties (each keyword rule independently)
    9. perfect-combination bonus

    The total is rounded and clamped to the rule set's score bounds.
    """

    def __init__(
        self,
        rules: ScoringRules | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.rules = rules or DEFAULT_RULES
        self.logger = logger or logging.getLogger("suncast.scoring.scorer")

    def score(self, observation: WeatherObservation | Mapping[str, Any]) -> SunsetScore:
        obs = as_observation(observation)
        rules = self.rules
        defaults: ObservationDefaults = rules.defaults

        cloud_type = obs.cloud_type.lower()
        height = value_or_default(obs.cloud_height_km, defaults.cloud_height_km)
        coverage = value_or_default(obs.cloud_coverage, defaults.cloud_coverage)
        precipitation = value_or_default(obs.precipitation_chance, defaults.precipitation_chance)
        aqi = value_or_default(obs.air_quality_index, defaults.air_quality_index)
        humidity = value_or_default(obs.humidity, defaults.humidity)
        visibility = value_or_default(obs.visibility, defaults.visibility)
        wind_speed = value_or_default(obs.wind_speed, defaults.wind_speed)

        contributions: dict[str, int] = {
            "cloud_height": self._cloud_height_delta(height, cloud_type),
            "cloud_coverage": rules.cloud_coverage.evaluate(coverage),
            "precipitation": rules.precipitation.evaluate(precipitation),
            "air_quality": rules.air_quality.evaluate(aqi),
            "humidity": rules.humidity.evaluate(humidity),
            "visibility": rules.visibility.evaluate(visibility),
            "wind_speed": rules.wind_speed.evaluate(wind_speed),
            "severe_weather": sum(
                rule.delta for rule in rules.severe_weather if rule.matches(cloud_type)
            ),
            "perfect_bonus": rules.perfect_bonus.delta
            if rules.perfect_bonus.applies(
                height_km=height,
                coverage=coverage,
                air_quality_index=aqi,
                precipitation_chance=precipitation,
            )
            else 0,
        }

        raw_score = round(sum(contributions.values()))
        final_score = max(rules.score_min, min(rules.score_max, raw_score))
        self.logger.debug(
            "Scored observation raw=%d final=%d contributions=%s",
            raw_score, final_score, contributions,
        )
        return SunsetScore(
            score=final_score,
            raw_score=raw_score,
            contributions=contributions,
            rules_version=rules.version,
        )

    def _cloud_height_delta(self, height: float, cloud_type: str) -> int:
        for branch in self.rules.cloud_height:
            if branch.matches(height):
                return branch.evaluate(cloud_type)
        return 0


def score(
    observation: WeatherObservation | Mapping[str, Any],
    rules: ScoringRules | None = None,
) -> SunsetScore:
    """Score one observation with the given (or default) rules."""
    return SunsetQualityScorer(rules).score(observation)
