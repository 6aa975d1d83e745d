"""Cloud classifier and sunset quality scorer behavior."""

from __future__ import annotations

from decimal import Decimal
from fractions import Fraction
from typing import Any

import pytest

from suncast.scoring import (
    DEFAULT_RULES,
    CloudClassification,
    SunsetQualityScorer,
    WeatherObservation,
    classify,
    estimate_duration,
    score,
)

# ---------------------------------------------------------------------------
# Cloud classifier
# ---------------------------------------------------------------------------

WMO_TABLE = {
    0: ("Clear", 0),
    1: ("Mainly Clear", 8),
    2: ("Partly Cloudy", 7),
    3: ("Overcast", 3),
    45: ("Fog", 0.5),
    48: ("Fog", 0.5),
    51: ("Drizzle", 2),
    53: ("Drizzle", 2),
    55: ("Drizzle", 2),
    61: ("Rain", 2),
    63: ("Rain", 2),
    65: ("Rain", 2),
    71: ("Snow", 3),
    73: ("Snow", 3),
    75: ("Snow", 3),
    80: ("Rain Showers", 4),
    81: ("Rain Showers", 4),
    82: ("Rain Showers", 4),
    95: ("Thunderstorm", 8),
    96: ("Thunderstorm with Hail", 10),
    99: ("Thunderstorm with Hail", 10),
}


@pytest.mark.parametrize(("code", "expected"), sorted(WMO_TABLE.items()))
def test_classify_known_codes(code: int, expected: tuple[str, float]) -> None:
    result = classify(code)
    assert result == CloudClassification(type=expected[0], height_km=expected[1])


@pytest.mark.parametrize(
    "code", [4, 44, 100, -1, 1000, 10**400, -(10**400), None, "abc", 2.5, True]
)
def test_classify_unknown_or_malformed_codes_fall_back(code: Any) -> None:
    result = classify(code)
    assert result.type == "Partly Cloudy"
    assert result.height_km == 5


def test_classify_accepts_integral_floats_and_numeric_strings() -> None:
    assert classify(95.0).type == "Thunderstorm"
    assert classify("61").type == "Rain"


def test_default_table_is_fully_covered() -> None:
    assert set(DEFAULT_RULES.weather_codes) == set(WMO_TABLE)


# ---------------------------------------------------------------------------
# Quality scorer
# ---------------------------------------------------------------------------


def test_empty_observation_uses_defaults() -> None:
    result = score({})
    # low (+5) + coverage 0 (+5) + precip 0 (+12) + AQI 50 (+7)
    # + humidity 50 (+3) + visibility 10000 (+6) + wind 10 (+7)
    assert result.score == 45
    assert result.raw_score == 45
    assert result.rules_version == DEFAULT_RULES.version
    assert result.contributions["perfect_bonus"] == 0


def test_perfect_combination_scores_full_marks() -> None:
    obs = {
        "cloud_type": "Cirrus",
        "cloud_height_km": 8,
        "cloud_coverage": 30,
        "air_quality_index": 20,
        "precipitation_chance": 2,
    }
    result = score(obs)
    assert result.contributions["cloud_height"] == 30
    assert result.contributions["cloud_coverage"] == 20
    assert result.contributions["precipitation"] == 12
    assert result.contributions["air_quality"] == 12
    assert result.contributions["perfect_bonus"] == 10
    assert result.score == 100


@pytest.mark.parametrize(
    "override",
    [
        {"precipitation_chance": 10},
        {"cloud_height_km": 5.5},
        {"cloud_coverage": 60},
        {"air_quality_index": 41},
    ],
)
def test_perfect_bonus_requires_every_condition(override: dict[str, Any]) -> None:
    obs = {
        "cloud_type": "Cirrus",
        "cloud_height_km": 8,
        "cloud_coverage": 30,
        "air_quality_index": 20,
        "precipitation_chance": 2,
        **override,
    }
    assert score(obs).contributions["perfect_bonus"] == 0


def test_removing_bonus_precipitation_drops_score() -> None:
    obs = {
        "cloud_type": "Cirrus",
        "cloud_height_km": 8,
        "cloud_coverage": 30,
        "air_quality_index": 20,
        "precipitation_chance": 10,
    }
    # precipitation 10 falls through to +4 and loses the +10 bonus
    assert score(obs).score == 82


def test_extreme_conditions_clamp_to_zero() -> None:
    obs = {
        "cloud_type": "Fog",
        "cloud_height_km": 0.5,
        "cloud_coverage": 100,
        "precipitation_chance": 100,
        "air_quality_index": 300,
        "humidity": 100,
        "visibility": 100,
        "wind_speed": 50,
    }
    result = score(obs)
    assert result.raw_score == -98
    assert result.score == 0


@pytest.mark.parametrize(
    ("height", "cloud_type", "expected"),
    [
        (7, "Cirrus", 30),
        (6, "Altostratus", 22),
        (12, "cirrostratus", 30),
        (12.5, "Cirrus", 35),
        (9, "Partly Cloudy", 18),
        (4, "Altocumulus", 18),
        (2, "Cumulus", 14),
        (3, "Overcast", 10),
        (1.9, "Cumulus", 8),
        (1, "Altostratus", -20),
        (0.5, "Fog", -20),
        (0, "Clear", 5),
    ],
)
def test_exactly_one_height_branch_fires(height: float, cloud_type: str, expected: int) -> None:
    result = score({"cloud_type": cloud_type, "cloud_height_km": height})
    assert result.contributions["cloud_height"] == expected


@pytest.mark.parametrize(
    ("coverage", "expected"),
    [(0, 5), (2, 0), (5, 8), (15, 12), (25, 20), (40, 20), (55, 16), (58, 0), (70, 3), (81, -15)],
)
def test_cloud_coverage_bands_and_gaps(coverage: float, expected: int) -> None:
    assert score({"cloud_coverage": coverage}).contributions["cloud_coverage"] == expected


def test_severe_weather_match_is_case_insensitive() -> None:
    result = score({"cloud_type": "THUNDERSTORM", "cloud_height_km": 8})
    assert result.contributions["severe_weather"] == -20
    assert result.contributions["cloud_height"] == 18


def test_severe_weather_penalties_stack() -> None:
    result = score({"cloud_type": "Heavy Rain and Mist"})
    assert result.contributions["severe_weather"] == -35


def test_zero_is_a_real_value_not_missing() -> None:
    # wind 0 is "else" (+2), the default 10 would be +7
    assert score({"wind_speed": 0}).contributions["wind_speed"] == 2


def test_unparseable_values_are_treated_as_absent() -> None:
    noisy = score({"humidity": "n/a", "visibility": float("nan"), "wind_speed": ""})
    assert noisy == score({})


def test_scoring_is_deterministic() -> None:
    obs = WeatherObservation(cloud_type="Altocumulus", cloud_height_km=4, cloud_coverage=35)
    scorer = SunsetQualityScorer()
    assert scorer.score(obs) == scorer.score(obs)


def test_custom_rules_change_score_bounds() -> None:
    rules = DEFAULT_RULES.model_copy(update={"score_max": 50, "version": "test"})
    result = score(
        {
            "cloud_type": "Cirrus",
            "cloud_height_km": 8,
            "cloud_coverage": 30,
            "air_quality_index": 20,
            "precipitation_chance": 2,
        },
        rules=rules,
    )
    assert result.score == 50
    assert result.rules_version == "test"


def test_raw_total_above_range_clamps_to_max() -> None:
    obs = {
        "cloud_type": "Cirrus",
        "cloud_height_km": 8,
        "cloud_coverage": 30,
        "precipitation_chance": 2,
        "air_quality_index": 20,
        "humidity": 20,
        "visibility": 20000,
        "wind_speed": 8,
    }
    result = score(obs)
    # 30 + 20 + 12 + 12 + 8 + 8 + 7 + bonus 10
    assert result.raw_score == 107
    assert result.score == 100


def test_out_of_range_inputs_still_score_within_bounds() -> None:
    result = score({"cloud_coverage": 1000, "precipitation_chance": -50})
    assert result.contributions["cloud_coverage"] == -15
    assert result.contributions["precipitation"] == 12
    assert result.score == 25
    assert 0 <= result.score <= 100


def test_huge_integers_are_treated_as_absent() -> None:
    assert score({"visibility": 10**400}) == score({})
    extreme = score({"cloud_coverage": 1000, "precipitation_chance": -50, "visibility": 10**400})
    assert extreme.contributions["visibility"] == 6
    assert estimate_duration({"cloud_coverage": 10**400}) == estimate_duration({})


@pytest.mark.parametrize("coverage", [Decimal("30"), Fraction(30, 1), "30", 30.0])
def test_non_builtin_numeric_types_are_read_as_numbers(coverage: Any) -> None:
    assert score({"cloud_coverage": coverage}).contributions["cloud_coverage"] == 20


def test_non_finite_decimals_are_treated_as_absent() -> None:
    assert score({"humidity": Decimal("NaN"), "wind_speed": Decimal("sNaN")}) == score({})
