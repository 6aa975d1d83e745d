"""Sunset duration estimator tests."""

from __future__ import annotations

import pytest

from suncast.scoring import DEFAULT_RULES, SunsetDurationEstimator, WeatherObservation
from suncast.scoring import estimate_duration


def _rules_with_base(base_minutes: int):
    duration = DEFAULT_RULES.duration.model_copy(update={"base_minutes": base_minutes})
    return DEFAULT_RULES.model_copy(update={"duration": duration})


def test_defaults_give_normal_sunset() -> None:
    result = estimate_duration({})
    # base 18, coverage 0 -> -2
    assert result.duration_minutes == 16
    assert result.description == "Normal sunset"
    assert result.factors == {
        "cloudCoverage": "Shortens",
        "cloudHeight": "Neutral",
        "windSpeed": "Shortens",
        "humidity": "Neutral",
    }


def test_favourable_conditions_extend_sunset() -> None:
    result = estimate_duration(
        {
            "cloud_coverage": 90,
            "cloud_height_km": 13,
            "wind_speed": 2,
            "humidity": 90,
            "visibility": "excellent",
        }
    )
    assert result.duration_minutes == 41
    assert result.description == "Extended sunset"
    assert set(result.factors.values()) == {"Extends"}


def test_unfavourable_conditions_give_quick_sunset() -> None:
    result = estimate_duration(
        {"cloud_coverage": 0, "wind_speed": 20, "humidity": 10, "visibility_hint": "poor"}
    )
    assert result.duration_minutes == 7
    assert result.description == "Quick sunset"


def test_duration_clamps_to_upper_bound() -> None:
    estimator = SunsetDurationEstimator(_rules_with_base(40))
    result = estimator.estimate({"cloud_coverage": 90, "cloud_height_km": 13, "wind_speed": 2})
    assert result.duration_minutes == 45


def test_duration_clamps_to_lower_bound() -> None:
    estimator = SunsetDurationEstimator(_rules_with_base(0))
    result = estimator.estimate({"wind_speed": 20, "visibility_hint": "poor"})
    assert result.duration_minutes == 5
    assert result.description == "Quick sunset"


@pytest.mark.parametrize(
    ("height", "expected"),
    [(13, 6), (12, 3), (2.5, 3), (2, 1), (1.5, 1), (1, 0)],
)
def test_height_adjustment_thresholds(height: float, expected: int) -> None:
    baseline = estimate_duration({"cloud_height_km": 0}).duration_minutes
    result = estimate_duration({"cloud_height_km": height})
    assert result.duration_minutes - baseline == expected


@pytest.mark.parametrize(
    ("hint", "delta"),
    [("excellent", 2), ("EXCELLENT ", 2), ("poor", -4), ("good", 0), ("hazy", 0)],
)
def test_visibility_hint_adjustment(hint: str, delta: int) -> None:
    result = estimate_duration({"visibility_hint": hint})
    assert result.duration_minutes == 16 + delta


def test_numeric_visibility_does_not_affect_duration() -> None:
    assert estimate_duration({"visibility": 100}) == estimate_duration({})


def test_string_visibility_is_routed_to_hint() -> None:
    obs = WeatherObservation.model_validate({"visibility": "poor"})
    assert obs.visibility is None
    assert obs.visibility_hint == "poor"


def test_factor_labels_are_independent_of_arithmetic() -> None:
    # coverage 55: +3 minutes but the display threshold is 50
    result = estimate_duration({"cloud_coverage": 55, "cloud_height_km": 2.5})
    assert result.factors["cloudCoverage"] == "Extends"
    # height 2.5 adds 3 minutes yet is still shown as neutral (display needs > 3)
    assert result.factors["cloudHeight"] == "Neutral"


@pytest.mark.parametrize(
    ("minutes_target", "label"),
    [(30, "Extended sunset"), (20, "Long sunset"), (15, "Normal sunset"), (10, "Brief sunset")],
)
def test_description_thresholds(minutes_target: int, label: str) -> None:
    # all-default adjustments total -2
    estimator = SunsetDurationEstimator(_rules_with_base(minutes_target + 2))
    result = estimator.estimate({})
    assert result.duration_minutes == minutes_target
    assert result.description == label
