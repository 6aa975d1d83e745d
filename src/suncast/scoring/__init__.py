"""Sunset quality scoring engine."""

from .classifier import CloudClassifier, classify
from .duration import SunsetDurationEstimator, estimate_duration
from .models import CloudClassification, DurationEstimate, SunsetScore, WeatherObservation
from .rules import DEFAULT_RULES, ScoringRules, load_rules, resolve_rules
from .scorer import SunsetQualityScorer, score

__all__ = [
    "DEFAULT_RULES",
    "CloudClassification",
    "CloudClassifier",
    "DurationEstimate",
    "ScoringRules",
    "SunsetDurationEstimator",
    "SunsetQualityScorer",
    "SunsetScore",
    "WeatherObservation",
    "classify",
    "estimate_duration",
    "load_rules",
    "resolve_rules",
    "score",
]
