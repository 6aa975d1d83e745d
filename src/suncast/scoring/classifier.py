"""WMO weather code to cloud type/height classification."""

from __future__ import annotations

from typing import Any

from .models import CloudClassification, parse_numeric
from .rules import DEFAULT_RULES, ScoringRules


class CloudClassifier:
    """Map WMO weather interpretation codes to a representative cloud layer.

    The lookup is total: unknown or malformed codes resolve to the rule set's
    fallback classification instead of raising.
    """

    def __init__(self, rules: ScoringRules | None = None) -> None:
        self.rules = rules or DEFAULT_RULES

    def classify(self, code: Any) -> CloudClassification:
        normalized = _as_weather_code(code)
        if normalized is None:
            return self.rules.fallback_cloud
        return self.rules.weather_codes.get(normalized, self.rules.fallback_cloud)


def _as_weather_code(value: Any) -> int | None:
    numeric = parse_numeric(value)
    if numeric is None or not numeric.is_integer():
        return None
    return int(numeric)


def classify(code: Any, rules: ScoringRules | None = None) -> CloudClassification:
    """Classify one weather code with the given (or default) rules."""
    return CloudClassifier(rules).classify(code)
