"""Versioned, data-driven rule tables for the sunset scoring engine.

Every threshold ladder is an ordered list of bands evaluated first-match-wins.
Order matters: several ladders contain overlapping or adjacent ranges (for
example cloud coverage ``[25, 40]`` followed by ``[40, 55]``) and a few leave
gaps that intentionally contribute nothing (coverage 56-60). Tuning the engine
is a matter of editing these tables or loading a JSON file with the same
shape via :func:`load_rules`.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from ..exceptions import ConfigError
from .models import CloudClassification, DurationDescription, FactorEffect


class Bounds(BaseModel):
    """Numeric predicate; matches when every bound that is set holds."""

    model_config = ConfigDict(frozen=True)

    eq: float | None = None
    gt: float | None = None
    ge: float | None = None
    lt: float | None = None
    le: float | None = None

    def matches(self, value: float) -> bool:
        if self.eq is not None and value != self.eq:
            return False
        if self.gt is not None and not value > self.gt:
            return False
        if self.ge is not None and not value >= self.ge:
            return False
        if self.lt is not None and not value < self.lt:
            return False
        if self.le is not None and not value <= self.le:
            return False
        return True


class Band(Bounds):
    """One rung of a threshold ladder."""

    delta: int


class Ladder(BaseModel):
    """Ordered bands; the first matching band wins, otherwise ``default`` applies."""

    model_config = ConfigDict(frozen=True)

    bands: list[Band]
    default: int = 0

    def evaluate(self, value: float) -> int:
        for band in self.bands:
            if band.matches(value):
                return band.delta
        return self.default


class KeywordRule(BaseModel):
    """Delta applied when the lower-cased cloud type contains any keyword."""

    model_config = ConfigDict(frozen=True)

    keywords: list[str] = Field(min_length=1)
    delta: int

    def matches(self, cloud_type: str) -> bool:
        text = cloud_type.lower()
        return any(keyword.lower() in text for keyword in self.keywords)


class HeightBranch(Bounds):
    """Cloud-height range with cloud-type sub-rules (first match) and a fallback delta."""

    name: str
    type_rules: list[KeywordRule] = Field(default_factory=list)
    default: int = 0

    def evaluate(self, cloud_type: str) -> int:
        for rule in self.type_rules:
            if rule.matches(cloud_type):
                return rule.delta
        return self.default


class PerfectBonus(BaseModel):
    """Extra points when high clouds, moderate coverage, clean air and dry skies coincide."""

    model_config = ConfigDict(frozen=True)

    min_height_km: float = 6.0
    coverage_min: float = 25.0
    coverage_max: float = 55.0
    max_air_quality_index: float = 40.0
    precipitation_below: float = 5.0
    delta: int = 10

    def applies(
        self,
        *,
        height_km: float,
        coverage: float,
        air_quality_index: float,
        precipitation_chance: float,
    ) -> bool:
        return (
            height_km >= self.min_height_km
            and self.coverage_min <= coverage <= self.coverage_max
            and air_quality_index <= self.max_air_quality_index
            and precipitation_chance < self.precipitation_below
        )


class ObservationDefaults(BaseModel):
    """Values substituted for absent observation fields before evaluation."""

    model_config = ConfigDict(frozen=True)

    cloud_height_km: float = 0.0
    cloud_coverage: float = 0.0
    precipitation_chance: float = 0.0
    air_quality_index: float = 50.0
    humidity: float = 50.0
    visibility: float = 10000.0
    wind_speed: float = 10.0
    visibility_hint: str = "good"


class DescriptionBand(BaseModel):
    """Duration label used when the clamped duration is at least ``min_minutes``."""

    model_config = ConfigDict(frozen=True)

    min_minutes: int
    label: DurationDescription


class FactorDisplay(Bounds):
    """Cosmetic per-factor label, independent of the duration arithmetic."""

    name: str
    attribute: str
    when_true: FactorEffect
    when_false: FactorEffect


class DurationRules(BaseModel):
    """Rule set for the sunset duration estimator."""

    model_config = ConfigDict(frozen=True)

    base_minutes: int = 18
    min_minutes: int = Field(default=5, ge=0)
    max_minutes: int = 45
    cloud_coverage: Ladder
    cloud_height: Ladder
    wind_speed: Ladder
    humidity: Ladder
    visibility_hints: dict[str, int] = Field(default_factory=dict)
    descriptions: list[DescriptionBand]
    fallback_description: DurationDescription = "Quick sunset"
    factor_displays: list[FactorDisplay] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_bounds(self) -> DurationRules:
        if self.min_minutes > self.max_minutes:
            raise ValueError("duration min_minutes cannot exceed max_minutes.")
        return self


class ScoringRules(BaseModel):
    """Complete, versioned rule configuration shared by classifier, scorer and estimator."""

    model_config = ConfigDict(frozen=True)

    version: str
    weather_codes: dict[int, CloudClassification]
    fallback_cloud: CloudClassification
    cloud_height: list[HeightBranch] = Field(min_length=1)
    cloud_coverage: Ladder
    precipitation: Ladder
    air_quality: Ladder
    humidity: Ladder
    visibility: Ladder
    wind_speed: Ladder
    severe_weather: list[KeywordRule] = Field(default_factory=list)
    perfect_bonus: PerfectBonus = Field(default_factory=PerfectBonus)
    defaults: ObservationDefaults = Field(default_factory=ObservationDefaults)
    score_min: int = 0
    score_max: int = 100
    duration: DurationRules

    @model_validator(mode="after")
    def validate_score_bounds(self) -> ScoringRules:
        if not (0 <= self.score_min < self.score_max <= 100):
            raise ValueError("score bounds must satisfy 0 <= score_min < score_max <= 100.")
        return self


def _codes(
    codes: tuple[int, ...], cloud_type: str, height_km: float
) -> dict[int, CloudClassification]:
    entry = CloudClassification(type=cloud_type, height_km=height_km)
    return {code: entry for code in codes}


_HIGH_TYPES = ["cirrus", "cirrostratus"]
_ALTO_TYPES = ["altocumulus", "altostratus"]

DEFAULT_RULES = ScoringRules(
    version="1.0.0",
    weather_codes={
        **_codes((0,), "Clear", 0),
        **_codes((1,), "Mainly Clear", 8),
        **_codes((2,), "Partly Cloudy", 7),
        **_codes((3,), "Overcast", 3),
        **_codes((45, 48), "Fog", 0.5),
        **_codes((51, 53, 55), "Drizzle", 2),
        **_codes((61, 63, 65), "Rain", 2),
        **_codes((71, 73, 75), "Snow", 3),
        **_codes((80, 81, 82), "Rain Showers", 4),
        **_codes((95,), "Thunderstorm", 8),
        **_codes((96, 99), "Thunderstorm with Hail", 10),
    },
    fallback_cloud=CloudClassification(type="Partly Cloudy", height_km=5),
    # Evaluated in list order: exactly 6 km takes the "high" branch, not "mid".
    cloud_height=[
        HeightBranch(
            name="high",
            ge=6,
            le=12,
            type_rules=[
                KeywordRule(keywords=_HIGH_TYPES, delta=30),
                KeywordRule(keywords=_ALTO_TYPES, delta=22),
            ],
            default=18,
        ),
        HeightBranch(
            name="mid",
            ge=2,
            le=6,
            type_rules=[
                KeywordRule(keywords=_ALTO_TYPES, delta=18),
                KeywordRule(keywords=["cumulus"], delta=14),
            ],
            default=10,
        ),
        HeightBranch(
            name="low",
            lt=2,
            type_rules=[
                KeywordRule(keywords=["stratus", "fog"], delta=-20),
                KeywordRule(keywords=["cumulus"], delta=8),
            ],
            default=5,
        ),
        HeightBranch(name="very_high", gt=12, default=35),
    ],
    cloud_coverage=Ladder(
        bands=[
            Band(ge=25, le=40, delta=20),
            Band(ge=40, le=55, delta=16),
            Band(ge=15, le=25, delta=12),
            Band(ge=5, le=15, delta=8),
            Band(eq=0, delta=5),
            Band(gt=80, delta=-15),
            Band(gt=60, delta=3),
        ],
        default=0,
    ),
    precipitation=Ladder(
        bands=[
            Band(ge=70, delta=-25),
            Band(ge=50, delta=-15),
            Band(ge=30, delta=-8),
            Band(ge=15, delta=-3),
            Band(lt=5, delta=12),
            Band(lt=10, delta=8),
        ],
        default=4,
    ),
    air_quality=Ladder(
        bands=[
            Band(le=20, delta=12),
            Band(le=40, delta=10),
            Band(le=60, delta=7),
            Band(le=100, delta=4),
            Band(le=150, delta=1),
        ],
        default=-8,
    ),
    humidity=Ladder(
        bands=[
            Band(le=25, delta=8),
            Band(le=45, delta=6),
            Band(le=65, delta=3),
            Band(ge=85, delta=-5),
        ],
        default=1,
    ),
    visibility=Ladder(
        bands=[
            Band(ge=15000, delta=8),
            Band(ge=10000, delta=6),
            Band(ge=7000, delta=4),
            Band(ge=4000, delta=2),
        ],
        default=-5,
    ),
    wind_speed=Ladder(
        bands=[
            Band(ge=5, le=12, delta=7),
            Band(ge=3, le=5, delta=5),
            Band(ge=12, le=20, delta=3),
            Band(gt=30, delta=-5),
            Band(gt=20, delta=-2),
        ],
        default=2,
    ),
    severe_weather=[
        KeywordRule(keywords=["thunderstorm", "rain"], delta=-20),
        KeywordRule(keywords=["fog", "mist"], delta=-15),
    ],
    perfect_bonus=PerfectBonus(),
    defaults=ObservationDefaults(),
    duration=DurationRules(
        cloud_coverage=Ladder(
            bands=[
                Band(ge=80, delta=8),
                Band(ge=60, delta=5),
                Band(ge=15, delta=3),
            ],
            default=-2,
        ),
        cloud_height=Ladder(
            bands=[
                Band(gt=12, delta=6),
                Band(gt=2, delta=3),
                Band(gt=1, delta=1),
            ],
            default=0,
        ),
        wind_speed=Ladder(bands=[Band(lt=5, delta=4), Band(gt=15, delta=-3)], default=0),
        humidity=Ladder(bands=[Band(gt=80, delta=3), Band(lt=30, delta=-2)], default=0),
        visibility_hints={"excellent": 2, "poor": -4},
        descriptions=[
            DescriptionBand(min_minutes=30, label="Extended sunset"),
            DescriptionBand(min_minutes=20, label="Long sunset"),
            DescriptionBand(min_minutes=15, label="Normal sunset"),
            DescriptionBand(min_minutes=10, label="Brief sunset"),
        ],
        fallback_description="Quick sunset",
        factor_displays=[
            FactorDisplay(
                name="cloudCoverage",
                attribute="cloud_coverage",
                ge=50,
                when_true="Extends",
                when_false="Shortens",
            ),
            FactorDisplay(
                name="cloudHeight",
                attribute="cloud_height_km",
                gt=3,
                when_true="Extends",
                when_false="Neutral",
            ),
            FactorDisplay(
                name="windSpeed",
                attribute="wind_speed",
                lt=10,
                when_true="Extends",
                when_false="Shortens",
            ),
            FactorDisplay(
                name="humidity",
                attribute="humidity",
                gt=60,
                when_true="Extends",
                when_false="Neutral",
            ),
        ],
    ),
)


def load_rules(path: Path) -> ScoringRules:
    """Load a JSON rule file, raising ConfigError when it is unreadable or invalid."""
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed reading scoring rules file ({path}): {exc}") from exc
    try:
        return ScoringRules.model_validate_json(text)
    except ValidationError as exc:
        raise ConfigError(f"Invalid scoring rules in {path}: {exc}") from exc


def resolve_rules(rules_path: Path | None) -> ScoringRules:
    """Return rules from ``rules_path`` when configured, otherwise the built-in defaults."""
    if rules_path is None:
        return DEFAULT_RULES
    return load_rules(rules_path)
