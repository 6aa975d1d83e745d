"""Day assembly and the forecast/historical service.

Open-Meteo returns flat hourly arrays. Each calendar day is represented by a
single sample at the configured sunset reference hour (local time, because
requests use ``timezone=auto``), classified, scored and given a duration
estimate.
"""

from __future__ import annotations

import datetime as dt
import logging
import math
from collections.abc import Sequence
from typing import TypeVar

from pydantic import BaseModel, ValidationError

from .cache import ResultCache, forecast_cache_key, historical_cache_key
from .config import Settings
from .exceptions import WeatherProviderError
from .historical import summarize
from .journal import JournalWriter
from .models import ForecastDay, ForecastResult, HistoricalResult
from .scoring.classifier import CloudClassifier
from .scoring.duration import SunsetDurationEstimator
from .scoring.models import WeatherObservation
from .scoring.rules import ScoringRules, resolve_rules
from .scoring.scorer import SunsetQualityScorer
from .weather.base import WeatherProvider
from .weather.models import AirQualityPayload, WeatherPayload

DEFAULT_SUNSET_TIME = "18:30"
DEFAULT_TEMPERATURE = 20.0
DEFAULT_CLOUD_COVER = 50.0
DEFAULT_AQI = 50.0
ARCHIVE_FIRST_YEAR = 1940

ModelT = TypeVar("ModelT", ForecastResult, HistoricalResult)


def round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def _at(series: Sequence[float | None], index: int) -> float | None:
    if 0 <= index < len(series):
        value = series[index]
        if value is not None and math.isfinite(value):
            return value
    return None


def _first(*values: float | None, default: float) -> float:
    for value in values:
        if value is not None:
            return value
    return default


def _sunset_time(raw: str | None) -> str:
    if not raw:
        return DEFAULT_SUNSET_TIME
    if "T" not in raw:
        return raw
    clock = raw.split("T", 1)[1]
    parts = clock.split(":")
    if len(parts) < 2 or not parts[0]:
        return DEFAULT_SUNSET_TIME
    return ":".join(parts[:2])


def _parse_day(raw: str | None) -> dt.date | None:
    if not raw:
        return None
    try:
        return dt.date.fromisoformat(raw[:10])
    except ValueError:
        return None


class DayAssembler:
    """Turns one hourly sample per day into a scored :class:`ForecastDay`."""

    def __init__(self, rules: ScoringRules, logger: logging.Logger | None = None) -> None:
        self.rules = rules
        self.classifier = CloudClassifier(rules)
        self.scorer = SunsetQualityScorer(rules, logger=logger)
        self.estimator = SunsetDurationEstimator(rules)

    def assemble(
        self,
        weather: WeatherPayload,
        *,
        day_index: int,
        hour_index: int,
        day: dt.date,
        aqi: float | None,
    ) -> ForecastDay:
        hourly = weather.hourly
        daily = weather.daily

        weather_code = int(_first(_at(hourly.weather_code, hour_index), default=0))
        cloud_cover = _first(_at(hourly.cloud_cover, hour_index), default=DEFAULT_CLOUD_COVER)
        temperature = round_half_up(
            _first(
                _at(hourly.temperature_2m, hour_index),
                _at(daily.temperature_2m_max, day_index),
                default=DEFAULT_TEMPERATURE,
            )
        )
        defaults = self.rules.defaults
        humidity = _first(_at(hourly.relative_humidity_2m, hour_index), default=defaults.humidity)
        wind_speed = round_half_up(
            _first(_at(hourly.wind_speed_10m, hour_index), default=defaults.wind_speed)
        )
        precipitation = _first(
            _at(hourly.precipitation_probability, hour_index),
            default=defaults.precipitation_chance,
        )
        visibility = _first(_at(hourly.visibility, hour_index), default=defaults.visibility)
        air_quality_index = round_half_up(_first(aqi, default=DEFAULT_AQI))
        sunset_raw = daily.sunset[day_index] if day_index < len(daily.sunset) else None

        cloud = self.classifier.classify(weather_code)
        temperature_stable = weather_code <= 3
        observation = WeatherObservation(
            cloud_type=cloud.type,
            cloud_height_km=cloud.height_km,
            cloud_coverage=cloud_cover,
            precipitation_chance=precipitation,
            air_quality_index=air_quality_index,
            humidity=humidity,
            visibility=visibility,
            wind_speed=wind_speed,
            temperature_stable=temperature_stable,
        )
        result = self.scorer.score(observation)
        duration = self.estimator.estimate(observation)

        return ForecastDay(
            date=day,
            date_label=f"{day:%a}, {day:%b} {day.day}",
            day_of_week=f"{day:%A}",
            temperature=temperature,
            cloud_coverage=cloud_cover,
            cloud_type=cloud.type,
            cloud_height_km=cloud.height_km,
            precipitation_chance=precipitation,
            humidity=humidity,
            wind_speed=wind_speed,
            visibility=visibility,
            air_quality_index=air_quality_index,
            temperature_stable=temperature_stable,
            sunset_time=_sunset_time(sunset_raw),
            conditions=cloud.type,
            weather_code=weather_code,
            sunset_score=result.score,
            sunset_duration=duration,
        )


def build_forecast_days(
    weather: WeatherPayload,
    air_quality: AirQualityPayload | None,
    *,
    rules: ScoringRules,
    reference_hour: int,
    days: int,
    today: dt.date,
    logger: logging.Logger | None = None,
) -> list[ForecastDay]:
    """Build ``days`` forecast days, clamping the sample hour to the last available one."""
    assembler = DayAssembler(rules, logger=logger)
    last_hour = len(weather.hourly.time) - 1
    aqi_series = air_quality.hourly.us_aqi if air_quality is not None else []

    result: list[ForecastDay] = []
    for day_index in range(days):
        hour_index = min(day_index * 24 + reference_hour, last_hour)
        raw_day = weather.daily.time[day_index] if day_index < len(weather.daily.time) else None
        day = _parse_day(raw_day) or today + dt.timedelta(days=day_index)
        result.append(
            assembler.assemble(
                weather,
                day_index=day_index,
                hour_index=hour_index,
                day=day,
                aqi=_at(aqi_series, hour_index),
            )
        )
    return result


def build_historical_days(
    weather: WeatherPayload,
    *,
    rules: ScoringRules,
    reference_hour: int,
    logger: logging.Logger | None = None,
) -> list[ForecastDay]:
    """Build one scored day per archived date; dates without an hourly sample are skipped."""
    assembler = DayAssembler(rules, logger=logger)
    hour_count = len(weather.hourly.time)

    result: list[ForecastDay] = []
    for day_index, raw_day in enumerate(weather.daily.time):
        day = _parse_day(raw_day)
        hour_index = day_index * 24 + reference_hour
        if day is None or hour_index >= hour_count:
            continue
        result.append(
            assembler.assemble(
                weather,
                day_index=day_index,
                hour_index=hour_index,
                day=day,
                aqi=None,
            )
        )
    return result


class SunsetForecastService:
    """Fetches weather, scores each day and caches the assembled result."""

    def __init__(
        self,
        settings: Settings,
        provider: WeatherProvider,
        logger: logging.Logger,
        cache: ResultCache | None = None,
        rules: ScoringRules | None = None,
        journal: JournalWriter | None = None,
    ) -> None:
        self.settings = settings
        self.provider = provider
        self.logger = logger
        self.cache = cache
        self.rules = rules or resolve_rules(settings.scoring_rules_path)
        self.journal = journal

    def get_forecast(
        self,
        lat: float,
        lon: float,
        *,
        location_name: str | None = None,
        today: dt.date | None = None,
    ) -> ForecastResult:
        key = forecast_cache_key(lat, lon)
        cached = self._cached(key, ForecastResult)
        if cached is not None:
            location = location_name or f"Location {lat}, {lon}"
            return cached.model_copy(update={"location": location})

        fetch = self.provider.fetch_forecast(lat=lat, lon=lon)
        if self.journal is not None and self.settings.weather_journal_raw_payloads:
            self.journal.write_raw_snapshot("open_meteo_forecast", fetch.raw_weather_payload)
            if fetch.raw_air_quality_payload is not None:
                self.journal.write_raw_snapshot(
                    "open_meteo_air_quality", fetch.raw_air_quality_payload
                )

        days = build_forecast_days(
            fetch.weather,
            fetch.air_quality,
            rules=self.rules,
            reference_hour=self.settings.sunset_reference_hour,
            days=self.settings.forecast_days,
            today=today or dt.date.today(),
            logger=self.logger,
        )
        result = ForecastResult(
            location=location_name or f"Location {lat}, {lon}",
            latitude=lat,
            longitude=lon,
            days=days,
            rules_version=self.rules.version,
            last_updated=dt.datetime.now(dt.UTC),
        )
        self._store(key, result, self.settings.cache_ttl_forecast_seconds)
        self.logger.info(
            "Forecast assembled",
            extra={"lat": lat, "lon": lon, "days": len(days), "rules_version": self.rules.version},
        )
        return result

    def get_historical(
        self,
        lat: float,
        lon: float,
        year: int | None = None,
        *,
        top_n: int | None = None,
        today: dt.date | None = None,
    ) -> HistoricalResult:
        today = today or dt.date.today()
        top_n = top_n if top_n is not None else self.settings.historical_top_n
        year = year if year is not None else today.year
        start_date, end_date = self._historical_range(year, today)

        key = historical_cache_key(lat, lon, year)
        cached = self._cached(key, HistoricalResult)
        if cached is not None:
            top, _ = summarize(cached.days, top_n=top_n)
            return cached.model_copy(update={"top": top})

        fetch = self.provider.fetch_archive(
            lat=lat, lon=lon, start_date=start_date, end_date=end_date
        )
        if self.journal is not None and self.settings.weather_journal_raw_payloads:
            self.journal.write_raw_snapshot(f"open_meteo_archive_{year}", fetch.raw_weather_payload)

        days = build_historical_days(
            fetch.weather,
            rules=self.rules,
            reference_hour=self.settings.sunset_reference_hour,
            logger=self.logger,
        )
        top, statistics = summarize(days, top_n=top_n)
        result = HistoricalResult(
            latitude=lat,
            longitude=lon,
            year=year,
            days=days,
            top=top,
            statistics=statistics,
            rules_version=self.rules.version,
            last_updated=dt.datetime.now(dt.UTC),
        )
        self._store(key, result, self.settings.cache_ttl_historical_seconds)
        self.logger.info(
            "Historical summary assembled",
            extra={"lat": lat, "lon": lon, "year": year, "days": len(days)},
        )
        return result

    @staticmethod
    def _historical_range(year: int, today: dt.date) -> tuple[dt.date, dt.date]:
        if year > today.year:
            raise WeatherProviderError(f"Historical year {year} is in the future.")
        if year < ARCHIVE_FIRST_YEAR:
            raise WeatherProviderError(
                f"Historical year {year} predates the archive (first year {ARCHIVE_FIRST_YEAR})."
            )
        start_date = dt.date(year, 1, 1)
        end_date = today if year == today.year else dt.date(year, 12, 31)
        return start_date, end_date

    def _cached(self, key: str, model: type[ModelT]) -> ModelT | None:
        if self.cache is None:
            return None
        payload = self.cache.get(key)
        if payload is None:
            return None
        try:
            entry = model.model_validate(payload)
        except ValidationError as exc:
            self.logger.warning("Discarding invalid cache entry %s: %s", key, exc)
            return None
        return entry.model_copy(update={"cached": True})

    def _store(self, key: str, result: BaseModel, ttl: int) -> None:
        if self.cache is None:
            return
        self.cache.set(key, result.model_dump(mode="json", exclude={"cached"}), ttl)
