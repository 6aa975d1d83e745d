"""Suncast CLI: sunset forecasts, historical summaries, one-off scores and cache admin."""

from __future__ import annotations

import argparse
import logging
import sys
import uuid
from pathlib import Path
from typing import Any

from rich.console import Console
from rich.table import Table

from .cache import ResultCache
from .config import Settings, load_settings
from .exceptions import CacheError, ConfigError, JournalError, WeatherProviderError
from .forecast import SunsetForecastService
from .journal import JournalWriter
from .log_setup import setup_logger
from .models import ForecastDay, ForecastResult, HistoricalResult
from .scoring import (
    CloudClassifier,
    SunsetDurationEstimator,
    SunsetQualityScorer,
    WeatherObservation,
    resolve_rules,
)
from .weather.base import WeatherProvider
from .weather.file_provider import FileWeatherProvider
from .weather.open_meteo import OpenMeteoProvider


def parse_args() -> argparse.Namespace:
    """Parse suncast CLI arguments."""
    parser = argparse.ArgumentParser(
        prog="suncast",
        description="Score upcoming and past sunsets from Open-Meteo weather data.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    forecast = subparsers.add_parser("forecast", help="Score the next days' sunsets.")
    forecast.add_argument("--lat", type=float, default=None, help="Latitude.")
    forecast.add_argument("--lon", type=float, default=None, help="Longitude.")
    forecast.add_argument("--name", type=str, default=None, help="Display name for the location.")
    forecast.add_argument(
        "--input-weather-file",
        type=Path,
        default=None,
        help="Saved Open-Meteo forecast response to score instead of fetching.",
    )
    forecast.add_argument(
        "--input-air-quality-file",
        type=Path,
        default=None,
        help="Saved Open-Meteo air-quality response (used with --input-weather-file).",
    )
    forecast.add_argument("--no-cache", action="store_true", help="Bypass the result cache.")
    forecast.add_argument("--max-print", type=int, default=None, help="Days to print.")

    historical = subparsers.add_parser("historical", help="Summarize a past year's sunsets.")
    historical.add_argument("--lat", type=float, default=None, help="Latitude.")
    historical.add_argument("--lon", type=float, default=None, help="Longitude.")
    historical.add_argument("--year", type=int, default=None, help="Year (default: current).")
    historical.add_argument("--top", type=int, default=None, help="Number of best days to list.")
    historical.add_argument(
        "--input-weather-file",
        type=Path,
        default=None,
        help="Saved Open-Meteo archive response to score instead of fetching.",
    )
    historical.add_argument("--no-cache", action="store_true", help="Bypass the result cache.")

    score = subparsers.add_parser("score", help="Score a single observation.")
    score.add_argument(
        "--weather-code",
        type=int,
        default=None,
        help="WMO weather code; sets cloud type and height unless given explicitly.",
    )
    score.add_argument("--cloud-type", type=str, default=None)
    score.add_argument("--cloud-height-km", type=float, default=None)
    score.add_argument("--cloud-coverage", type=float, default=None)
    score.add_argument("--precipitation-chance", type=float, default=None)
    score.add_argument("--air-quality-index", type=float, default=None)
    score.add_argument("--humidity", type=float, default=None)
    score.add_argument("--visibility", type=float, default=None, help="Visibility in meters.")
    score.add_argument("--wind-speed", type=float, default=None)
    score.add_argument(
        "--visibility-hint",
        type=str,
        default=None,
        help="Qualitative visibility for the duration estimate (excellent, good, poor).",
    )

    cache = subparsers.add_parser("cache", help="Inspect or clear the result cache.")
    cache_commands = cache.add_subparsers(dest="cache_command", required=True)
    cache_commands.add_parser("stats", help="Show cached key counts.")
    clear = cache_commands.add_parser("clear", help="Clear all entries or one location.")
    clear.add_argument("--lat", type=float, default=None)
    clear.add_argument("--lon", type=float, default=None)

    return parser.parse_args()


def _resolve_coords(args: argparse.Namespace, settings: Settings) -> tuple[float, float]:
    lat = args.lat if args.lat is not None else settings.weather_default_lat
    lon = args.lon if args.lon is not None else settings.weather_default_lon
    if lat is None or lon is None:
        raise WeatherProviderError(
            "Missing location input: pass --lat and --lon or set WEATHER_DEFAULT_LAT/LON."
        )
    if not (-90 <= lat <= 90):
        raise WeatherProviderError(f"Invalid latitude {lat}; expected between -90 and 90.")
    if not (-180 <= lon <= 180):
        raise WeatherProviderError(f"Invalid longitude {lon}; expected between -180 and 180.")
    return lat, lon


def _score_style(score: int) -> str:
    if score >= 75:
        return "bold green"
    if score >= 50:
        return "yellow"
    if score >= 25:
        return "dark_orange"
    return "red"


def _add_day_row(table: Table, day: ForecastDay) -> None:
    table.add_row(
        day.date_label,
        day.sunset_time,
        f"[{_score_style(day.sunset_score)}]{day.sunset_score}[/]",
        f"{day.sunset_duration.duration_minutes} min",
        day.conditions,
        f"{day.cloud_coverage:g}%",
        f"{day.cloud_height_km:g} km",
        f"{day.precipitation_chance:g}%",
        str(day.air_quality_index),
        f"{day.wind_speed} km/h",
    )


def _day_table(title: str) -> Table:
    table = Table(title=title)
    table.add_column("Date")
    table.add_column("Sunset")
    table.add_column("Score", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Conditions", overflow="fold")
    table.add_column("Clouds", justify="right")
    table.add_column("Height", justify="right")
    table.add_column("Precip", justify="right")
    table.add_column("AQI", justify="right")
    table.add_column("Wind", justify="right")
    return table


def _print_forecast(console: Console, result: ForecastResult, max_print: int) -> None:
    console.print(
        f"Location={result.location} ({result.latitude:.4f}, {result.longitude:.4f}) "
        f"days={len(result.days)} rules={result.rules_version} cached={result.cached}"
    )
    if not result.days:
        console.print("No forecast days available.")
        return
    table = _day_table("Sunset Forecast")
    for day in result.days[:max_print]:
        _add_day_row(table, day)
    console.print(table)


def _print_historical(console: Console, result: HistoricalResult) -> None:
    stats = result.statistics
    console.print(
        f"Year={result.year} ({result.latitude:.4f}, {result.longitude:.4f}) "
        f"days={stats.day_count} average={stats.average_score:g} median={stats.median_score:g} "
        f"best={stats.best_score} worst={stats.worst_score} cached={result.cached}"
    )
    if not result.top:
        console.print("No archived days available for this year.")
        return
    table = _day_table(f"Best Sunsets of {result.year}")
    for day in result.top:
        _add_day_row(table, day)
    console.print(table)

    bands = Table(title="Score Distribution", min_width=30)
    bands.add_column("Band")
    bands.add_column("Days", justify="right")
    for label, count in stats.distribution.items():
        bands.add_row(label, str(count))
    console.print(bands)


def _build_provider(
    args: argparse.Namespace, settings: Settings, logger: logging.Logger
) -> WeatherProvider:
    if args.input_weather_file is not None:
        return FileWeatherProvider(
            args.input_weather_file,
            air_quality_file=getattr(args, "input_air_quality_file", None),
        )
    return OpenMeteoProvider(settings=settings, logger=logger)


def _build_cache(
    args: argparse.Namespace, settings: Settings, logger: logging.Logger
) -> ResultCache | None:
    if args.no_cache or args.input_weather_file is not None:
        return None
    return ResultCache.from_settings(settings, logger)


def _run_forecast(
    args: argparse.Namespace,
    settings: Settings,
    logger: logging.Logger,
    journal: JournalWriter,
    console: Console,
) -> None:
    if args.max_print is not None and args.max_print <= 0:
        raise WeatherProviderError("--max-print must be > 0 when provided.")
    lat, lon = _resolve_coords(args, settings)
    journal.write_event(
        "forecast_request_start",
        payload={
            "lat": lat,
            "lon": lon,
            "name": args.name,
            "offline": args.input_weather_file is not None,
        },
    )
    provider = _build_provider(args, settings, logger)
    try:
        service = SunsetForecastService(
            settings=settings,
            provider=provider,
            logger=logger,
            cache=_build_cache(args, settings, logger),
            journal=journal,
        )
        result = service.get_forecast(lat, lon, location_name=args.name)
    finally:
        provider.close()

    journal.write_model("forecast_result", result)
    _print_forecast(console, result, max_print=args.max_print or settings.max_print)


def _run_historical(
    args: argparse.Namespace,
    settings: Settings,
    logger: logging.Logger,
    journal: JournalWriter,
    console: Console,
) -> None:
    if args.top is not None and args.top <= 0:
        raise WeatherProviderError("--top must be > 0 when provided.")
    lat, lon = _resolve_coords(args, settings)
    journal.write_event(
        "historical_request_start",
        payload={"lat": lat, "lon": lon, "year": args.year, "top": args.top},
    )
    provider = _build_provider(args, settings, logger)
    try:
        service = SunsetForecastService(
            settings=settings,
            provider=provider,
            logger=logger,
            cache=_build_cache(args, settings, logger),
            journal=journal,
        )
        result = service.get_historical(lat, lon, args.year, top_n=args.top)
    finally:
        provider.close()

    journal.write_event(
        "historical_result",
        payload={
            "year": result.year,
            "cached": result.cached,
            "statistics": result.statistics.model_dump(mode="json"),
            "top": [day.model_dump(mode="json") for day in result.top],
        },
    )
    _print_historical(console, result)


def _run_score(
    args: argparse.Namespace,
    settings: Settings,
    logger: logging.Logger,
    journal: JournalWriter,
    console: Console,
) -> None:
    rules = resolve_rules(settings.scoring_rules_path)
    fields: dict[str, Any] = {
        "cloud_type": args.cloud_type,
        "cloud_height_km": args.cloud_height_km,
        "cloud_coverage": args.cloud_coverage,
        "precipitation_chance": args.precipitation_chance,
        "air_quality_index": args.air_quality_index,
        "humidity": args.humidity,
        "visibility": args.visibility,
        "wind_speed": args.wind_speed,
        "visibility_hint": args.visibility_hint,
    }
    if args.weather_code is not None:
        cloud = CloudClassifier(rules).classify(args.weather_code)
        if fields["cloud_type"] is None:
            fields["cloud_type"] = cloud.type
        if fields["cloud_height_km"] is None:
            fields["cloud_height_km"] = cloud.height_km
        fields["temperature_stable"] = args.weather_code <= 3

    observation = WeatherObservation.model_validate(fields)
    result = SunsetQualityScorer(rules, logger=logger).score(observation)
    duration = SunsetDurationEstimator(rules).estimate(observation)
    journal.write_event(
        "score_computed",
        payload={
            "observation": observation.model_dump(mode="json"),
            "score": result.model_dump(mode="json"),
            "duration": duration.model_dump(mode="json"),
        },
    )

    console.print(
        f"Score=[{_score_style(result.score)}]{result.score}[/] raw={result.raw_score} "
        f"rules={result.rules_version} duration={duration.duration_minutes}min "
        f"({duration.description})"
    )
    table = Table(title="Score Contributions")
    table.add_column("Factor")
    table.add_column("Delta", justify="right")
    for name, delta in result.contributions.items():
        table.add_row(name, f"{delta:+d}")
    console.print(table)


def _run_cache(
    args: argparse.Namespace,
    settings: Settings,
    logger: logging.Logger,
    journal: JournalWriter,
    console: Console,
) -> None:
    cache = ResultCache.from_settings(settings, logger)
    if args.cache_command == "stats":
        stats = cache.stats()
        journal.write_event("cache_stats", payload=stats.model_dump(mode="json"))
        console.print(
            f"total_keys={stats.total_keys} forecast_keys={stats.forecast_keys} "
            f"historical_keys={stats.historical_keys} used_memory={stats.used_memory or '-'}"
        )
        return

    if (args.lat is None) != (args.lon is None):
        raise CacheError("Pass both --lat and --lon to clear one location.")
    if args.lat is not None:
        removed = cache.delete_location(args.lat, args.lon)
        scope = f"({args.lat}, {args.lon})"
    else:
        removed = cache.clear_all()
        scope = "all"
    journal.write_event("cache_cleared", payload={"scope": scope, "removed": removed})
    console.print(f"Cleared {removed} cache entries (scope={scope}).")


_COMMANDS = {
    "forecast": _run_forecast,
    "historical": _run_historical,
    "score": _run_score,
    "cache": _run_cache,
}


def main() -> int:
    """Run the suncast CLI."""
    args = parse_args()
    logger = setup_logger()
    console = Console()
    session_id = uuid.uuid4().hex[:12]
    journal: JournalWriter | None = None

    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error("Configuration failure: %s", exc)
        return 2
    logger.setLevel(settings.log_level)

    try:
        journal = JournalWriter(
            journal_dir=settings.journal_dir,
            raw_payload_dir=settings.raw_payload_dir,
            session_id=session_id,
        )
        journal.write_event(
            event_type="suncast_startup",
            payload={"command": args.command, "config": settings.safe_summary()},
            metadata={"session_id": session_id},
        )
    except JournalError as exc:
        logger.error("Failed to initialize journal: %s", exc)
        return 3

    exit_code = 0
    try:
        _COMMANDS[args.command](args, settings, logger, journal, console)
    except ConfigError as exc:
        exit_code = 2
        logger.error("Scoring rules failure: %s", exc)
        _write_failure(journal, logger, "suncast_config_failure", {"error": str(exc)})
    except (WeatherProviderError, CacheError, JournalError) as exc:
        exit_code = 4
        logger.error("Suncast %s failure: %s", args.command, exc)
        _write_failure(
            journal,
            logger,
            "suncast_request_failure",
            {"command": args.command, "error": str(exc), "type": type(exc).__name__},
        )
    except Exception as exc:  # pragma: no cover - defensive catch for CLI runtime
        exit_code = 99
        logger.exception("Unexpected suncast failure: %s", exc)
        _write_failure(
            journal,
            logger,
            "suncast_request_failure_unhandled",
            {"command": args.command, "error": str(exc), "type": type(exc).__name__},
        )
    finally:
        try:
            journal.write_event(
                "suncast_shutdown",
                payload={"command": args.command, "exit_code": exit_code},
                metadata={"session_id": session_id},
            )
        except JournalError:
            logger.error("Failed to write suncast_shutdown event.")

    return exit_code


def _write_failure(
    journal: JournalWriter, logger: logging.Logger, event_type: str, payload: dict[str, Any]
) -> None:
    try:
        journal.write_event(event_type, payload=payload)
    except JournalError:
        logger.error("Failed to write %s event.", event_type)


if __name__ == "__main__":
    sys.exit(main())
