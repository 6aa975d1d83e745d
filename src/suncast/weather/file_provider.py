"""Offline provider that replays saved Open-Meteo JSON responses from disk."""

from __future__ import annotations

import json
from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any

from ..exceptions import WeatherProviderError
from .base import WeatherProvider
from .models import AirQualityPayload, ArchiveFetchResult, ForecastFetchResult, WeatherPayload
from .open_meteo import normalize_payload


def _load_json_file(path: Path) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise WeatherProviderError(f"Failed reading weather input file ({path}): {exc}") from exc
    except json.JSONDecodeError as exc:
        raise WeatherProviderError(f"Weather input file is not valid JSON ({path}): {exc}") from exc
    if not isinstance(payload, dict):
        raise WeatherProviderError(f"Weather input file must contain a JSON object ({path}).")
    return payload


class FileWeatherProvider(WeatherProvider):
    """Serves a saved forecast or archive response regardless of the requested location."""

    provider_name = "file"

    def __init__(self, weather_file: Path, air_quality_file: Path | None = None) -> None:
        self.weather_file = weather_file
        self.air_quality_file = air_quality_file

    def fetch_forecast(self, *, lat: float, lon: float) -> ForecastFetchResult:
        raw_weather = _load_json_file(self.weather_file)
        weather = normalize_payload(WeatherPayload, raw_weather, context="forecast file")
        raw_air_quality: dict[str, Any] | None = None
        air_quality: AirQualityPayload | None = None
        if self.air_quality_file is not None:
            raw_air_quality = _load_json_file(self.air_quality_file)
            air_quality = normalize_payload(
                AirQualityPayload, raw_air_quality, context="air quality file"
            )
        return ForecastFetchResult(
            retrieval_timestamp=datetime.now(UTC),
            source_url=self.weather_file.resolve().as_uri(),
            weather=weather,
            air_quality=air_quality,
            raw_weather_payload=raw_weather,
            raw_air_quality_payload=raw_air_quality,
        )

    def fetch_archive(
        self,
        *,
        lat: float,
        lon: float,
        start_date: date,
        end_date: date,
    ) -> ArchiveFetchResult:
        raw_weather = _load_json_file(self.weather_file)
        weather = normalize_payload(WeatherPayload, raw_weather, context="archive file")
        return ArchiveFetchResult(
            retrieval_timestamp=datetime.now(UTC),
            source_url=self.weather_file.resolve().as_uri(),
            start_date=start_date,
            end_date=end_date,
            weather=weather,
            raw_weather_payload=raw_weather,
        )

    def close(self) -> None:
        return None
