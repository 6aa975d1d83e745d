"""Open-Meteo (open-meteo.com) forecast, archive and air-quality provider."""

from __future__ import annotations

import logging
import time
from datetime import UTC, date, datetime
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ..config import Settings
from ..exceptions import WeatherProviderError
from ..redaction import sanitize_text
from .base import WeatherProvider
from .models import AirQualityPayload, ArchiveFetchResult, ForecastFetchResult, WeatherPayload

HOURLY_FIELDS = (
    "temperature_2m",
    "relative_humidity_2m",
    "precipitation_probability",
    "weather_code",
    "cloud_cover",
    "visibility",
    "wind_speed_10m",
)
DAILY_FIELDS = (
    "weather_code",
    "temperature_2m_max",
    "temperature_2m_min",
    "sunset",
    "sunrise",
)

ModelT = TypeVar("ModelT", bound=BaseModel)


def normalize_payload(model: type[ModelT], payload: dict[str, Any], *, context: str) -> ModelT:
    """Validate a raw Open-Meteo response into ``model``, raising WeatherProviderError on drift."""
    if not isinstance(payload.get("hourly"), dict):
        raise WeatherProviderError(f"Open-Meteo {context} payload missing 'hourly' object.")
    try:
        return model.model_validate(payload)
    except ValidationError as exc:
        raise WeatherProviderError(
            f"Open-Meteo {context} payload could not be normalized: {exc}"
        ) from exc


class OpenMeteoProvider(WeatherProvider):
    """Fetches and normalizes sunset-relevant weather arrays from Open-Meteo."""

    provider_name = "open-meteo"

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        max_retries: int | None = None,
        retry_delay_seconds: float | None = None,
    ) -> None:
        self.settings = settings
        self.logger = logger
        self._max_retries = (
            max_retries if max_retries is not None else settings.weather_max_retries
        )
        self._retry_delay = (
            retry_delay_seconds
            if retry_delay_seconds is not None
            else settings.weather_retry_delay_seconds
        )
        self._client = httpx.Client(
            timeout=settings.weather_timeout_seconds,
            headers={"Accept": "application/json"},
        )

    def __enter__(self) -> OpenMeteoProvider:
        return self

    def __exit__(self, exc_type: Any, exc: Any, exc_tb: Any) -> None:
        self.close()

    def close(self) -> None:
        self._client.close()

    def fetch_forecast(self, *, lat: float, lon: float) -> ForecastFetchResult:
        """Fetch the multi-day forecast, tolerating an air-quality outage."""
        self._validate_coordinates(lat=lat, lon=lon)
        forecast_url = str(self.settings.open_meteo_forecast_url)
        params = self._base_params(lat, lon)
        params["forecast_days"] = self.settings.forecast_days

        raw_weather = self._request_json(forecast_url, params=params, context="forecast fetch")
        weather = normalize_payload(WeatherPayload, raw_weather, context="forecast")

        raw_air_quality: dict[str, Any] | None = None
        air_quality: AirQualityPayload | None = None
        try:
            raw_air_quality = self._request_json(
                str(self.settings.open_meteo_air_quality_url),
                params={
                    "latitude": lat,
                    "longitude": lon,
                    "hourly": "us_aqi",
                    "timezone": "auto",
                    "forecast_days": self.settings.forecast_days,
                    **self._key_param(),
                },
                context="air quality fetch",
            )
            air_quality = normalize_payload(
                AirQualityPayload, raw_air_quality, context="air quality"
            )
        except WeatherProviderError as exc:
            # Air quality is optional; scoring falls back to the default AQI.
            self.logger.warning("Air quality unavailable, using default AQI: %s", exc)
            raw_air_quality = None
            air_quality = None

        return ForecastFetchResult(
            retrieval_timestamp=datetime.now(UTC),
            source_url=forecast_url,
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
        """Fetch archived hourly/daily arrays for an inclusive date range."""
        self._validate_coordinates(lat=lat, lon=lon)
        if start_date > end_date:
            raise WeatherProviderError(
                f"Invalid archive range: start {start_date} is after end {end_date}."
            )
        archive_url = str(self.settings.open_meteo_archive_url)
        params = self._base_params(lat, lon)
        params["start_date"] = start_date.isoformat()
        params["end_date"] = end_date.isoformat()

        raw_weather = self._request_json(archive_url, params=params, context="archive fetch")
        weather = normalize_payload(WeatherPayload, raw_weather, context="archive")
        return ArchiveFetchResult(
            retrieval_timestamp=datetime.now(UTC),
            source_url=archive_url,
            start_date=start_date,
            end_date=end_date,
            weather=weather,
            raw_weather_payload=raw_weather,
        )

    def _base_params(self, lat: float, lon: float) -> dict[str, Any]:
        return {
            "latitude": lat,
            "longitude": lon,
            "hourly": ",".join(HOURLY_FIELDS),
            "daily": ",".join(DAILY_FIELDS),
            "timezone": "auto",
            **self._key_param(),
        }

    def _key_param(self) -> dict[str, str]:
        api_key = self.settings.open_meteo_api_key
        return {"apikey": api_key} if api_key else {}

    @staticmethod
    def _validate_coordinates(*, lat: float | None, lon: float | None) -> None:
        if lat is None or lon is None:
            raise WeatherProviderError("Missing coordinates: provide both latitude and longitude.")
        if not (-90 <= lat <= 90):
            raise WeatherProviderError(f"Invalid latitude {lat}; expected between -90 and 90.")
        if not (-180 <= lon <= 180):
            raise WeatherProviderError(f"Invalid longitude {lon}; expected between -180 and 180.")

    def _request_json(
        self,
        url: str,
        *,
        params: dict[str, Any],
        context: str,
    ) -> dict[str, Any]:
        last_error: Exception | None = None
        for attempt in range(self._max_retries + 1):
            try:
                response = self._client.get(url, params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                # Don't retry 4xx client errors except 429 rate-limit.
                if 400 <= status < 500 and status != 429:
                    raise WeatherProviderError(
                        f"Open-Meteo {context} failed with status {status} "
                        f"at {url}: {sanitize_text(exc.response.text[:300])}"
                    ) from exc
                last_error = exc
                if attempt < self._max_retries:
                    self.logger.warning(
                        "Open-Meteo %s failed (HTTP %d); retrying",
                        context, status,
                    )
                    time.sleep(self._retry_delay)
                    continue
                raise WeatherProviderError(
                    f"Open-Meteo {context} failed with status {status} "
                    f"at {url}: {sanitize_text(exc.response.text[:300])}"
                ) from exc
            except httpx.HTTPError as exc:
                last_error = exc
                if attempt < self._max_retries:
                    self.logger.warning(
                        "Open-Meteo %s request failed (%s); retrying",
                        context, type(exc).__name__,
                    )
                    time.sleep(self._retry_delay)
                    continue
                raise WeatherProviderError(
                    f"Open-Meteo {context} request failed at {url}: {sanitize_text(str(exc))}"
                ) from exc

            try:
                payload = response.json()
            except ValueError as exc:
                raise WeatherProviderError(
                    f"Open-Meteo {context} returned non-JSON response at {url}."
                ) from exc

            if not isinstance(payload, dict):
                raise WeatherProviderError(
                    f"Open-Meteo {context} returned unexpected payload type "
                    f"{type(payload).__name__} at {url}."
                )
            if payload.get("error"):
                raise WeatherProviderError(
                    f"Open-Meteo {context} returned error at {url}: "
                    f"{sanitize_text(str(payload.get('reason', 'unknown reason')))}"
                )
            return payload

        raise WeatherProviderError(
            f"Open-Meteo {context} failed after retries: {last_error}"
        )

