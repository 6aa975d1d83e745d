"""Open-Meteo provider request handling and normalization."""

from __future__ import annotations

import logging
from datetime import date
from types import SimpleNamespace
from typing import Any

import httpx
import pytest

from suncast.exceptions import WeatherProviderError
from suncast.weather.models import WeatherPayload
from suncast.weather.open_meteo import OpenMeteoProvider, normalize_payload

FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
AIR_QUALITY_URL = "https://air-quality-api.open-meteo.com/v1/air-quality"
ARCHIVE_URL = "https://archive-api.open-meteo.com/v1/archive"


def _make_settings(**overrides: Any) -> Any:
    defaults = {
        "weather_timeout_seconds": 5.0,
        "weather_max_retries": 1,
        "weather_retry_delay_seconds": 0.0,
        "open_meteo_forecast_url": FORECAST_URL,
        "open_meteo_air_quality_url": AIR_QUALITY_URL,
        "open_meteo_archive_url": ARCHIVE_URL,
        "open_meteo_api_key": None,
        "forecast_days": 2,
    }
    defaults.update(overrides)
    return SimpleNamespace(**defaults)


def _make_provider(**settings_overrides: Any) -> OpenMeteoProvider:
    settings = _make_settings(**settings_overrides)
    logger = logging.getLogger("test_open_meteo_provider")
    return OpenMeteoProvider(settings=settings, logger=logger)


def _weather_payload() -> dict[str, Any]:
    return {
        "latitude": 40.71,
        "longitude": -74.01,
        "timezone": "America/New_York",
        "hourly": {
            "time": [f"2026-10-22T{hour:02d}:00" for hour in range(24)],
            "temperature_2m": [15.0] * 24,
            "relative_humidity_2m": [55] * 24,
            "precipitation_probability": [0] * 24,
            "weather_code": [2] * 24,
            "cloud_cover": [35] * 24,
            "visibility": [24000.0] * 24,
            "wind_speed_10m": [8.2] * 24,
        },
        "daily": {
            "time": ["2026-10-22"],
            "weather_code": [2],
            "temperature_2m_max": [18.1],
            "temperature_2m_min": [9.4],
            "sunset": ["2026-10-22T18:03"],
            "sunrise": ["2026-10-22T07:12"],
        },
    }


def test_fetch_forecast_normalizes_weather_and_air_quality() -> None:
    provider = _make_provider()
    calls: list[tuple[str, dict[str, Any]]] = []

    def fake_request(url: str, *, params: dict[str, Any], context: str) -> dict[str, Any]:
        calls.append((url, params))
        if url == FORECAST_URL:
            return _weather_payload()
        return {"hourly": {"time": ["2026-10-22T18:00"], "us_aqi": [21]}}

    provider._request_json = fake_request  # type: ignore[assignment]

    result = provider.fetch_forecast(lat=40.71, lon=-74.01)

    assert result.source_url == FORECAST_URL
    assert result.weather.timezone == "America/New_York"
    assert len(result.weather.hourly.time) == 24
    assert result.weather.daily.sunset == ["2026-10-22T18:03"]
    assert result.air_quality is not None
    assert result.air_quality.hourly.us_aqi == [21]
    forecast_params = calls[0][1]
    assert forecast_params["forecast_days"] == 2
    assert forecast_params["timezone"] == "auto"
    assert "cloud_cover" in forecast_params["hourly"]
    assert "apikey" not in forecast_params
    assert calls[1][1]["hourly"] == "us_aqi"


def test_air_quality_failure_is_tolerated() -> None:
    provider = _make_provider()

    def fake_request(url: str, *, params: dict[str, Any], context: str) -> dict[str, Any]:
        if url == AIR_QUALITY_URL:
            raise WeatherProviderError("Open-Meteo air quality fetch failed with status 503")
        return _weather_payload()

    provider._request_json = fake_request  # type: ignore[assignment]

    result = provider.fetch_forecast(lat=40.71, lon=-74.01)
    assert result.air_quality is None
    assert result.raw_air_quality_payload is None


def test_api_key_is_sent_when_configured() -> None:
    provider = _make_provider(open_meteo_api_key="secret-key")
    seen: list[dict[str, Any]] = []

    def fake_request(url: str, *, params: dict[str, Any], context: str) -> dict[str, Any]:
        seen.append(params)
        return _weather_payload()

    provider._request_json = fake_request  # type: ignore[assignment]
    provider.fetch_archive(
        lat=40.71, lon=-74.01, start_date=date(2025, 1, 1), end_date=date(2025, 12, 31)
    )
    assert seen[0]["apikey"] == "secret-key"
    assert seen[0]["start_date"] == "2025-01-01"
    assert seen[0]["end_date"] == "2025-12-31"


def test_null_archive_series_become_empty_lists() -> None:
    provider = _make_provider()
    payload = _weather_payload()
    payload["hourly"]["visibility"] = None
    provider._request_json = lambda url, *, params, context: payload  # type: ignore[assignment]

    result = provider.fetch_archive(
        lat=40.71, lon=-74.01, start_date=date(2025, 6, 1), end_date=date(2025, 6, 1)
    )
    assert result.weather.hourly.visibility == []


def test_missing_hourly_object_is_rejected() -> None:
    provider = _make_provider()
    provider._request_json = (  # type: ignore[assignment]
        lambda url, *, params, context: {"latitude": 1.0, "longitude": 2.0}
    )
    with pytest.raises(WeatherProviderError, match="missing 'hourly'"):
        provider.fetch_forecast(lat=1.0, lon=2.0)


def test_normalize_payload_validates_and_names_context() -> None:
    weather = normalize_payload(
        WeatherPayload, {"hourly": {"time": ["2026-10-22T18:00"], "cloud_cover": [40]}}, context="x"
    )
    assert weather.hourly.cloud_cover == [40.0]
    with pytest.raises(WeatherProviderError, match="archive file payload could not be normalized"):
        normalize_payload(
            WeatherPayload, {"hourly": {"cloud_cover": ["not-a-number"]}}, context="archive file"
        )


@pytest.mark.parametrize(("lat", "lon"), [(91.0, 0.0), (-91.0, 0.0), (0.0, 181.0), (0.0, -180.5)])
def test_invalid_coordinates_are_rejected(lat: float, lon: float) -> None:
    provider = _make_provider()
    with pytest.raises(WeatherProviderError, match="Invalid"):
        provider.fetch_forecast(lat=lat, lon=lon)


def test_archive_range_must_be_ordered() -> None:
    provider = _make_provider()
    with pytest.raises(WeatherProviderError, match="Invalid archive range"):
        provider.fetch_archive(
            lat=0.0, lon=0.0, start_date=date(2025, 2, 1), end_date=date(2025, 1, 1)
        )


def test_request_json_retries_server_errors_then_succeeds() -> None:
    provider = _make_provider()
    attempts = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        if attempts["count"] == 1:
            return httpx.Response(503, text="busy")
        return httpx.Response(200, json={"hourly": {}})

    provider._client = httpx.Client(transport=httpx.MockTransport(handler))
    payload = provider._request_json(FORECAST_URL, params={}, context="forecast fetch")
    assert payload == {"hourly": {}}
    assert attempts["count"] == 2


def test_request_json_does_not_retry_client_errors() -> None:
    provider = _make_provider()
    attempts = {"count": 0}

    def handler(request: httpx.Request) -> httpx.Response:
        attempts["count"] += 1
        return httpx.Response(400, json={"error": True, "reason": "Latitude must be in range"})

    provider._client = httpx.Client(transport=httpx.MockTransport(handler))
    with pytest.raises(WeatherProviderError, match="status 400"):
        provider._request_json(FORECAST_URL, params={"apikey": "abc"}, context="forecast fetch")
    assert attempts["count"] == 1


def test_request_json_surfaces_payload_error_reason() -> None:
    provider = _make_provider()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"error": True, "reason": "Cannot initialize WeatherVariable"})

    provider._client = httpx.Client(transport=httpx.MockTransport(handler))
    with pytest.raises(WeatherProviderError, match="Cannot initialize"):
        provider._request_json(FORECAST_URL, params={}, context="forecast fetch")
