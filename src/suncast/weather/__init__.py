"""Weather provider integrations."""

from .base import WeatherProvider
from .file_provider import FileWeatherProvider
from .models import (
    AirQualityPayload,
    ArchiveFetchResult,
    DailySeries,
    ForecastFetchResult,
    HourlySeries,
    WeatherPayload,
)
from .open_meteo import OpenMeteoProvider

__all__ = [
    "AirQualityPayload",
    "ArchiveFetchResult",
    "DailySeries",
    "FileWeatherProvider",
    "ForecastFetchResult",
    "HourlySeries",
    "OpenMeteoProvider",
    "WeatherPayload",
    "WeatherProvider",
]
