"""Provider-agnostic weather interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date

from .models import ArchiveFetchResult, ForecastFetchResult


class WeatherProvider(ABC):
    """Base contract for weather providers used by the forecast service."""

    @abstractmethod
    def fetch_forecast(self, *, lat: float, lon: float) -> ForecastFetchResult:
        """Fetch hourly/daily forecast arrays plus air quality when available."""

    @abstractmethod
    def fetch_archive(
        self,
        *,
        lat: float,
        lon: float,
        start_date: date,
        end_date: date,
    ) -> ArchiveFetchResult:
        """Fetch historical hourly/daily arrays for a date range."""

    @abstractmethod
    def close(self) -> None:
        """Release provider resources."""
