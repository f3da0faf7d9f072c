from __future__ import annotations

from typing import Protocol

from ...domain.models import DayForecast, ForecastEntry, WeatherSnapshot


class WeatherAdapterError(RuntimeError):
    """Raised when a weather provider request cannot be completed."""


class WeatherProviderUnavailable(WeatherAdapterError):
    """Raised for transient provider failures that are worth retrying."""


class WeatherProvider(Protocol):
    async def get_current_weather(self, lat: float, lon: float) -> WeatherSnapshot:
        """Fetch the current observation for the provided coordinates."""

    async def get_hourly_forecast(
        self, lat: float, lon: float, *, hours: int = 48
    ) -> list[ForecastEntry]:
        """Fetch hourly forecast entries ordered by time."""

    async def get_daily_forecast(self, lat: float, lon: float, *, days: int = 7) -> list[DayForecast]:
        """Fetch daily forecasts ordered by date."""
