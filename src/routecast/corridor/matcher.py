from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Awaitable, Callable, Sequence

from ..adapters.weather.base import WeatherAdapterError, WeatherProvider
from ..domain.conditions import ConditionCategory
from ..domain.models import DayForecast, ForecastEntry, WeatherSnapshot

LOGGER = logging.getLogger(__name__)

DEFAULT_CURRENT_WINDOW = timedelta(hours=1)
DEFAULT_HOURLY_HORIZON = timedelta(hours=48)
# Forecast hours count from the current hour, so one extra hour covers the horizon end.
DEFAULT_HOURLY_HOURS = 49
DEFAULT_DAILY_DAYS = 7

# Placeholder used whenever a lookup fails so one bad sample never aborts a prediction.
DEFAULT_SNAPSHOT = WeatherSnapshot(
    temperature=22.0,
    condition=ConditionCategory.PARTLY_CLOUDY,
    condition_code=2,
    condition_text="Partly cloudy",
    precipitation_chance=20,
    wind_speed=8.0,
    wind_direction=None,
    humidity=65.0,
    visibility=10.0,
    source="fallback",
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def normalize_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def find_closest_forecast(
    entries: Sequence[ForecastEntry], target_time: datetime
) -> ForecastEntry | None:
    """Entry with the smallest absolute time difference; ties keep the earliest index."""
    if not entries:
        return None

    target = normalize_datetime(target_time)
    closest = entries[0]
    smallest_gap = abs(normalize_datetime(closest.time) - target)
    for entry in entries[1:]:
        gap = abs(normalize_datetime(entry.time) - target)
        if gap < smallest_gap:
            smallest_gap = gap
            closest = entry
    return closest


def select_daily_forecast(days: Sequence[DayForecast], target_date: date) -> DayForecast | None:
    if not days:
        return None
    for day in days:
        if day.date == target_date:
            return day
    return days[-1]


class WeatherMatcher:
    """Resolve the weather expected at a place and time through a ``WeatherProvider``.

    The forecast resolution is chosen from the lead time between now and the
    target: current conditions inside ``current_window``, the hourly forecast
    up to ``hourly_horizon`` and the daily forecast beyond that. Provider
    failures and empty responses resolve to ``DEFAULT_SNAPSHOT``.
    """

    def __init__(
        self,
        provider: WeatherProvider,
        *,
        current_window: timedelta = DEFAULT_CURRENT_WINDOW,
        hourly_horizon: timedelta = DEFAULT_HOURLY_HORIZON,
        hourly_hours: int = DEFAULT_HOURLY_HOURS,
        daily_days: int = DEFAULT_DAILY_DAYS,
        timezone_value: tzinfo = timezone.utc,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        if hourly_horizon < current_window:
            raise ValueError("hourly_horizon must be >= current_window")
        if timedelta(hours=hourly_hours) <= hourly_horizon:
            raise ValueError("hourly_hours must extend past hourly_horizon")
        self._provider = provider
        self._current_window = current_window
        self._hourly_horizon = hourly_horizon
        self._hourly_hours = hourly_hours
        self._daily_days = daily_days
        self._timezone = timezone_value
        self._clock = clock

    async def current(self, lat: float, lon: float) -> WeatherSnapshot:
        return await self._guarded(self._current, lat, lon)

    async def weather_for(self, lat: float, lon: float, target_time: datetime) -> WeatherSnapshot:
        target = normalize_datetime(target_time)
        lead_time = target - normalize_datetime(self._clock())

        if lead_time <= self._current_window:
            return await self._guarded(self._current, lat, lon)
        if lead_time <= self._hourly_horizon:
            return await self._guarded(self._hourly, lat, lon, target)
        return await self._guarded(self._daily, lat, lon, target)

    async def _guarded(
        self,
        lookup: Callable[..., Awaitable[WeatherSnapshot | None]],
        lat: float,
        lon: float,
        *args,
    ) -> WeatherSnapshot:
        try:
            snapshot = await lookup(lat, lon, *args)
        except WeatherAdapterError as exc:
            LOGGER.warning("Weather lookup at %.4f,%.4f failed: %s", lat, lon, exc)
            return DEFAULT_SNAPSHOT
        except Exception:  # pragma: no cover - defensive fallback
            LOGGER.exception("Weather lookup at %.4f,%.4f failed", lat, lon)
            return DEFAULT_SNAPSHOT

        if snapshot is None:
            LOGGER.warning("Weather lookup at %.4f,%.4f returned no data", lat, lon)
            return DEFAULT_SNAPSHOT
        return snapshot

    async def _current(self, lat: float, lon: float) -> WeatherSnapshot | None:
        return await self._provider.get_current_weather(lat, lon)

    async def _hourly(self, lat: float, lon: float, target: datetime) -> WeatherSnapshot | None:
        entries = await self._provider.get_hourly_forecast(lat, lon, hours=self._hourly_hours)
        closest = find_closest_forecast(entries, target)
        if closest is None:
            return None
        return closest.weather.model_copy(update={"source": "hourly"})

    async def _daily(self, lat: float, lon: float, target: datetime) -> WeatherSnapshot | None:
        days = await self._provider.get_daily_forecast(lat, lon, days=self._daily_days)
        day = select_daily_forecast(days, target.astimezone(self._timezone).date())
        if day is None:
            return None
        return day.to_snapshot()
