from __future__ import annotations

import logging
import math
from datetime import date, datetime, time, timezone
from typing import Any, Literal
from urllib.parse import urlencode
from zoneinfo import ZoneInfo

from ...domain.conditions import category_for_label
from ...domain.models import DayForecast, ForecastEntry, WeatherSnapshot
from .base import WeatherAdapterError
from .client import (
    JsonHttpClient,
    coerce_float,
    coerce_int,
    coerce_optional_float,
    coerce_percent,
    visibility_km,
)
from .rate_limit import SlidingWindowRateLimiter

LOGGER = logging.getLogger(__name__)

OPENWEATHERMAP_BASE_URL = "https://api.openweathermap.org/data/2.5"
DEFAULT_TIMEOUT_SECONDS = 10
FORECAST_STEP_HOURS = 3
MAX_FORECAST_ENTRIES = 40
MAX_FORECAST_DAYS = 5
METERS_PER_SECOND_TO_KMH = 3.6

# OpenWeatherMap "main" groups, expressed in the provider condition vocabulary.
CONDITION_LABELS = {
    "Clear": "sunny",
    "Clouds": "cloudy",
    "Rain": "rain",
    "Drizzle": "light_rain",
    "Thunderstorm": "thunderstorm",
    "Snow": "snow",
    "Mist": "foggy",
    "Fog": "foggy",
    "Haze": "foggy",
}
DEFAULT_CONDITION_LABEL = "partly_cloudy"


def _condition_label(entry: dict[str, Any]) -> tuple[str, str]:
    weather = entry.get("weather")
    if not isinstance(weather, list) or not weather or not isinstance(weather[0], dict):
        raise WeatherAdapterError("OpenWeatherMap entry did not include a weather condition")
    main = str(weather[0].get("main") or "")
    description = str(weather[0].get("description") or main or "Unknown")
    return CONDITION_LABELS.get(main, DEFAULT_CONDITION_LABEL), description.capitalize()


def _section(entry: dict[str, Any], name: str) -> dict[str, Any]:
    value = entry.get(name)
    return value if isinstance(value, dict) else {}


class OpenWeatherMapWeatherAdapter:
    """Current conditions and 3-hourly forecasts from OpenWeatherMap's 2.5 API.

    Daily forecasts are aggregated from the 3-hourly entries per local date,
    which limits them to five days.
    """

    def __init__(
        self,
        *,
        api_key: str,
        units: Literal["metric", "imperial"] = "metric",
        timezone_name: str = "UTC",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        base_url: str = OPENWEATHERMAP_BASE_URL,
    ) -> None:
        if not api_key.strip():
            raise ValueError("api_key must not be empty")
        self._api_key = api_key.strip()
        self._units = units
        self._zone = ZoneInfo(timezone_name)
        self._base_url = base_url.rstrip("/")
        self._client = JsonHttpClient(
            source="OpenWeatherMap",
            timeout_seconds=timeout_seconds,
            max_attempts=max_attempts,
            backoff_seconds=backoff_seconds,
            rate_limiter=rate_limiter,
        )

    async def get_current_weather(self, lat: float, lon: float) -> WeatherSnapshot:
        payload = await self._request("weather", lat, lon)
        return self._snapshot(payload, source="current")

    async def get_hourly_forecast(
        self, lat: float, lon: float, *, hours: int = 48
    ) -> list[ForecastEntry]:
        count = min(max(math.ceil(hours / FORECAST_STEP_HOURS), 1), MAX_FORECAST_ENTRIES)
        entries = await self._forecast_entries(lat, lon, count)
        return [
            ForecastEntry(time=self._entry_time(entry), weather=self._snapshot(entry, source="hourly"))
            for entry in entries
        ]

    async def get_daily_forecast(self, lat: float, lon: float, *, days: int = 7) -> list[DayForecast]:
        entries = await self._forecast_entries(lat, lon, MAX_FORECAST_ENTRIES)
        by_date: dict[date, list[dict[str, Any]]] = {}
        for entry in entries:
            local_date = self._entry_time(entry).astimezone(self._zone).date()
            by_date.setdefault(local_date, []).append(entry)

        limit = min(max(days, 1), MAX_FORECAST_DAYS)
        return [self._day(day, day_entries) for day, day_entries in sorted(by_date.items())[:limit]]

    async def _forecast_entries(self, lat: float, lon: float, count: int) -> list[dict[str, Any]]:
        payload = await self._request("forecast", lat, lon, cnt=str(count))
        entries = payload.get("list")
        if not isinstance(entries, list):
            raise WeatherAdapterError("OpenWeatherMap response did not include a forecast list")
        LOGGER.debug("OpenWeatherMap returned %d forecast entries", len(entries))
        return [entry for entry in entries if isinstance(entry, dict)]

    async def _request(self, endpoint: str, lat: float, lon: float, **extra: str) -> dict[str, Any]:
        params = {
            "lat": f"{lat:.5f}",
            "lon": f"{lon:.5f}",
            "units": self._units,
            "appid": self._api_key,
            **extra,
        }
        return await self._client.get(f"{self._base_url}/{endpoint}?{urlencode(params)}")

    @staticmethod
    def _entry_time(entry: dict[str, Any]) -> datetime:
        timestamp = coerce_int(entry.get("dt"), field_name="forecast.dt")
        return datetime.fromtimestamp(timestamp, tz=timezone.utc)

    def _wind_speed(self, value: Any) -> float | None:
        speed = coerce_optional_float(value)
        if speed is None or self._units == "imperial":
            return speed
        return round(speed * METERS_PER_SECOND_TO_KMH, 1)

    def _snapshot(self, entry: dict[str, Any], *, source: Literal["current", "hourly"]) -> WeatherSnapshot:
        label, description = _condition_label(entry)
        main = _section(entry, "main")
        wind = _section(entry, "wind")
        pop = entry.get("pop")
        pop_percent = coerce_percent(pop * 100) if isinstance(pop, (int, float)) else None
        return WeatherSnapshot(
            temperature=coerce_float(main.get("temp"), field_name="main.temp"),
            condition=category_for_label(label),
            condition_text=description,
            precipitation_chance=pop_percent or 0,
            wind_speed=self._wind_speed(wind.get("speed")),
            wind_direction=coerce_optional_float(wind.get("deg")),
            humidity=coerce_optional_float(main.get("humidity")),
            visibility=visibility_km(entry.get("visibility")),
            source=source,
        )

    def _day(self, day: date, entries: list[dict[str, Any]]) -> DayForecast:
        # The entry closest to local noon represents the day's condition.
        noon = datetime.combine(day, time(12), tzinfo=self._zone)
        representative = min(entries, key=lambda entry: abs(self._entry_time(entry) - noon))
        label, description = _condition_label(representative)

        mins = [coerce_float(_section(e, "main").get("temp_min"), field_name="main.temp_min") for e in entries]
        maxes = [coerce_float(_section(e, "main").get("temp_max"), field_name="main.temp_max") for e in entries]
        pops = [e["pop"] * 100 for e in entries if isinstance(e.get("pop"), (int, float))]
        winds = [
            speed
            for speed in (self._wind_speed(_section(e, "wind").get("speed")) for e in entries)
            if speed is not None
        ]
        return DayForecast(
            date=day,
            min_temp=min(mins),
            max_temp=max(maxes),
            condition=category_for_label(label),
            condition_text=description,
            precip_prob=coerce_percent(max(pops)) if pops else None,
            wind_speed_max=max(winds) if winds else None,
        )
