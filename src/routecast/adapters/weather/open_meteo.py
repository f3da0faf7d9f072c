from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Literal
from urllib.parse import urlencode
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ...domain.conditions import category_for_wmo_code, label_for_wmo_code
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

OPEN_METEO_FORECAST_URL = "https://api.open-meteo.com/v1/forecast"
DEFAULT_TIMEOUT_SECONDS = 10
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF_SECONDS = 0.5

SNAPSHOT_VARIABLES = (
    "temperature_2m,relative_humidity_2m,precipitation_probability,weather_code,"
    "wind_speed_10m,wind_direction_10m,visibility"
)
DAILY_VARIABLES = (
    "weather_code,temperature_2m_max,temperature_2m_min,"
    "precipitation_probability_max,wind_speed_10m_max"
)


def _response_zone(payload: dict[str, Any], fallback_name: str) -> tzinfo:
    """Zone in which the payload's naive local times are expressed.

    The IANA zone is preferred so each timestamp gets the offset in force at
    that moment; ``utc_offset_seconds`` only holds the offset at request time.
    """
    for name in (payload.get("timezone"), fallback_name):
        if not name:
            continue
        try:
            return ZoneInfo(str(name))
        except (ZoneInfoNotFoundError, ValueError):
            LOGGER.debug("Open-Meteo timezone %r is not a known IANA zone", name)
    offset = payload.get("utc_offset_seconds")
    if offset is None:
        return timezone.utc
    return timezone(timedelta(seconds=coerce_int(offset, field_name="utc_offset_seconds")))


def _parse_time(raw_time: Any, tz: tzinfo) -> datetime:
    try:
        parsed = datetime.fromisoformat(str(raw_time))
    except ValueError as exc:
        raise WeatherAdapterError(f"Open-Meteo returned an invalid time: {raw_time!r}") from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed.astimezone(timezone.utc)


class OpenMeteoWeatherAdapter:
    def __init__(
        self,
        *,
        units: Literal["metric", "imperial"] = "metric",
        timezone_name: str = "UTC",
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        backoff_seconds: float = DEFAULT_BACKOFF_SECONDS,
        rate_limiter: SlidingWindowRateLimiter | None = None,
        base_url: str = OPEN_METEO_FORECAST_URL,
    ) -> None:
        self._units = units
        self._timezone_name = timezone_name
        self._base_url = base_url
        self._client = JsonHttpClient(
            source="Open-Meteo",
            timeout_seconds=timeout_seconds,
            max_attempts=max_attempts,
            backoff_seconds=backoff_seconds,
            rate_limiter=rate_limiter,
        )

    async def get_current_weather(self, lat: float, lon: float) -> WeatherSnapshot:
        payload = await self._request(lat, lon, {"current": SNAPSHOT_VARIABLES})
        current = payload.get("current")
        if not isinstance(current, dict):
            raise WeatherAdapterError("Open-Meteo response did not include current conditions")
        return self._snapshot(current, field_prefix="current", source="current")

    async def get_hourly_forecast(
        self, lat: float, lon: float, *, hours: int = 48
    ) -> list[ForecastEntry]:
        forecast_hours = min(max(hours, 1), 384)
        payload = await self._request(
            lat,
            lon,
            {"hourly": SNAPSHOT_VARIABLES, "forecast_hours": str(forecast_hours)},
        )
        hourly = payload.get("hourly")
        if not isinstance(hourly, dict):
            raise WeatherAdapterError("Open-Meteo response did not include hourly forecast")
        return self._parse_hourly_forecast(hourly, _response_zone(payload, self._timezone_name))

    async def get_daily_forecast(self, lat: float, lon: float, *, days: int = 7) -> list[DayForecast]:
        forecast_days = min(max(days, 1), 16)
        payload = await self._request(
            lat,
            lon,
            {"daily": DAILY_VARIABLES, "forecast_days": str(forecast_days)},
        )
        daily = payload.get("daily")
        if not isinstance(daily, dict):
            raise WeatherAdapterError("Open-Meteo response did not include daily forecast")
        return self._parse_daily_forecast(daily)

    async def _request(self, lat: float, lon: float, extra: dict[str, str]) -> dict[str, Any]:
        params = {
            "latitude": f"{lat:.5f}",
            "longitude": f"{lon:.5f}",
            "timezone": self._timezone_name,
            **extra,
        }
        if self._units == "imperial":
            params["temperature_unit"] = "fahrenheit"
            params["wind_speed_unit"] = "mph"
        return await self._client.get(f"{self._base_url}?{urlencode(params)}")

    @staticmethod
    def _snapshot(
        values: dict[str, Any],
        *,
        field_prefix: str,
        source: Literal["current", "hourly"],
        index: int | None = None,
    ) -> WeatherSnapshot:
        def pick(name: str) -> Any:
            value = values.get(name)
            if index is None:
                return value
            if not isinstance(value, list) or index >= len(value):
                return None
            return value[index]

        weather_code = coerce_int(pick("weather_code"), field_name=f"{field_prefix}.weather_code")
        return WeatherSnapshot(
            temperature=coerce_float(pick("temperature_2m"), field_name=f"{field_prefix}.temperature_2m"),
            condition=category_for_wmo_code(weather_code),
            condition_code=weather_code,
            condition_text=label_for_wmo_code(weather_code),
            precipitation_chance=coerce_percent(pick("precipitation_probability")) or 0,
            wind_speed=coerce_optional_float(pick("wind_speed_10m")),
            wind_direction=coerce_optional_float(pick("wind_direction_10m")),
            humidity=coerce_optional_float(pick("relative_humidity_2m")),
            visibility=visibility_km(pick("visibility")),
            source=source,
        )

    def _parse_hourly_forecast(self, hourly: dict[str, Any], tz: tzinfo) -> list[ForecastEntry]:
        times = hourly.get("time")
        if not isinstance(times, list):
            raise WeatherAdapterError("Open-Meteo hourly forecast payload was incomplete")

        return [
            ForecastEntry(
                time=_parse_time(raw_time, tz),
                weather=self._snapshot(hourly, field_prefix="hourly", source="hourly", index=index),
            )
            for index, raw_time in enumerate(times)
        ]

    @staticmethod
    def _parse_daily_forecast(daily_data: dict[str, Any]) -> list[DayForecast]:
        dates = daily_data.get("time")
        min_temps = daily_data.get("temperature_2m_min")
        max_temps = daily_data.get("temperature_2m_max")
        weather_codes = daily_data.get("weather_code")
        precip_probs = daily_data.get("precipitation_probability_max")
        wind_speeds = daily_data.get("wind_speed_10m_max")

        values = (dates, min_temps, max_temps, weather_codes)
        if not all(isinstance(v, list) for v in values):
            raise WeatherAdapterError("Open-Meteo daily forecast payload was incomplete")

        precip_list = precip_probs if isinstance(precip_probs, list) else [None] * len(dates)
        wind_list = wind_speeds if isinstance(wind_speeds, list) else [None] * len(dates)
        count = min(
            len(dates), len(min_temps), len(max_temps), len(weather_codes), len(precip_list), len(wind_list)
        )

        daily_forecast: list[DayForecast] = []
        for index in range(count):
            raw_date = dates[index]
            try:
                forecast_date = date.fromisoformat(str(raw_date))
            except ValueError as exc:
                raise WeatherAdapterError("Open-Meteo daily forecast date was invalid") from exc

            weather_code = coerce_int(weather_codes[index], field_name="daily.weather_code")
            daily_forecast.append(
                DayForecast(
                    date=forecast_date,
                    min_temp=coerce_float(min_temps[index], field_name="daily.temperature_2m_min"),
                    max_temp=coerce_float(max_temps[index], field_name="daily.temperature_2m_max"),
                    condition=category_for_wmo_code(weather_code),
                    condition_code=weather_code,
                    condition_text=label_for_wmo_code(weather_code),
                    precip_prob=coerce_percent(precip_list[index]),
                    wind_speed_max=coerce_optional_float(wind_list[index]),
                )
            )
        return daily_forecast
