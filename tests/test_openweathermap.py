from __future__ import annotations

from datetime import date, datetime, timezone
from urllib.parse import parse_qs, urlparse

import pytest

from routecast.adapters.weather import OpenWeatherMapWeatherAdapter, WeatherAdapterError
from routecast.adapters.weather import client
from routecast.domain.conditions import ConditionCategory


def _dt(*args: int) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp())


def _entry(dt: int, main: str, *, temp=10.0, temp_min=None, temp_max=None, pop=None, wind=3.0):
    entry = {
        "dt": dt,
        "main": {
            "temp": temp,
            "temp_min": temp if temp_min is None else temp_min,
            "temp_max": temp if temp_max is None else temp_max,
            "humidity": 70,
        },
        "weather": [{"main": main, "description": main.lower()}],
        "wind": {"speed": wind, "deg": 180},
        "visibility": 10000,
    }
    if pop is not None:
        entry["pop"] = pop
    return entry


CURRENT_PAYLOAD = {
    "dt": _dt(2026, 10, 19, 8, 0),
    "main": {"temp": 7.3, "humidity": 88},
    "weather": [{"main": "Drizzle", "description": "light intensity drizzle"}],
    "wind": {"speed": 4.1, "deg": 250},
    "visibility": 8000,
}


def _install_fetch(monkeypatch, *responses):
    calls: list[str] = []
    queue = list(responses)

    def fake_fetch(url: str, timeout_seconds: float, *, source: str):
        calls.append(url)
        return queue.pop(0)

    monkeypatch.setattr(client, "fetch_json", fake_fetch)
    return calls


@pytest.mark.asyncio
async def test_current_weather_is_normalized(monkeypatch):
    calls = _install_fetch(monkeypatch, CURRENT_PAYLOAD)
    adapter = OpenWeatherMapWeatherAdapter(api_key="secret")

    snapshot = await adapter.get_current_weather(48.1, 8.2)

    assert snapshot.temperature == 7.3
    assert snapshot.condition is ConditionCategory.RAIN
    assert snapshot.condition_text == "Light intensity drizzle"
    assert snapshot.precipitation_chance == 0
    assert snapshot.wind_speed == pytest.approx(14.8)
    assert snapshot.visibility == pytest.approx(8.0)
    assert snapshot.source == "current"
    url = urlparse(calls[0])
    query = parse_qs(url.query)
    assert url.path.endswith("/weather")
    assert query["lat"] == ["48.10000"]
    assert query["units"] == ["metric"]
    assert query["appid"] == ["secret"]


@pytest.mark.asyncio
async def test_hourly_forecast_uses_three_hour_steps(monkeypatch):
    payload = {
        "list": [
            _entry(_dt(2026, 10, 19, 9, 0), "Clouds", pop=0.1),
            _entry(_dt(2026, 10, 19, 12, 0), "Thunderstorm", pop=0.42, wind=5.0),
        ]
    }
    calls = _install_fetch(monkeypatch, payload)
    adapter = OpenWeatherMapWeatherAdapter(api_key="secret")

    entries = await adapter.get_hourly_forecast(48.1, 8.2, hours=49)

    assert parse_qs(urlparse(calls[0]).query)["cnt"] == ["17"]
    assert [entry.time for entry in entries] == [
        datetime(2026, 10, 19, 9, 0, tzinfo=timezone.utc),
        datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc),
    ]
    assert entries[0].weather.condition is ConditionCategory.CLOUDY
    assert entries[1].weather.condition is ConditionCategory.THUNDERSTORM
    assert entries[1].weather.precipitation_chance == 42
    assert entries[1].weather.wind_speed == pytest.approx(18.0)
    assert entries[1].weather.source == "hourly"


@pytest.mark.asyncio
async def test_daily_forecast_groups_entries_by_local_date(monkeypatch):
    payload = {
        "list": [
            _entry(_dt(2026, 10, 19, 9, 0), "Rain", temp_min=6.0, temp_max=9.0, pop=0.8, wind=6.0),
            _entry(_dt(2026, 10, 19, 12, 0), "Clear", temp_min=8.0, temp_max=13.0, pop=0.2),
            # 23:00 in Berlin, still the 19th locally.
            _entry(_dt(2026, 10, 19, 21, 0), "Clouds", temp_min=4.0, temp_max=5.0),
            _entry(_dt(2026, 10, 20, 0, 0), "Snow", temp_min=-1.0, temp_max=1.0, pop=0.9),
        ]
    }
    calls = _install_fetch(monkeypatch, payload)
    adapter = OpenWeatherMapWeatherAdapter(api_key="secret", timezone_name="Europe/Berlin")

    days = await adapter.get_daily_forecast(48.1, 8.2, days=7)

    assert parse_qs(urlparse(calls[0]).query)["cnt"] == ["40"]
    assert [day.date for day in days] == [date(2026, 10, 19), date(2026, 10, 20)]
    first = days[0]
    assert first.min_temp == 4.0
    assert first.max_temp == 13.0
    assert first.condition is ConditionCategory.RAIN
    assert first.precip_prob == 80
    assert first.wind_speed_max == pytest.approx(21.6)
    assert days[1].condition is ConditionCategory.SNOW
    assert days[1].precip_prob == 90


@pytest.mark.asyncio
async def test_unknown_condition_groups_read_as_partly_cloudy(monkeypatch):
    payload = dict(CURRENT_PAYLOAD, weather=[{"main": "Smoke", "description": "smoke"}])
    _install_fetch(monkeypatch, payload)
    adapter = OpenWeatherMapWeatherAdapter(api_key="secret")

    snapshot = await adapter.get_current_weather(48.1, 8.2)

    assert snapshot.condition is ConditionCategory.PARTLY_CLOUDY
    assert snapshot.condition_text == "Smoke"


@pytest.mark.asyncio
async def test_imperial_wind_speed_is_left_as_reported(monkeypatch):
    calls = _install_fetch(monkeypatch, CURRENT_PAYLOAD)
    adapter = OpenWeatherMapWeatherAdapter(api_key="secret", units="imperial")

    snapshot = await adapter.get_current_weather(48.1, 8.2)

    assert snapshot.wind_speed == pytest.approx(4.1)
    assert parse_qs(urlparse(calls[0]).query)["units"] == ["imperial"]


@pytest.mark.asyncio
async def test_entry_without_condition_raises_adapter_error(monkeypatch):
    payload = dict(CURRENT_PAYLOAD, weather=[])
    _install_fetch(monkeypatch, payload)
    adapter = OpenWeatherMapWeatherAdapter(api_key="secret")

    with pytest.raises(WeatherAdapterError):
        await adapter.get_current_weather(48.1, 8.2)


def test_api_key_is_required():
    with pytest.raises(ValueError, match="api_key"):
        OpenWeatherMapWeatherAdapter(api_key="  ")
