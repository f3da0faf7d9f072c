from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from fakes import NOW, FakeWeatherProvider, make_route, make_snapshot
from routecast.corridor import (
    DEFAULT_SNAPSHOT,
    InvalidRouteError,
    RouteWeatherPredictor,
    SamplingPolicy,
    WeatherMatcher,
)
from routecast.corridor.summary import RECOMMEND_POSTPONE
from routecast.domain.conditions import ConditionCategory
from routecast.domain.models import Route


def _predictor(provider, clock, **kwargs) -> RouteWeatherPredictor:
    return RouteWeatherPredictor(WeatherMatcher(provider, clock=clock), **kwargs)


@pytest.mark.asyncio
async def test_short_route_emits_start_middle_and_destination(fixed_clock, provider):
    route = make_route(30)

    prediction = await _predictor(provider, fixed_clock).predict(route, NOW)

    points = prediction.weather_points
    assert [point.progress_percent for point in points] == [0, 50, 100]
    assert [point.band for point in points] == ["start", "mid", "destination"]
    assert points[0].coordinates == (8.0, 48.0)
    assert points[-1].coordinates == (route.end_location.longitude, 48.0)
    assert points[1].time == NOW + timedelta(minutes=30)
    assert prediction.eta_time == NOW + timedelta(hours=1)
    assert prediction.departure_time == NOW


@pytest.mark.asyncio
async def test_long_route_points_are_ordered_and_bounded(fixed_clock, provider):
    route = make_route(500, duration_hours=6)

    prediction = await _predictor(provider, fixed_clock).predict(route, NOW)

    percents = [point.progress_percent for point in prediction.weather_points]
    assert len(percents) == 8
    assert percents[0] == 0
    assert percents[-1] == 100
    assert percents == sorted(percents)
    times = [point.time for point in prediction.weather_points]
    assert times == sorted(times)


@pytest.mark.asyncio
async def test_start_point_uses_current_weather(fixed_clock, provider):
    route = make_route(500, duration_hours=6)

    await _predictor(provider, fixed_clock).predict(route, NOW)

    assert provider.calls.count(("current", 48.0, 8.0)) == 1
    assert ("hourly", 48.0, route.end_location.longitude) in provider.calls


@pytest.mark.asyncio
async def test_long_route_biases_geometry_position(fixed_clock, provider):
    route = make_route(500, duration_hours=6)

    biased = await _predictor(provider, fixed_clock).predict(route, NOW)
    linear = await _predictor(provider, fixed_clock, policy=SamplingPolicy(bias_exponent=1.0)).predict(
        route, NOW
    )

    assert biased.weather_points[1].coordinates[0] == pytest.approx(8.02)
    assert linear.weather_points[1].coordinates[0] == pytest.approx(8.01)
    assert biased.weather_points[1].time == linear.weather_points[1].time


@pytest.mark.asyncio
async def test_results_keep_progress_order_regardless_of_completion_order(fixed_clock):
    hot = make_snapshot(temperature=30.0)
    cold = make_snapshot(temperature=-5.0)
    provider = FakeWeatherProvider(
        conditions={8.0: hot, 8.05: cold},
        delays={8.0: 0.05},
    )

    prediction = await _predictor(provider, fixed_clock).predict(make_route(30), NOW)

    assert prediction.weather_points[0].weather.temperature == 30.0
    assert prediction.weather_points[1].weather.temperature == -5.0


@pytest.mark.asyncio
async def test_elevation_present_only_for_three_dimensional_geometry(fixed_clock, provider):
    predictor = _predictor(provider, fixed_clock)

    flat = await predictor.predict(make_route(30), NOW)
    hilly = await predictor.predict(make_route(30, elevation=True), NOW)

    assert flat.elevation_profile is None
    assert all(point.elevation is None for point in flat.weather_points)
    assert hilly.elevation_profile is not None
    assert len(hilly.elevation_profile) == 11
    assert hilly.elevation_profile[0].cumulative_distance_km == 0.0
    assert [point.elevation for point in hilly.weather_points] == [200.0, 250.0, 300.0]


@pytest.mark.asyncio
async def test_interior_thunderstorm_makes_route_severe(fixed_clock):
    provider = FakeWeatherProvider(
        conditions={8.05: make_snapshot(ConditionCategory.THUNDERSTORM, precipitation_chance=85)}
    )

    prediction = await _predictor(provider, fixed_clock).predict(make_route(30), NOW)

    assert prediction.summary.overall_condition == "severe"
    assert RECOMMEND_POSTPONE in prediction.summary.recommendations
    assert prediction.summary.adverse_weather_location == "En route (~50%)"


@pytest.mark.asyncio
async def test_provider_outage_still_produces_full_prediction(fixed_clock):
    provider = FakeWeatherProvider(fail=True)

    prediction = await _predictor(provider, fixed_clock).predict(make_route(150, duration_hours=2), NOW)

    assert len(prediction.weather_points) == 6
    assert all(point.weather == DEFAULT_SNAPSHOT for point in prediction.weather_points)


@pytest.mark.asyncio
async def test_far_future_departure_uses_daily_forecast(fixed_clock, provider):
    departure = NOW + timedelta(days=3)

    prediction = await _predictor(provider, fixed_clock).predict(make_route(30), departure)

    assert prediction.weather_points[0].weather.source == "current"
    assert prediction.weather_points[1].weather.source == "daily"
    assert prediction.weather_points[2].weather.source == "daily"


@pytest.mark.asyncio
async def test_naive_departure_is_treated_as_utc(fixed_clock, provider):
    naive = datetime(2026, 10, 19, 8, 0)

    prediction = await _predictor(provider, fixed_clock).predict(make_route(30), naive)

    assert prediction.departure_time == NOW


@pytest.mark.asyncio
async def test_route_without_geometry_is_rejected_before_sampling(fixed_clock, provider):
    route = make_route(30)
    broken = Route.model_construct(
        distance_meters=route.distance_meters,
        duration_seconds=route.duration_seconds,
        geometry=(),
        start_location=route.start_location,
        end_location=route.end_location,
    )

    with pytest.raises(InvalidRouteError):
        await _predictor(provider, fixed_clock).predict(broken, NOW)
    assert provider.calls == []
