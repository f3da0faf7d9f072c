from __future__ import annotations

from typing import Sequence

from ..domain.conditions import is_adverse, is_rain, is_snow, is_thunderstorm
from ..domain.models import OverallCondition, WeatherPoint, WeatherSummary

SEVERE_PRECIPITATION_CHANCE = 80
DETERIORATING_PRECIPITATION_CHANCE = 70
VARIABLE_PRECIPITATION_CHANCE = 30
SHIFT_DEPARTURE_PRECIPITATION_CHANCE = 50

RECOMMEND_POSTPONE = "Thunderstorms are forecast along the route; consider postponing the trip."
RECOMMEND_MONITOR_ALERTS = "Monitor local severe weather alerts before and during the drive."
RECOMMEND_WINTER_KIT = "Snow is expected; carry winter equipment such as chains, a scraper and warm clothing."
RECOMMEND_EXTRA_TIME = "Allow extra travel time for snow-covered roads."
RECOMMEND_RAIN_GEAR = "Pack rain gear for stops along the way."
RECOMMEND_SHIFT_DEPARTURE = (
    "Consider shifting your departure time to avoid the highest chance of precipitation."
)


def _route_position(point: WeatherPoint) -> str:
    if point.band == "start":
        return "from the start of the route"
    if point.band == "destination":
        return "near the destination"
    return f"from about {point.progress_percent}% of the way"


def _overall_condition(
    *, thunderstorm: bool, snow: bool, rain: bool, max_precipitation: int
) -> OverallCondition:
    if thunderstorm or max_precipitation > SEVERE_PRECIPITATION_CHANCE:
        return "severe"
    if snow or max_precipitation > DETERIORATING_PRECIPITATION_CHANCE:
        return "deteriorating"
    if rain or max_precipitation > VARIABLE_PRECIPITATION_CHANCE:
        return "variable"
    return "clear"


def _recommendations(
    *,
    thunderstorm: bool,
    snow: bool,
    max_precipitation: int,
    first_rain: WeatherPoint | None,
) -> list[str]:
    recommendations: list[str] = []
    if thunderstorm:
        recommendations.append(RECOMMEND_POSTPONE)
        recommendations.append(RECOMMEND_MONITOR_ALERTS)
    if snow:
        recommendations.append(RECOMMEND_WINTER_KIT)
        recommendations.append(RECOMMEND_EXTRA_TIME)
    if first_rain is not None:
        recommendations.append(RECOMMEND_RAIN_GEAR)
        recommendations.append(
            f"Reduce speed and increase following distance in rain {_route_position(first_rain)}."
        )
    if max_precipitation > SHIFT_DEPARTURE_PRECIPITATION_CHANCE:
        recommendations.append(RECOMMEND_SHIFT_DEPARTURE)
    return list(dict.fromkeys(recommendations))


def summarize(points: Sequence[WeatherPoint]) -> WeatherSummary:
    """Classify the weather risk of a sampled route.

    ``points`` must be in progress order; the first adverse point (rain, snow
    or thunderstorm) is reported as where the bad weather starts.
    """
    if not points:
        raise ValueError("cannot summarize a route without weather points")

    categories = [point.weather.condition for point in points]
    thunderstorm = any(is_thunderstorm(category) for category in categories)
    snow = any(is_snow(category) for category in categories)
    rain = any(is_rain(category) for category in categories)
    max_precipitation = max(point.weather.precipitation_chance for point in points)

    adverse = next((point for point in points if is_adverse(point.weather.condition)), None)
    adverse_location = adverse.location_label if adverse is not None else None

    return WeatherSummary(
        overall_condition=_overall_condition(
            thunderstorm=thunderstorm,
            snow=snow,
            rain=rain,
            max_precipitation=max_precipitation,
        ),
        rain_expected=rain,
        snow_expected=snow,
        thunderstorm_expected=thunderstorm,
        max_precipitation_chance=max_precipitation,
        adverse_weather_location=adverse_location,
        adverse_weather_time=adverse.time if adverse is not None else None,
        recommendations=_recommendations(
            thunderstorm=thunderstorm,
            snow=snow,
            max_precipitation=max_precipitation,
            first_rain=next((point for point in points if is_rain(point.weather.condition)), None),
        ),
    )
