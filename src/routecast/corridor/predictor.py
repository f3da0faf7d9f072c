from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from ..domain.models import ProgressBand, Route, RoutePrediction, WeatherPoint, WeatherSnapshot
from .elevation import build_elevation_profile
from .matcher import WeatherMatcher, normalize_datetime
from .sampling import SamplingPolicy, geometry_index, plan_sample_points
from .summary import summarize
from .timing import time_at

LOGGER = logging.getLogger(__name__)


class InvalidRouteError(ValueError):
    """Raised when a route cannot be sampled, before any weather lookup is made."""


class PredictionStage(str, Enum):
    PLANNED = "planned"
    SAMPLED = "sampled"
    MATCHED = "matched"
    AGGREGATED = "aggregated"
    DONE = "done"


def progress_percent(fraction: float) -> int:
    return int(fraction * 100 + 0.5)


def progress_band(percent: int) -> tuple[ProgressBand, str]:
    if percent <= 0:
        return "start", "Starting point"
    if percent >= 100:
        return "destination", "Destination"
    if percent < 25:
        return "early", f"Just after start (~{percent}%)"
    if percent > 75:
        return "late", f"Near destination (~{percent}%)"
    return "mid", f"En route (~{percent}%)"


def _ensure_valid(route: Route) -> None:
    if not route.geometry:
        raise InvalidRouteError("route geometry is empty")
    if route.distance_meters < 0 or route.duration_seconds < 0:
        raise InvalidRouteError("route distance and duration must be >= 0")


@dataclass(frozen=True, slots=True)
class _Sample:
    fraction: float
    lon: float
    lat: float
    time: datetime
    elevation: float | None
    use_current: bool = False


class RouteWeatherPredictor:
    def __init__(self, matcher: WeatherMatcher, *, policy: SamplingPolicy | None = None) -> None:
        self._matcher = matcher
        self._policy = policy or SamplingPolicy()

    async def predict(self, route: Route, departure_time: datetime) -> RoutePrediction:
        _ensure_valid(route)
        departure = normalize_datetime(departure_time)
        eta = departure + timedelta(seconds=route.duration_seconds)

        fractions = plan_sample_points(route.distance_meters)
        LOGGER.debug("Prediction %s: %d sample points", PredictionStage.PLANNED.value, len(fractions))

        samples = self._samples(route, fractions, departure, eta)
        LOGGER.debug("Prediction %s: %d samples located", PredictionStage.SAMPLED.value, len(samples))

        snapshots = await asyncio.gather(*(self._lookup(sample) for sample in samples))
        points = [self._weather_point(sample, snapshot) for sample, snapshot in zip(samples, snapshots)]
        LOGGER.debug("Prediction %s: %d weather points", PredictionStage.MATCHED.value, len(points))

        summary = summarize(points)
        elevation_profile = build_elevation_profile(route.geometry)
        LOGGER.debug(
            "Prediction %s: overall condition %s",
            PredictionStage.AGGREGATED.value,
            summary.overall_condition,
        )

        prediction = RoutePrediction(
            departure_time=departure,
            eta_time=eta,
            weather_points=points,
            elevation_profile=elevation_profile,
            summary=summary,
        )
        LOGGER.info(
            "Route weather prediction %s: %.1f km, %d points, %s",
            PredictionStage.DONE.value,
            route.distance_meters / 1000,
            len(points),
            summary.overall_condition,
        )
        return prediction

    def _samples(
        self,
        route: Route,
        fractions: list[float],
        departure: datetime,
        eta: datetime,
    ) -> list[_Sample]:
        geometry = route.geometry
        has_elevation = route.has_elevation
        distance_km = route.distance_meters / 1000

        start = route.start_location
        end = route.end_location
        samples = [
            _Sample(
                0.0,
                start.longitude,
                start.latitude,
                departure,
                geometry[0][2] if has_elevation else None,
                use_current=True,
            )
        ]
        for fraction in fractions[1:-1]:
            index = geometry_index(self._policy.geometry_fraction(fraction, distance_km), len(geometry))
            coordinate = geometry[index]
            samples.append(
                _Sample(
                    fraction,
                    coordinate[0],
                    coordinate[1],
                    time_at(fraction, departure, eta),
                    coordinate[2] if has_elevation else None,
                )
            )
        samples.append(
            _Sample(
                1.0,
                end.longitude,
                end.latitude,
                eta,
                geometry[-1][2] if has_elevation else None,
            )
        )
        return samples

    async def _lookup(self, sample: _Sample) -> WeatherSnapshot:
        if sample.use_current:
            return await self._matcher.current(sample.lat, sample.lon)
        return await self._matcher.weather_for(sample.lat, sample.lon, sample.time)

    @staticmethod
    def _weather_point(sample: _Sample, snapshot: WeatherSnapshot) -> WeatherPoint:
        percent = progress_percent(sample.fraction)
        band, label = progress_band(percent)
        return WeatherPoint(
            coordinates=(sample.lon, sample.lat),
            time=sample.time,
            progress_percent=percent,
            band=band,
            location_label=label,
            weather=snapshot,
            elevation=sample.elevation,
        )
