from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone

from .adapters.weather import (
    OpenMeteoWeatherAdapter,
    OpenWeatherMapWeatherAdapter,
    SlidingWindowRateLimiter,
    WeatherProvider,
)
from .corridor import RouteWeatherPredictor, SamplingPolicy, WeatherMatcher
from .domain.models import Route, StoredPrediction
from .settings import AppSettings
from .storage import PredictionRepository, SqlitePredictionRepository

LOGGER = logging.getLogger(__name__)

PREDICTION_ID_PREFIX = "pred_"


class PredictionNotFoundError(LookupError):
    """Raised when a prediction id is unknown or its stored copy has expired."""


def generate_prediction_id() -> str:
    return f"{PREDICTION_ID_PREFIX}{uuid.uuid4().hex}"


def build_weather_adapter(settings: AppSettings) -> WeatherProvider:
    weather = settings.yaml.weather
    options = {
        "units": weather.units,
        "timezone_name": settings.env.routecast_timezone,
        "timeout_seconds": weather.timeout_seconds,
        "max_attempts": weather.max_attempts,
        "backoff_seconds": weather.backoff_seconds,
        "rate_limiter": SlidingWindowRateLimiter(
            weather.rate_limit_requests,
            weather.rate_limit_window_seconds,
        ),
    }
    if weather.provider == "open_meteo":
        return OpenMeteoWeatherAdapter(**options)
    if weather.provider == "openweathermap":
        api_key = settings.env.routecast_openweathermap_api_key
        if not api_key:
            raise ValueError("ROUTECAST_OPENWEATHERMAP_API_KEY is required for the openweathermap provider")
        return OpenWeatherMapWeatherAdapter(api_key=api_key, **options)
    raise ValueError(f"Unsupported weather provider: {weather.provider}")


def build_predictor(settings: AppSettings, provider: WeatherProvider) -> RouteWeatherPredictor:
    matcher_settings = settings.yaml.matcher
    matcher = WeatherMatcher(
        provider,
        current_window=timedelta(minutes=matcher_settings.current_window_minutes),
        hourly_horizon=timedelta(hours=matcher_settings.hourly_horizon_hours),
        hourly_hours=matcher_settings.hourly_hours,
        daily_days=matcher_settings.daily_days,
        timezone_value=settings.timezone,
    )
    policy = SamplingPolicy(
        bias_exponent=settings.yaml.sampling.bias_exponent,
        bias_threshold_km=settings.yaml.sampling.bias_threshold_km,
    )
    return RouteWeatherPredictor(matcher, policy=policy)


def build_repository(settings: AppSettings) -> SqlitePredictionRepository:
    return SqlitePredictionRepository(
        settings.db_path,
        ttl_seconds=settings.yaml.storage.prediction_ttl_hours * 60 * 60,
    )


class RouteWeatherService:
    """Run corridor predictions and keep the results retrievable by id."""

    def __init__(
        self,
        predictor: RouteWeatherPredictor,
        repository: PredictionRepository,
        *,
        timeout_seconds: float | None = None,
    ) -> None:
        self._predictor = predictor
        self._repository = repository
        self._timeout_seconds = timeout_seconds

    async def predict(
        self,
        route: Route,
        departure_time: datetime | None = None,
        *,
        name: str | None = None,
    ) -> StoredPrediction:
        departure = departure_time or datetime.now(timezone.utc)
        prediction = await asyncio.wait_for(
            self._predictor.predict(route, departure),
            timeout=self._timeout_seconds,
        )

        stored = StoredPrediction(
            prediction_id=generate_prediction_id(),
            name=name.strip() if name and name.strip() else None,
            created_at=datetime.now(timezone.utc),
            route_distance_meters=route.distance_meters,
            route_duration_seconds=route.duration_seconds,
            start_location=route.start_location,
            end_location=route.end_location,
            prediction=prediction,
        )
        self._repository.put(stored.prediction_id, stored)
        LOGGER.info("Stored prediction '%s'", stored.prediction_id)
        return stored

    def get(self, prediction_id: str) -> StoredPrediction:
        stored = self._repository.get(prediction_id)
        if stored is None:
            raise PredictionNotFoundError(f"Prediction not found: {prediction_id}")
        return stored
