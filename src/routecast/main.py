from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict

from .corridor import InvalidRouteError
from .domain.models import Route
from .scheduler import build_scheduler
from .service import (
    PredictionNotFoundError,
    RouteWeatherService,
    build_predictor,
    build_repository,
    build_weather_adapter,
)
from .settings import AppSettings, configure_logging, load_settings
from .storage import initialize_database

LOGGER = logging.getLogger(__name__)


class PredictionRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    route: Route
    departure_time: datetime | None = None
    name: str | None = None


def _get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def _get_service(request: Request) -> RouteWeatherService:
    return request.app.state.service


@asynccontextmanager
async def lifespan(application: FastAPI):
    settings = load_settings()
    configure_logging(settings.env.routecast_log_level)
    initialize_database(settings.db_path)

    provider = build_weather_adapter(settings)
    service = RouteWeatherService(
        build_predictor(settings, provider),
        build_repository(settings),
        timeout_seconds=settings.yaml.api.prediction_timeout_seconds,
    )
    scheduler = build_scheduler(settings)
    scheduler.start()

    application.state.settings = settings
    application.state.service = service
    application.state.scheduler = scheduler
    application.state.started_at_utc = datetime.now(timezone.utc)
    LOGGER.info("Routecast started in '%s' environment", settings.env.routecast_env)

    try:
        yield
    finally:
        if scheduler.running:
            scheduler.shutdown(wait=False)


app = FastAPI(title="Routecast", version="0.1.0", lifespan=lifespan)


@app.get("/health", response_class=JSONResponse)
async def health(request: Request) -> JSONResponse:
    settings = _get_settings(request)
    return JSONResponse(
        {
            "status": "ok",
            "service": "routecast",
            "environment": settings.env.routecast_env,
            "timezone": settings.env.routecast_timezone,
            "weather_provider": settings.yaml.weather.provider,
            "scheduler_running": request.app.state.scheduler.running,
            "started_at_utc": request.app.state.started_at_utc.isoformat(),
            "timestamp_utc": datetime.now(timezone.utc).isoformat(),
        }
    )


@app.post("/predictions", response_class=JSONResponse, status_code=201)
async def create_prediction(request: Request, body: PredictionRequest) -> JSONResponse:
    service = _get_service(request)
    try:
        stored = await service.predict(body.route, body.departure_time, name=body.name)
    except InvalidRouteError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    except asyncio.TimeoutError as exc:
        LOGGER.warning("Route weather prediction timed out")
        raise HTTPException(status_code=504, detail="Route weather prediction timed out") from exc

    return JSONResponse(stored.model_dump(mode="json"), status_code=201)


@app.get("/predictions/{prediction_id}", response_class=JSONResponse)
async def get_prediction(request: Request, prediction_id: str) -> JSONResponse:
    service = _get_service(request)
    try:
        stored = service.get(prediction_id)
    except PredictionNotFoundError as exc:
        raise HTTPException(status_code=404, detail="Prediction not found") from exc
    return JSONResponse(stored.model_dump(mode="json"))
