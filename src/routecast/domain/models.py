from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .conditions import ConditionCategory

SnapshotSource = Literal["current", "hourly", "daily", "fallback"]
ProgressBand = Literal["start", "early", "mid", "late", "destination"]
OverallCondition = Literal["clear", "variable", "deteriorating", "severe"]


class Location(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: str = ""
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value: str) -> str:
        return value.strip()


class Route(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    distance_meters: float = Field(ge=0)
    duration_seconds: float = Field(ge=0)
    geometry: tuple[tuple[float, ...], ...] = Field(min_length=1)
    start_location: Location
    end_location: Location

    @field_validator("geometry")
    @classmethod
    def validate_geometry(cls, value: tuple[tuple[float, ...], ...]) -> tuple[tuple[float, ...], ...]:
        dimensions = {len(coordinate) for coordinate in value}
        if not dimensions <= {2, 3}:
            raise ValueError("route geometry coordinates must be [lon, lat] or [lon, lat, elevation]")
        if len(dimensions) > 1:
            raise ValueError("route geometry coordinates must all have the same dimensionality")
        for coordinate in value:
            lon, lat = coordinate[0], coordinate[1]
            if not -180 <= lon <= 180 or not -90 <= lat <= 90:
                raise ValueError(f"route geometry coordinate out of range: {list(coordinate)}")
        return value

    @property
    def has_elevation(self) -> bool:
        return len(self.geometry[0]) >= 3

    @classmethod
    def from_geojson(
        cls,
        geometry: dict[str, Any],
        *,
        distance_meters: float,
        duration_seconds: float,
        start_location: Location | None = None,
        end_location: Location | None = None,
    ) -> Route:
        """Build a route from a GeoJSON LineString as returned by most routing engines.

        When start or end locations are omitted they are taken from the first
        and last coordinates of the line.
        """
        if geometry.get("type") != "LineString":
            raise ValueError("route geometry must be a GeoJSON LineString")
        coordinates = geometry.get("coordinates")
        if not isinstance(coordinates, list) or not coordinates:
            raise ValueError("route geometry must contain at least one coordinate")

        first, last = coordinates[0], coordinates[-1]
        return cls(
            distance_meters=distance_meters,
            duration_seconds=duration_seconds,
            geometry=coordinates,
            start_location=start_location
            or Location(name="Start", latitude=first[1], longitude=first[0]),
            end_location=end_location
            or Location(name="Destination", latitude=last[1], longitude=last[0]),
        )


class WeatherSnapshot(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    temperature: float
    condition: ConditionCategory
    condition_code: int | None = None
    condition_text: str
    precipitation_chance: int = Field(default=0, ge=0, le=100)
    wind_speed: float | None = None
    wind_direction: float | None = None
    humidity: float | None = None
    visibility: float | None = None
    source: SnapshotSource = "current"


class ForecastEntry(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    time: datetime
    weather: WeatherSnapshot


class DayForecast(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    date: date
    min_temp: float
    max_temp: float
    condition: ConditionCategory
    condition_code: int | None = None
    condition_text: str
    precip_prob: int | None = Field(default=None, ge=0, le=100)
    wind_speed_max: float | None = None

    @model_validator(mode="after")
    def validate_temperature_range(self) -> DayForecast:
        if self.max_temp < self.min_temp:
            raise ValueError("daily forecast max_temp must be >= min_temp")
        return self

    def to_snapshot(self) -> WeatherSnapshot:
        return WeatherSnapshot(
            temperature=(self.min_temp + self.max_temp) / 2,
            condition=self.condition,
            condition_code=self.condition_code,
            condition_text=self.condition_text,
            precipitation_chance=self.precip_prob or 0,
            wind_speed=self.wind_speed_max,
            source="daily",
        )


class WeatherPoint(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    coordinates: tuple[float, float]
    time: datetime
    progress_percent: int = Field(ge=0, le=100)
    band: ProgressBand
    location_label: str
    weather: WeatherSnapshot
    elevation: float | None = None


class ElevationPoint(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    cumulative_distance_km: float = Field(ge=0)
    elevation_meters: float


class WeatherSummary(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    overall_condition: OverallCondition
    rain_expected: bool = False
    snow_expected: bool = False
    thunderstorm_expected: bool = False
    max_precipitation_chance: int = Field(default=0, ge=0, le=100)
    adverse_weather_location: str | None = None
    adverse_weather_time: datetime | None = None
    recommendations: list[str] = Field(default_factory=list)


class RoutePrediction(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    departure_time: datetime
    eta_time: datetime
    weather_points: list[WeatherPoint] = Field(min_length=3)
    elevation_profile: list[ElevationPoint] | None = None
    summary: WeatherSummary

    @model_validator(mode="after")
    def validate_progress_bounds(self) -> RoutePrediction:
        if self.weather_points[0].progress_percent != 0:
            raise ValueError("prediction must start at progress 0")
        if self.weather_points[-1].progress_percent != 100:
            raise ValueError("prediction must end at progress 100")
        return self


class StoredPrediction(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prediction_id: str
    name: str | None = None
    created_at: datetime
    route_distance_meters: float
    route_duration_seconds: float
    start_location: Location
    end_location: Location
    prediction: RoutePrediction
