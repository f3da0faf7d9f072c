from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[2]
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class SamplingSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    bias_exponent: float = Field(default=0.8, gt=0, le=2)
    bias_threshold_km: float = Field(default=100.0, ge=0)


class MatcherSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current_window_minutes: int = Field(default=60, ge=0, le=24 * 60)
    hourly_horizon_hours: int = Field(default=48, ge=1, le=384)
    hourly_hours: int = Field(default=49, ge=2, le=384)
    daily_days: int = Field(default=7, ge=1, le=16)

    @model_validator(mode="after")
    def validate_windows(self) -> MatcherSettings:
        if self.current_window_minutes > self.hourly_horizon_hours * 60:
            raise ValueError("matcher.current_window_minutes must not exceed matcher.hourly_horizon_hours")
        if self.hourly_hours <= self.hourly_horizon_hours:
            raise ValueError("matcher.hourly_hours must extend past matcher.hourly_horizon_hours")
        return self


class WeatherSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    provider: Literal["open_meteo", "openweathermap"] = "open_meteo"
    units: Literal["metric", "imperial"] = "metric"
    timeout_seconds: float = Field(default=10.0, gt=0, le=120)
    max_attempts: int = Field(default=3, ge=1, le=10)
    backoff_seconds: float = Field(default=0.5, ge=0, le=60)
    rate_limit_requests: int = Field(default=60, ge=1)
    rate_limit_window_seconds: float = Field(default=60.0, gt=0)


class StorageSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prediction_ttl_hours: int = Field(default=24, ge=1, le=24 * 30)
    prune_interval_minutes: int = Field(default=30, ge=1, le=24 * 60)


class ApiSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prediction_timeout_seconds: float = Field(default=30.0, gt=0, le=600)


class RoutecastYamlSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    sampling: SamplingSettings = Field(default_factory=SamplingSettings)
    matcher: MatcherSettings = Field(default_factory=MatcherSettings)
    weather: WeatherSettings = Field(default_factory=WeatherSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    api: ApiSettings = Field(default_factory=ApiSettings)


class EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    routecast_env: Literal["dev", "test", "prod"] = "dev"
    routecast_timezone: str = "UTC"
    routecast_config_path: Path = Path("config/routecast.yaml")
    routecast_db_path: Path = Path("data/routecast.db")
    routecast_log_level: str = "INFO"
    routecast_openweathermap_api_key: str | None = None

    @field_validator("routecast_timezone")
    @classmethod
    def validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except ZoneInfoNotFoundError as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("routecast_log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {value}")
        return level


class AppSettings(BaseModel):
    model_config = ConfigDict(arbitrary_types_allowed=True)

    env: EnvSettings
    yaml: RoutecastYamlSettings
    project_root: Path
    config_path: Path
    db_path: Path
    timezone: ZoneInfo


def _resolve_project_path(path: Path) -> Path:
    if path.is_absolute():
        return path
    return (PROJECT_ROOT / path).resolve()


def _load_yaml_settings(path: Path) -> RoutecastYamlSettings:
    if not path.exists():
        raise FileNotFoundError(f"Routecast config file not found: {path}")

    raw_config = yaml.safe_load(path.read_text(encoding="utf-8"))
    if raw_config is None:
        raw_config = {}
    if not isinstance(raw_config, dict):
        raise ValueError("Routecast config must be a YAML mapping/object at the top level")
    return RoutecastYamlSettings.model_validate(raw_config)


@lru_cache(maxsize=1)
def load_settings() -> AppSettings:
    env = EnvSettings()
    config_path = _resolve_project_path(env.routecast_config_path)
    return AppSettings(
        env=env,
        yaml=_load_yaml_settings(config_path),
        project_root=PROJECT_ROOT,
        config_path=config_path,
        db_path=_resolve_project_path(env.routecast_db_path),
        timezone=ZoneInfo(env.routecast_timezone),
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("routecast").setLevel(level)
