from __future__ import annotations

import sqlite3
from datetime import timedelta
from zoneinfo import ZoneInfo

from fakes import NOW, make_stored_prediction
from routecast.scheduler import PRUNE_JOB_ID, build_scheduler, run_prune_job
from routecast.settings import PROJECT_ROOT, AppSettings, EnvSettings, RoutecastYamlSettings
from routecast.storage import SqlitePredictionRepository


def _settings(db_path) -> AppSettings:
    return AppSettings(
        env=EnvSettings(),
        yaml=RoutecastYamlSettings.model_validate({"storage": {"prune_interval_minutes": 15}}),
        project_root=PROJECT_ROOT,
        config_path=PROJECT_ROOT / "config" / "routecast.yaml",
        db_path=db_path,
        timezone=ZoneInfo("UTC"),
    )


def test_build_scheduler_registers_prune_job(tmp_path):
    scheduler = build_scheduler(_settings(tmp_path / "routecast.db"))

    job = scheduler.get_job(PRUNE_JOB_ID)

    assert job is not None
    assert job.trigger.interval == timedelta(minutes=15)


def test_run_prune_job_deletes_expired_predictions(tmp_path):
    db_path = tmp_path / "routecast.db"
    repository = SqlitePredictionRepository(db_path, ttl_seconds=60)
    repository.put("pred_old", make_stored_prediction("pred_old"), stored_at=NOW - timedelta(days=2))

    assert run_prune_job(_settings(db_path)) == 1
    assert run_prune_job(_settings(db_path)) == 0


def test_run_prune_job_logs_database_errors(tmp_path, monkeypatch, caplog):
    def broken_prune(db_path):
        raise sqlite3.OperationalError("database is locked")

    monkeypatch.setattr("routecast.scheduler.prune_expired_predictions", broken_prune)

    assert run_prune_job(_settings(tmp_path / "routecast.db")) == 0
    assert "prune job failed" in caplog.text
