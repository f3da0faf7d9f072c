from __future__ import annotations

import logging
import sqlite3

from apscheduler.schedulers.background import BackgroundScheduler

from .settings import AppSettings
from .storage import prune_expired_predictions

LOGGER = logging.getLogger(__name__)

PRUNE_JOB_ID = "prune_predictions_job"


def run_prune_job(settings: AppSettings) -> int:
    try:
        deleted = prune_expired_predictions(settings.db_path)
    except sqlite3.Error:
        LOGGER.exception("Prediction prune job failed")
        return 0
    LOGGER.debug("Prediction prune job removed %d entries", deleted)
    return deleted


def build_scheduler(settings: AppSettings) -> BackgroundScheduler:
    scheduler = BackgroundScheduler(timezone=settings.timezone)
    scheduler.add_job(
        run_prune_job,
        "interval",
        kwargs={"settings": settings},
        minutes=settings.yaml.storage.prune_interval_minutes,
        id=PRUNE_JOB_ID,
        replace_existing=True,
        max_instances=1,
        coalesce=True,
        misfire_grace_time=300,
    )
    return scheduler
