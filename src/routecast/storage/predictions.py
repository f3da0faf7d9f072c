from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

from ..domain.models import StoredPrediction
from .db import open_db

LOGGER = logging.getLogger(__name__)


class PredictionRepository(Protocol):
    def get(self, prediction_id: str) -> StoredPrediction | None:
        """Return a stored prediction, or ``None`` when unknown or expired."""

    def put(self, prediction_id: str, value: StoredPrediction) -> None:
        """Store a prediction under a caller-generated identifier."""


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _normalize_datetime(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _is_expired(stored_at: datetime, ttl_seconds: int, now: datetime) -> bool:
    return (now - stored_at).total_seconds() > ttl_seconds


class InMemoryPredictionRepository:
    """Process-local store, intended for tests and single-worker deployments."""

    def __init__(self, *, ttl_seconds: int = 24 * 60 * 60) -> None:
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self._ttl_seconds = ttl_seconds
        self._entries: dict[str, tuple[StoredPrediction, datetime]] = {}

    def get(self, prediction_id: str) -> StoredPrediction | None:
        entry = self._entries.get(prediction_id)
        if entry is None:
            return None
        value, stored_at = entry
        if _is_expired(stored_at, self._ttl_seconds, _utc_now()):
            del self._entries[prediction_id]
            return None
        return value

    def put(self, prediction_id: str, value: StoredPrediction) -> None:
        self._entries[prediction_id] = (value, _utc_now())


class SqlitePredictionRepository:
    def __init__(self, db_path: Path, *, ttl_seconds: int) -> None:
        if ttl_seconds < 0:
            raise ValueError("ttl_seconds must be >= 0")
        self._db_path = Path(db_path)
        self._ttl_seconds = ttl_seconds

    @property
    def db_path(self) -> Path:
        return self._db_path

    def put(
        self,
        prediction_id: str,
        value: StoredPrediction,
        *,
        stored_at: datetime | None = None,
    ) -> None:
        record_time = _normalize_datetime(stored_at) if stored_at is not None else _utc_now()
        payload_json = value.model_dump_json()

        with open_db(self._db_path) as connection:
            connection.execute(
                """
                INSERT INTO predictions (id, json, stored_at, ttl_seconds)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    json=excluded.json,
                    stored_at=excluded.stored_at,
                    ttl_seconds=excluded.ttl_seconds
                """,
                (prediction_id, payload_json, record_time.isoformat(), self._ttl_seconds),
            )
            connection.commit()

    def get(self, prediction_id: str) -> StoredPrediction | None:
        with open_db(self._db_path) as connection:
            row = connection.execute(
                "SELECT json, stored_at, ttl_seconds FROM predictions WHERE id = ?",
                (prediction_id,),
            ).fetchone()

        if row is None:
            return None
        stored_at = _normalize_datetime(datetime.fromisoformat(row["stored_at"]))
        if _is_expired(stored_at, int(row["ttl_seconds"]), _utc_now()):
            return None
        return StoredPrediction.model_validate_json(row["json"])


def prune_expired_predictions(db_path: Path, *, now: datetime | None = None) -> int:
    reference = _normalize_datetime(now) if now is not None else _utc_now()
    deleted = 0

    with open_db(db_path) as connection:
        rows = connection.execute("SELECT id, stored_at, ttl_seconds FROM predictions").fetchall()
        for row in rows:
            stored_at = _normalize_datetime(datetime.fromisoformat(row["stored_at"]))
            if _is_expired(stored_at, int(row["ttl_seconds"]), reference):
                connection.execute("DELETE FROM predictions WHERE id = ?", (row["id"],))
                deleted += 1
        connection.commit()

    if deleted:
        LOGGER.info("Pruned %d expired predictions from %s", deleted, db_path)
    return deleted
