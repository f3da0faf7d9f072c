from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

SCHEMA_VERSION = 1
BUSY_TIMEOUT_SECONDS = 5.0

PREDICTIONS_SCHEMA = """
CREATE TABLE IF NOT EXISTS predictions (
    id TEXT PRIMARY KEY,
    json TEXT NOT NULL,
    stored_at TEXT NOT NULL,
    ttl_seconds INTEGER NOT NULL CHECK (ttl_seconds >= 0)
);
CREATE INDEX IF NOT EXISTS idx_predictions_stored_at ON predictions (stored_at);
"""


def connect(db_path: Path) -> sqlite3.Connection:
    path = Path(db_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    # The prune job runs on a scheduler thread while requests write.
    connection = sqlite3.connect(path, timeout=BUSY_TIMEOUT_SECONDS)
    connection.row_factory = sqlite3.Row
    connection.execute("PRAGMA journal_mode = WAL;")
    connection.execute("PRAGMA synchronous = NORMAL;")
    return connection


def ensure_schema(connection: sqlite3.Connection) -> None:
    version = connection.execute("PRAGMA user_version;").fetchone()[0]
    if version >= SCHEMA_VERSION:
        return
    connection.executescript(PREDICTIONS_SCHEMA)
    connection.execute(f"PRAGMA user_version = {SCHEMA_VERSION};")
    connection.commit()


@contextmanager
def open_db(db_path: Path) -> Iterator[sqlite3.Connection]:
    connection = connect(db_path)
    try:
        ensure_schema(connection)
        yield connection
    finally:
        connection.close()


def initialize_database(db_path: Path) -> None:
    """Create the database file and predictions table if they do not exist yet."""
    with open_db(db_path):
        pass
