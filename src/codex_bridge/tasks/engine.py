"""SQLite engine for the task store."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.pool import NullPool
from sqlmodel import create_engine

_CONNECTION_PRAGMAS = ("journal_mode = WAL", "foreign_keys = ON")


def utc_now() -> datetime:
    return datetime.now(tz=UTC)


def task_store_engine(db_path: Path, *, busy_timeout_ms: int = 5000) -> Engine:
    """Engine that opens a fresh SQLite connection per session.

    A CLI process and an agent run may touch the same file at once, so each
    connection waits up to ``busy_timeout_ms`` for locks instead of failing.
    """

    db_path.parent.mkdir(parents=True, exist_ok=True)
    busy_timeout_ms = max(1, busy_timeout_ms)
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False, "timeout": busy_timeout_ms / 1000.0},
        poolclass=NullPool,
    )

    @event.listens_for(engine, "connect")
    def _configure_connection(dbapi_connection, _connection_record) -> None:
        cursor = dbapi_connection.cursor()
        try:
            for pragma in (*_CONNECTION_PRAGMAS, f"busy_timeout = {busy_timeout_ms}"):
                cursor.execute(f"PRAGMA {pragma}")
        finally:
            cursor.close()

    return engine
