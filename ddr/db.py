from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator

from .settings import settings


def utc_now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def _resolve_db_path() -> str:
    """Return a file path usable by sqlite.

    A bind-mounted path that did not exist on the host shows up as a
    directory inside the container; in that case the journal lives inside it.
    """

    p = os.path.abspath(settings.db_path)

    if os.path.isdir(p):
        p = os.path.join(p, "ddr.db")

    parent = os.path.dirname(p)
    if parent and not os.path.exists(parent):
        os.makedirs(parent, exist_ok=True)

    return p


def connect() -> sqlite3.Connection:
    conn = sqlite3.connect(_resolve_db_path(), check_same_thread=False, timeout=10)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def session() -> Iterator[sqlite3.Connection]:
    """Connection scoped to one transaction; closed on exit."""
    conn = connect()
    try:
        with conn:
            yield conn
    finally:
        conn.close()


def init_db() -> None:
    """Create the event journal if it does not exist.

    Only the journal is stored here; deployments are kept in memory.
    """
    with session() as conn:
        conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS events (
              id INTEGER PRIMARY KEY AUTOINCREMENT,
              ts TEXT NOT NULL,
              level TEXT NOT NULL,
              deployment_id TEXT,
              instance TEXT,
              message TEXT NOT NULL
            );

            CREATE INDEX IF NOT EXISTS idx_events_ts ON events(ts);
            CREATE INDEX IF NOT EXISTS idx_events_deployment ON events(deployment_id);
            """
        )


def log_event(level: str, message: str, deployment_id: str | None = None, instance: str | None = None) -> bool:
    """Append one journal row.

    Returns False if the journal could not be written (locked or full
    database); callers on the reconcile path must keep going either way.
    """
    try:
        with session() as conn:
            conn.execute(
                "INSERT INTO events (ts, level, deployment_id, instance, message) VALUES (?, ?, ?, ?, ?)",
                (utc_now(), level.upper(), deployment_id, instance, message),
            )
        return True
    except sqlite3.Error:
        return False


def latest_events(limit: int = 100, deployment_id: str | None = None) -> list[dict[str, Any]]:
    with session() as conn:
        if deployment_id:
            rows = conn.execute(
                "SELECT * FROM events WHERE deployment_id=? ORDER BY id DESC LIMIT ?",
                (deployment_id, limit),
            ).fetchall()
        else:
            rows = conn.execute("SELECT * FROM events ORDER BY id DESC LIMIT ?", (limit,)).fetchall()
        return [dict(r) for r in rows]
