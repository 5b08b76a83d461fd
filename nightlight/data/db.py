"""
Nightlight — Marker Database.

Single-value markers (currently just the daily reset date) persist in SQLite
so they survive restarts.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

logger = logging.getLogger(__name__)


class MarkerDB:
    """SQLite-backed key/value store implementing MarkerStore."""

    def __init__(self, db_path: str | None = None) -> None:
        if db_path is None:
            from nightlight.config import settings
            db_path = settings.DATABASE_PATH

        self._db_path = db_path
        Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS markers (
                    key        TEXT PRIMARY KEY,
                    value      TEXT NOT NULL,
                    updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """)
        logger.debug("Markers table initialized at %s", self._db_path)

    def get(self, key: str) -> str | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT value FROM markers WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return None
        return row["value"]

    def set(self, key: str, value: str) -> None:
        """Insert or replace a marker in one statement."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO markers (key, value, updated_at)
                VALUES (?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = CURRENT_TIMESTAMP
                """,
                (key, value),
            )
        logger.info("Marker %s set to %s", key, value)

    def delete(self, key: str) -> bool:
        with self._connect() as conn:
            cursor = conn.execute("DELETE FROM markers WHERE key = ?", (key,))
        return cursor.rowcount > 0
