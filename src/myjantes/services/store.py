"""Local key-value store for the session cookie and device preference flags."""

from __future__ import annotations

import os
import sqlite3
from contextlib import contextmanager
from typing import Iterator, Optional

from ..logging import get_logger

LOG = get_logger("local-store")

TABLE_NAME = "kv_store"

SESSION_COOKIE = "session_cookie"
BIOMETRIC_ENABLED = "biometric_enabled"
NOTIFICATION_KEYS = ("push", "email", "sms")


class LocalStore:
    """One SQLite table of string values, readable only by the current user."""

    def __init__(self, db_path: str) -> None:
        self.db_path = db_path
        os.makedirs(os.path.dirname(os.path.abspath(db_path)), exist_ok=True)
        with self.connect() as conn:
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute(
                f"""
                CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT DEFAULT (datetime('now'))
                );
                """
            )
        try:
            os.chmod(self.db_path, 0o600)
        except OSError:
            LOG.warning(f"Could not restrict permissions on {self.db_path}")
        LOG.debug(f"Local store ready at {self.db_path}")

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.db_path)
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def get(self, key: str) -> Optional[str]:
        with self.connect() as conn:
            row = conn.execute(f"SELECT value FROM {TABLE_NAME} WHERE key = ?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        with self.connect() as conn:
            conn.execute(
                f"""
                INSERT INTO {TABLE_NAME} (key, value) VALUES (?, ?)
                ON CONFLICT(key) DO UPDATE SET value = excluded.value, updated_at = datetime('now')
                """,
                (key, str(value)),
            )

    def delete(self, key: str) -> None:
        with self.connect() as conn:
            conn.execute(f"DELETE FROM {TABLE_NAME} WHERE key = ?", (key,))

    def clear(self) -> None:
        with self.connect() as conn:
            conn.execute(f"DELETE FROM {TABLE_NAME}")
        LOG.info("Local store cleared")

    def get_bool(self, key: str, default: bool = False) -> bool:
        v = self.get(key)
        if v is None:
            return default
        return v == "true"

    def set_bool(self, key: str, value: bool) -> None:
        self.set(key, "true" if value else "false")
