"""
Persistent key-value storage backed by SQLite.

Values are serialized to JSON, so callers store plain dicts/lists and
convert big integers to strings first.
"""

from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class StorageManager:
    """
    Key-value store on top of a single SQLite table.

    Usable as a context manager; the connection is closed on exit.
    """

    def __init__(self, db_path: Path):
        """
        Args:
            db_path: Path to the SQLite database file. The directory is
                created if it does not exist.
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        try:
            self._conn = sqlite3.connect(
                self.db_path, check_same_thread=False, isolation_level="EXCLUSIVE"
            )
            self._conn.execute("PRAGMA journal_mode=WAL;")
            self._conn.execute("PRAGMA synchronous=NORMAL;")
            self._create_table()
        except sqlite3.Error as e:
            logger.error("Database connection failed for %s: %s", self.db_path, e)
            raise

    def _create_table(self):
        with self._conn:
            self._conn.execute(
                """
                CREATE TABLE IF NOT EXISTS key_value_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL
                )
                """
            )

    def set(self, key: str, value: Any):
        """
        Saves or updates a value in the key-value store.

        Args:
            key: The unique key for the data.
            value: A JSON-serializable Python object.
        """
        try:
            value_json = json.dumps(value)
            with self._conn:
                self._conn.execute(
                    """
                    INSERT INTO key_value_store (key, value)
                    VALUES (?, ?)
                    ON CONFLICT(key) DO UPDATE SET value = excluded.value
                    """,
                    (key, value_json),
                )
        except (sqlite3.Error, TypeError) as e:
            logger.error("Failed to set key '%s': %s", key, e)
            raise

    def get(self, key: str, default: Any | None = None) -> Any:
        """
        Retrieves a value by key, or ``default`` if the key is absent.
        """
        cursor = self._conn.cursor()
        cursor.execute("SELECT value FROM key_value_store WHERE key = ?", (key,))
        row = cursor.fetchone()
        if row:
            return json.loads(row[0])
        return default

    def delete(self, key: str) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM key_value_store WHERE key = ?", (key,))

    def close(self):
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
