"""SQLite backend."""

import json
import logging
import sqlite3
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class SqliteStore:
    """SQLite key-value backend - one row per snapshot key."""

    SCHEMA = """
        CREATE TABLE IF NOT EXISTS snapshots (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL,
            updated_at TEXT NOT NULL
        );
    """

    def __init__(self, db_path: Path):
        self._path = db_path
        self._conn: sqlite3.Connection | None = None
        self._lock = threading.Lock()

    def __del__(self) -> None:
        """Clean up connection on garbage collection."""
        self.close()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def load(self, key: str) -> Any | None:
        try:
            with self._connect() as conn:
                row = conn.execute("SELECT value FROM snapshots WHERE key = ?", (key,)).fetchone()
        except (sqlite3.Error, OSError) as e:
            logger.warning("Could not read snapshot %s from %s: %s", key, self._path, e)
            return None
        if not row:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError:
            logger.warning("Discarding corrupt snapshot %s in %s", key, self._path)
            return None

    def save(self, key: str, blob: Any) -> bool:
        try:
            value = json.dumps(blob)
            with self._connect() as conn:
                conn.execute(
                    "INSERT INTO snapshots (key, value, updated_at) VALUES (?, ?, ?) "
                    "ON CONFLICT(key) DO UPDATE SET value = excluded.value, "
                    "updated_at = excluded.updated_at",
                    (key, value, datetime.now().isoformat()),
                )
        except (sqlite3.Error, OSError, TypeError, ValueError) as e:
            logger.warning("Failed to save snapshot %s to %s: %s", key, self._path, e)
            return False
        return True

    def keys(self) -> list[str]:
        with self._connect() as conn:
            rows = conn.execute("SELECT key FROM snapshots ORDER BY key").fetchall()
        return [row[0] for row in rows]

    def _open(self) -> sqlite3.Connection:
        """Connect and create the schema. A damaged file raises sqlite3.Error."""
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # Saves arrive from the snapshot writer thread
        conn = sqlite3.connect(self._path, check_same_thread=False)
        try:
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA busy_timeout = 5000")
            conn.execute("PRAGMA synchronous = NORMAL")
            conn.executescript(self.SCHEMA)
        except sqlite3.Error:
            conn.close()
            raise
        return conn

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Get database connection, reusing existing connection if available."""
        with self._lock:
            if self._conn is None:
                self._conn = self._open()
            try:
                yield self._conn
                self._conn.commit()
            except Exception:
                self._conn.rollback()
                raise

