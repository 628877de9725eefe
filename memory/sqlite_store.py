"""SQLite-based key/value backend for single-host deployments."""

import sqlite3
import json
import logging
from pathlib import Path
from datetime import datetime, timezone
from typing import Any, Optional

from .backend import KeyValueBackend
from .errors import PersistenceFailure

logger = logging.getLogger(__name__)


class SQLiteKeyValueBackend(KeyValueBackend):
    """SQLite-based persistent key/value store."""

    def __init__(self, db_path: str = "data/memory.db", timeout: float = 5.0):
        """
        Initialize SQLite backend.

        Args:
            db_path: Path to SQLite database file
            timeout: Seconds to wait on a locked database before failing
        """
        self.db_path = Path(db_path)
        self.timeout = timeout
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Get database connection with row factory."""
        conn = sqlite3.connect(self.db_path, timeout=self.timeout)
        conn.row_factory = sqlite3.Row
        return conn

    def _init_db(self):
        """Initialize database schema."""
        conn = self._get_connection()
        try:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS kv_store (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
            """)
            conn.commit()
        finally:
            conn.close()
        logger.info(f"Database initialized at {self.db_path}")

    def get(self, key: str) -> Optional[Any]:
        try:
            conn = self._get_connection()
            try:
                row = conn.execute(
                    "SELECT value FROM kv_store WHERE key = ?",
                    (key,)
                ).fetchone()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"SQLite read failed for {key}: {e}") from e

        if not row:
            return None

        try:
            return json.loads(row["value"])
        except json.JSONDecodeError as e:
            raise PersistenceFailure(f"Corrupt value stored under {key}") from e

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        now = datetime.now(timezone.utc).isoformat()

        try:
            conn = self._get_connection()
            try:
                conn.execute(
                    """
                    INSERT OR REPLACE INTO kv_store (key, value, updated_at)
                    VALUES (?, ?, ?)
                    """,
                    (key, payload, now)
                )
                conn.commit()
            finally:
                conn.close()
        except sqlite3.Error as e:
            raise PersistenceFailure(f"SQLite write failed for {key}: {e}") from e

    def describe(self) -> str:
        return f"sqlite:{self.db_path}"
