"""
Local SQLite key/value store for PondPilot.
Holds JSON-serialized caches (devices, ponds, alerts) and the pending-action
queue so the dashboard keeps working while the backend is unreachable.
All operations are best-effort: storage failures are logged, never raised.
"""

import json
import logging
import sqlite3
import time
from pathlib import Path
from typing import Any
from contextlib import contextmanager

logger = logging.getLogger(__name__)

# Storage keys
DEVICE_CACHE_PREFIX = "aqua_devices_"
PENDING_ACTIONS_KEY = "aqua_pending_device_actions"
PONDS_CACHE_KEY = "firebase_ponds_cache"
ALERTS_CACHE_KEY = "aqua_alerts_cache"
LAST_SYNC_KEY = "firebase_last_sync"
SETTINGS_KEY = "aqua_user_settings"


class LocalStore:
    """SQLite-backed key/value storage with JSON values."""

    def __init__(self, db_path: str = "data/pondpilot.db"):
        self.db_path = Path(db_path)
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._init_schema()
        except (OSError, sqlite3.Error) as e:
            logger.warning(f"Local store unavailable at {self.db_path}: {e}")

    @contextmanager
    def _get_connection(self):
        """Context manager for database connections."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self):
        """Initialize database schema."""
        with self._get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("""
                CREATE TABLE IF NOT EXISTS local_storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at INTEGER NOT NULL
                )
            """)

    def get_json(self, key: str, default: Any = None) -> Any:
        """Return the decoded value for key, or default if missing or unreadable."""
        try:
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("SELECT value FROM local_storage WHERE key = ?", (key,))
                row = cursor.fetchone()
            if row is None:
                return default
            return json.loads(row['value'])
        except (sqlite3.Error, ValueError) as e:
            logger.warning(f"Failed to read {key} from local store: {e}")
            return default

    def set_json(self, key: str, value: Any) -> bool:
        """Store value under key. Returns False if the write failed."""
        try:
            payload = json.dumps(value)
            with self._get_connection() as conn:
                cursor = conn.cursor()
                cursor.execute("""
                    INSERT OR REPLACE INTO local_storage (key, value, updated_at)
                    VALUES (?, ?, ?)
                """, (key, payload, int(time.time() * 1000)))
            return True
        except (sqlite3.Error, TypeError, ValueError) as e:
            logger.warning(f"Failed to write {key} to local store: {e}")
            return False

    def delete(self, key: str) -> None:
        try:
            with self._get_connection() as conn:
                conn.execute("DELETE FROM local_storage WHERE key = ?", (key,))
        except sqlite3.Error as e:
            logger.warning(f"Failed to delete {key} from local store: {e}")
