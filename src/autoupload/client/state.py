"""Local key/value state for the auto-upload client.

This module provides:
- SettingsStore: SQLite-backed key/value store holding SyncSettings,
  the consent flag and the last sync timestamp

Architecture:
    The engine never re-reads settings mid-pass. Callers load a SyncSettings
    value once at the start of a pass and thread it through; the store only
    guarantees that single reads and writes are atomic.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
from datetime import UTC, datetime
from pathlib import Path

from autoupload.core.config import SyncSettings
from autoupload.core.types import ConsentStatus

logger = logging.getLogger(__name__)

KEY_USER_ID = "user_id"
KEY_AUTO_UPLOAD = "auto_upload_enabled"
KEY_WIFI_ONLY = "wifi_only"
KEY_BACKGROUND = "background_upload_enabled"
KEY_CONSENT = "consent_state"
KEY_LAST_SYNC = "last_sync_at"

_TRUE = "1"
_FALSE = "0"


class SettingsStore:
    """SQLite-based key/value store for client settings."""

    def __init__(self, db_path: Path) -> None:
        """Open (and create if needed) the settings database.

        Args:
            db_path: Path to SQLite database file.
        """
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)

        self._lock = threading.RLock()

        self._conn = sqlite3.connect(
            str(self._db_path),
            check_same_thread=False,
            isolation_level=None,  # Autocommit mode
        )
        self._conn.row_factory = sqlite3.Row
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("""
            CREATE TABLE IF NOT EXISTS settings (
                key TEXT PRIMARY KEY,
                value TEXT
            )
        """)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> SettingsStore:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    # === Raw key/value access ===

    def get(self, key: str, default: str | None = None) -> str | None:
        with self._lock:
            row = self._conn.execute(
                "SELECT value FROM settings WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return default
        return row["value"]

    def set(self, key: str, value: str | None) -> None:
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                (key, value),
            )

    def delete(self, key: str) -> None:
        with self._lock:
            self._conn.execute("DELETE FROM settings WHERE key = ?", (key,))

    def _get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key)
        if value is None:
            return default
        return value == _TRUE

    # === Sync settings ===

    def load_settings(self, user_id: str | None = None) -> SyncSettings | None:
        """Load stored sync settings.

        Args:
            user_id: Overrides the stored user id when given.

        Returns:
            SyncSettings, or None if no user id is known.
        """
        stored_user = self.get(KEY_USER_ID)
        resolved_user = user_id or stored_user
        if not resolved_user:
            return None
        return SyncSettings(
            user_id=resolved_user,
            auto_upload_enabled=self._get_bool(KEY_AUTO_UPLOAD),
            wifi_only=self._get_bool(KEY_WIFI_ONLY),
            background_upload_enabled=self._get_bool(KEY_BACKGROUND),
        )

    def save_settings(self, settings: SyncSettings) -> None:
        """Persist sync settings (one transaction)."""
        with self._lock:
            self._conn.execute("BEGIN")
            try:
                self._conn.executemany(
                    "INSERT OR REPLACE INTO settings (key, value) VALUES (?, ?)",
                    [
                        (KEY_USER_ID, settings.user_id),
                        (KEY_AUTO_UPLOAD, _TRUE if settings.auto_upload_enabled else _FALSE),
                        (KEY_WIFI_ONLY, _TRUE if settings.wifi_only else _FALSE),
                        (KEY_BACKGROUND, _TRUE if settings.background_upload_enabled else _FALSE),
                    ],
                )
            except sqlite3.Error:
                self._conn.execute("ROLLBACK")
                raise
            self._conn.execute("COMMIT")
        logger.debug(f"Saved settings for user {settings.user_id}")

    # === Consent ===

    def get_consent(self) -> ConsentStatus | None:
        """Return the stored consent state, or None if never recorded."""
        value = self.get(KEY_CONSENT)
        if value is None:
            return None
        try:
            return ConsentStatus(value)
        except ValueError:
            logger.warning(f"Unknown consent state in store: {value!r}")
            return None

    def set_consent(self, status: ConsentStatus) -> None:
        self.set(KEY_CONSENT, status.value)

    # === Last sync ===

    def get_last_sync(self) -> datetime | None:
        value = self.get(KEY_LAST_SYNC)
        if not value:
            return None
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None

    def set_last_sync(self, when: datetime | None = None) -> None:
        self.set(KEY_LAST_SYNC, (when or datetime.now(UTC)).isoformat())
