"""SQLite-backed key/value state and check history for ipsentry."""

from __future__ import annotations

from datetime import datetime, timezone
import json
import logging
from pathlib import Path
import sqlite3
from typing import Any

DB_PATH = Path.home() / ".ipsentry" / "ipsentry.db"

LAST_SNAPSHOT_KEY = "last_network_snapshot"
LAST_POLICY_KEY = "last_proxy_policy"
RISK_CACHE_KEY = "risk_score_cache"
SETTINGS_KEY = "settings"

logger = logging.getLogger(__name__)


class PreferenceStore:
    """Persistent key/value store; absent keys read as ``None``."""

    def __init__(self, db_path: str | Path | None = None) -> None:
        self.db_path = Path(db_path) if db_path else DB_PATH

    def _connect(self) -> sqlite3.Connection:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS preferences (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS check_history (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                trigger TEXT NOT NULL,
                summary TEXT NOT NULL,
                created_at TEXT NOT NULL
            )
            """
        )
        return conn

    def read(self, key: str) -> str | None:
        """Return the raw stored text for ``key``."""
        conn = self._connect()
        try:
            row = conn.execute("SELECT value FROM preferences WHERE key = ?", (key,)).fetchone()
        finally:
            conn.close()
        return str(row[0]) if row else None

    def write(self, key: str, value: str) -> None:
        stamp = datetime.now(timezone.utc).isoformat()
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    """
                    INSERT INTO preferences(key, value, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET value=excluded.value, updated_at=excluded.updated_at
                    """,
                    (key, value, stamp),
                )
        finally:
            conn.close()

    def delete(self, key: str) -> None:
        conn = self._connect()
        try:
            with conn:
                conn.execute("DELETE FROM preferences WHERE key = ?", (key,))
        finally:
            conn.close()

    def get_preference(self, key: str, default: Any = None) -> Any:
        """Return the JSON-decoded value for ``key``; malformed JSON reads as ``default``."""
        raw = self.read(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring malformed stored value for %s", key)
            return default

    def set_preference(self, key: str, value: Any) -> None:
        self.write(key, json.dumps(value, ensure_ascii=False))

    def record_check_history(self, trigger: str, summary: dict[str, Any]) -> None:
        stamp = datetime.now(timezone.utc).isoformat()
        conn = self._connect()
        try:
            with conn:
                conn.execute(
                    "INSERT INTO check_history(trigger, summary, created_at) VALUES (?, ?, ?)",
                    (trigger, json.dumps(summary, ensure_ascii=False), stamp),
                )
        finally:
            conn.close()

    def list_check_history(self, limit: int = 25) -> list[dict[str, Any]]:
        conn = self._connect()
        try:
            rows = conn.execute(
                "SELECT trigger, summary, created_at FROM check_history ORDER BY id DESC LIMIT ?",
                (max(1, int(limit)),),
            ).fetchall()
        finally:
            conn.close()
        history: list[dict[str, Any]] = []
        for trigger, summary, created_at in rows:
            try:
                decoded = json.loads(str(summary))
            except json.JSONDecodeError:
                decoded = {"raw": str(summary)}
            history.append({"trigger": trigger, "summary": decoded, "created_at": created_at})
        return history
