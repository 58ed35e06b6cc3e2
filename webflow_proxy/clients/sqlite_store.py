"""SQLite-backed key-value store holding the persisted credential record."""

from __future__ import annotations

import json
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

from webflow_proxy.core.errors import StorageUnavailableError


class SQLiteStore:
    """Simple key-value store; each value is a JSON document under one key."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_records (
                    key TEXT PRIMARY KEY,
                    data TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
                """
            )

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        try:
            with self._connect() as conn:
                row = conn.execute(
                    "SELECT data FROM kv_records WHERE key = ?",
                    (key,),
                ).fetchone()
        except sqlite3.Error as exc:
            raise StorageUnavailableError(f"Failed to read {key!r}: {exc}") from exc
        if not row:
            return None
        try:
            return json.loads(row["data"])
        except json.JSONDecodeError as exc:
            raise StorageUnavailableError(f"Corrupt value stored under {key!r}") from exc

    def set(self, key: str, value: Dict[str, Any]) -> None:
        data_json = json.dumps(value)
        updated_at = datetime.now(timezone.utc).isoformat()
        try:
            with self._connect() as conn:
                conn.execute(
                    """
                    INSERT INTO kv_records (key, data, updated_at)
                    VALUES (?, ?, ?)
                    ON CONFLICT(key) DO UPDATE SET
                        data = excluded.data,
                        updated_at = excluded.updated_at
                    """,
                    (key, data_json, updated_at),
                )
        except sqlite3.Error as exc:
            raise StorageUnavailableError(f"Failed to write {key!r}: {exc}") from exc


__all__ = ["SQLiteStore"]
