# src/storage/kv_store.py - v1
"""Key-value stores for small JSON documents (publishing watermark, ...).

Two backends: one JSON file per key (default KV_BACKEND=json) or a single
SQLite table (KV_BACKEND=sqlite, stdlib sqlite3).
"""

from __future__ import annotations

import json
import logging
import sqlite3
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


class BaseKeyValueStore(ABC):
    """Unified interface for key-value backends."""

    @abstractmethod
    async def get(self, key: str) -> dict[str, Any] | None:
        """Return the stored document, or None when absent or unreadable."""

    @abstractmethod
    async def set(self, key: str, value: dict[str, Any]) -> None:
        """Store a document (upsert)."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a document; missing keys are ignored."""

    def close(self) -> None:
        """Release backend resources."""


class JsonKeyValueStore(BaseKeyValueStore):
    """One JSON file per key under `root`; "/" in keys maps to "_"."""

    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).expanduser()
        self._root.mkdir(parents=True, exist_ok=True)

    async def get(self, key: str) -> dict[str, Any] | None:
        path = self._entry_path(key)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to read key %s: %s", key, e)
            return None

    async def set(self, key: str, value: dict[str, Any]) -> None:
        path = self._entry_path(key)
        tmp = path.with_suffix(".json.tmp")
        tmp.write_text(json.dumps(value, indent=2), encoding="utf-8")
        tmp.replace(path)

    async def delete(self, key: str) -> None:
        path = self._entry_path(key)
        if path.exists():
            path.unlink()

    def _entry_path(self, key: str) -> Path:
        safe_key = key.replace("/", "_").replace("\\", "_")
        return self._root / f"{safe_key}.json"


_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_entries (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


class SqliteKeyValueStore(BaseKeyValueStore):
    """SQLite-backed store; one row per key."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, key: str) -> dict[str, Any] | None:
        cursor = self._conn.execute(
            "SELECT data FROM kv_entries WHERE key = ?", (key,)
        )
        row = cursor.fetchone()
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            logger.warning("Failed to deserialize key %s: %s", key, e)
            return None

    async def set(self, key: str, value: dict[str, Any]) -> None:
        self._conn.execute(
            """INSERT OR REPLACE INTO kv_entries (key, data, updated_at)
               VALUES (?, ?, CURRENT_TIMESTAMP)""",
            (key, json.dumps(value)),
        )
        self._conn.commit()

    async def delete(self, key: str) -> None:
        self._conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))
        self._conn.commit()

    def close(self) -> None:
        self._conn.close()
