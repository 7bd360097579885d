"""
SQLite-backed key-value store.

Durable storage for the persistent pictogram cache. Keys are plain strings;
callers namespace them with a prefix so unrelated data can share the file.
"""
from __future__ import annotations

import os
import sqlite3
from pathlib import Path
from typing import List, Optional, Protocol

BASE_DIR = Path(__file__).resolve().parents[1]
DATA_DIR = BASE_DIR / "data"
KV_STORE_DB_FILENAME = "pictomap_cache.sqlite"


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...

    def keys(self, prefix: str = "") -> List[str]: ...


class SqliteKeyValueStore:
    """String-to-string store in a single SQLite table.

    The connection is opened at construction and kept for the lifetime of the
    object; there is no explicit close.
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = str(db_path) if db_path else str(DATA_DIR / KV_STORE_DB_FILENAME)
        os.makedirs(os.path.dirname(os.path.abspath(self.db_path)), exist_ok=True)
        self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
        self._init_schema()

    def _init_schema(self) -> None:
        self._conn.execute(
            """
            CREATE TABLE IF NOT EXISTS kv_store (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL
            )
            """
        )
        self._conn.commit()

    def get(self, key: str) -> Optional[str]:
        row = self._conn.execute("SELECT value FROM kv_store WHERE key=?", (key,)).fetchone()
        return row[0] if row else None

    def set(self, key: str, value: str) -> None:
        self._conn.execute(
            "INSERT OR REPLACE INTO kv_store (key, value) VALUES (?, ?)",
            (key, value),
        )
        self._conn.commit()

    def delete(self, key: str) -> None:
        self._conn.execute("DELETE FROM kv_store WHERE key=?", (key,))
        self._conn.commit()

    def keys(self, prefix: str = "") -> List[str]:
        # substr comparison instead of LIKE so '%' and '_' in prefixes stay literal
        cur = self._conn.execute(
            "SELECT key FROM kv_store WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix),
        )
        return [row[0] for row in cur.fetchall()]
