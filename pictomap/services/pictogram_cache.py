"""
TTL cache for raw pictogram lookups.

Two backends share one contract: a transient in-process dict and a persistent
backend on top of an injected key-value store.
"""
from __future__ import annotations

import json
import logging
import time
from typing import Any, Callable, Dict, Optional, Protocol

from pictomap.domain.models import CacheEntry
from pictomap.settings import Settings
from pictomap.storage.kv_store import KeyValueStore, SqliteKeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_EXPIRATION_SECONDS = 7 * 24 * 3600
DEFAULT_KEY_PREFIX = "pictomap:pictogram:"


def make_cache_key(symbol_set: str, term: str) -> str:
    """Composite key of symbol set and normalized query term."""
    return f"{symbol_set}:{term.strip().lower()}"


class PictogramCache(Protocol):
    def get(self, key: str) -> Optional[Any]: ...

    def put(self, key: str, payload: Any) -> None: ...

    def purge_expired(self) -> None: ...


class TransientPictogramCache:
    """In-memory backend; lost on restart."""

    def __init__(
        self,
        expiration_seconds: float = DEFAULT_EXPIRATION_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.expiration_seconds = expiration_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_valid(self._clock(), self.expiration_seconds):
            del self._entries[key]
            return None
        return entry.payload

    def put(self, key: str, payload: Any) -> None:
        self._entries[key] = CacheEntry(timestamp=self._clock(), payload=payload)

    def purge_expired(self) -> None:
        now = self._clock()
        for key in [k for k, e in self._entries.items() if not e.is_valid(now, self.expiration_seconds)]:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


class PersistentPictogramCache:
    """
    Backend that survives restarts.

    Each entry is stored as a JSON `{"timestamp", "payload"}` record under
    `key_prefix + key`. Expired entries are purged once at construction and
    evicted on read. Records that fail to decode count as misses.
    """

    def __init__(
        self,
        store: KeyValueStore,
        key_prefix: str = DEFAULT_KEY_PREFIX,
        expiration_seconds: float = DEFAULT_EXPIRATION_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.key_prefix = key_prefix
        self.expiration_seconds = expiration_seconds
        self._clock = clock
        self.purge_expired()

    def _storage_key(self, key: str) -> str:
        return f"{self.key_prefix}{key}"

    def _load(self, storage_key: str) -> Optional[CacheEntry]:
        raw = self.store.get(storage_key)
        if raw is None:
            return None
        try:
            record = json.loads(raw)
            return CacheEntry(timestamp=float(record["timestamp"]), payload=record["payload"])
        except (ValueError, TypeError, KeyError) as exc:
            logger.warning("Dropping corrupt cache record %s: %s", storage_key, exc)
            self.store.delete(storage_key)
            return None

    def get(self, key: str) -> Optional[Any]:
        storage_key = self._storage_key(key)
        entry = self._load(storage_key)
        if entry is None:
            return None
        if not entry.is_valid(self._clock(), self.expiration_seconds):
            logger.debug("Pictogram cache expired %s", key)
            self.store.delete(storage_key)
            return None
        return entry.payload

    def put(self, key: str, payload: Any) -> None:
        record = {"timestamp": self._clock(), "payload": payload}
        self.store.set(self._storage_key(key), json.dumps(record))

    def purge_expired(self) -> None:
        now = self._clock()
        purged = 0
        for storage_key in self.store.keys(self.key_prefix):
            entry = self._load(storage_key)
            if entry is not None and not entry.is_valid(now, self.expiration_seconds):
                self.store.delete(storage_key)
                purged += 1
        if purged:
            logger.debug("Purged %d expired pictogram cache entries", purged)


def build_pictogram_cache(settings: Settings) -> PictogramCache:
    """Pick the cache backend named by PICTOGRAM_CACHE_BACKEND."""
    backend = settings.PICTOGRAM_CACHE_BACKEND
    if backend == "sqlite":
        return PersistentPictogramCache(
            SqliteKeyValueStore(settings.PICTOGRAM_CACHE_PATH),
            key_prefix=settings.PICTOGRAM_CACHE_PREFIX,
            expiration_seconds=settings.PICTOGRAM_CACHE_TTL_SECONDS,
        )
    if backend != "memory":
        raise ValueError(f"Unknown pictogram cache backend: {backend!r}")
    return TransientPictogramCache(expiration_seconds=settings.PICTOGRAM_CACHE_TTL_SECONDS)
