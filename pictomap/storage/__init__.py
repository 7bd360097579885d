from .kv_store import KeyValueStore, SqliteKeyValueStore

__all__ = ["KeyValueStore", "SqliteKeyValueStore"]
