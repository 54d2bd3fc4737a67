"""Persistence: the SQLite key/value store backing the kiosk's local state."""

from feedback_kiosk.persistence.kv_store import SQLiteKeyValueStore

__all__ = ["SQLiteKeyValueStore"]
