"""SQLite-backed key/value store standing in for the kiosk's local storage.

Values are opaque strings (the callers store JSON). One connection per
operation, matching the rest of the persistence layer; the kiosk writes a
handful of small values per tap, so connection reuse buys nothing.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import aiosqlite


class SQLiteKeyValueStore:
    """Durable ``get``/``set`` over a single ``kv_entries`` table.

    Call ``initialize()`` once at startup; it is idempotent.
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = str(db_path)

    async def initialize(self) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("""
                CREATE TABLE IF NOT EXISTS kv_entries (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT NOT NULL
                )
            """)
            await db.commit()

    async def get(self, key: str) -> str | None:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("SELECT value FROM kv_entries WHERE key = ?", (key,))
            row = await cursor.fetchone()
            return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        now = datetime.now(UTC).isoformat()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """INSERT INTO kv_entries (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET value = excluded.value,
                                                  updated_at = excluded.updated_at""",
                (key, value, now),
            )
            await db.commit()

    async def delete(self, key: str) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("DELETE FROM kv_entries WHERE key = ?", (key,))
            await db.commit()


__all__ = ["SQLiteKeyValueStore"]
