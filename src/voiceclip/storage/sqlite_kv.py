"""SQLite-backed key/value store mirroring an edge KV namespace."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import aiosqlite

from .base import KeyValueStore, Mutator

logger = logging.getLogger(__name__)


class SqliteKeyValueStore(KeyValueStore):
    """Independent ``get``/``put`` calls over a single ``kv`` table.

    ``update`` is a plain read followed by a write with no lock in between,
    so concurrent updates of the same key can lose writes.
    """

    atomic_updates = False

    def __init__(self, database_path: Path) -> None:
        self._path = database_path
        self._connection: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        """Open the SQLite connection and ensure the table exists."""

        if self._connection is not None:
            return

        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._connection = await aiosqlite.connect(self._path)
        await self._connection.execute("PRAGMA journal_mode=WAL;")
        await self._connection.execute(
            """
            CREATE TABLE IF NOT EXISTS kv (
                key TEXT PRIMARY KEY,
                value TEXT NOT NULL,
                updated_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
            )
            """
        )
        await self._connection.commit()

    async def close(self) -> None:
        if self._connection is not None:
            await self._connection.close()
            self._connection = None

    def _conn(self) -> aiosqlite.Connection:
        if self._connection is None:
            raise RuntimeError("SqliteKeyValueStore.initialize() has not been called")
        return self._connection

    async def get(self, key: str) -> Any | None:
        async with self._conn().execute(
            "SELECT value FROM kv WHERE key = ?", (key,)
        ) as cursor:
            row = await cursor.fetchone()
        if row is None:
            return None
        try:
            return json.loads(row[0])
        except json.JSONDecodeError:
            logger.warning("Discarding undecodable value for key %s", key)
            return None

    async def put(self, key: str, value: Any) -> None:
        conn = self._conn()
        await conn.execute(
            """
            INSERT INTO kv (key, value, updated_at)
            VALUES (?, ?, CURRENT_TIMESTAMP)
            ON CONFLICT(key) DO UPDATE SET
                value = excluded.value,
                updated_at = excluded.updated_at
            """,
            (key, json.dumps(value)),
        )
        await conn.commit()

    async def delete(self, key: str) -> None:
        conn = self._conn()
        await conn.execute("DELETE FROM kv WHERE key = ?", (key,))
        await conn.commit()

    async def update(self, key: str, mutate: Mutator) -> Any:
        current = await self.get(key)
        updated = mutate(current)
        await self.put(key, updated)
        return updated


__all__ = ["SqliteKeyValueStore"]
