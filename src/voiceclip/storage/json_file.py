"""File-backed store keeping every key in one JSON document."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict

from .base import KeyValueStore, Mutator

logger = logging.getLogger(__name__)


class JsonFileStore(KeyValueStore):
    """Persist all keys in a single JSON blob guarded by an in-process lock.

    Every operation re-reads the file so edits made by another process are
    picked up, but only callers sharing this instance are serialized.
    """

    atomic_updates = True

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    async def initialize(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def _read(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Failed to read store file %s: %s", self._path, exc)
            return {}
        if not isinstance(raw, dict):
            logger.warning("Ignoring store file %s with unexpected shape", self._path)
            return {}
        return raw

    def _write(self, data: Dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        serialized = json.dumps(data, indent=2, sort_keys=True)
        self._path.write_text(serialized + "\n", encoding="utf-8")

    async def get(self, key: str) -> Any | None:
        async with self._lock:
            return self._read().get(key)

    async def put(self, key: str, value: Any) -> None:
        async with self._lock:
            data = self._read()
            data[key] = value
            self._write(data)

    async def delete(self, key: str) -> None:
        async with self._lock:
            data = self._read()
            if key in data:
                del data[key]
                self._write(data)

    async def update(self, key: str, mutate: Mutator) -> Any:
        async with self._lock:
            data = self._read()
            updated = mutate(data.get(key))
            data[key] = updated
            self._write(data)
            return updated


__all__ = ["JsonFileStore"]
