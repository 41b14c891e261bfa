"""Storage backends for cloud-sync state."""

from __future__ import annotations

from pathlib import Path

from ..config import Settings
from .base import KeyValueStore, Mutator
from .json_file import JsonFileStore
from .sqlite_kv import SqliteKeyValueStore


def create_store(settings: Settings, base_dir: Path) -> KeyValueStore:
    """Build the configured backend, resolving relative paths under ``base_dir``."""

    if settings.storage_backend == "kv":
        path = settings.kv_database_path
        return SqliteKeyValueStore(path if path.is_absolute() else base_dir / path)

    path = settings.storage_path
    return JsonFileStore(path if path.is_absolute() else base_dir / path)


__all__ = [
    "JsonFileStore",
    "KeyValueStore",
    "Mutator",
    "SqliteKeyValueStore",
    "create_store",
]
