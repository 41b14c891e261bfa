"""Key/value storage interface shared by the cloud-sync services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable

Mutator = Callable[[Any | None], Any]


class KeyValueStore(ABC):
    """Minimal JSON-value store with get/put semantics.

    Values are anything ``json.dumps`` accepts. ``update`` performs a
    read-modify-write; whether that sequence is atomic depends on the
    backend (see ``atomic_updates``).
    """

    #: True when ``update`` cannot interleave with other writers in-process.
    atomic_updates: bool = False

    async def initialize(self) -> None:
        """Prepare the backing resource. Safe to call more than once."""

    async def close(self) -> None:
        """Release the backing resource."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the stored value, or ``None`` when the key is absent."""

    @abstractmethod
    async def put(self, key: str, value: Any) -> None:
        """Store ``value`` under ``key``, replacing any previous value."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove ``key``. Deleting an absent key is not an error."""

    @abstractmethod
    async def update(self, key: str, mutate: Mutator) -> Any:
        """Apply ``mutate`` to the current value, persist and return the result.

        Exceptions raised by ``mutate`` propagate and nothing is written.
        """


__all__ = ["KeyValueStore", "Mutator"]
