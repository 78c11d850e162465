"""Key-value store interface.

The limiter depends on this abstraction (not the concrete implementation) so
storage backends can be swapped without touching the limiter logic.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class AbstractKeyValueStore(ABC):
    """Interface for durable async key-value stores.

    Implementations raise PersistenceAppError when the underlying storage
    cannot be read or written.
    """

    @abstractmethod
    async def get(self, key: str) -> bytes | None:
        """Return the raw value stored under key, or None when absent."""
        raise NotImplementedError

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        """Store value under key, replacing any previous value."""
        raise NotImplementedError

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove key. Deleting a missing key is not an error."""
        raise NotImplementedError
