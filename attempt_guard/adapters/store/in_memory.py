"""In-memory key-value store.

Notes:
- Per-process only: values are lost on restart.
- Thread-safe: uses a lock around shared state.
"""

from __future__ import annotations

import threading

from attempt_guard.adapters.store.base import AbstractKeyValueStore


class InMemoryKeyValueStore(AbstractKeyValueStore):
    """Dict-backed store, used in tests and when durability is not needed."""

    def __init__(self, initial: dict[str, bytes] | None = None) -> None:
        self._lock = threading.RLock()
        self._data: dict[str, bytes] = dict(initial or {})

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryKeyValueStore(size={len(self._data)})"

    async def get(self, key: str) -> bytes | None:
        with self._lock:
            return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        with self._lock:
            self._data[key] = bytes(value)

    async def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def keys(self) -> list[str]:
        """Return a snapshot of stored keys."""
        with self._lock:
            return list(self._data)
