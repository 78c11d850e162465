"""Local-disk key-value store.

Each key is stored as its own file under a base directory. Writes go to a
temporary sibling file followed by os.replace, so a crash never leaves a
half-written value behind. Blocking file I/O runs in a worker thread to keep
the event loop free.

Notes:
- Single host only: no locking across processes.
- Keys are percent-encoded into file names, so any string is a valid key.
"""

from __future__ import annotations

import asyncio
import logging
import os
import threading
import time
from pathlib import Path
from urllib.parse import quote

from attempt_guard.adapters.store.base import AbstractKeyValueStore
from attempt_guard.core.errors import PersistenceAppError

logger = logging.getLogger(__name__)

_SUFFIX = ".json"


class FileKeyValueStore(AbstractKeyValueStore):
    """Store values as files in a directory, one file per key."""

    def __init__(self, base_dir: str | Path) -> None:
        self._base_dir = Path(base_dir)

    @property
    def base_dir(self) -> Path:
        return self._base_dir

    def path_for(self, key: str) -> Path:
        """Return the file path backing key."""
        if not key:
            raise ValueError("key must be a non-empty string")
        return self._base_dir / f"{quote(key, safe='')}{_SUFFIX}"

    async def get(self, key: str) -> bytes | None:
        path = self.path_for(key)
        try:
            return await asyncio.to_thread(_read_optional, path)
        except OSError as exc:
            raise _persistence_error("store_read_failed", key, exc) from exc

    async def set(self, key: str, value: bytes) -> None:
        path = self.path_for(key)
        try:
            await asyncio.to_thread(_atomic_write_bytes, path, value)
        except OSError as exc:
            raise _persistence_error("store_write_failed", key, exc) from exc
        logger.debug(
            "store.set",
            extra={"store_key": key, "size": len(value)},
        )

    async def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            await asyncio.to_thread(path.unlink, missing_ok=True)
        except OSError as exc:
            raise _persistence_error("store_delete_failed", key, exc) from exc


def _read_optional(path: Path) -> bytes | None:
    try:
        return path.read_bytes()
    except FileNotFoundError:
        return None


def _atomic_write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    stamp = f"{int(time.time() * 1000)}-{os.getpid()}-{threading.get_ident()}"
    tmp = Path(f"{path}.tmp.{stamp}")
    try:
        with open(tmp, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    finally:
        if tmp.exists():
            tmp.unlink()


def _persistence_error(code: str, key: str, exc: OSError) -> PersistenceAppError:
    return PersistenceAppError(
        code=code,
        message=f"File store operation failed: {exc.strerror or exc}",
        details={"store_key": key, "context": {"errno": exc.errno}},
    )
