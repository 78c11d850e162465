"""Unit tests for the key-value store adapters."""

from __future__ import annotations

from pathlib import Path

import pytest

from attempt_guard.adapters.store.factory import create_store
from attempt_guard.adapters.store.file import FileKeyValueStore
from attempt_guard.adapters.store.in_memory import InMemoryKeyValueStore
from attempt_guard.core.config import LimiterSettings
from attempt_guard.core.errors import PersistenceAppError, ValidationAppError
from attempt_guard.services.attempt_limiter import AttemptLimiter


class TestInMemoryStore:
    @pytest.mark.asyncio
    async def test_set_get_delete(self) -> None:
        store = InMemoryKeyValueStore()

        assert await store.get("k") is None
        await store.set("k", b"v")
        assert await store.get("k") == b"v"

        await store.delete("k")
        assert await store.get("k") is None

    @pytest.mark.asyncio
    async def test_delete_missing_key_is_noop(self) -> None:
        store = InMemoryKeyValueStore({"a": b"1"})

        await store.delete("missing")

        assert store.keys() == ["a"]


class TestFileStore:
    @pytest.mark.asyncio
    async def test_values_survive_a_new_instance(self, tmp_path: Path) -> None:
        await FileKeyValueStore(tmp_path).set("attempt_limiter_login", b'{"a":1}')

        reopened = FileKeyValueStore(tmp_path)

        assert await reopened.get("attempt_limiter_login") == b'{"a":1}'

    @pytest.mark.asyncio
    async def test_missing_key_returns_none(self, tmp_path: Path) -> None:
        assert await FileKeyValueStore(tmp_path / "absent").get("nope") is None

    @pytest.mark.asyncio
    async def test_delete_is_idempotent(self, tmp_path: Path) -> None:
        store = FileKeyValueStore(tmp_path)
        await store.set("k", b"v")

        await store.delete("k")
        await store.delete("k")

        assert await store.get("k") is None
        assert list(tmp_path.iterdir()) == []

    @pytest.mark.asyncio
    async def test_keys_are_encoded_into_safe_file_names(self, tmp_path: Path) -> None:
        store = FileKeyValueStore(tmp_path)

        await store.set("../escape/attempt", b"v")

        path = store.path_for("../escape/attempt")
        assert path.parent == tmp_path
        assert path.is_file()
        assert [p.name for p in tmp_path.iterdir()] == [path.name]

    @pytest.mark.asyncio
    async def test_no_temporary_files_are_left_behind(self, tmp_path: Path) -> None:
        store = FileKeyValueStore(tmp_path)

        await store.set("k", b"one")
        await store.set("k", b"two")

        assert await store.get("k") == b"two"
        assert [p.name for p in tmp_path.iterdir()] == ["k.json"]

    @pytest.mark.asyncio
    async def test_io_errors_become_persistence_errors(self, tmp_path: Path) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("file in the way")
        store = FileKeyValueStore(blocker)

        with pytest.raises(PersistenceAppError) as exc_info:
            await store.set("k", b"v")

        assert exc_info.value.code == "store_write_failed"

    def test_empty_key_is_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError):
            FileKeyValueStore(tmp_path).path_for("")

    @pytest.mark.asyncio
    async def test_limiter_state_persists_across_restarts(self, tmp_path: Path, clock) -> None:
        first = AttemptLimiter(FileKeyValueStore(tmp_path), clock=clock.time)
        await first.record_failed_attempt("forgotPassword")
        await first.record_failed_attempt("forgotPassword")

        restarted = AttemptLimiter(FileKeyValueStore(tmp_path), clock=clock.time)
        status = await restarted.is_blocked("forgotPassword")

        assert status.blocked is True
        assert status.attempts == 5


class TestStoreFactory:
    def test_memory_backend(self) -> None:
        store = create_store(LimiterSettings(store_backend="memory"))

        assert isinstance(store, InMemoryKeyValueStore)

    def test_file_backend(self, tmp_path: Path) -> None:
        store = create_store(LimiterSettings(store_backend="file", store_path=str(tmp_path)))

        assert isinstance(store, FileKeyValueStore)
        assert store.base_dir == tmp_path

    def test_file_backend_requires_path(self) -> None:
        with pytest.raises(ValidationAppError) as exc_info:
            create_store(LimiterSettings(store_backend="file", store_path=""))

        assert exc_info.value.code == "store_missing_path"
