"""Factory for creating key-value store instances."""

from attempt_guard.adapters.store.base import AbstractKeyValueStore
from attempt_guard.adapters.store.file import FileKeyValueStore
from attempt_guard.adapters.store.in_memory import InMemoryKeyValueStore
from attempt_guard.core.config import LimiterSettings, settings
from attempt_guard.core.errors import ValidationAppError


def create_store(limiter_settings: LimiterSettings | None = None) -> AbstractKeyValueStore:
    """Instantiate the store selected by LIMITER_STORE_BACKEND.

    Args:
        limiter_settings: Optional settings; defaults to the global settings.

    Returns:
        AbstractKeyValueStore: Configured store instance.

    Raises:
        ValidationAppError: If the backend is unknown or misconfigured.
    """
    cfg = limiter_settings or settings.limiter
    backend = cfg.store_backend.lower()

    if backend == "memory":
        return InMemoryKeyValueStore()

    if backend == "file":
        if not cfg.store_path:
            raise ValidationAppError(
                code="store_missing_path",
                message="File store requires LIMITER_STORE_PATH",
            )
        return FileKeyValueStore(cfg.store_path)

    raise ValidationAppError(
        code="store_unknown_backend",
        message=f"Unknown store backend: '{backend}'. Supported backends: memory, file",
    )
