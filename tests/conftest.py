"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before anything imports the settings module so
tests never read a developer's .env file or write to the on-disk store.
"""

import os

# CRITICAL: Set this before any imports that might load settings
os.environ["TESTING"] = "true"

os.environ.setdefault("APP_API_KEY_REQUIRED", "true")
os.environ.setdefault("APP_API_KEYS", "test-api-key-123,test-api-key-456")
os.environ.setdefault("LIMITER_STORE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402

from attempt_guard.adapters.store.in_memory import InMemoryKeyValueStore  # noqa: E402
from attempt_guard.services.attempt_limiter import AttemptLimiter  # noqa: E402


class FakeClock:
    """Deterministic clock returning UNIX seconds."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.current = start

    def time(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds

    def now_ms(self) -> int:
        return int(self.current * 1000)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def limiter(store: InMemoryKeyValueStore, clock: FakeClock) -> AttemptLimiter:
    return AttemptLimiter(store, clock=clock.time)
