"""Key-value store adapters.

The attempt limiter persists one small JSON document per action type. This
package provides the storage abstraction so the limiter can run against an
in-memory dict in tests and a local directory of JSON files in production.
"""

from attempt_guard.adapters.store.base import AbstractKeyValueStore
from attempt_guard.adapters.store.factory import create_store
from attempt_guard.adapters.store.file import FileKeyValueStore
from attempt_guard.adapters.store.in_memory import InMemoryKeyValueStore

__all__ = [
    "AbstractKeyValueStore",
    "FileKeyValueStore",
    "InMemoryKeyValueStore",
    "create_store",
]
