"""Store module - Entry storage backends."""

from stashcache_core.store.backend import (
    EntryStore,
    StorageStats,
)
from stashcache_core.store.memory import MemoryStore
from stashcache_core.store.file import FileStore, sanitize_key
from stashcache_core.store.tiered import TieredStore

__all__ = [
    "EntryStore",
    "StorageStats",
    "MemoryStore",
    "FileStore",
    "TieredStore",
    "sanitize_key",
]
