"""Cache module - Entry model, expiry, janitor and the engine."""

from stashcache_core.cache.entry import (
    CacheEntry,
    EntryInfo,
)
from stashcache_core.cache.expiry import ExpiryPolicy
from stashcache_core.cache.janitor import (
    ExpiryJanitor,
    JanitorState,
    RecurringTask,
)
from stashcache_core.cache.engine import (
    CacheEngine,
    CacheConfig,
    CompressionConfig,
    SetOptions,
)
from stashcache_core.cache.typed import TypedCache

__all__ = [
    "CacheEntry",
    "EntryInfo",
    "ExpiryPolicy",
    "ExpiryJanitor",
    "JanitorState",
    "RecurringTask",
    "CacheEngine",
    "CacheConfig",
    "CompressionConfig",
    "SetOptions",
    "TypedCache",
]
