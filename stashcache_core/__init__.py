"""StashCache - Embeddable Key-Value Cache Engine.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

A single-process cache for opaque byte values with:
- In-memory, durable (one file per key) and tiered storage
- Per-entry TTL with lazy eviction and a background janitor
- Self-describing Zlib / LZMA2 compression with fallback
- Entry statistics and operation counters

Architecture:
    ┌───────────────────────────────────────────────────────────┐
    │                      StashCache Engine                    │
    ├───────────────────────────────────────────────────────────┤
    │  ┌─────────────┐  ┌─────────────┐  ┌─────────────┐        │
    │  │ CacheEngine │  │   Expiry    │  │   Janitor   │ CACHE  │
    │  │ get/set/... │  │   policy    │  │  (thread)   │ LAYER  │
    │  └──────┬──────┘  └──────┬──────┘  └──────┬──────┘        │
    │         │                │                │               │
    │  ┌──────┴─────┐   ┌──────┴──────────────────────┐         │
    │  │   Codec    │   │        Entry Stores         │ STORAGE │
    │  │ zlib/lzma2 │   │  Memory │ File │ Tiered     │ LAYER   │
    │  └────────────┘   └─────────────────────────────┘         │
    └───────────────────────────────────────────────────────────┘

Example Usage:
    from stashcache_core import CacheEngine, CacheConfig

    # In-memory cache
    cache = CacheEngine()
    cache.set("session:1", b"token", ttl=300)
    token = cache.get("session:1")

    # Durable cache with compression and a cleanup thread
    config = CacheConfig(storage="file", cache_dir="/var/cache/app")
    with CacheEngine(config) as cache:
        cache.configure(enabled=True, method="lzma2", threshold=512)
        cache.set("report", big_blob)
        cache.stats()   # CacheStats(total=1, active=1)

    # Typed values
    users = TypedCache(cache)
    users.set("user:1", {"name": "Ada"})
"""

__version__ = "1.0.0"
__author__ = "BlackRoad OS"

from stashcache_core.errors import (
    CacheError,
    InvalidArgumentError,
    CodecError,
    StorageError,
)
from stashcache_core.cache.entry import CacheEntry, EntryInfo
from stashcache_core.cache.expiry import ExpiryPolicy
from stashcache_core.cache.janitor import ExpiryJanitor, JanitorState, RecurringTask
from stashcache_core.cache.engine import (
    CacheEngine,
    CacheConfig,
    CompressionConfig,
    SetOptions,
)
from stashcache_core.cache.typed import TypedCache
from stashcache_core.protocol.codec import CompressionCodec, CompressionMethod
from stashcache_core.protocol.serializer import (
    Serializer,
    JSONSerializer,
    MsgPackSerializer,
)
from stashcache_core.store.backend import EntryStore, StorageStats
from stashcache_core.store.memory import MemoryStore
from stashcache_core.store.file import FileStore
from stashcache_core.store.tiered import TieredStore
from stashcache_core.metrics.collector import (
    CacheStats,
    CacheMetrics,
    MetricsCollector,
    StatsCollector,
)

__all__ = [
    # Errors
    "CacheError",
    "InvalidArgumentError",
    "CodecError",
    "StorageError",
    # Cache
    "CacheEngine",
    "CacheConfig",
    "CompressionConfig",
    "SetOptions",
    "CacheEntry",
    "EntryInfo",
    "ExpiryPolicy",
    "ExpiryJanitor",
    "JanitorState",
    "RecurringTask",
    "TypedCache",
    # Protocol
    "CompressionCodec",
    "CompressionMethod",
    "Serializer",
    "JSONSerializer",
    "MsgPackSerializer",
    # Storage
    "EntryStore",
    "StorageStats",
    "MemoryStore",
    "FileStore",
    "TieredStore",
    # Metrics
    "CacheStats",
    "CacheMetrics",
    "MetricsCollector",
    "StatsCollector",
]
