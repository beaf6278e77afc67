"""StashCache Memory Store - In-Memory Storage Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from stashcache_core.cache.entry import CacheEntry
from stashcache_core.store.backend import EntryStore

logger = logging.getLogger(__name__)


class MemoryStore(EntryStore):
    """In-memory storage backend.

    Keeps entries in a dict for the lifetime of the process. Entries are
    frozen, so a put is a single reference swap under the lock.

    Example:
        store = MemoryStore()
        store.put("key", entry)
        entry = store.get("key")
    """

    def __init__(self):
        super().__init__()
        self._data: Dict[str, CacheEntry] = {}

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            self._stats.reads += 1
            return self._data.get(key)

    def put(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            self._data[key] = entry
            self._stats.writes += 1

    def delete(self, key: str) -> bool:
        with self._lock:
            if self._data.pop(key, None) is None:
                return False
            self._stats.deletes += 1
            return True

    def clear(self) -> int:
        with self._lock:
            count = len(self._data)
            self._data.clear()
            self._stats.deletes += count
            return count

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._data.keys())

    def size(self) -> int:
        with self._lock:
            return len(self._data)

    def memory_usage(self) -> int:
        """Total stored payload bytes."""
        with self._lock:
            return sum(e.size_bytes for e in self._data.values())

    def __repr__(self) -> str:
        return f"MemoryStore(entries={len(self._data)})"


__all__ = ["MemoryStore"]
