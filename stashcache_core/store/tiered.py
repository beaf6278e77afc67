"""StashCache Tiered Store - Memory Front over a Durable Back.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from typing import Iterator, List, Optional, Tuple

from stashcache_core.cache.entry import CacheEntry
from stashcache_core.store.backend import EntryStore
from stashcache_core.store.memory import MemoryStore

logger = logging.getLogger(__name__)


class TieredStore(EntryStore):
    """Two-tier storage: a fast front tier caching a durable back tier.

    The back tier is the source of truth for keys() and size(). Writes
    go to the back tier first, then the front; reads check the front
    and promote back-tier hits into it. All tier updates happen under
    this store's lock so the tiers never disagree for a reader.

    Example:
        tiered = TieredStore(FileStore("/var/cache/myapp"))
        tiered.put("key", entry)   # written to disk, then memory
        entry = tiered.get("key")  # served from memory
    """

    def __init__(self, back: EntryStore, front: Optional[EntryStore] = None):
        """Initialize tiered store.

        Args:
            back: Durable tier
            front: Fast tier, a MemoryStore by default
        """
        super().__init__()
        self.back = back
        self.front = front or MemoryStore()

    @property
    def path(self) -> Optional[str]:
        return self.back.path

    def get(self, key: str) -> Optional[CacheEntry]:
        with self._lock:
            self._stats.reads += 1
            entry = self.front.get(key)
            if entry is not None:
                return entry

            entry = self.back.get(key)
            if entry is not None:
                self.front.put(key, entry)
            return entry

    def put(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            try:
                self.back.put(key, entry)
            except Exception:
                # keep front from serving a value the back never stored
                self.front.delete(key)
                raise
            self.front.put(key, entry)
            self._stats.writes += 1

    def delete(self, key: str) -> bool:
        with self._lock:
            in_front = self.front.delete(key)
            in_back = self.back.delete(key)
            if in_front or in_back:
                self._stats.deletes += 1
            return in_back or in_front

    def clear(self) -> int:
        with self._lock:
            self.front.clear()
            return self.back.clear()

    def keys(self) -> List[str]:
        return self.back.keys()

    def size(self) -> int:
        return self.back.size()

    def scan(self) -> Iterator[Tuple[str, CacheEntry]]:
        """Iterate over the back tier without promoting into the front."""
        return self.back.scan()

    def evict_if_expired(self, key: str, now: float) -> bool:
        with self._lock:
            # consult the back tier so an expired entry that was never
            # promoted is still removed
            entry = self.back.get(key)
            if entry is None or not entry.is_expired(now):
                return False
            return self.delete(key)

    def __repr__(self) -> str:
        return f"TieredStore(front={self.front!r}, back={self.back!r})"


__all__ = ["TieredStore"]
