"""StashCache Entry Store - Abstract Storage Interface.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterator, List, Optional, Tuple

from stashcache_core.cache.entry import CacheEntry
from stashcache_core.errors import StorageError

logger = logging.getLogger(__name__)


@dataclass
class StorageStats:
    """Storage backend statistics.

    Attributes:
        reads: Number of read operations
        writes: Number of write operations
        deletes: Number of delete operations
        errors: Number of errors
    """

    reads: int = 0
    writes: int = 0
    deletes: int = 0
    errors: int = 0
    last_error: Optional[str] = None
    last_error_at: Optional[datetime] = None

    def record_error(self, error: str) -> None:
        """Record an error."""
        self.errors += 1
        self.last_error = error
        self.last_error_at = datetime.now()


class EntryStore(ABC):
    """Abstract mapping from key to CacheEntry.

    Implementations:
    - MemoryStore: process-lifetime dictionary
    - FileStore: one persisted file per key, survives restarts
    - TieredStore: memory front over a durable back

    Every implementation is thread-safe on its own. Compound operations
    that must not race with a concurrent put (check-then-delete) are
    provided here and run under the store lock, which subclasses share.
    """

    def __init__(self):
        self._stats = StorageStats()
        self._lock = threading.RLock()

    @abstractmethod
    def get(self, key: str) -> Optional[CacheEntry]:
        """Get entry by key.

        Returns:
            CacheEntry or None

        Raises:
            StorageError: On I/O failure; corrupt=True for unreadable units
        """
        pass

    @abstractmethod
    def put(self, key: str, entry: CacheEntry) -> None:
        """Store entry, replacing any previous one.

        Readers never observe a partially written entry.

        Raises:
            StorageError: On I/O failure
        """
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete entry.

        Returns:
            True if an entry was removed
        """
        pass

    @abstractmethod
    def clear(self) -> int:
        """Remove all entries.

        Returns:
            Number cleared
        """
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        """Snapshot of stored keys, expired ones included."""
        pass

    @abstractmethod
    def size(self) -> int:
        """Number of stored entries, expired ones included."""
        pass

    def scan(self) -> Iterator[Tuple[str, CacheEntry]]:
        """Iterate over a key snapshot, re-reading each entry.

        Keys deleted mid-scan are skipped; unreadable units are skipped.

        Yields:
            (key, entry) tuples
        """
        for key in self.keys():
            try:
                entry = self.get(key)
            except StorageError as e:
                logger.debug(f"Skipping unreadable entry {key!r}: {e}")
                continue
            if entry is not None:
                yield key, entry

    def evict_if_expired(self, key: str, now: float) -> bool:
        """Delete key only if the entry stored right now has expired.

        Args:
            key: Cache key
            now: Current time in epoch seconds

        Returns:
            True if an expired entry was removed
        """
        with self._lock:
            entry = self.get(key)
            if entry is None or not entry.is_expired(now):
                return False
            return self.delete(key)

    def scan_and_evict(
        self,
        now: float,
        should_stop: Optional[Callable[[], bool]] = None,
    ) -> int:
        """Remove every expired entry, one key at a time.

        The lock is held per key only, so foreground calls interleave
        with the sweep.

        Args:
            now: Current time in epoch seconds
            should_stop: Checked between keys; True aborts the sweep

        Returns:
            Number of entries removed
        """
        removed = 0
        for key in self.keys():
            if should_stop is not None and should_stop():
                logger.debug("Sweep interrupted by stop signal")
                break
            try:
                if self.evict_if_expired(key, now):
                    removed += 1
            except StorageError as e:
                self._stats.record_error(str(e))
                logger.debug(f"Sweep skipped {key!r}: {e}")
        return removed

    def get_stats(self) -> StorageStats:
        """Get storage statistics."""
        return self._stats

    def reset_stats(self) -> None:
        """Reset statistics."""
        self._stats = StorageStats()

    @property
    def path(self) -> Optional[str]:
        """Root directory of durable stores, None for in-memory ones."""
        return None

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def __len__(self) -> int:
        return self.size()

    def __iter__(self) -> Iterator[str]:
        return iter(self.keys())


__all__ = ["EntryStore", "StorageStats"]
