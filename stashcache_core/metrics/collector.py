"""StashCache Metrics - Entry Statistics and Operation Counters.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from stashcache_core.cache.expiry import ExpiryPolicy
    from stashcache_core.store.backend import EntryStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheStats:
    """Entry counts at one point in time.

    Attributes:
        total: All stored entries, expired-but-unpurged included
        active: Entries with no expiry or not yet past it
    """

    total: int = 0
    active: int = 0

    @property
    def expired(self) -> int:
        return self.total - self.active

    def to_dict(self) -> Dict[str, int]:
        return {"total": self.total, "active": self.active}


class StatsCollector:
    """Walks a store and counts total and live entries.

    Read-only: expired entries are counted, never evicted.
    """

    def __init__(self, store: "EntryStore", policy: Optional["ExpiryPolicy"] = None):
        if policy is None:
            from stashcache_core.cache.expiry import ExpiryPolicy
            policy = ExpiryPolicy()
        self.store = store
        self.policy = policy

    def collect(self, now: Optional[float] = None) -> CacheStats:
        now = self.policy.now() if now is None else now
        total = 0
        active = 0
        for _, entry in self.store.scan():
            total += 1
            if self.policy.is_live(entry, now):
                active += 1
        return CacheStats(total=total, active=active)


@dataclass
class CacheMetrics:
    """Operation counters snapshot.

    Attributes:
        hits: Lookups that returned a value
        misses: Lookups that found nothing live
        sets: Successful writes
        deletes: Explicit removals
        expirations: Entries dropped for TTL, lazily or by the janitor
        corrupt_entries: Unreadable units or payloads removed
        compression_fallbacks: Writes stored with a weaker method than asked
    """

    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    expirations: int = 0
    corrupt_entries: int = 0
    compression_fallbacks: int = 0

    @property
    def hit_rate(self) -> float:
        """Calculate hit rate."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["hit_rate"] = self.hit_rate
        return data


class MetricsCollector:
    """Thread-safe operation counters.

    Example:
        collector = MetricsCollector()
        collector.record_hit()
        print(f"Hit rate: {collector.get_metrics().hit_rate:.2%}")
    """

    def __init__(self):
        self._metrics = CacheMetrics()
        self._lock = threading.Lock()

    def record_hit(self) -> None:
        with self._lock:
            self._metrics.hits += 1

    def record_miss(self) -> None:
        with self._lock:
            self._metrics.misses += 1

    def record_set(self) -> None:
        with self._lock:
            self._metrics.sets += 1

    def record_delete(self) -> None:
        with self._lock:
            self._metrics.deletes += 1

    def record_expiration(self, count: int = 1) -> None:
        with self._lock:
            self._metrics.expirations += count

    def record_corrupt(self) -> None:
        with self._lock:
            self._metrics.corrupt_entries += 1

    def record_fallback(self) -> None:
        with self._lock:
            self._metrics.compression_fallbacks += 1

    def get_metrics(self) -> CacheMetrics:
        """Get a copy of the current counters."""
        with self._lock:
            return CacheMetrics(**asdict(self._metrics))

    def reset(self) -> None:
        with self._lock:
            self._metrics = CacheMetrics()

    def __repr__(self) -> str:
        metrics = self.get_metrics()
        return f"MetricsCollector(hits={metrics.hits}, hit_rate={metrics.hit_rate:.2%})"


__all__ = ["CacheStats", "StatsCollector", "CacheMetrics", "MetricsCollector"]
