"""StashCache Expiry - TTL Policy.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import math
import time
from typing import Callable, Optional

from stashcache_core.cache.entry import CacheEntry
from stashcache_core.errors import InvalidArgumentError

# Keeps expires_at in milliseconds well inside int64
MAX_TTL = 100 * 365 * 24 * 3600


class ExpiryPolicy:
    """Decides whether an entry is live at a given time.

    An entry with expires_at set is expired once now > expires_at;
    at exactly expires_at it is still live. The clock is injectable
    so tests can move time without sleeping.

    Example:
        policy = ExpiryPolicy()
        expires_at = policy.expires_at_for(policy.now(), ttl=30)
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.time

    def now(self) -> float:
        """Current time in epoch seconds."""
        return self._clock()

    def is_expired(self, entry: CacheEntry, now: Optional[float] = None) -> bool:
        if entry.expires_at is None:
            return False
        return (self.now() if now is None else now) > entry.expires_at

    def is_live(self, entry: CacheEntry, now: Optional[float] = None) -> bool:
        return not self.is_expired(entry, now)

    @staticmethod
    def validate_ttl(ttl: Optional[float]) -> Optional[float]:
        """Check an explicitly provided TTL.

        Args:
            ttl: Seconds, or None for no expiry

        Returns:
            TTL as float, or None

        Raises:
            InvalidArgumentError: If ttl is not a positive finite number
                no larger than MAX_TTL
        """
        if ttl is None:
            return None
        if isinstance(ttl, bool) or not isinstance(ttl, (int, float)):
            raise InvalidArgumentError(f"TTL must be a number, got {type(ttl).__name__}")
        if not math.isfinite(ttl) or ttl <= 0:
            raise InvalidArgumentError(f"TTL must be > 0 seconds, got {ttl}")
        if ttl > MAX_TTL:
            raise InvalidArgumentError(f"TTL must be at most {MAX_TTL} seconds, got {ttl}")
        return float(ttl)

    def expires_at_for(self, created_at: float, ttl: Optional[float]) -> Optional[float]:
        """Compute absolute expiry for a write."""
        ttl = self.validate_ttl(ttl)
        if ttl is None:
            return None
        return created_at + ttl

    def __repr__(self) -> str:
        return "ExpiryPolicy()"


__all__ = ["ExpiryPolicy", "MAX_TTL"]
