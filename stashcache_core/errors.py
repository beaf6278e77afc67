"""StashCache Errors - Cache Error Taxonomy.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

A miss is never an error: lookups return None/False. Everything else
that can go wrong is one of the classes below.
"""

from __future__ import annotations

from typing import Optional


class CacheError(Exception):
    """Base class for all cache errors."""


class InvalidArgumentError(CacheError, ValueError):
    """Bad key, TTL, value type, or configuration value."""


class CodecError(CacheError):
    """Payload could not be encoded or decoded."""


class StorageError(CacheError):
    """Underlying store failed to read or write an entry.

    Attributes:
        key: Cache key involved, if known
        path: Persisted unit involved, if any
        corrupt: True if the unit exists but could not be parsed
    """

    def __init__(
        self,
        message: str,
        key: Optional[str] = None,
        path: Optional[str] = None,
        corrupt: bool = False,
    ):
        super().__init__(message)
        self.key = key
        self.path = path
        self.corrupt = corrupt


__all__ = ["CacheError", "InvalidArgumentError", "CodecError", "StorageError"]
