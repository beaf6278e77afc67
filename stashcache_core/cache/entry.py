"""StashCache Entry - Cache Entry Data Model.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from stashcache_core.errors import InvalidArgumentError, StorageError
from stashcache_core.protocol.codec import HEADER_SIZE, CompressionMethod


@dataclass(frozen=True)
class CacheEntry:
    """One cached value with its compression and expiry metadata.

    Entries are immutable; `set` on an existing key replaces the whole
    entry, it never mutates one in place.

    Attributes:
        key: Cache key
        payload: Header-prefixed stored bytes (see protocol.codec)
        compressed: Whether payload holds a codec stream
        compression_method: Codec that produced payload
        expires_at: Absolute expiry in epoch seconds, None for never
        created_at: Write time in epoch seconds
    """

    key: str
    payload: bytes
    compressed: bool = False
    compression_method: CompressionMethod = CompressionMethod.NONE
    expires_at: Optional[float] = None
    created_at: float = field(default_factory=time.time)

    def __post_init__(self):
        if self.compressed and self.compression_method is CompressionMethod.NONE:
            raise InvalidArgumentError("Compressed entry needs a compression method")
        if not self.compressed and self.compression_method is not CompressionMethod.NONE:
            raise InvalidArgumentError("Uncompressed entry must use CompressionMethod.NONE")

    @property
    def size_bytes(self) -> int:
        """Stored payload size."""
        return len(self.payload)

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Check if entry has expired."""
        if self.expires_at is None:
            return False
        return (time.time() if now is None else now) > self.expires_at

    def remaining_ttl(self, now: Optional[float] = None) -> Optional[float]:
        """Get remaining TTL in seconds."""
        if self.expires_at is None:
            return None
        return max(0.0, self.expires_at - (time.time() if now is None else now))

    def to_record(self, pack_bytes=None) -> Dict[str, Any]:
        """Convert to the persisted record layout.

        Timestamps are stored as integer milliseconds.

        Args:
            pack_bytes: Callable turning payload into a document value

        Returns:
            Record dictionary
        """
        return {
            "key": self.key,
            "value": pack_bytes(self.payload) if pack_bytes else self.payload,
            "is_compressed": self.compressed,
            "expires_at": _to_millis(self.expires_at),
            "created_at": _to_millis(self.created_at),
        }

    @classmethod
    def from_record(cls, data: Dict[str, Any], unpack_bytes=None) -> "CacheEntry":
        """Create from a persisted record.

        The compression method is read back from the payload header.

        Args:
            data: Record dictionary
            unpack_bytes: Inverse of the pack_bytes used by to_record()

        Returns:
            CacheEntry instance

        Raises:
            StorageError: If the record is malformed
        """
        try:
            key = data["key"]
            raw = data["value"]
            payload = unpack_bytes(raw) if unpack_bytes else raw
            compressed = bool(data.get("is_compressed", False))
            expires_at = _from_millis(data.get("expires_at"))
            created_at = _from_millis(data.get("created_at"))

            if not isinstance(key, str) or not isinstance(payload, (bytes, bytearray)):
                raise TypeError("key must be str and value must be bytes")
            if len(payload) < HEADER_SIZE:
                raise ValueError("payload shorter than header")
            if bool(payload[0]) != compressed:
                raise ValueError("header flag disagrees with is_compressed")

            method = CompressionMethod.NONE
            if compressed:
                method = CompressionMethod.from_tag(payload[1])

            return cls(
                key=key,
                payload=bytes(payload),
                compressed=compressed,
                compression_method=method,
                expires_at=expires_at,
                created_at=created_at if created_at is not None else time.time(),
            )
        except StorageError:
            raise
        except Exception as e:
            raise StorageError(
                f"Malformed cache record: {e}",
                key=data.get("key") if isinstance(data, dict) else None,
                corrupt=True,
            ) from e

    def info(self, now: Optional[float] = None) -> "EntryInfo":
        """Summarize entry without exposing payload."""
        return EntryInfo(
            key=self.key,
            compressed=self.compressed,
            compression_method=self.compression_method,
            size_bytes=self.size_bytes,
            created_at=self.created_at,
            expires_at=self.expires_at,
            remaining_ttl=self.remaining_ttl(now),
        )

    def __repr__(self) -> str:
        return (
            f"CacheEntry(key={self.key!r}, size={self.size_bytes}, "
            f"method={self.compression_method.name}, expires_at={self.expires_at})"
        )


@dataclass(frozen=True)
class EntryInfo:
    """Read-only description of how an entry is stored."""

    key: str
    compressed: bool
    compression_method: CompressionMethod
    size_bytes: int
    created_at: float
    expires_at: Optional[float]
    remaining_ttl: Optional[float]


def _to_millis(ts: Optional[float]) -> Optional[int]:
    if ts is None:
        return None
    return int(round(ts * 1000))


def _from_millis(ms: Any) -> Optional[float]:
    if ms is None:
        return None
    if isinstance(ms, bool) or not isinstance(ms, (int, float)):
        raise TypeError(f"timestamp must be numeric, got {type(ms).__name__}")
    return ms / 1000.0


__all__ = ["CacheEntry", "EntryInfo"]
