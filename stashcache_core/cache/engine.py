"""StashCache Engine - Main Cache Implementation.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import dataclasses
import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple, Union

from stashcache_core.cache.entry import CacheEntry, EntryInfo
from stashcache_core.cache.expiry import ExpiryPolicy
from stashcache_core.cache.janitor import ExpiryJanitor
from stashcache_core.errors import CodecError, InvalidArgumentError, StorageError
from stashcache_core.metrics.collector import (
    CacheMetrics,
    CacheStats,
    MetricsCollector,
    StatsCollector,
)
from stashcache_core.protocol.codec import (
    LZMA2_MAX_INPUT,
    CompressionCodec,
    CompressionMethod,
    clamp_level,
)
from stashcache_core.protocol.serializer import get_serializer

if TYPE_CHECKING:
    from stashcache_core.store.backend import EntryStore

logger = logging.getLogger(__name__)

STORAGE_KINDS = ("memory", "file", "tiered")

MethodLike = Union[CompressionMethod, str]


@dataclass
class CompressionConfig:
    """Compression defaults applied to `set` calls.

    Attributes:
        enabled: Compress when the caller does not say
        level: Effort 0-9, clamped
        threshold: Values must be strictly larger than this to compress
        method: Default codec
    """

    enabled: bool = False
    level: int = 6
    threshold: int = 1024
    method: CompressionMethod = CompressionMethod.ZLIB

    def validate(self) -> None:
        """Normalize fields in place.

        Raises:
            InvalidArgumentError: On a bad threshold or method
        """
        self.enabled = bool(self.enabled)
        if isinstance(self.level, bool) or not isinstance(self.level, int):
            raise InvalidArgumentError(f"Compression level must be an int, got {self.level!r}")
        self.level = clamp_level(self.level)
        if isinstance(self.threshold, bool) or not isinstance(self.threshold, int) or self.threshold < 0:
            raise InvalidArgumentError(f"Compression threshold must be an int >= 0, got {self.threshold!r}")
        self.method = CompressionMethod.parse(self.method)
        if self.method is CompressionMethod.NONE:
            raise InvalidArgumentError("Default compression method must be zlib or lzma2")


@dataclass
class CacheConfig:
    """Cache configuration.

    Attributes:
        name: Cache name, used for thread and log labels
        storage: "memory", "file" or "tiered"
        cache_dir: Root directory for file/tiered storage
        cleanup_interval: Seconds between janitor sweeps, 0 disables
        record_format: "json" or "msgpack" for durable records
        compression: Compression defaults
    """

    name: str = "stashcache"
    storage: str = "memory"
    cache_dir: Optional[Union[str, Path]] = None
    cleanup_interval: float = 60.0
    record_format: str = "json"
    compression: CompressionConfig = field(default_factory=CompressionConfig)

    def validate(self) -> None:
        """Check configuration values.

        Raises:
            InvalidArgumentError: On any invalid value
        """
        if self.storage not in STORAGE_KINDS:
            raise InvalidArgumentError(f"storage must be one of {STORAGE_KINDS}, got {self.storage!r}")
        if self.storage != "memory" and not self.cache_dir:
            raise InvalidArgumentError(f"storage={self.storage!r} needs cache_dir")
        if isinstance(self.cleanup_interval, bool) or not isinstance(self.cleanup_interval, (int, float)):
            raise InvalidArgumentError(f"cleanup_interval must be a number, got {self.cleanup_interval!r}")
        if self.cleanup_interval < 0:
            raise InvalidArgumentError(f"cleanup_interval must be >= 0, got {self.cleanup_interval}")
        get_serializer(self.record_format)
        self.compression.validate()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheConfig":
        """Create from a plugin-style mapping.

        Accepts field names and the camelCase keys host bindings send
        (cacheDir, cleanupInterval, defaultCompression, compressionLevel,
        compressionThreshold, compressionMethod). A nested "compression"
        mapping is also accepted.

        Args:
            data: Configuration mapping

        Returns:
            Validated CacheConfig
        """
        flat = {_CONFIG_ALIASES.get(k, k): v for k, v in data.items()}

        nested = flat.pop("compression", None) or {}
        if isinstance(nested, CompressionConfig):
            nested = dataclasses.asdict(nested)
        compression_kwargs = {_COMPRESSION_ALIASES.get(k, k): v for k, v in nested.items()}
        for key in list(flat):
            if key in _COMPRESSION_FLAT_KEYS:
                compression_kwargs[_COMPRESSION_FLAT_KEYS[key]] = flat.pop(key)

        known = {f.name for f in dataclasses.fields(cls)}
        unknown = set(flat) - known
        if unknown:
            raise InvalidArgumentError(f"Unknown cache config keys: {sorted(unknown)}")
        unknown = set(compression_kwargs) - {f.name for f in dataclasses.fields(CompressionConfig)}
        if unknown:
            raise InvalidArgumentError(f"Unknown compression config keys: {sorted(unknown)}")

        config = cls(compression=CompressionConfig(**compression_kwargs), **flat)
        config.validate()
        return config

    def to_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        data["cache_dir"] = str(self.cache_dir) if self.cache_dir else None
        data["compression"]["method"] = self.compression.method.name.lower()
        return data


_CONFIG_ALIASES = {
    "cacheDir": "cache_dir",
    "cleanupInterval": "cleanup_interval",
    "recordFormat": "record_format",
}

_COMPRESSION_ALIASES = {
    "compressionEnabled": "enabled",
    "compressionLevel": "level",
    "compressionThreshold": "threshold",
    "compressionMethod": "method",
}

_COMPRESSION_FLAT_KEYS = {
    "defaultCompression": "enabled",
    "default_compression": "enabled",
    "compressionLevel": "level",
    "compression_level": "level",
    "compressionThreshold": "threshold",
    "compression_threshold": "threshold",
    "compressionMethod": "method",
    "compression_method": "method",
}


@dataclass(frozen=True)
class SetOptions:
    """Per-call overrides for `set`.

    Attributes:
        ttl: Seconds until expiry; None never expires
        compress: Override the configured default
        method: Override the configured method
    """

    ttl: Optional[float] = None
    compress: Optional[bool] = None
    method: Optional[MethodLike] = None


class CacheEngine:
    """Key-value cache over opaque bytes with TTL and compression.

    The engine owns its store exclusively. Values go in and come out as
    bytes; turning application objects into bytes is the caller's job
    (see TypedCache).

    Features:
    - Memory, file, or tiered (memory over file) storage
    - Per-entry TTL with lazy eviction plus a background janitor
    - Zlib / LZMA2 compression with size threshold and fallback chain
    - Self-healing of corrupt durable entries
    - Thread-safe operations

    Example:
        with CacheEngine(CacheConfig(storage="file", cache_dir="/tmp/c")) as cache:
            cache.set("user:1", b'{"name": "Ada"}', ttl=300, compress=True)
            raw = cache.get("user:1")
            cache.stats()   # CacheStats(total=1, active=1)
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        store: Optional["EntryStore"] = None,
        codec: Optional[CompressionCodec] = None,
        clock: Optional[Callable[[], float]] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Initialize engine.

        Args:
            config: Cache configuration
            store: Entry store; built from config when omitted
            codec: Compression codec
            clock: Time source in epoch seconds
            metrics: Operation counters
        """
        self.config = config or CacheConfig()
        if store is None:
            self.config.validate()
        else:
            self.config.compression.validate()

        self.policy = ExpiryPolicy(clock)
        self.codec = codec or CompressionCodec()
        self._metrics = metrics or MetricsCollector()
        self._store = store if store is not None else self._build_store(self.config)
        self._stats_collector = StatsCollector(self._store, self.policy)
        self._lock = threading.RLock()

        self._janitor: Optional[ExpiryJanitor] = None
        if self.config.cleanup_interval > 0:
            self._janitor = ExpiryJanitor(
                self._store,
                self.policy,
                interval=self.config.cleanup_interval,
                metrics=self._metrics,
                name=f"{self.config.name}-janitor",
            )

    @staticmethod
    def _build_store(config: CacheConfig) -> "EntryStore":
        from stashcache_core.store import FileStore, MemoryStore, TieredStore

        if config.storage == "memory":
            return MemoryStore()

        file_store = FileStore(config.cache_dir, serializer=get_serializer(config.record_format))
        if config.storage == "tiered":
            return TieredStore(file_store)
        return file_store

    # Lifecycle

    def start(self) -> None:
        """Start the background janitor."""
        if self._janitor is not None:
            self._janitor.start()
        logger.info(f"Cache {self.config.name} started ({self._store!r})")

    def shutdown(self, timeout: Optional[float] = 5.0) -> None:
        """Stop the background janitor. The store stays usable."""
        if self._janitor is not None:
            self._janitor.stop(timeout)
        logger.info(f"Cache {self.config.name} stopped")

    @property
    def janitor(self) -> Optional[ExpiryJanitor]:
        return self._janitor

    @property
    def store(self) -> "EntryStore":
        return self._store

    @property
    def cache_path(self) -> Optional[str]:
        """Root directory of durable storage, None in memory."""
        return self._store.path

    # Configuration

    def configure(
        self,
        enabled: Optional[bool] = None,
        level: Optional[int] = None,
        threshold: Optional[int] = None,
        method: Optional[MethodLike] = None,
    ) -> CompressionConfig:
        """Update compression defaults for subsequent `set` calls.

        Returns:
            The new compression configuration
        """
        changes = {
            name: value
            for name, value in (
                ("enabled", enabled),
                ("level", level),
                ("threshold", threshold),
                ("method", method),
            )
            if value is not None
        }

        with self._lock:
            updated = dataclasses.replace(self.config.compression, **changes)
            updated.validate()
            self.config.compression = updated

        logger.info(
            f"Cache {self.config.name} compression: enabled={updated.enabled}, "
            f"level={updated.level}, threshold={updated.threshold}, method={updated.method.name}"
        )
        return updated

    # Operations

    def set(
        self,
        key: str,
        value: Union[bytes, bytearray, memoryview],
        ttl: Optional[float] = None,
        compress: Optional[bool] = None,
        method: Optional[MethodLike] = None,
        options: Optional[SetOptions] = None,
    ) -> None:
        """Store value under key, replacing any previous entry.

        Args:
            key: Cache key
            value: Bytes to store
            ttl: Seconds until expiry, must be > 0; None never expires
            compress: Override the configured compression default
            method: Override the configured compression method
            options: SetOptions, used for fields not passed directly

        Raises:
            InvalidArgumentError: On a bad key, value, ttl or method
            StorageError: If the store cannot persist the entry
        """
        key = self._check_key(key)
        data = self._check_value(value)
        if options is not None:
            ttl = options.ttl if ttl is None else ttl
            compress = options.compress if compress is None else compress
            method = options.method if method is None else method

        ttl = self.policy.validate_ttl(ttl)
        compression = self.config.compression
        should_compress = compression.enabled if compress is None else bool(compress)
        chosen = compression.method if method is None else CompressionMethod.parse(method)

        payload, used = self._encode(key, data, should_compress, chosen, compression)

        created_at = self.policy.now()
        entry = CacheEntry(
            key=key,
            payload=payload,
            compressed=used is not CompressionMethod.NONE,
            compression_method=used,
            expires_at=self.policy.expires_at_for(created_at, ttl),
            created_at=created_at,
        )

        with self._lock:
            self._store.put(key, entry)
        self._metrics.record_set()
        logger.debug(f"Set {key!r}: {len(data)} bytes, method={used.name}, ttl={ttl}")

    def get(self, key: str) -> Optional[bytes]:
        """Get value by key.

        Returns:
            Stored bytes, or None if missing or expired

        Raises:
            CodecError: If the stored payload cannot be decoded; the
                entry is removed so later lookups miss
            StorageError: If the store cannot be read
        """
        key = self._check_key(key)
        entry = self._load(key)

        if entry is None:
            self._metrics.record_miss()
            return None

        if self.policy.is_expired(entry):
            self._evict_expired(key)
            self._metrics.record_miss()
            return None

        try:
            value = self.codec.decode(entry.payload)
        except CodecError as e:
            logger.warning(f"Undecodable payload for {key!r}, removing: {e}")
            self._metrics.record_corrupt()
            self._discard_if_unchanged(key, entry)
            raise

        self._metrics.record_hit()
        return value

    def has(self, key: str) -> bool:
        """Check whether key holds a live entry.

        Expired entries are evicted as a side effect.
        """
        key = self._check_key(key)
        entry = self._load(key)
        if entry is None:
            return False
        if self.policy.is_expired(entry):
            self._evict_expired(key)
            return False
        return True

    def remove(self, key: str) -> None:
        """Delete key. Missing keys are ignored."""
        key = self._check_key(key)
        with self._lock:
            deleted = self._store.delete(key)
        if deleted:
            self._metrics.record_delete()

    def clear(self) -> None:
        """Delete every entry."""
        with self._lock:
            count = self._store.clear()
        logger.info(f"Cache {self.config.name} cleared {count} entries")

    def stats(self) -> CacheStats:
        """Count total and live entries. Never evicts."""
        return self._stats_collector.collect()

    def keys(self) -> List[str]:
        """Keys of live entries. Never evicts."""
        now = self.policy.now()
        return [key for key, entry in self._store.scan() if self.policy.is_live(entry, now)]

    def inspect(self, key: str) -> Optional[EntryInfo]:
        """Describe how a live entry is stored, including its method.

        Returns:
            EntryInfo, or None if missing, expired or unreadable
        """
        key = self._check_key(key)
        try:
            entry = self._store.get(key)
        except StorageError as e:
            if not e.corrupt:
                raise
            return None
        now = self.policy.now()
        if entry is None or self.policy.is_expired(entry, now):
            return None
        return entry.info(now)

    def metrics(self) -> CacheMetrics:
        """Snapshot of operation counters."""
        return self._metrics.get_metrics()

    # Internals

    def _encode(
        self,
        key: str,
        data: bytes,
        should_compress: bool,
        method: CompressionMethod,
        compression: CompressionConfig,
    ) -> Tuple[bytes, CompressionMethod]:
        """Apply threshold, size and fallback policy.

        Returns:
            (payload, method actually used)
        """
        if not should_compress or method is CompressionMethod.NONE or len(data) <= compression.threshold:
            return self.codec.wrap_raw(data), CompressionMethod.NONE

        degraded = False
        if method is CompressionMethod.LZMA2 and len(data) > LZMA2_MAX_INPUT:
            logger.info(f"Value for {key!r} is {len(data)} bytes, too large for LZMA2; using ZLIB")
            method = CompressionMethod.ZLIB
            degraded = True

        attempts = [method]
        if method is not CompressionMethod.ZLIB:
            attempts.append(CompressionMethod.ZLIB)

        for attempt in attempts:
            try:
                payload = self.codec.encode(data, attempt, compression.level)
            except CodecError as e:
                logger.warning(f"{attempt.name} encode failed for {key!r}: {e}")
                degraded = True
                continue
            if degraded:
                self._metrics.record_fallback()
            return payload, attempt

        logger.warning(f"Storing {key!r} uncompressed after encoder failures")
        self._metrics.record_fallback()
        return self.codec.wrap_raw(data), CompressionMethod.NONE

    def _load(self, key: str) -> Optional[CacheEntry]:
        """Read an entry, deleting it if the durable unit is corrupt."""
        try:
            return self._store.get(key)
        except StorageError as e:
            if not e.corrupt:
                raise

        with self._lock:
            try:
                return self._store.get(key)
            except StorageError as e:
                if not e.corrupt:
                    raise
                logger.warning(f"Removing corrupt entry {key!r}: {e}")
                self._store.delete(key)
                self._metrics.record_corrupt()
                return None

    def _evict_expired(self, key: str) -> None:
        with self._lock:
            if self._store.evict_if_expired(key, self.policy.now()):
                self._metrics.record_expiration()
                logger.debug(f"Evicted expired entry {key!r}")

    def _discard_if_unchanged(self, key: str, entry: CacheEntry) -> None:
        with self._lock:
            try:
                current = self._store.get(key)
            except StorageError as e:
                if not e.corrupt:
                    logger.debug(f"Could not re-read {key!r} for removal: {e}")
                    return
                current = entry
            if current == entry:
                self._store.delete(key)

    @staticmethod
    def _check_key(key: str) -> str:
        if not isinstance(key, str) or not key:
            raise InvalidArgumentError(f"Cache key must be a non-empty string, got {key!r}")
        try:
            key.encode("utf-8")
        except UnicodeEncodeError as e:
            raise InvalidArgumentError(f"Cache key must be valid UTF-8, got {key!r}") from e
        return key

    @staticmethod
    def _check_value(value: Union[bytes, bytearray, memoryview]) -> bytes:
        if not isinstance(value, (bytes, bytearray, memoryview)):
            raise InvalidArgumentError(
                f"Cache value must be bytes, got {type(value).__name__}; "
                "serialize it first (see TypedCache)"
            )
        return bytes(value)

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __enter__(self) -> "CacheEngine":
        self.start()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown()

    def __repr__(self) -> str:
        return f"CacheEngine(name={self.config.name!r}, store={self._store!r})"


__all__ = ["CacheEngine", "CacheConfig", "CompressionConfig", "SetOptions", "STORAGE_KINDS"]
