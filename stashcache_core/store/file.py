"""StashCache File Store - Durable One-File-Per-Key Backend.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import hashlib
import logging
import os
import re
import uuid
from pathlib import Path
from typing import Iterator, List, Optional, Union

from stashcache_core.cache.entry import CacheEntry
from stashcache_core.errors import CodecError, StorageError
from stashcache_core.protocol.serializer import Serializer, get_serializer
from stashcache_core.store.backend import EntryStore

logger = logging.getLogger(__name__)

ENTRY_SUFFIX = ".entry"
TEMP_SUFFIX = ".tmp"

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def _key_digest(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8", "surrogatepass")).hexdigest()


def sanitize_key(key: str, max_length: int = 48) -> str:
    """Map a key to a filesystem-safe file stem.

    The stem is a readable prefix plus 128 bits of the key's SHA-256.
    Two distinct keys share a stem only if those 128 bits collide; that
    risk is accepted and not resolved here. The full key is kept inside
    the record so a collision reads back as a miss, not a wrong value.

    Args:
        key: Cache key
        max_length: Maximum length of the readable prefix

    Returns:
        File stem without suffix
    """
    digest = _key_digest(key)[:32]
    readable = _UNSAFE_CHARS.sub("_", key)[:max_length].lstrip(".")
    return f"{readable}-{digest}" if readable else digest


class FileStore(EntryStore):
    """File-based storage backend.

    Persists each entry as its own file so the cache survives restarts.
    Files are sharded by the first byte of the key digest.

    Features:
    - One record per key: key, value, is_compressed, expires_at, created_at
    - Atomic writes (temp file + fsync + os.replace)
    - JSON (base64 value) or MessagePack (raw bytes) records
    - Lazily created shard directories

    Example:
        store = FileStore("/var/cache/myapp")
        store.put("key", entry)
        entry = store.get("key")
    """

    def __init__(
        self,
        base_path: Union[str, Path],
        serializer: Optional[Serializer] = None,
    ):
        """Initialize file store.

        Args:
            base_path: Base directory for cache files
            serializer: Record format, JSON by default
        """
        super().__init__()
        self.base_path = Path(base_path)
        self.serializer = serializer or get_serializer("json")

        try:
            self.base_path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise StorageError(f"Cannot create cache directory: {e}", path=str(self.base_path)) from e

    @property
    def path(self) -> Optional[str]:
        return str(self.base_path)

    def _get_path(self, key: str) -> Path:
        stem = sanitize_key(key)
        shard = _key_digest(key)[:2]
        return self.base_path / shard / f"{stem}{ENTRY_SUFFIX}"

    def _entry_files(self) -> Iterator[Path]:
        if not self.base_path.exists():
            return
        for shard_dir in self.base_path.iterdir():
            if not shard_dir.is_dir():
                continue
            for file_path in shard_dir.iterdir():
                if file_path.name.endswith(ENTRY_SUFFIX) and file_path.is_file():
                    yield file_path

    def _read_file(self, path: Path, key: Optional[str] = None) -> Optional[CacheEntry]:
        """Load and parse one unit.

        Returns:
            CacheEntry, or None if the file does not exist
        """
        try:
            with open(path, "rb") as f:
                raw = f.read()
        except FileNotFoundError:
            return None
        except OSError as e:
            self._stats.record_error(str(e))
            logger.error(f"Error reading {path}: {e}")
            raise StorageError(f"Failed to read cache file: {e}", key=key, path=str(path)) from e

        try:
            record = self.serializer.deserialize(raw)
        except CodecError as e:
            raise StorageError(
                f"Corrupt cache file: {e}", key=key, path=str(path), corrupt=True
            ) from e
        if not isinstance(record, dict):
            raise StorageError("Corrupt cache file: record is not a mapping",
                               key=key, path=str(path), corrupt=True)

        try:
            return CacheEntry.from_record(record, unpack_bytes=self.serializer.unpack_bytes)
        except StorageError as e:
            e.path = str(path)
            raise

    def get(self, key: str) -> Optional[CacheEntry]:
        path = self._get_path(key)

        with self._lock:
            self._stats.reads += 1
            entry = self._read_file(path, key)

        if entry is not None and entry.key != key:
            logger.warning(f"Key {key!r} collides with stored key {entry.key!r} at {path}")
            return None
        return entry

    def put(self, key: str, entry: CacheEntry) -> None:
        path = self._get_path(key)
        temp_path = path.with_name(f"{path.name}.{uuid.uuid4().hex[:12]}{TEMP_SUFFIX}")
        data = self.serializer.serialize(entry.to_record(pack_bytes=self.serializer.pack_bytes))

        with self._lock:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with open(temp_path, "wb") as f:
                    f.write(data)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(temp_path, path)
                self._stats.writes += 1
            except OSError as e:
                self._stats.record_error(str(e))
                logger.error(f"Error writing {key!r}: {e}")
                try:
                    temp_path.unlink()
                except FileNotFoundError:
                    pass
                except OSError as cleanup_error:
                    logger.debug(f"Could not remove {temp_path}: {cleanup_error}")
                raise StorageError(f"Failed to write cache file: {e}", key=key, path=str(path)) from e

    def delete(self, key: str) -> bool:
        return self._unlink(self._get_path(key), key)

    def _unlink(self, path: Path, key: Optional[str] = None) -> bool:
        with self._lock:
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            except OSError as e:
                self._stats.record_error(str(e))
                logger.error(f"Error deleting {path}: {e}")
                raise StorageError(f"Failed to delete cache file: {e}", key=key, path=str(path)) from e
            self._stats.deletes += 1
            return True

    def clear(self) -> int:
        count = 0

        with self._lock:
            if not self.base_path.exists():
                return 0
            try:
                for shard_dir in self.base_path.iterdir():
                    if not shard_dir.is_dir():
                        continue
                    for file_path in shard_dir.iterdir():
                        if file_path.name.endswith(ENTRY_SUFFIX):
                            file_path.unlink()
                            count += 1
                        elif file_path.name.endswith(TEMP_SUFFIX):
                            file_path.unlink()
            except OSError as e:
                self._stats.record_error(str(e))
                raise StorageError(f"Failed to clear cache: {e}", path=str(self.base_path)) from e
            self._stats.deletes += count

        return count

    def keys(self) -> List[str]:
        """Get all keys.

        Hashed filenames do not round-trip, so each file is read to
        recover its key. Unreadable files are skipped. The lock is held
        per file, never across the whole directory.
        """
        keys = []
        for file_path in list(self._entry_files()):
            with self._lock:
                try:
                    entry = self._read_file(file_path)
                except StorageError:
                    continue
            if entry is not None:
                keys.append(entry.key)
        return keys

    def size(self) -> int:
        with self._lock:
            return sum(1 for _ in self._entry_files())

    def disk_usage(self) -> int:
        """Total size of entry files in bytes."""
        with self._lock:
            return sum(p.stat().st_size for p in self._entry_files())

    def __repr__(self) -> str:
        return f"FileStore(path={self.base_path}, format={self.serializer.format_name})"


__all__ = ["FileStore", "sanitize_key"]
