"""Tests for entry stores.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import json
import threading
import time

import pytest

from stashcache_core.cache.entry import CacheEntry
from stashcache_core.errors import InvalidArgumentError, StorageError
from stashcache_core.protocol.codec import CompressionCodec, CompressionMethod
from stashcache_core.protocol.serializer import MsgPackSerializer
from stashcache_core.store.file import FileStore, sanitize_key
from stashcache_core.store.memory import MemoryStore
from stashcache_core.store.tiered import TieredStore

NOW = 1_700_000_000.0
codec = CompressionCodec()


def make_entry(key, value=b"value", expires_at=None, created_at=NOW):
    return CacheEntry(
        key=key,
        payload=codec.wrap_raw(value),
        expires_at=expires_at,
        created_at=created_at,
    )


@pytest.fixture(params=["memory", "file", "file-msgpack", "tiered"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryStore()
    if request.param == "file":
        return FileStore(tmp_path / "store")
    if request.param == "file-msgpack":
        return FileStore(tmp_path / "store", serializer=MsgPackSerializer())
    return TieredStore(FileStore(tmp_path / "store"))


class TestCacheEntry:
    """Tests for CacheEntry invariants."""

    def test_compression_flags_must_agree(self):
        """Test compressed/method invariant."""
        with pytest.raises(InvalidArgumentError):
            CacheEntry(key="k", payload=b"\x01\x01", compressed=True)
        with pytest.raises(InvalidArgumentError):
            CacheEntry(key="k", payload=b"\x00\x00",
                       compression_method=CompressionMethod.ZLIB)

    def test_expiry_boundary(self):
        """Test entry is live at exactly expires_at."""
        entry = make_entry("k", expires_at=NOW + 10)
        assert not entry.is_expired(NOW + 10)
        assert entry.is_expired(NOW + 10.001)
        assert not make_entry("k").is_expired(NOW + 1e9)

    def test_record_round_trip(self):
        """Test persisted record keeps flags and millisecond timestamps."""
        payload = codec.encode(b"data" * 100, CompressionMethod.LZMA2)
        entry = CacheEntry(
            key="k",
            payload=payload,
            compressed=True,
            compression_method=CompressionMethod.LZMA2,
            expires_at=NOW + 5,
            created_at=NOW,
        )
        record = entry.to_record()
        assert record["is_compressed"] is True
        assert record["expires_at"] == int((NOW + 5) * 1000)
        assert CacheEntry.from_record(record) == entry

    def test_malformed_record(self):
        """Test malformed records raise a corrupt StorageError."""
        with pytest.raises(StorageError) as exc_info:
            CacheEntry.from_record({"key": "k"})
        assert exc_info.value.corrupt
        with pytest.raises(StorageError):
            CacheEntry.from_record({"key": "k", "value": b"\x00\x00x", "is_compressed": True})


class TestEntryStore:
    """Behavior shared by every store."""

    def test_basic_operations(self, store):
        """Test put/get/delete."""
        store.put("key1", make_entry("key1", b"one"))
        assert store.get("key1") == make_entry("key1", b"one")
        assert store.delete("key1")
        assert store.get("key1") is None
        assert not store.delete("key1")

    def test_put_replaces(self, store):
        """Test put fully replaces the previous entry."""
        store.put("k", make_entry("k", b"old", expires_at=NOW + 100))
        store.put("k", make_entry("k", b"new"))
        entry = store.get("k")
        assert codec.decode(entry.payload) == b"new"
        assert entry.expires_at is None
        assert store.size() == 1

    def test_keys_and_clear(self, store):
        """Test keys snapshot and clear."""
        for key in ("a", "b", "c"):
            store.put(key, make_entry(key))
        assert sorted(store.keys()) == ["a", "b", "c"]
        assert store.clear() == 3
        assert store.size() == 0
        assert store.keys() == []

    def test_evict_if_expired(self, store):
        """Test atomic check-and-delete."""
        store.put("old", make_entry("old", expires_at=NOW + 1))
        store.put("live", make_entry("live", expires_at=NOW + 100))
        assert store.evict_if_expired("old", NOW + 2)
        assert not store.evict_if_expired("live", NOW + 2)
        assert not store.evict_if_expired("missing", NOW + 2)
        assert store.keys() == ["live"]

    def test_evict_skips_rewritten_entry(self, store):
        """Test a fresh write is not removed by a stale eviction."""
        store.put("k", make_entry("k", expires_at=NOW + 1))
        store.put("k", make_entry("k", b"fresh"))
        assert not store.evict_if_expired("k", NOW + 2)
        assert store.get("k") is not None

    def test_scan_and_evict(self, store):
        """Test sweep removes only expired entries."""
        store.put("a", make_entry("a", expires_at=NOW + 1))
        store.put("b", make_entry("b", expires_at=NOW + 1))
        store.put("c", make_entry("c"))
        assert store.scan_and_evict(NOW + 5) == 2
        assert store.keys() == ["c"]

    def test_scan_and_evict_stops(self, store):
        """Test sweep honors the stop signal between keys."""
        for i in range(5):
            store.put(f"k{i}", make_entry(f"k{i}", expires_at=NOW))
        assert store.scan_and_evict(NOW + 1, should_stop=lambda: True) == 0
        assert store.size() == 5


class TestFileStore:
    """Tests specific to durable storage."""

    def test_survives_reopen(self, tmp_path):
        """Test entries persist across store instances."""
        FileStore(tmp_path).put("k", make_entry("k", b"persisted"))
        entry = FileStore(tmp_path).get("k")
        assert codec.decode(entry.payload) == b"persisted"

    def test_record_layout(self, tmp_path):
        """Test the on-disk JSON record."""
        store = FileStore(tmp_path)
        store.put("k", make_entry("k", b"v", expires_at=NOW + 1))
        (path,) = list(tmp_path.rglob("*.entry"))
        record = json.loads(path.read_text())
        assert record["key"] == "k"
        assert record["is_compressed"] is False
        assert record["expires_at"] == int((NOW + 1) * 1000)

    def test_no_temp_files_left(self, tmp_path):
        """Test atomic write leaves only the final file."""
        store = FileStore(tmp_path)
        for i in range(10):
            store.put("k", make_entry("k", str(i).encode()))
        assert list(tmp_path.rglob("*.tmp")) == []
        assert len(list(tmp_path.rglob("*.entry"))) == 1

    @pytest.mark.parametrize(
        "key", ["../../etc/passwd", "a/b\\c", "ключ:😀", "x" * 500, ".", "\ud800"]
    )
    def test_unsafe_keys(self, tmp_path, key):
        """Test arbitrary keys stay inside the cache directory."""
        store = FileStore(tmp_path / "root")
        store.put(key, make_entry(key))
        assert store.get(key) is not None
        assert store.keys() == [key]
        root = (tmp_path / "root").resolve()
        for path in root.rglob("*"):
            assert root in path.resolve().parents

    def test_sanitize_key(self):
        """Test sanitized names are safe and distinct."""
        assert sanitize_key("a/b") != sanitize_key("a_b")
        assert sanitize_key("\ud800") != sanitize_key("\ud801")
        name = sanitize_key("../weird key")
        assert "/" not in name and " " not in name
        assert not name.startswith(".")

    def test_corrupt_file(self, tmp_path):
        """Test unreadable file raises a corrupt StorageError."""
        store = FileStore(tmp_path)
        store.put("k", make_entry("k"))
        (path,) = list(tmp_path.rglob("*.entry"))
        path.write_bytes(b"{truncated")

        with pytest.raises(StorageError) as exc_info:
            store.get("k")
        assert exc_info.value.corrupt
        assert exc_info.value.path == str(path)
        assert store.keys() == []

    def test_sweep_does_not_block_reads(self, tmp_path):
        """Test a foreground get waits for one file, not the whole sweep."""

        class SlowSweepStore(FileStore):
            def _read_file(self, path, key=None):
                if threading.current_thread().name == "sweeper":
                    time.sleep(0.02)
                return super()._read_file(path, key)

        store = SlowSweepStore(tmp_path)
        for i in range(40):
            store.put(f"k{i}", make_entry(f"k{i}"))

        sweeper = threading.Thread(
            target=store.scan_and_evict, args=(NOW + 1,), name="sweeper"
        )
        sweeper.start()
        try:
            time.sleep(0.1)
            started = time.monotonic()
            assert store.get("k0") is not None
            elapsed = time.monotonic() - started
            assert sweeper.is_alive()
        finally:
            sweeper.join()
        assert elapsed < 0.2

    def test_colliding_unit_reads_as_miss(self, tmp_path):
        """Test a unit holding another key is not returned."""
        store = FileStore(tmp_path)
        store.put("k", make_entry("other"))
        assert store.get("k") is None

    def test_clear_removes_stray_temp_files(self, tmp_path):
        """Test clear also removes leftover temp files."""
        store = FileStore(tmp_path)
        store.put("k", make_entry("k"))
        (path,) = list(tmp_path.rglob("*.entry"))
        (path.parent / "left.entry.abc.tmp").write_bytes(b"partial")
        assert store.size() == 1
        assert store.clear() == 1
        assert list(tmp_path.rglob("*.tmp")) == []


class TestTieredStore:
    """Tests for TieredStore."""

    def test_write_through(self, tmp_path):
        """Test put lands in both tiers."""
        back = FileStore(tmp_path)
        tiered = TieredStore(back)
        tiered.put("k", make_entry("k"))
        assert tiered.front.get("k") is not None
        assert back.get("k") is not None

    def test_promotion(self, tmp_path):
        """Test back-tier hit is promoted to the front."""
        back = FileStore(tmp_path)
        back.put("k", make_entry("k"))
        tiered = TieredStore(back)
        assert tiered.front.get("k") is None
        assert tiered.get("k") is not None
        assert tiered.front.get("k") is not None

    def test_scan_does_not_promote(self, tmp_path):
        """Test scanning reads the back tier without filling the front."""
        back = FileStore(tmp_path)
        for key in ("a", "b"):
            back.put(key, make_entry(key))
        tiered = TieredStore(back)

        assert sorted(key for key, _ in tiered.scan()) == ["a", "b"]
        assert tiered.front.size() == 0

    def test_evicts_unpromoted_expired_entry(self, tmp_path):
        """Test eviction consults the back tier."""
        back = FileStore(tmp_path)
        back.put("k", make_entry("k", expires_at=NOW))
        tiered = TieredStore(back)
        assert tiered.evict_if_expired("k", NOW + 1)
        assert back.get("k") is None


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
