"""Tests for the compression codec and serializers.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

import os
import zlib

import pytest

from stashcache_core.errors import CodecError, InvalidArgumentError
from stashcache_core.protocol.codec import CompressionCodec, CompressionMethod
from stashcache_core.protocol.serializer import (
    JSONSerializer,
    MsgPackSerializer,
    get_serializer,
)


@pytest.fixture
def codec():
    return CompressionCodec()


class TestCompressionCodec:
    """Tests for CompressionCodec."""

    @pytest.mark.parametrize("method", [CompressionMethod.ZLIB, CompressionMethod.LZMA2])
    @pytest.mark.parametrize(
        "data",
        [b"", b"x", b"hello world " * 500, os.urandom(4096)],
        ids=["empty", "single", "repetitive", "random"],
    )
    def test_round_trip(self, codec, method, data):
        """Test decode(encode(b)) == b."""
        assert codec.decode(codec.encode(data, method, 6)) == data

    def test_header_bytes(self, codec):
        """Test compressed flag and method tag."""
        assert codec.encode(b"abc", CompressionMethod.ZLIB)[:2] == b"\x01\x01"
        assert codec.encode(b"abc", CompressionMethod.LZMA2)[:2] == b"\x01\x02"
        assert codec.wrap_raw(b"abc") == b"\x00\x00abc"

    def test_zlib_body_is_plain_zlib_stream(self, codec):
        """Test zlib payload decodes with the zlib module directly."""
        data = b"payload " * 100
        assert zlib.decompress(codec.encode(data, CompressionMethod.ZLIB)[2:]) == data

    def test_raw_decode(self, codec):
        """Test raw payload is returned unchanged."""
        assert codec.decode(codec.wrap_raw(b"\x01\x02raw")) == b"\x01\x02raw"

    @pytest.mark.parametrize("level", [-5, 0, 9, 42])
    def test_level_clamped(self, codec, level):
        """Test out-of-range levels are clamped, not rejected."""
        data = b"abc" * 1000
        for method in (CompressionMethod.ZLIB, CompressionMethod.LZMA2):
            assert codec.decode(codec.encode(data, method, level)) == data

    def test_encode_none_rejected(self, codec):
        """Test NONE is not an encoder."""
        with pytest.raises(InvalidArgumentError):
            codec.encode(b"abc", CompressionMethod.NONE)

    def test_unknown_method_tag(self, codec):
        """Test unknown tag is an error, not a pass-through."""
        with pytest.raises(CodecError):
            codec.decode(b"\x01\x07whatever")

    def test_unknown_flag(self, codec):
        """Test unknown compressed flag."""
        with pytest.raises(CodecError):
            codec.decode(b"\x05\x01whatever")

    def test_short_input(self, codec):
        """Test input shorter than the header."""
        with pytest.raises(CodecError):
            codec.decode(b"\x01")
        with pytest.raises(CodecError):
            codec.decode(b"")

    @pytest.mark.parametrize("method", [CompressionMethod.ZLIB, CompressionMethod.LZMA2])
    def test_truncated_stream(self, codec, method):
        """Test truncated compressed data fails to decode."""
        blob = codec.encode(b"some data worth compressing " * 200, method)
        with pytest.raises(CodecError):
            codec.decode(blob[: len(blob) // 2])

    @pytest.mark.parametrize("method", [CompressionMethod.ZLIB, CompressionMethod.LZMA2])
    def test_corrupt_stream(self, codec, method):
        """Test garbage after a valid header fails to decode."""
        with pytest.raises(CodecError):
            codec.decode(bytes((1, method.value)) + b"definitely not compressed")

    def test_header_of(self, codec):
        """Test reading the method from a payload."""
        assert codec.header_of(codec.wrap_raw(b"x")) is CompressionMethod.NONE
        assert codec.header_of(codec.encode(b"x", CompressionMethod.LZMA2)) is CompressionMethod.LZMA2


class TestCompressionMethod:
    """Tests for CompressionMethod parsing."""

    def test_parse_names(self):
        """Test parsing names case-insensitively."""
        assert CompressionMethod.parse("zlib") is CompressionMethod.ZLIB
        assert CompressionMethod.parse("LZMA2") is CompressionMethod.LZMA2
        assert CompressionMethod.parse(" none ") is CompressionMethod.NONE
        assert CompressionMethod.parse(CompressionMethod.ZLIB) is CompressionMethod.ZLIB

    def test_parse_invalid(self):
        """Test unknown names are rejected."""
        with pytest.raises(InvalidArgumentError):
            CompressionMethod.parse("brotli")
        with pytest.raises(InvalidArgumentError):
            CompressionMethod.parse(3)


class TestSerializers:
    """Tests for record/value serializers."""

    def test_json_bytes_as_base64(self):
        """Test JSON carries bytes as base64 text."""
        serializer = JSONSerializer()
        packed = serializer.pack_bytes(b"\x00\xff")
        assert packed == "AP8="
        assert serializer.unpack_bytes(packed) == b"\x00\xff"

    def test_msgpack_bytes_native(self):
        """Test msgpack keeps bytes as bytes."""
        serializer = MsgPackSerializer()
        record = {"value": serializer.pack_bytes(b"\x00\xff"), "n": 1}
        assert serializer.deserialize(serializer.serialize(record)) == {"value": b"\x00\xff", "n": 1}

    def test_invalid_documents(self):
        """Test malformed input raises CodecError."""
        with pytest.raises(CodecError):
            JSONSerializer().deserialize(b"{not json")
        with pytest.raises(CodecError):
            MsgPackSerializer().deserialize(b"\xc1")
        with pytest.raises(CodecError):
            JSONSerializer().unpack_bytes("***")

    def test_get_serializer(self):
        """Test lookup by format name."""
        assert get_serializer().format_name == "json"
        assert get_serializer("msgpack").format_name == "msgpack"
        with pytest.raises(InvalidArgumentError):
            get_serializer("pickle")


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
