"""StashCache Codec - Self-Describing Payload Compression.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.

Every stored payload starts with a 2-byte header:

    byte 0  compressed flag (0 = raw, 1 = compressed)
    byte 1  method tag      (0 = none, 1 = zlib, 2 = lzma2)

followed by either the raw bytes or the codec stream.
"""

from __future__ import annotations

import logging
import lzma
import zlib
from enum import Enum
from typing import Union

from stashcache_core.errors import CodecError, InvalidArgumentError

logger = logging.getLogger(__name__)

HEADER_SIZE = 2
FLAG_RAW = 0
FLAG_COMPRESSED = 1

MIN_LEVEL = 0
MAX_LEVEL = 9

ZLIB_CHUNK_SIZE = 64 * 1024

# LZMA2 memory guards
LZMA2_MAX_DICT_SIZE = 1024 * 1024
LZMA2_MIN_DICT_SIZE = 4096
LZMA2_MAX_INPUT = 10 * 1024 * 1024
LZMA2_DECODE_MEMLIMIT = 64 * 1024 * 1024


class CompressionMethod(Enum):
    """Compression methods, valued by their header tag."""

    NONE = 0
    ZLIB = 1
    LZMA2 = 2

    @classmethod
    def parse(cls, value: Union["CompressionMethod", str, None]) -> "CompressionMethod":
        """Parse a method from an enum member or a name.

        Args:
            value: Member, or one of "none", "zlib", "lzma2"

        Returns:
            CompressionMethod

        Raises:
            InvalidArgumentError: If the name is unknown
        """
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.NONE
        if isinstance(value, str):
            try:
                return cls[value.strip().upper()]
            except KeyError:
                pass
        raise InvalidArgumentError(f"Unknown compression method: {value!r}")

    @classmethod
    def from_tag(cls, tag: int) -> "CompressionMethod":
        """Look up a method by header tag."""
        try:
            return cls(tag)
        except ValueError:
            raise CodecError(f"Unknown compression method tag: {tag}") from None


def clamp_level(level: int) -> int:
    """Clamp a compression level into 0-9."""
    return max(MIN_LEVEL, min(MAX_LEVEL, int(level)))


class CompressionCodec:
    """Stateless encoder/decoder for header-tagged payloads.

    The codec never decides *whether* to compress or which method to
    pick for a given size; that policy belongs to the engine.

    Example:
        codec = CompressionCodec()
        blob = codec.encode(b"data" * 1000, CompressionMethod.ZLIB, 6)
        assert codec.decode(blob) == b"data" * 1000
    """

    def encode(self, data: bytes, method: CompressionMethod, level: int = 6) -> bytes:
        """Compress data and prefix the header.

        Args:
            data: Raw bytes
            method: ZLIB or LZMA2
            level: Compression effort, clamped to 0-9

        Returns:
            Header + compressed stream

        Raises:
            InvalidArgumentError: If method is NONE
            CodecError: If the encoder fails
        """
        method = CompressionMethod.parse(method)
        level = clamp_level(level)

        if method is CompressionMethod.NONE:
            raise InvalidArgumentError("encode() needs a concrete compression method")

        try:
            if method is CompressionMethod.ZLIB:
                body = self._zlib_compress(bytes(data), level)
            else:
                body = self._lzma2_compress(bytes(data), level)
        except CodecError:
            raise
        except (zlib.error, lzma.LZMAError, ValueError, MemoryError) as e:
            raise CodecError(f"{method.name} encode failed: {e}") from e

        logger.debug(f"{method.name} compressed {len(data)} bytes to {len(body)} bytes")
        return bytes((FLAG_COMPRESSED, method.value)) + body

    def wrap_raw(self, data: bytes) -> bytes:
        """Prefix an uncompressed header to raw bytes."""
        return bytes((FLAG_RAW, CompressionMethod.NONE.value)) + bytes(data)

    def decode(self, data: bytes) -> bytes:
        """Strip the header and decompress if needed.

        Args:
            data: Header-prefixed payload

        Returns:
            Original bytes

        Raises:
            CodecError: On short input, unknown flag/tag, or corrupt stream
        """
        if len(data) < HEADER_SIZE:
            raise CodecError(f"Payload too short for header: {len(data)} bytes")

        flag, tag = data[0], data[1]
        body = bytes(data[HEADER_SIZE:])

        if flag == FLAG_RAW:
            return body
        if flag != FLAG_COMPRESSED:
            raise CodecError(f"Unknown compression flag: {flag}")

        method = CompressionMethod.from_tag(tag)
        try:
            if method is CompressionMethod.ZLIB:
                return zlib.decompress(body)
            if method is CompressionMethod.LZMA2:
                return lzma.decompress(
                    body, format=lzma.FORMAT_XZ, memlimit=LZMA2_DECODE_MEMLIMIT
                )
        except (zlib.error, lzma.LZMAError, EOFError) as e:
            raise CodecError(f"{method.name} decode failed: {e}") from e

        raise CodecError("Compressed flag set with method tag 0")

    @staticmethod
    def header_of(data: bytes) -> CompressionMethod:
        """Read the method recorded in a payload header.

        Returns:
            NONE for raw payloads, otherwise the tagged method
        """
        if len(data) < HEADER_SIZE:
            raise CodecError(f"Payload too short for header: {len(data)} bytes")
        if data[0] == FLAG_RAW:
            return CompressionMethod.NONE
        return CompressionMethod.from_tag(data[1])

    def _zlib_compress(self, data: bytes, level: int) -> bytes:
        """Deflate in fixed-size chunks."""
        compressor = zlib.compressobj(level)
        parts = []
        for offset in range(0, len(data), ZLIB_CHUNK_SIZE):
            parts.append(compressor.compress(data[offset:offset + ZLIB_CHUNK_SIZE]))
        parts.append(compressor.flush())
        return b"".join(parts)

    def _lzma2_compress(self, data: bytes, level: int) -> bytes:
        """XZ container with a dictionary capped to the input size."""
        dict_size = max(LZMA2_MIN_DICT_SIZE, min(len(data), LZMA2_MAX_DICT_SIZE))
        filters = [
            {"id": lzma.FILTER_LZMA2, "preset": level, "dict_size": dict_size},
        ]
        return lzma.compress(data, format=lzma.FORMAT_XZ, filters=filters)

    def __repr__(self) -> str:
        return "CompressionCodec()"


__all__ = [
    "CompressionMethod",
    "CompressionCodec",
    "clamp_level",
    "HEADER_SIZE",
    "LZMA2_MAX_INPUT",
    "LZMA2_MAX_DICT_SIZE",
]
