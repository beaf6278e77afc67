"""StashCache Serializer - Record and Value Serialization.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import msgpack

from stashcache_core.errors import CodecError, InvalidArgumentError

logger = logging.getLogger(__name__)


class Serializer(ABC):
    """Abstract serializer.

    Used in two places: FileStore turns entry records into file contents,
    and TypedCache turns caller values into the opaque bytes the engine
    stores.
    """

    @property
    @abstractmethod
    def format_name(self) -> str:
        """Get format name."""
        pass

    @property
    def binary_safe(self) -> bool:
        """Whether bytes values survive serialize() without encoding."""
        return False

    @abstractmethod
    def serialize(self, value: Any) -> bytes:
        """Serialize value to bytes.

        Args:
            value: Value to serialize

        Returns:
            Serialized bytes
        """
        pass

    @abstractmethod
    def deserialize(self, data: bytes) -> Any:
        """Deserialize bytes to value.

        Args:
            data: Serialized bytes

        Returns:
            Deserialized value

        Raises:
            CodecError: If data is not valid for this format
        """
        pass

    def pack_bytes(self, data: bytes) -> Any:
        """Represent raw bytes inside a serialized document."""
        if self.binary_safe:
            return bytes(data)
        return base64.b64encode(data).decode("ascii")

    def unpack_bytes(self, value: Any) -> bytes:
        """Inverse of pack_bytes().

        Raises:
            CodecError: If value is not a bytes representation
        """
        if isinstance(value, (bytes, bytearray)):
            return bytes(value)
        if isinstance(value, str):
            try:
                return base64.b64decode(value.encode("ascii"), validate=True)
            except (binascii.Error, UnicodeEncodeError) as e:
                raise CodecError(f"Invalid base64 payload: {e}") from e
        raise CodecError(f"Expected bytes payload, got {type(value).__name__}")


class JSONSerializer(Serializer):
    """JSON serializer.

    Human-readable; bytes are carried as base64 text.
    """

    @property
    def format_name(self) -> str:
        return "json"

    def serialize(self, value: Any) -> bytes:
        try:
            return json.dumps(value, separators=(",", ":")).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise CodecError(f"Value is not JSON serializable: {e}") from e

    def deserialize(self, data: bytes) -> Any:
        try:
            return json.loads(bytes(data).decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise CodecError(f"Invalid JSON: {e}") from e


class MsgPackSerializer(Serializer):
    """MessagePack serializer.

    Compact binary format that stores bytes natively.
    """

    @property
    def format_name(self) -> str:
        return "msgpack"

    @property
    def binary_safe(self) -> bool:
        return True

    def serialize(self, value: Any) -> bytes:
        try:
            return msgpack.packb(value, use_bin_type=True)
        except (TypeError, ValueError, OverflowError) as e:
            raise CodecError(f"Value is not MessagePack serializable: {e}") from e

    def deserialize(self, data: bytes) -> Any:
        try:
            return msgpack.unpackb(bytes(data), raw=False)
        except (msgpack.UnpackException, ValueError, TypeError) as e:
            raise CodecError(f"Invalid MessagePack: {e}") from e


_SERIALIZERS: Dict[str, Serializer] = {
    "json": JSONSerializer(),
    "msgpack": MsgPackSerializer(),
}


def get_serializer(format_name: Optional[str] = None) -> Serializer:
    """Get serializer by format.

    Args:
        format_name: "json" or "msgpack"; None for json

    Returns:
        Serializer instance

    Raises:
        InvalidArgumentError: If format not found
    """
    name = (format_name or "json").lower()
    if name not in _SERIALIZERS:
        raise InvalidArgumentError(f"Unknown serializer format: {format_name}")
    return _SERIALIZERS[name]


__all__ = [
    "Serializer",
    "JSONSerializer",
    "MsgPackSerializer",
    "get_serializer",
]
