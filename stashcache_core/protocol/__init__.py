"""Protocol module - Payload codec and serialization."""

from stashcache_core.protocol.codec import (
    CompressionCodec,
    CompressionMethod,
    LZMA2_MAX_INPUT,
)
from stashcache_core.protocol.serializer import (
    Serializer,
    JSONSerializer,
    MsgPackSerializer,
    get_serializer,
)

__all__ = [
    "CompressionCodec",
    "CompressionMethod",
    "LZMA2_MAX_INPUT",
    "Serializer",
    "JSONSerializer",
    "MsgPackSerializer",
    "get_serializer",
]
