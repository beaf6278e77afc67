"""StashCache Typed View - Value Serialization at the Boundary.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from stashcache_core.protocol.serializer import JSONSerializer, Serializer

if TYPE_CHECKING:
    from stashcache_core.cache.engine import CacheEngine, MethodLike


class TypedCache:
    """Stores application values in a CacheEngine via a Serializer.

    The engine only sees bytes. This view owns the conversion, so
    strings stay strings and dicts stay dicts on the way back, without
    sniffing the stored text.

    Example:
        users = TypedCache(engine)
        users.set("user:1", {"name": "Ada"}, ttl=300)
        users.get("user:1")  # {"name": "Ada"}
    """

    _MISSING = object()

    def __init__(self, engine: "CacheEngine", serializer: Optional[Serializer] = None):
        self.engine = engine
        self.serializer = serializer or JSONSerializer()

    def get(self, key: str, default: Any = None) -> Any:
        """Get and deserialize a value.

        Raises:
            CodecError: If the stored bytes are not valid for the serializer
        """
        raw = self.engine.get(key)
        if raw is None:
            return default
        return self.serializer.deserialize(raw)

    def set(
        self,
        key: str,
        value: Any,
        ttl: Optional[float] = None,
        compress: Optional[bool] = None,
        method: Optional["MethodLike"] = None,
    ) -> None:
        """Serialize and store a value."""
        self.engine.set(
            key,
            self.serializer.serialize(value),
            ttl=ttl,
            compress=compress,
            method=method,
        )

    def has(self, key: str) -> bool:
        return self.engine.has(key)

    def remove(self, key: str) -> None:
        self.engine.remove(key)

    def __getitem__(self, key: str) -> Any:
        value = self.get(key, self._MISSING)
        if value is self._MISSING:
            raise KeyError(key)
        return value

    def __setitem__(self, key: str, value: Any) -> None:
        self.set(key, value)

    def __contains__(self, key: str) -> bool:
        return self.has(key)

    def __repr__(self) -> str:
        return f"TypedCache(format={self.serializer.format_name!r}, engine={self.engine!r})"


__all__ = ["TypedCache"]
