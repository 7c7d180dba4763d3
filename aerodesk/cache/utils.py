"""
Cache key naming and TTL presets for cached external payloads.
"""

from enum import Enum
from typing import Any, Union

from ..models.enums import ExternalDataKind


class CacheKeyPrefix(str, Enum):
    """Key prefixes, one per external lookup kind."""

    WEATHER = "aerodesk:weather"
    FLIGHT_STATUS = "aerodesk:flight:status"
    AIRPORT_INFO = "aerodesk:airport:info"
    LIVE_TRACKING = "aerodesk:flight:tracking"

    @classmethod
    def for_kind(cls, kind: ExternalDataKind) -> "CacheKeyPrefix":
        return cls[ExternalDataKind(kind).name]


class TTLPreset(int, Enum):
    """TTL presets in seconds per lookup kind."""

    LIVE_TRACKING = 30      # Positions go stale fast
    FLIGHT_STATUS = 300     # 5 minutes
    WEATHER = 900           # 15 minutes
    AIRPORT_INFO = 86400    # 24 hours

    @classmethod
    def for_kind(cls, kind: ExternalDataKind) -> int:
        return int(cls[ExternalDataKind(kind).name])


def build_key(prefix: Union[CacheKeyPrefix, str], *parts: Any) -> str:
    """
    Build a cache key from a prefix and normalized parts.

    Example:
        build_key(CacheKeyPrefix.WEATHER, "jfk")
        # Returns: "aerodesk:weather:JFK"
    """
    prefix_str = prefix.value if isinstance(prefix, CacheKeyPrefix) else str(prefix)
    key_parts = [prefix_str]
    for part in parts:
        if part is not None:
            key_parts.append(str(part).strip().upper().replace(" ", "_"))
    return ":".join(key_parts)
