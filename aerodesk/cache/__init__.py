"""
Valkey-backed cache for external data payloads.
"""

from .config import ValkeyConfig
from .client import PayloadCache
from .utils import CacheKeyPrefix, TTLPreset, build_key

__all__ = [
    "ValkeyConfig",
    "PayloadCache",
    "CacheKeyPrefix",
    "TTLPreset",
    "build_key",
]
