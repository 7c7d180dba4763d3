"""
Cache-aside JSON store for external payloads, backed by Valkey.

The cache is an optimization only. Every Valkey failure is logged and turned
into a miss (reads) or a skipped write.
"""

import json
import logging
from typing import Any, Dict, Optional

import valkey
from valkey.exceptions import ValkeyError

from .config import ValkeyConfig

logger = logging.getLogger(__name__)


class PayloadCache:
    """JSON payload cache with per-entry TTL."""

    def __init__(self, config: ValkeyConfig, client: Optional[valkey.Valkey] = None):
        """
        Initialize the cache.

        Args:
            config: Connection parameters and default TTL
            client: Pre-built client; created from ``config`` when omitted
        """
        self.config = config
        self.default_ttl = config.default_ttl
        self.client = client or valkey.Valkey(**config.to_connection_kwargs())
        logger.info(f"Payload cache configured: {config}")

    def ping(self) -> bool:
        try:
            return bool(self.client.ping())
        except ValkeyError as e:
            logger.warning(f"Valkey ping failed: {e}")
            return False

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Get a payload.

        Returns:
            The decoded payload, or None on a miss or any cache failure
        """
        try:
            value = self.client.get(key)
        except ValkeyError as e:
            logger.warning(f"Cache GET error for key '{key}': {e}")
            return None
        if value is None:
            return None
        try:
            return json.loads(value)
        except ValueError as e:
            logger.warning(f"Discarding undecodable cache entry '{key}': {e}")
            return None

    def set(self, key: str, value: Dict[str, Any], ttl: Optional[int] = None) -> bool:
        """
        Store a payload with a TTL (the configured default when None).

        Returns:
            True if the write reached the cache
        """
        ttl = ttl or self.default_ttl
        try:
            self.client.setex(key, ttl, json.dumps(value, default=str))
            return True
        except ValkeyError as e:
            logger.warning(f"Cache SET error for key '{key}': {e}")
            return False

    def delete(self, key: str) -> bool:
        try:
            return bool(self.client.delete(key))
        except ValkeyError as e:
            logger.warning(f"Cache DELETE error for key '{key}': {e}")
            return False

    def close(self) -> None:
        try:
            self.client.close()
        except ValkeyError as e:
            logger.warning(f"Error closing Valkey client: {e}")
