"""
Valkey connection settings for the external payload cache.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..utils.config import AeroDeskConfig

logger = logging.getLogger(__name__)


@dataclass
class ValkeyConfig:
    """
    Connection parameters for the Valkey server holding cached payloads.

    Timeouts are short; a slow or missing server degrades to a cache miss.
    """

    host: str = "localhost"
    port: int = 6379
    password: Optional[str] = None
    database: int = 0
    socket_timeout: float = 2.0
    socket_connect_timeout: float = 2.0
    decode_responses: bool = True
    default_ttl: int = 900

    @classmethod
    def from_app_config(cls, config: AeroDeskConfig) -> "ValkeyConfig":
        """
        Create ValkeyConfig from the loaded application configuration.

        Returns:
            ValkeyConfig: Configuration instance
        """
        return cls(
            host=config.valkey_host,
            port=config.valkey_port,
            password=config.valkey_password,
            database=config.valkey_database,
            default_ttl=config.external_cache_ttl_seconds,
        )

    def to_connection_kwargs(self) -> Dict[str, Any]:
        """
        Keyword arguments for ``valkey.Valkey``.

        Returns:
            Dict[str, Any]: Connection parameters for the Valkey client
        """
        kwargs = {
            "host": self.host,
            "port": self.port,
            "db": self.database,
            "socket_timeout": self.socket_timeout,
            "socket_connect_timeout": self.socket_connect_timeout,
            "decode_responses": self.decode_responses,
        }

        if self.password:
            kwargs["password"] = self.password

        return kwargs

    def __str__(self) -> str:
        """Masks the password."""
        password_display = "***" if self.password else "None"
        return (
            f"ValkeyConfig(host={self.host}, port={self.port}, "
            f"db={self.database}, password={password_display})"
        )
