"""
Configuration and logging helpers for AeroDesk.
"""

from .config import AeroDeskConfig, load_config
from .log import configure_logging

__all__ = ["AeroDeskConfig", "load_config", "configure_logging"]
