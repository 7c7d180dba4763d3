"""
Logging setup for AeroDesk processes.

Modules log through ``logging.getLogger(__name__)``; this only decides where the
records go and at which level.
"""

import logging
from typing import Optional

from .config import AeroDeskConfig

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(config: AeroDeskConfig, stream: bool = True) -> logging.Logger:
    """
    Configure the ``aerodesk`` logger hierarchy from configuration.

    Args:
        config: Loaded configuration (level and optional log file)
        stream: Also log to stderr

    Returns:
        The package root logger
    """
    root = logging.getLogger("aerodesk")
    root.setLevel(config.log_level)

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)
    if stream:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)

    log_file: Optional[str] = config.log_file
    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    return root
