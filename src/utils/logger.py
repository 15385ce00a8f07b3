"""Centralized logging setup for the invoice extraction service.

Log lines carry the thread name so that output from concurrent
queue workers can be told apart.
"""

import logging
import sys
from typing import TextIO

LOG_FORMAT = "%(asctime)s - %(name)s - [%(threadName)s] - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# HTTP and imaging libraries log every request or decoded chunk at DEBUG.
_NOISY_LOGGERS = ("urllib3", "PIL", "multipart")


def setup_logging(level: str = "INFO", stream: TextIO | None = None) -> None:
    """Install one stream handler on the root logger.

    Calling it again once a handler exists is a no-op, so the API server
    and the CLI can both call it unconditionally.

    Args:
        level: Logging level name; unknown names fall back to INFO.
        stream: Output stream, stdout when omitted.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(numeric_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """Return the module logger for ``name`` (usually ``__name__``)."""
    return logging.getLogger(name)
