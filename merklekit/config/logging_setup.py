"""
Logging setup for applications embedding merklekit.

The library itself only creates module loggers; it never configures
handlers on import.
"""

from __future__ import annotations

import logging
import sys

from merklekit.config.runtime import get_default_config


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(raw: str | None) -> int:
    """Map a level name to a logging level, falling back to INFO."""
    return getattr(logging, (raw or "INFO").upper(), logging.INFO)


def setup_logging(level: str | None = None, log_file: str | None = None) -> None:
    """Configure root logging; `level` defaults to the runtime config value."""
    if level is None:
        level = get_default_config().logging.level

    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=resolve_level(level),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        handlers=handlers,
    )
