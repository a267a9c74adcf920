"""Central logging configuration utilities for asa_host.

Every command logs through the stdlib :mod:`logging` module with one line per
event in the ``[timestamp] [LEVEL] message`` shape, written to stdout so the
output can be redirected to a log file when the watchdog runs under nohup.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Optional

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_VALID_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def configure_logging(level: str | int | None = None, *, force: bool = False) -> None:
    """Configure root logger.

    Order of precedence for level:
    1. Explicit `level` argument if given
    2. Environment variable `ASA_LOG_LEVEL`
    3. Fallback to `INFO`
    """
    invalid_level = None
    if level is None:
        level = os.environ.get("ASA_LOG_LEVEL") or "INFO"

    if isinstance(level, str):
        name = level.strip().upper()
        if name in _VALID_LEVELS:
            level = getattr(logging, name)
        else:
            invalid_level = name
            level = logging.INFO

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
        stream=sys.stdout,
        force=force,
    )
    if invalid_level:
        logging.getLogger("asa_host").warning(
            "Invalid ASA_LOG_LEVEL %r; falling back to INFO. Valid values: %s.",
            invalid_level,
            ", ".join(sorted(_VALID_LEVELS)),
        )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Get a project logger, configuring logging lazily on first access."""
    logger = logging.getLogger(name or "asa_host")
    if not logging.getLogger().handlers:  # pragma: no cover
        configure_logging()
    return logger


__all__ = ["configure_logging", "get_logger", "LOG_FORMAT", "DATE_FORMAT"]
