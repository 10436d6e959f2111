"""Logging setup for claudx.

All diagnostics go to stderr. Stdout belongs to the wrapped tool and must
never carry claudx output.
"""

from __future__ import annotations

import logging
import os
import sys

LOGGER_NAME = "claudx"
LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%dT%H:%M:%S%z"


def debug_enabled() -> bool:
    """Check the debug environment flags (LOG_LEVEL=debug or CLAUDX_DEBUG)."""
    if os.environ.get("LOG_LEVEL", "").lower() == "debug":
        return True
    return os.environ.get("CLAUDX_DEBUG", "").lower() in ("1", "true", "yes")


def configure_logging(level: int | None = None) -> logging.Logger:
    """Attach a stderr handler to the claudx logger.

    Args:
        level: Explicit level. Defaults to DEBUG when the debug flag is set,
               WARNING otherwise.

    Returns:
        The configured "claudx" logger.
    """
    if level is None:
        level = logging.DEBUG if debug_enabled() else logging.WARNING

    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(level)
    # Avoid adding multiple handlers if re-initialized
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)
    return logger
