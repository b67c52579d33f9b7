"""
Central logging configuration for upcoming_lite.

Installs a colorized console handler and lets the environment raise verbosity
for troubleshooting without code changes.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s %(name)s: %(message)s"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}


def _resolve_level(level_name: Optional[str], debug_mode: bool) -> int:
    env_debug = os.getenv("UPCOMING_LITE_DEBUG", "").strip().lower() in ("1", "true", "yes", "on")
    env_level = os.getenv("UPCOMING_LITE_LOG_LEVEL", "").strip().upper()

    if debug_mode or env_debug:
        return logging.DEBUG
    if env_level in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        return getattr(logging, env_level)
    if isinstance(level_name, str):
        return getattr(logging, level_name.upper(), logging.INFO)
    return logging.INFO


def configure_lite_logging(level_name: Optional[str] = None, debug_mode: bool = False) -> None:
    """
    Configure console logging for upcoming_lite.

    Args:
        level_name: Requested level name (e.g. "INFO"); invalid names mean INFO
        debug_mode: Force DEBUG for upcoming_lite loggers

    Environment Variables:
        UPCOMING_LITE_DEBUG: Set to '1', 'true', 'yes' to force debug logging
        UPCOMING_LITE_LOG_LEVEL: Override the level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    level = _resolve_level(level_name, debug_mode)

    root_logger = logging.getLogger()
    # Only add a handler if none exist to avoid duplicate output
    if not root_logger.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt="%H:%M:%S", log_colors=LOG_COLORS))
        root_logger.addHandler(handler)

    root_logger.setLevel(level)
    logging.getLogger("upcoming_lite").setLevel(level)
    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )
