"""
Central logging configuration for TeamSync.

Console output goes through ``colorlog`` with the current request's
correlation ID on every line; noisy third-party loggers are kept at WARNING.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

from .api.middleware.correlation_id import get_request_id

CONSOLE_FORMAT = (
    "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s [%(request_id)s] %(name)s: %(message)s"
)
LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

_QUIET_LOGGERS: dict[str, int] = {
    "aiohttp.access": logging.WARNING,
    "aiohttp.server": logging.WARNING,
    "aiohttp.web": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
}


class CorrelationIdFilter(logging.Filter):
    """Add the request correlation ID to every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        return True


def _env_truthy(name: str) -> bool:
    return os.getenv(name, "").strip().lower() in ("1", "true", "yes", "on")


def configure_logging(level_name: Optional[str] = None, force_debug: Optional[bool] = None) -> int:
    """
    Configure console logging for TeamSync.

    Installs a colorized stderr handler on the root logger if none exists,
    attaches the correlation ID filter to every root handler and quiets
    third-party loggers.

    Args:
        level_name: Level name from configuration (defaults to INFO)
        force_debug: Override debug detection (None to use env var detection)

    Environment Variables:
        TEAMSYNC_DEBUG: '1', 'true', 'yes' or 'on' forces DEBUG
        TEAMSYNC_LOG_LEVEL: Overrides ``level_name``

    Returns:
        The effective root level
    """
    env_level = os.getenv("TEAMSYNC_LOG_LEVEL", "").upper()
    if force_debug is None:
        force_debug = _env_truthy("TEAMSYNC_DEBUG")

    level = logging.INFO
    for candidate in (env_level, (level_name or "").upper()):
        if candidate in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            level = getattr(logging, candidate)
            break
    if force_debug:
        level = logging.DEBUG

    root = logging.getLogger()
    root.setLevel(level)

    if not root.handlers:
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(
            ColoredFormatter(CONSOLE_FORMAT, datefmt="%H:%M:%S", log_colors=LOG_COLORS)
        )
        root.addHandler(handler)

    for handler in root.handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            handler.addFilter(CorrelationIdFilter())

    for logger_name, quiet_level in _QUIET_LOGGERS.items():
        logging.getLogger(logger_name).setLevel(quiet_level)

    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )
    return level

