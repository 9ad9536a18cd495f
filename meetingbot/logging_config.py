"""
Central logging configuration for meetingbot.

Console output uses colorlog; every record carries the request correlation ID
so the log lines of one webhook delivery can be grouped. Noisy third-party
loggers are capped at WARNING.
"""

import logging
import os
import sys
from typing import Optional

from colorlog import ColoredFormatter

LOG_FORMAT = "%(asctime)s %(log_color)s%(levelname)-7s%(reset)s [%(request_id)s] %(name)s: %(message)s"

LOG_COLORS = {
    "DEBUG": "cyan",
    "INFO": "green",
    "WARNING": "yellow",
    "ERROR": "red",
    "CRITICAL": "bold_red",
}

# Third-party libraries that generate excessive debug logs
THIRD_PARTY_LEVELS: dict[str, int] = {
    "aiohttp.access": logging.WARNING,
    "aiohttp.server": logging.WARNING,
    "aiohttp.web": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "asyncio": logging.WARNING,
}


class CorrelationIdFilter(logging.Filter):
    """Add correlation ID to all log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        from .api.middleware import get_request_id

        record.request_id = get_request_id()
        return True


def resolve_log_level(level_name: Optional[str]) -> int:
    """Coerce a level name to a logging level; MEETINGBOT_DEBUG forces DEBUG."""
    if os.environ.get("MEETINGBOT_DEBUG", "").strip().lower() in ("1", "true", "yes", "on"):
        return logging.DEBUG
    if isinstance(level_name, str):
        level = logging.getLevelName(level_name.strip().upper())
        if isinstance(level, int):
            return level
    return logging.INFO


def configure_logging(level_name: Optional[str] = None) -> None:
    """Configure root logging for the server and CLI.

    Args:
        level_name: Level name such as "DEBUG" or "INFO" (default INFO)
    """
    level = resolve_log_level(level_name)

    root = logging.getLogger()
    if not any(isinstance(h.formatter, ColoredFormatter) for h in root.handlers):
        handler = logging.StreamHandler(stream=sys.stderr)
        handler.setFormatter(ColoredFormatter(LOG_FORMAT, datefmt="%H:%M:%S", log_colors=LOG_COLORS))
        root.addHandler(handler)

    correlation_filter = CorrelationIdFilter()
    for handler in root.handlers:
        if not any(isinstance(f, CorrelationIdFilter) for f in handler.filters):
            handler.addFilter(correlation_filter)

    root.setLevel(level)

    for logger_name, logger_level in THIRD_PARTY_LEVELS.items():
        logging.getLogger(logger_name).setLevel(max(logger_level, level))

    logging.getLogger(__name__).debug(
        "Logging initialized at level %s", logging.getLevelName(level)
    )
