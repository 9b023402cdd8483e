"""
Logging for the cart engine.

Importing this module attaches one stdout handler to the root logger,
unless the host application configured logging first. Modules obtain
their logger with:

    from shoppingcart.logging import get_logger
    logger = get_logger(__name__)

Environment:
    LOG_LEVEL   DEBUG / INFO / WARNING / ... (default INFO)
    LOG_FORMAT  "simple" leaves out the timestamp
"""

import logging
import os
import sys
from functools import cache

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_FORMAT_SIMPLE = "%(levelname)s - %(name)s - %(message)s"

# HTTP transports of the Supabase and Upstash clients log every request
_QUIET_LOGGERS = ("httpx", "httpcore")

# Row ids are md5 digests; a prefix is enough to correlate log lines
_ID_PREFIX = 8


def _level_from_env() -> int:
    name = os.environ.get("LOG_LEVEL", "INFO").upper()
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging() -> None:
    """Install the cart engine's handler on the root logger if it has none."""
    root = logging.getLogger()
    if root.handlers:
        return

    level = _level_from_env()
    fmt = LOG_FORMAT_SIMPLE if os.environ.get("LOG_FORMAT", "").lower() == "simple" else LOG_FORMAT

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    root.setLevel(level)
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


configure_logging()


@cache
def get_logger(name: str) -> logging.Logger:
    """Logger for `name`, normally the calling module's __name__."""
    return logging.getLogger(name)


_CONTROL_ESCAPES = str.maketrans({"\n": "\\n", "\r": "\\r", "\t": "\\t", "\x00": None})


def _neutralize(value: object) -> str:
    # A raw newline in a product name would start a fake log record (CWE-117)
    return str(value).translate(_CONTROL_ESCAPES)


def sanitize_id_for_logging(id_value: object | None) -> str:
    """
    Short, single-line form of a row id or park identifier.

    Only the first 8 characters are kept. None and "" become "N/A";
    0 is a valid identifier and is logged as "0".
    """
    if id_value is None or id_value == "":
        return "N/A"
    return _neutralize(id_value)[:_ID_PREFIX]


def sanitize_string_for_logging(value: str | None, max_length: int = 50) -> str:
    """Single-line form of an item or condition name, cut at `max_length`."""
    if not value:
        return "N/A"
    text = _neutralize(value)
    if len(text) > max_length:
        return f"{text[:max_length]}..."
    return text


__all__ = [
    "LOG_FORMAT",
    "LOG_FORMAT_SIMPLE",
    "configure_logging",
    "get_logger",
    "sanitize_id_for_logging",
    "sanitize_string_for_logging",
]
