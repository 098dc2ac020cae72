"""
Logging configuration for the cafe bot application.

Usage:
    from cafe_bot.logging_config import setup_logging
    setup_logging()  # Call once at application startup

Environment variables:
    LOG_LEVEL: Set to DEBUG, INFO, WARNING, ERROR, or CRITICAL (default: INFO)

Log policy:
    - Redemption tokens are secrets. Code logs them through ``mask_token()``,
      and every handler configured here also carries a RedemptionTokenFilter
      that masks any full token that slips into a message.
    - Customer identities and message text are logged at DEBUG only. INFO and
      above carry order ids and status changes.
"""
import logging
import math
import os
import re
import sys

from .config import TOKEN_BYTES, TOKEN_LOG_PREFIX

VALID_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Loggers lowered to WARNING unless running at DEBUG
NOISY_LOGGERS = ("httpx", "uvicorn.access", "sqlalchemy.engine", "multipart")

# secrets.token_urlsafe(n) yields ceil(4n/3) characters from this alphabet
_TOKEN_LENGTH = math.ceil(TOKEN_BYTES * 4 / 3)
TOKEN_PATTERN = re.compile(
    r"(?<![A-Za-z0-9_-])[A-Za-z0-9_-]{%d}(?![A-Za-z0-9_-])" % _TOKEN_LENGTH
)


def mask_token(token: str) -> str:
    """Return a log-safe form of a redemption token (short prefix only)."""
    if not token:
        return "<empty>"
    return token[:TOKEN_LOG_PREFIX] + "..."


class RedemptionTokenFilter(logging.Filter):
    """Rewrite records so full redemption tokens never reach a handler."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = TOKEN_PATTERN.sub(lambda m: mask_token(m.group(0)), message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def _resolve_level(level: str = None) -> str:
    if level is None:
        level = os.getenv("LOG_LEVEL", "INFO")
    level = level.upper()
    return level if level in VALID_LEVELS else "INFO"


def setup_logging(level: str = None) -> None:
    """
    Configure logging for the application.

    Args:
        level: Log level string (DEBUG, INFO, WARNING, ERROR, CRITICAL).
               If not provided, reads from LOG_LEVEL env var, defaults to INFO.
    """
    level = _resolve_level(level)
    numeric_level = getattr(logging, level)

    logging.basicConfig(
        level=numeric_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )
    logging.getLogger("cafe_bot").setLevel(numeric_level)

    for handler in logging.getLogger().handlers:
        if not any(isinstance(f, RedemptionTokenFilter) for f in handler.filters):
            handler.addFilter(RedemptionTokenFilter())

    third_party_level = logging.NOTSET if level == "DEBUG" else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(third_party_level)

    logging.getLogger(__name__).debug("Logging configured at %s level", level)
