"""
Logging setup for the cafe orders service.

Every log line carries the ID of the HTTP request it was written under, so
a staff command, the lifecycle writes it triggers and any retry or
out-of-sync error can be read together. The request middleware in main.py
binds the ID with bind_request_id(); work outside a request (startup,
observer timers) logs "-".

Environment variables:
    LOG_LEVEL: DEBUG, INFO, WARNING, ERROR or CRITICAL (default: INFO)
"""
import logging
import os
import sys
from contextvars import ContextVar, Token
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s"

_request_id: ContextVar[str] = ContextVar("request_id", default="-")

# Chatty dependencies, quieted unless running at DEBUG
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "sqlalchemy.engine")


def bind_request_id(request_id: str) -> Token:
    return _request_id.set(request_id)


def reset_request_id(token: Token) -> None:
    _request_id.reset(token)


class RequestIdFilter(logging.Filter):
    """Stamps each record with the current request ID."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = _request_id.get()
        return True


def _resolve_level(level: Optional[str]) -> int:
    name = (level or os.getenv("LOG_LEVEL") or "INFO").upper()
    numeric = logging.getLevelName(name)
    return numeric if isinstance(numeric, int) else logging.INFO


def setup_logging(level: str = None) -> None:
    """
    Configure logging once at startup.

    Args:
        level: Level name. Falls back to LOG_LEVEL, then INFO. Unknown
               names also fall back to INFO.
    """
    numeric_level = _resolve_level(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logging.basicConfig(level=numeric_level, handlers=[handler])

    logging.getLogger("cafe_orders").setLevel(numeric_level)

    noisy_level = logging.NOTSET if numeric_level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(noisy_level)

    logging.getLogger(__name__).debug(
        "Logging configured at %s", logging.getLevelName(numeric_level)
    )
