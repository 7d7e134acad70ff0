"""
Logging setup — structlog over the standard library.

Modules log through a module-level structlog logger:

    import structlog

    logger = structlog.get_logger(__name__)
    logger.info("Order created", seller_id=seller_id, order_id=order_id)

Applications call configure_logging() once at startup.
"""

from __future__ import annotations

import logging
import os
import sys
from typing import Any

import structlog

from farmsplit.config import ENV_PREFIX

_TRUTHY = frozenset({"1", "true", "yes", "on"})


def get_log_level() -> str:
    """Level from FARMSPLIT_LOG_LEVEL, INFO otherwise."""
    return os.getenv(f"{ENV_PREFIX}LOG_LEVEL", "INFO").upper()


def wants_json() -> bool:
    return os.getenv(f"{ENV_PREFIX}LOG_JSON", "").strip().lower() in _TRUTHY


def setup_stdlib_logging(level: str) -> None:
    """Route stdlib records (sqlalchemy, uvicorn, ...) to stdout."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = []

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    root_logger.addHandler(console_handler)

    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def setup_structlog(json: bool) -> None:
    processors: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if json:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def configure_logging(level: str | None = None, *, json: bool | None = None) -> None:
    """Configure all logging for the application."""
    resolved_level = (level or get_log_level()).upper()
    setup_stdlib_logging(resolved_level)
    setup_structlog(wants_json() if json is None else json)


def bind_context(**kwargs: Any) -> None:
    """Add context that is included in every subsequent log line of this task."""
    structlog.contextvars.bind_contextvars(**kwargs)


def clear_context() -> None:
    structlog.contextvars.clear_contextvars()


__all__ = (
    "configure_logging",
    "get_log_level",
    "bind_context",
    "clear_context",
)
