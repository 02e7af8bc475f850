"""Centralized logging for docrelay actors.

Provides a structlog-backed implementation of LoggerProtocol. Components
receive a logger by injection; when none is given they bind one to their
component name with ``get_component_logger``.

Usage:
    from docrelay.logging import configure_logging, get_component_logger

    # At process startup (once)
    configure_logging(level="INFO", json_output=True)

    # Inside a component
    logger = get_component_logger("RelayEngine")
    logger.info("relay_started", schema_type="form")
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, Optional

import structlog

from docrelay.protocols import LoggerProtocol

# Module state
_CONFIGURED = False


class Logger:
    """LoggerProtocol implementation backed by structlog."""

    def __init__(
        self,
        base_logger: Any = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        """Initialize logger.

        Args:
            base_logger: Underlying structlog logger (created if None)
            context: Bound context fields
        """
        self._logger = base_logger or structlog.get_logger()
        self._context = context or {}

        if self._context:
            self._logger = self._logger.bind(**self._context)

    def debug(self, msg: str, **kwargs: Any) -> None:
        self._logger.debug(msg, **kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        self._logger.info(msg, **kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        self._logger.warning(msg, **kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        self._logger.error(msg, **kwargs)

    def bind(self, **kwargs: Any) -> "Logger":
        """Create child logger with additional context."""
        return Logger(
            base_logger=structlog.get_logger(),
            context={**self._context, **kwargs},
        )


def configure_logging(
    level: str = "INFO",
    *,
    json_output: bool = True,
) -> None:
    """Configure stdlib logging and structlog for the process.

    Should be called ONCE at startup; later calls are ignored.

    Args:
        level: Default log level (DEBUG, INFO, WARNING, ERROR)
        json_output: If True, output JSON; if False, console format
    """
    global _CONFIGURED

    if _CONFIGURED:
        return

    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        stream=sys.stdout,
    )

    # Outbound delivery would otherwise log every POST
    for noisy in ["httpx", "httpcore"]:
        logging.getLogger(noisy).setLevel(logging.WARNING)

    if json_output:
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        cache_logger_on_first_use=True,
    )

    _CONFIGURED = True


def get_component_logger(
    component: str,
    logger: Optional[LoggerProtocol] = None,
) -> LoggerProtocol:
    """Get a logger bound to a component name.

    This is the canonical way to initialize a logger in components.

    Args:
        component: Component name (e.g., "SubscriptionRegistry")
        logger: Optional injected logger. If None, a structlog Logger is used.

    Returns:
        LoggerProtocol bound to the component name
    """
    base_logger = logger or Logger()
    return base_logger.bind(component=component)


__all__ = [
    "Logger",
    "configure_logging",
    "get_component_logger",
]
