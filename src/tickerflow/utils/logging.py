"""Structured logging setup built on structlog."""

import logging
import sys
from typing import Any, TextIO

import structlog


def setup_logging(
    level: str = "INFO", format_type: str = "json", stream: TextIO | None = None
) -> None:
    """Configure structlog and the standard library root logger.

    Args:
        level: Log level name (DEBUG, INFO, WARNING, ERROR)
        format_type: 'json' for machine-readable output, 'text' for console output
        stream: Where log lines are written (defaults to stdout)
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=log_level,
        force=True,
    )

    renderer: structlog.types.Processor
    if format_type == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str, **initial_values: Any) -> Any:
    """Get a structlog logger bound with optional context.

    Args:
        name: Logger name, usually ``__name__``
        **initial_values: Key/value pairs bound to every event of this logger

    Returns:
        Lazy structlog logger, resolved against the configuration on first use
    """
    return structlog.get_logger(name, **initial_values)
