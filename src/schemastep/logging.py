"""Structured logging setup for schemastep.

Uses structlog on top of the standard library logging module. Events are
snake_case names with key-value context, e.g.
``log.info("migration_applied", id="20240101120000_init", direction="up")``.
"""

from __future__ import annotations

import logging
import sys

import structlog


def setup_logging(json_output: bool = True, level: str = "INFO") -> None:
    """Configure structlog and the root logger.

    Args:
        json_output: Render events as JSON lines instead of console output.
        level: Minimum log level name.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=log_level,
        force=True,
    )

    renderer: structlog.types.Processor
    if json_output:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a named logger, e.g. ``get_logger("planner")``."""
    return structlog.get_logger(f"schemastep.{name}")
