"""
Structured logging configuration using structlog.

JSON lines when ``LOG_FORMAT=json`` (agents running under a service manager),
colored console output otherwise. Everything goes to stdout.
"""

import logging
import sys

import structlog

from agent_claim.config import settings


def setup_logging() -> None:
    """
    Configure structlog and route stdlib logging (uvicorn, httpx) to stdout.

    Call this once at application startup.
    """
    level = getattr(logging, settings.log_level.upper())

    if settings.log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            # Correlation ID bound by the request middleware
            structlog.contextvars.merge_contextvars,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    # httpx logs full request URLs at INFO, and the claim URL is operator supplied
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str | None = None):
    """
    Get a structlog logger instance.

    Args:
        name: Optional logger name for context

    Returns:
        Configured structlog logger
    """
    # Must stay a lazy proxy: module-level loggers exist before setup_logging() runs
    if name:
        return structlog.get_logger(logger_name=name)
    return structlog.get_logger()
