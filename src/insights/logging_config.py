"""structlog setup shared by the API and the CLI."""

import logging
import sys

import structlog

from insights.settings import settings


def _renderer():
    if settings.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def configure_logging() -> None:
    """Configure structlog and route stdlib logging to stdout.

    ``LOG_FORMAT=json`` emits one JSON object per event (production);
    anything else uses the coloured console renderer.
    """
    level = logging.getLevelName(settings.log_level.upper())
    timestamper = structlog.processors.TimeStamper(
        fmt="iso" if settings.log_format == "json" else "%Y-%m-%d %H:%M:%S"
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            timestamper,
            structlog.processors.format_exc_info,
            _renderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )

    # SQLAlchemy and uvicorn log through the stdlib
    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)


def get_logger(name: str) -> structlog.BoundLogger:
    """Logger bound to the service name and the calling module."""
    return structlog.get_logger(name).bind(service=settings.app_name)
