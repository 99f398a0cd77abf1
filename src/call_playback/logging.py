"""
Structured logging setup for call-playback.

Configures structlog for JSON-formatted structured logging. Every log
line includes timestamp, level, service name, and event. Per-view
context (call_id, purpose) is bound where the work happens.
"""

from __future__ import annotations

import logging
import sys

import structlog

SERVICE_NAME = "call-playback"


def _add_service(_logger: object, _method: str, event_dict: dict) -> dict:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def configure_logging(level: str = "INFO", *, json: bool = True) -> None:
    """Configure structlog for the whole process.

    Safe to call more than once; the last call wins.

    Args:
        level: Minimum level name (``DEBUG``, ``INFO``, ...).
        json: Render JSON lines when ``True``, console output otherwise.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        numeric = logging.INFO

    renderer: structlog.typing.Processor
    if json:
        renderer = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _add_service,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(numeric),
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )
