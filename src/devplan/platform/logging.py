"""
Devplan Logging

structlog setup shared by the schedulers, the service and the CLI.

Scheduler events are emitted as short snake_case names with key/value context,
e.g. ``task_dropped task_key=epic:1;story:1;task:2 skill=Backend``. Production
renders one JSON object per line; every other environment gets the console
renderer.
"""

import logging
import sys
from typing import List, Optional, TextIO

import structlog
from structlog.types import Processor

from devplan.platform.config import settings


def _resolve_level(level: Optional[str] = None) -> int:
    name = (level or settings.LOG_LEVEL).upper()
    return getattr(logging, name, logging.INFO)


def _processors() -> List[Processor]:
    renderer = (
        structlog.processors.JSONRenderer()
        if settings.APP_ENV == "production"
        else structlog.dev.ConsoleRenderer(colors=False)
    )
    return [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.format_exc_info,
        renderer,
    ]


def configure_logging(stream: Optional[TextIO] = None, level: Optional[str] = None) -> None:
    """
    Route structlog through stdlib logging.

    Args:
        stream: Where log lines go (stdout when omitted). The CLI passes stderr
            so the scheduled document is the only thing written to stdout.
        level: Overrides ``LOG_LEVEL``
    """
    log_level = _resolve_level(level)

    structlog.configure(
        processors=_processors(),
        wrapper_class=structlog.make_filtering_bound_logger(log_level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=stream or sys.stdout,
        level=log_level,
    )


def get_logger(name: Optional[str] = None) -> structlog.BoundLogger:
    """Logger bound to a component name."""
    return structlog.get_logger(name)
