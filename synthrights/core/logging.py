"""
structlog setup for the certificate service.

Pipeline events are logged by name with keyword context, e.g.
``certificate_issued`` with ``certificate_id`` and ``work_id``, or
``registry_register_failed`` with the work id and the exception. Local runs
render them for the console; every other environment emits one JSON object
per event so anchoring failures can be filtered by work id.
"""

import logging
import sys
from typing import cast

import structlog
from structlog.types import Processor

from synthrights.core.config import get_settings


def configure_logging() -> None:
    """Configure structlog and route the standard library through it."""
    settings = get_settings()

    shared_processors: list[Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if settings.environment == "development":
        renderer: list[Processor] = [structlog.dev.ConsoleRenderer(colors=True)]
    else:
        renderer = [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]

    structlog.configure(
        processors=shared_processors + renderer,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level),
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Module-level logger; callers pass ``__name__``."""
    return cast(structlog.stdlib.BoundLogger, structlog.get_logger(name))
