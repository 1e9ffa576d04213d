"""Structured logging setup.

Modules obtain loggers with ``structlog.get_logger(__name__)`` and log
dot-notation event names (``agent.task.completed``). ``configure_logging``
is called once by the composition root; before that structlog's defaults
apply, which is what the test suite relies on.
"""
from __future__ import annotations

import logging
import sys

import structlog

_configured = False


def configure_logging(level: str = "INFO", *, json: bool = False, force: bool = False) -> None:
    """Route structlog through stdlib logging with a console or JSON renderer."""
    global _configured
    if _configured and not force:
        return

    log_level = logging.getLevelName(level.upper())
    if not isinstance(log_level, int):
        log_level = logging.INFO

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=log_level, force=True)

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
    ]
    if json:
        processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        # The console renderer formats exceptions itself.
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _configured = True
