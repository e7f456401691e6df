"""Structured logging configuration using structlog.

Call ``configure_logging()`` once at CLI startup; every log event emitted
during that run then carries the same ``run_id``.

Processor pipeline:

  1. merge_contextvars   — pulls run_id (and any other bound vars) into the event
  2. add_log_level       — adds  level="info" / "warning" / …
  3. TimeStamper         — adds  timestamp="2026-03-01T02:41:55Z"
  4. JSONRenderer        — one JSON object per line  (format=json)
     ConsoleRenderer     — coloured key=value        (format=text)

Typical usage:

    from increments.logging import configure_logging, get_logger

    run_id = configure_logging()
    log = get_logger(__name__)
    log.info("chain validated", accepted=12, latest_token="20160130_090000")
"""

import logging as _stdlib
import sys
import uuid

import structlog

from increments.config import Settings, get_settings


def configure_logging(settings: Settings | None = None) -> str:
    """Configure structlog for this process and return the run_id.

    Calling again reconfigures the pipeline and binds a fresh run_id.
    """
    if settings is None:
        settings = get_settings()

    level_int = getattr(_stdlib, settings.logging.level, _stdlib.INFO)

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.logging.format == "json"
        else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level_int),
        context_class=dict,
        # stdout carries the accepted-file list, so logs go to stderr.
        # Not cached: CliRunner swaps sys.stderr per invocation.
        logger_factory=structlog.PrintLoggerFactory(file=sys.stderr),
        cache_logger_on_first_use=False,
    )

    run_id = uuid.uuid4().hex[:8]
    structlog.contextvars.bind_contextvars(run_id=run_id)
    return run_id


def get_logger(name: str = "increments") -> structlog.BoundLogger:
    """Return a structlog logger; pass ``__name__`` from the calling module."""
    return structlog.get_logger(name)
