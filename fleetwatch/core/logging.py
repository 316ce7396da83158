"""structlog setup for the monitor process.

All events are rendered by one stdlib handler so aiohttp's own loggers share
the format.  Every event carries ``service``; events emitted while a
scheduled job runs also carry ``job`` (see :func:`job_context`).
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator, MutableMapping
from contextlib import contextmanager
from typing import Any, TextIO

import structlog

from fleetwatch.core.config import LoggingConfig, get_settings

SERVICE_NAME = "fleetwatch"

# Library loggers held at WARNING or above whatever the root level is.
QUIET_LOGGERS: tuple[str, ...] = ("aiohttp.access", "aiohttp.client", "asyncio")


def _add_service(
    _logger: Any, _method: str, event_dict: MutableMapping[str, Any],
) -> MutableMapping[str, Any]:
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _renderer(fmt: str) -> structlog.types.Processor:
    if fmt == "json":
        return structlog.processors.JSONRenderer()
    if fmt == "console":
        return structlog.dev.ConsoleRenderer()
    raise ValueError(f"Unknown log format: {fmt!r} (expected 'json' or 'console')")


def setup_logging(
    level: str | None = None,
    fmt: str | None = None,
    config: LoggingConfig | None = None,
    stream: TextIO | None = None,
) -> None:
    """Route structlog through the stdlib root logger.

    Args:
        level: Level override (e.g. "DEBUG"); falls back to *config*.
        fmt: "json" or "console"; falls back to *config*.
        config: Logging section; the loaded settings' section if None.
        stream: Output stream, stderr by default.
    """
    cfg = config or get_settings().logging
    log_level = getattr(logging, (level or cfg.level).upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            _add_service,
            structlog.stdlib.add_logger_name,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            _renderer(fmt or cfg.format),
        ],
    ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(log_level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(max(log_level, logging.WARNING))


@contextmanager
def job_context(job: str, **extra: Any) -> Iterator[None]:
    """Tag every event logged inside the block, including child tasks."""
    with structlog.contextvars.bound_contextvars(job=job, **extra):
        yield
