"""Structured logging for skill scans.

Library code only emits events through ``structlog.get_logger``; the
embedding application calls :func:`setup_logging` once. Scan-wide values
(scan id, agent, skill path) travel through structlog contextvars so every
event a unit logs carries them without threading them through call sites.
"""

from __future__ import annotations

import logging
import logging.config
import os
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import PurePath
from typing import Any

import structlog

_QUIET_LOGGERS = ("asyncio",)


def _stringify_paths(
    logger: Any, method_name: str, event_dict: structlog.types.EventDict
) -> structlog.types.EventDict:
    """Render ``Path`` values as plain strings so JSON output stays readable."""
    for key, value in event_dict.items():
        if isinstance(value, PurePath):
            event_dict[key] = str(value)
    return event_dict


def setup_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Configure structlog and stdlib logging.

    Arguments win over environment variables:
        SKILLSENTINEL_LOG_LEVEL  — log level (default: INFO)
        SKILLSENTINEL_LOG_FORMAT — console | json (default: console)
    """
    log_level = (level or os.environ.get("SKILLSENTINEL_LOG_LEVEL", "INFO")).upper()
    fmt = (log_format or os.environ.get("SKILLSENTINEL_LOG_FORMAT", "console")).lower()

    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        _stringify_paths,
        structlog.processors.format_exc_info,
    ]

    if fmt == "json":
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer()
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.config.dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {
                "structlog": {
                    "()": structlog.stdlib.ProcessorFormatter,
                    "foreign_pre_chain": shared_processors,
                    "processors": [
                        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                        renderer,
                    ],
                },
            },
            "handlers": {
                "stderr": {
                    "class": "logging.StreamHandler",
                    "stream": "ext://sys.stderr",
                    "formatter": "structlog",
                },
            },
            "root": {"handlers": ["stderr"], "level": "WARNING"},
            "loggers": {
                "skillsentinel": {"level": log_level},
                **{name: {"level": "WARNING"} for name in _QUIET_LOGGERS},
            },
        }
    )


def new_scan_id() -> str:
    return uuid.uuid4().hex[:12]


@contextmanager
def scan_context(**values: Any) -> Iterator[None]:
    """Bind *values* to every event logged inside the block, then restore.

    Each asyncio task runs in its own copy of the context, so units bound
    inside their own task never see each other's values.
    """
    tokens = structlog.contextvars.bind_contextvars(**values)
    try:
        yield
    finally:
        structlog.contextvars.reset_contextvars(**tokens)
