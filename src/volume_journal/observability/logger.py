"""Structured logging for import and analysis runs.

structlog renders both its own loggers and the stdlib loggers the library
modules use, so a line from ``volume_journal.profile.builder`` carries the
same ``run_id`` / ``run`` fields as the reconciler's own events.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextlib import contextmanager
from typing import IO, Any, Iterator

import structlog

_HANDLER_NAME = "volume_journal"

# Applied to structlog events and to records from plain stdlib loggers.
_SHARED_PROCESSORS: list[Any] = [
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
]


def setup_logging(
    level: str = "INFO",
    format: str = "json",
    stream: IO[str] | None = None,
) -> None:
    """Configure structured logging for the CLI.

    Safe to call more than once; the previous journal handler is replaced.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format: "json" for log shipping, "console" for a terminal.
        stream: Destination.  Defaults to stderr so stdout stays free for
            command output.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    if format == "json":
        renderer: Any = structlog.processors.JSONRenderer()
        tail: list[Any] = [structlog.processors.format_exc_info]
    else:
        renderer = structlog.dev.ConsoleRenderer()
        tail = []

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.processors.StackInfoRenderer(),
            *tail,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.set_name(_HANDLER_NAME)
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=[*_SHARED_PROCESSORS, *tail],
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    ))

    root = logging.getLogger()
    for old in [h for h in root.handlers if h.get_name() == _HANDLER_NAME]:
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(log_level)


@contextmanager
def run_scope(kind: str, **fields: Any) -> Iterator[str]:
    """Tag every log line emitted inside the block with a fresh run id.

    ``kind`` names the run ("import", "analysis"); extra *fields* such as
    ``owner_id`` or ``instrument`` are bound alongside it.  Yields the id.
    """
    run_id = uuid.uuid4().hex[:12]
    with structlog.contextvars.bound_contextvars(run_id=run_id, run=kind, **fields):
        yield run_id


def current_run_id() -> str | None:
    """Run id bound by the innermost :func:`run_scope`, if any."""
    return structlog.contextvars.get_contextvars().get("run_id")


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for a module."""
    return structlog.get_logger(name)
