"""Structured logging with batch correlation.

Uses structlog for rendering. Library modules keep logging through
``logging.getLogger(__name__)``; :func:`setup_logging` routes those
records through the same structlog processor chain, so every entry is
rendered as JSON (or console output) and carries the ``batch_id`` of the
event batch being handled.
"""

from __future__ import annotations

import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any

import structlog

# Id of the event batch currently being handled
_batch_id: ContextVar[str] = ContextVar("batch_id", default="")


def get_batch_id() -> str:
    """Get the current batch id, or an empty string outside a batch."""
    return _batch_id.get()


def set_batch_id(batch_id: str) -> None:
    _batch_id.set(batch_id)


def new_batch_id() -> str:
    """Generate and set a new batch id."""
    bid = uuid.uuid4().hex
    _batch_id.set(bid)
    return bid


def _add_batch_id(
    logger: Any, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Structlog processor: add batch_id when one is set."""
    bid = _batch_id.get()
    if bid:
        event_dict.setdefault("batch_id", bid)
    return event_dict


def setup_logging(
    level: str = "INFO",
    format: str = "json",
) -> None:
    """Configure structured logging for the process.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        format: "json" for production, "console" for development.
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    shared: list[Any] = [
        structlog.contextvars.merge_contextvars,
        _add_batch_id,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]

    final: list[Any] = [structlog.stdlib.ProcessorFormatter.remove_processors_meta]
    if format == "json":
        final += [
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        final.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *shared,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared,
        processors=final,
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(log_level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger for a module."""
    return structlog.get_logger(name)
