"""
Structured logging for workflow jobs.

Every log line emitted while a job runs carries the job's task_id, preset
and user_id, and the name of the step being executed, so that one job can
be followed through the worker output. Trace and span ids are added when an
OpenTelemetry span is active.
"""

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog
from opentelemetry import trace
from structlog.typing import EventDict, WrappedLogger

# Page text and analysis output can be logged by accident; keep lines bounded
MAX_FIELD_LENGTH = 300

# Fields that are never truncated
_UNTRUNCATED_FIELDS = frozenset({"event", "exception", "stack", "url"})


def add_trace_context(
    _logger: WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """Add trace_id and span_id from the current OpenTelemetry span."""
    span = trace.get_current_span()
    if span and span.is_recording():
        ctx = span.get_span_context()
        event_dict["trace_id"] = format(ctx.trace_id, "032x")
        event_dict["span_id"] = format(ctx.span_id, "016x")
    return event_dict


def truncate_long_fields(
    _logger: WrappedLogger,
    _method_name: str,
    event_dict: EventDict,
) -> EventDict:
    """
    Shorten string fields longer than MAX_FIELD_LENGTH.

    Examples
    --------
    >>> truncate_long_fields(None, "info", {"event": "x", "error": "e" * 400})["error"][-14:]
    '...(400 chars)'
    """
    for key, value in event_dict.items():
        if key in _UNTRUNCATED_FIELDS or not isinstance(value, str):
            continue
        if len(value) > MAX_FIELD_LENGTH:
            event_dict[key] = f"{value[:MAX_FIELD_LENGTH]}...({len(value)} chars)"
    return event_dict


@contextmanager
def job_context(task_id: str, preset: str, user_id: str) -> Iterator[None]:
    """
    Bind a workflow job's identity to every log line inside the block.

    An empty task_id (jobs started without a task record) is left out.
    """
    fields: dict[str, Any] = {"preset": preset, "user_id": user_id}
    if task_id:
        fields["task_id"] = task_id
    with structlog.contextvars.bound_contextvars(**fields):
        yield


@contextmanager
def step_context(step_name: str) -> Iterator[None]:
    """Bind the executing step's name to every log line inside the block."""
    with structlog.contextvars.bound_contextvars(step=step_name):
        yield


def configure_logging(json_logs: bool = True, log_level: str = "INFO") -> None:
    """
    Configure structlog and route standard logging through it.

    Parameters
    ----------
    json_logs : bool
        If True, output JSON logs (production). If False, use console renderer (dev).
    log_level : str
        Level for link_enricher loggers (DEBUG, INFO, WARNING, ERROR).
    """
    shared_processors: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        truncate_long_fields,
        add_trace_context,
    ]

    if json_logs:
        # repr() keeps rich out of the Temporal workflow sandbox
        renderer: structlog.types.Processor = structlog.processors.JSONRenderer(default=repr)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    # httpx, temporalio and langchain log through the standard library
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=[
                structlog.stdlib.ExtraAdder(),
                *shared_processors,
            ],
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                renderer,
            ],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("link_enricher").setLevel(getattr(logging, log_level))


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structlog logger with the given name (typically __name__)."""
    return structlog.get_logger(name)
