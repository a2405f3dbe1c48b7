"""Structured logging for the search pipeline, built on structlog.

Every event carries the invocation context when it is set:
- request_id: correlation ID supplied by the caller (or generated)
- requester_id / requester_role: the acting identity
- operation: pipeline operation in progress (search, read, suggest, export)

Usage:
    from warden.logging import configure_logging, get_logger, request_context

    configure_logging(json_format=True)
    logger = get_logger(__name__)

    with request_context("req-123", requester):
        await service.secure_search(requester, "chest pain")
"""

import functools
import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from warden.schemas.requester import Requester

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
requester_id_var: ContextVar[str | None] = ContextVar("requester_id", default=None)
requester_role_var: ContextVar[str | None] = ContextVar("requester_role", default=None)
operation_var: ContextVar[str | None] = ContextVar("operation", default=None)

_CONTEXT_FIELDS = (
    ("request_id", request_id_var),
    ("requester_id", requester_id_var),
    ("requester_role", requester_role_var),
    ("operation", operation_var),
)


def add_request_context(logger: logging.Logger, method_name: str, event_dict: dict) -> dict:
    """structlog processor: copy every set context var into the event."""
    for key, var in _CONTEXT_FIELDS:
        value = var.get()
        if value is not None:
            event_dict.setdefault(key, value)
    return event_dict


def _shared_processors() -> list:
    return [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        add_request_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]


def configure_logging(json_format: bool = True, level: int = logging.INFO) -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Args:
        json_format: JSON lines when True, console rendering otherwise.
        level: Root log level.
    """
    shared = _shared_processors()
    renderer = (
        structlog.processors.JSONRenderer() if json_format else structlog.dev.ConsoleRenderer()
    )

    structlog.configure(
        processors=[*shared, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=shared,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    # Per-request HTTP chatter from the upstream clients
    for noisy in ("httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def set_request_context(request_id: str | None, requester_id: str | None = None) -> None:
    """Set the correlation ID (and optionally the requester) for this task."""
    request_id_var.set(request_id)
    if requester_id is not None:
        requester_id_var.set(requester_id)


def clear_request_context() -> None:
    for _, var in _CONTEXT_FIELDS:
        var.set(None)


def get_request_id() -> str | None:
    return request_id_var.get()


@contextmanager
def request_context(
    request_id: str | None = None, requester: "Requester | None" = None
) -> Iterator[str]:
    """Bind invocation context for the duration of a block.

    A request ID is generated when none is given. Previous values are
    restored on exit, so nested blocks are safe.

    Yields:
        The request ID in effect.
    """
    rid = request_id or uuid.uuid4().hex
    tokens = [(request_id_var, request_id_var.set(rid))]
    if requester is not None:
        tokens.append((requester_id_var, requester_id_var.set(requester.id)))
        tokens.append((requester_role_var, requester_role_var.set(requester.role.value)))
    try:
        yield rid
    finally:
        for var, token in reversed(tokens):
            var.reset(token)


def with_operation(name: str):
    """Decorator: tag every event logged inside an async pipeline operation."""

    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            token = operation_var.set(name)
            try:
                return await func(*args, **kwargs)
            finally:
                operation_var.reset(token)

        return wrapper

    return decorator
