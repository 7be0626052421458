"""Request-scoped logging context.

Values bound here are merged into every structlog event through
``structlog.contextvars`` and copied into error contexts.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any

import structlog

_log_context: ContextVar[dict[str, Any] | None] = ContextVar("log_context", default=None)


def get_log_context() -> dict[str, Any]:
    """Get a copy of the current logging context."""
    context = _log_context.get()
    return dict(context) if context else {}


def set_log_context(context: dict[str, Any]) -> None:
    _log_context.set(dict(context))
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(**context)


def update_log_context(key: str, value: Any) -> None:
    context = get_log_context()
    context[key] = value
    _log_context.set(context)
    structlog.contextvars.bind_contextvars(**{key: value})


def clear_log_context() -> None:
    _log_context.set({})
    structlog.contextvars.clear_contextvars()


@contextmanager
def bind_log_context(**values: Any) -> Iterator[dict[str, Any]]:
    """Bind ``values`` for the duration of the block, restoring the previous context after.

    Example:
        with bind_log_context(user_id=user_id, operation="save"):
            ...
    """
    token = _log_context.set({**get_log_context(), **values})
    try:
        with structlog.contextvars.bound_contextvars(**values):
            yield get_log_context()
    finally:
        _log_context.reset(token)
