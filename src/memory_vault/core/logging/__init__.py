"""Structured logging module (structlog + logfire)."""

from .context import (
    bind_log_context,
    clear_log_context,
    get_log_context,
    set_log_context,
    update_log_context,
)
from .setup import configure_logfire, get_logger, setup_logging

__all__ = [
    "bind_log_context",
    "clear_log_context",
    "configure_logfire",
    "get_log_context",
    "get_logger",
    "set_log_context",
    "setup_logging",
    "update_log_context",
]
