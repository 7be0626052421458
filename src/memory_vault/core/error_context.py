"""Error context management"""

from datetime import UTC, datetime
from types import TracebackType
from typing import Any
from uuid import uuid4

from .base import ApplicationError
from .logging import get_log_context, get_logger

logger = get_logger(__name__)


class ErrorContext:
    """Captures and stores context around an error"""

    def __init__(self, error: Exception, trace_id: str | None = None, **context: Any):
        self.error = error
        self.trace_id = trace_id or str(uuid4())
        self.timestamp = datetime.now(UTC)
        # Request-scoped fields (user_id, operation) bound via bind_log_context
        self.context = {**get_log_context(), **context}

    def to_dict(self) -> dict[str, Any]:
        """Flatten the error, its structured details and the extra context."""
        result: dict[str, Any] = {
            "error_type": self.error.__class__.__name__,
            "error_message": str(self.error),
            "trace_id": self.trace_id,
            "timestamp": self.timestamp.isoformat(),
        }

        if isinstance(self.error, ApplicationError):
            result["error_code"] = self.error.code.value
            result["error_level"] = self.error.level.value
            result["expected"] = self.error.expected
            for key, value in self.error.details.model_dump(exclude_none=True).items():
                result[f"details.{key}"] = value

        for key, value in self.context.items():
            result[f"context.{key}"] = value

        return result


class ErrorContextManager:
    """Builds an ErrorContext for a caught error, sync or async."""

    def __init__(self, error: Exception | None = None, **context: Any) -> None:
        self._error = error
        self._context = context

    def _build(self) -> ErrorContext:
        if self._error is None:
            raise ValueError("No error provided for context")
        return ErrorContext(self._error, **self._context)

    async def __aenter__(self) -> ErrorContext:
        return self._build()

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self._report(exc_type, exc_val)

    def __enter__(self) -> ErrorContext:
        return self._build()

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self._report(exc_type, exc_val)

    @staticmethod
    def _report(exc_type: type[BaseException] | None, exc_val: BaseException | None) -> None:
        # A new exception raised while handling the original one
        if exc_type is not None and exc_val is not None:
            logger.error(
                "Exception during error context handling",
                exception_type=exc_type.__name__,
                exception=str(exc_val),
            )
