"""Error types for the memory vault.

Rejections from the write-path gates (validation, quality, duplicates) are
expected outcomes: callers inspect them and move on. Persistence failures are
genuine faults and must be surfaced.
"""

from enum import Enum

from .base import (
    AIServiceErrorDetails,
    ApplicationError,
    DatabaseErrorDetails,
    ErrorCode,
    ErrorDetails,
    ErrorLevel,
    MemoryErrorDetails,
    ServiceErrorDetails,
)


class RejectionKind(str, Enum):
    """Why a memory was not stored."""

    VALIDATION_FAILED = "validation_failed"
    QUALITY_TOO_LOW = "quality_too_low"
    DUPLICATE_DETECTED = "duplicate_detected"


class MemoryRejectedError(ApplicationError):
    """Base for gate outcomes that leave the store untouched."""

    expected = True
    kind: RejectionKind

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        details: MemoryErrorDetails | None = None,
    ):
        super().__init__(
            message=message,
            code=code,
            level=ErrorLevel.INFO,
            details=details or MemoryErrorDetails(source="memory_service", operation="save"),
        )

    @property
    def reason(self) -> str | None:
        return getattr(self.details, "reason", None)


class ValidationFailedError(MemoryRejectedError):
    kind = RejectionKind.VALIDATION_FAILED

    def __init__(self, message: str, details: MemoryErrorDetails | None = None):
        super().__init__(message, ErrorCode.MEMORY_VALIDATION_FAILED, details)


class QualityTooLowError(MemoryRejectedError):
    kind = RejectionKind.QUALITY_TOO_LOW

    def __init__(self, message: str, details: MemoryErrorDetails | None = None):
        super().__init__(message, ErrorCode.MEMORY_QUALITY_TOO_LOW, details)


class DuplicateDetectedError(MemoryRejectedError):
    kind = RejectionKind.DUPLICATE_DETECTED

    def __init__(self, message: str, details: MemoryErrorDetails | None = None):
        super().__init__(message, ErrorCode.MEMORY_DUPLICATE, details)


class EmbeddingError(ApplicationError):
    """The embedding provider failed or was given nothing to embed."""

    # Callers treat a missing embedding as "not stored", not as an outage of the store
    expected = True

    def __init__(self, message: str, details: AIServiceErrorDetails | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.EMBEDDING_FAILED,
            level=ErrorLevel.WARNING,
            details=details
            or AIServiceErrorDetails(source="embeddings", operation="embed_text", service_name="embedding"),
        )


class CompletionError(ApplicationError):
    """The completion provider failed. Callers fall back to heuristics."""

    def __init__(self, message: str, details: AIServiceErrorDetails | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.COMPLETION_FAILED,
            level=ErrorLevel.WARNING,
            details=details
            or AIServiceErrorDetails(source="completions", operation="complete", service_name="completion"),
        )


class PersistenceError(ApplicationError):
    """The datastore failed or returned rows that do not fit the schema."""

    expected = False

    def __init__(self, message: str, details: DatabaseErrorDetails | ErrorDetails | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.DB_OPERATION,
            level=ErrorLevel.ERROR,
            details=details
            or DatabaseErrorDetails(source="repository", operation="unknown", service_name="datastore"),
        )


class ClusterAssignmentError(ApplicationError):
    """Raised inside cluster assignment; always caught and logged by the assigner."""

    def __init__(self, message: str, details: ServiceErrorDetails | ErrorDetails | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.CLUSTER_ASSIGNMENT_FAILED,
            level=ErrorLevel.WARNING,
            details=details,
        )


class InvalidInputError(ApplicationError):
    """A caller passed an argument outside its allowed range."""

    def __init__(self, message: str, details: ErrorDetails | dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.INVALID_INPUT,
            level=ErrorLevel.WARNING,
            details=details,
        )


class ProcessingError(ApplicationError):
    """General processing errors."""

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(
            message=message,
            code=ErrorCode.PROCESSING_FAILED,
            level=ErrorLevel.ERROR,
            details=details,
        )


def is_expected_outcome(exc: BaseException) -> bool:
    """True when ``exc`` is a designed rejection rather than a fault.

    Health checks use this so that a rejected save still counts as a pass.
    """
    return isinstance(exc, ApplicationError) and exc.expected
