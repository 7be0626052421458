from .base import ApplicationError, ErrorCode, ErrorDetails, ErrorLevel, MemoryErrorDetails
from .errors import (
    ClusterAssignmentError,
    CompletionError,
    DuplicateDetectedError,
    EmbeddingError,
    InvalidInputError,
    MemoryRejectedError,
    PersistenceError,
    QualityTooLowError,
    RejectionKind,
    ValidationFailedError,
    is_expected_outcome,
)

__all__ = [
    "ApplicationError",
    "ClusterAssignmentError",
    "CompletionError",
    "DuplicateDetectedError",
    "EmbeddingError",
    "ErrorCode",
    "ErrorDetails",
    "ErrorLevel",
    "InvalidInputError",
    "MemoryErrorDetails",
    "MemoryRejectedError",
    "PersistenceError",
    "QualityTooLowError",
    "RejectionKind",
    "ValidationFailedError",
    "is_expected_outcome",
]
