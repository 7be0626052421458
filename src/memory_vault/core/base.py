"""Base error classes and enums"""

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Self

from logfire.integrations.pydantic import PluginSettings
from pydantic import BaseModel, Field, field_serializer


class ErrorLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"

    def to_logging_level(self) -> int:
        """Convert ErrorLevel to logging level"""
        return {
            ErrorLevel.DEBUG: logging.DEBUG,
            ErrorLevel.INFO: logging.INFO,
            ErrorLevel.WARNING: logging.WARNING,
            ErrorLevel.ERROR: logging.ERROR,
            ErrorLevel.CRITICAL: logging.CRITICAL,
        }[self]


class ErrorCode(str, Enum):
    """Error codes for the application."""

    # General Errors (1xxx)
    INVALID_INPUT = "1002"
    PROCESSING_FAILED = "1004"

    # Memory gate outcomes (2xxx)
    MEMORY_VALIDATION_FAILED = "2101"
    MEMORY_QUALITY_TOO_LOW = "2102"
    MEMORY_DUPLICATE = "2103"
    CLUSTER_ASSIGNMENT_FAILED = "2104"

    # Database Errors (3xxx)
    DB_OPERATION = "3005"

    # AI/ML Errors (4xxx)
    EMBEDDING_FAILED = "4003"
    COMPLETION_FAILED = "4004"


class ErrorDetails(BaseModel, plugin_settings=PluginSettings(logfire={"record": "all"})):
    """Base model for structured error details"""

    source: str = Field(description="Component or module where the error occurred")
    operation: str = Field(description="Operation being performed when the error occurred")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(), description="When the error occurred")

    # Ensure timestamp is serialized consistently
    @field_serializer("timestamp")
    def serialize_timestamp(self, timestamp: datetime) -> str:
        return timestamp.isoformat()


class MemoryErrorDetails(ErrorDetails):
    """Details for a memory rejected by one of the write-path gates"""

    user_id: str | None = Field(None, description="Tenant the memory belonged to")
    content_preview: str | None = Field(None, description="First characters of the rejected content")
    reason: str | None = Field(None, description="Machine-readable rejection reason")
    score: float | None = Field(None, description="Score that triggered the rejection, if any")
    matched_memory_id: str | None = Field(None, description="Existing memory that caused a duplicate hit")


class ServiceErrorDetails(ErrorDetails):
    """Details for service-related errors"""

    service_name: str = Field(description="Name of the service that failed")
    endpoint: str | None = Field(None, description="Service endpoint that was called")
    status_code: int | None = Field(None, description="HTTP or service status code")
    request_id: str | None = Field(None, description="Request ID for tracing")
    latency_ms: float | None = Field(None, description="Response time in milliseconds")


class DatabaseErrorDetails(ServiceErrorDetails):
    """Details for database-related errors"""

    query_type: str | None = Field(None, description="Type of query (select, insert, etc.)")
    table: str | None = Field(None, description="Table or node label involved")


class AIServiceErrorDetails(ServiceErrorDetails):
    """Details for AI service-related errors"""

    model_name: str | None = Field(None, description="AI model name")
    input_chars: int | None = Field(None, description="Length of the text sent to the model")


class ApplicationError(Exception):
    """Base class for all application errors"""

    # Expected errors are gate outcomes callers act on, not failures to alert on
    expected: bool = False

    def __init__(
        self,
        message: str,
        code: ErrorCode,
        level: ErrorLevel = ErrorLevel.ERROR,
        details: ErrorDetails | dict[str, Any] | None = None,
    ):
        self.message = message
        self.code = code
        self.level = level

        # Convert dict to ErrorDetails if needed
        if details is None:
            self.details = ErrorDetails(source="unknown", operation="unknown")
        elif isinstance(details, dict):
            details = dict(details)
            source = details.pop("source", "unknown")
            operation = details.pop("operation", "unknown")
            self.details = ErrorDetails(source=source, operation=operation)
            self.extra = details
        else:
            self.details = details

        super().__init__(message)

    @classmethod
    def with_details(cls, message: str, details: ErrorDetails, **kwargs: Any) -> Self:
        """Create an error with specific details model"""
        return cls(message=message, details=details, **kwargs)
