"""
Tests for error types, error handling decorators, logging context and settings.
"""

import pytest

from memory_vault.core.base import ErrorCode, ErrorDetails, ErrorLevel, MemoryErrorDetails
from memory_vault.core.config import CentroidStrategy, Settings
from memory_vault.core.decorators import with_error_handling
from memory_vault.core.error_context import ErrorContext
from memory_vault.core.errors import (
    DuplicateDetectedError,
    EmbeddingError,
    PersistenceError,
    ProcessingError,
    QualityTooLowError,
    RejectionKind,
    ValidationFailedError,
    is_expected_outcome,
)
from memory_vault.core.logging import bind_log_context, clear_log_context, get_log_context


class TestErrors:
    def test_rejections_are_expected_outcomes(self):
        for error_type, kind in [
            (ValidationFailedError, RejectionKind.VALIDATION_FAILED),
            (QualityTooLowError, RejectionKind.QUALITY_TOO_LOW),
            (DuplicateDetectedError, RejectionKind.DUPLICATE_DETECTED),
        ]:
            error = error_type("rejected")
            assert error.kind is kind
            assert error.level is ErrorLevel.INFO
            assert is_expected_outcome(error)

    def test_faults_are_not_expected(self):
        assert not is_expected_outcome(PersistenceError("write failed"))
        assert not is_expected_outcome(RuntimeError("boom"))
        assert is_expected_outcome(EmbeddingError("provider down"))

    def test_codes(self):
        assert DuplicateDetectedError("dup").code is ErrorCode.MEMORY_DUPLICATE
        assert PersistenceError("x").code is ErrorCode.DB_OPERATION

    def test_reason_comes_from_details(self):
        details = MemoryErrorDetails(source="test", operation="save", reason="question")
        assert ValidationFailedError("no", details=details).reason == "question"

    def test_dict_details_are_split(self):
        error = ProcessingError("failed", details={"source": "job", "operation": "run", "batch": 3})
        assert isinstance(error.details, ErrorDetails)
        assert error.details.source == "job"
        assert error.extra == {"batch": 3}


class TestErrorContext:
    def test_includes_details_and_bound_context(self):
        clear_log_context()
        details = MemoryErrorDetails(source="svc", operation="save", reason="near_duplicate", score=0.97)
        with bind_log_context(user_id="alice"):
            data = ErrorContext(DuplicateDetectedError("dup", details=details)).to_dict()

        assert data["error_code"] == "2103"
        assert data["expected"] is True
        assert data["details.reason"] == "near_duplicate"
        assert data["context.user_id"] == "alice"

    def test_bind_log_context_restores_previous(self):
        clear_log_context()
        with bind_log_context(user_id="alice"):
            with bind_log_context(operation="save"):
                assert get_log_context() == {"user_id": "alice", "operation": "save"}
            assert get_log_context() == {"user_id": "alice"}
        assert get_log_context() == {}


class TestDecorators:
    async def test_reraise(self):
        @with_error_handling()
        async def failing():
            raise PersistenceError("write failed")

        with pytest.raises(PersistenceError):
            await failing()

    async def test_swallow_returns_none(self):
        @with_error_handling(reraise=False)
        async def failing():
            raise RuntimeError("boom")

        assert await failing() is None

    def test_sync_functions(self):
        @with_error_handling(reraise=False)
        def failing():
            raise ValueError("bad")

        @with_error_handling()
        def working(x: int) -> int:
            return x * 2

        assert failing() is None
        assert working(2) == 4


class TestSettings:
    def test_nested_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("MEMORY_VAULT_MEMORY__DUPLICATE_THRESHOLD", "0.98")
        monkeypatch.setenv("MEMORY_VAULT_MEMORY__CENTROID_STRATEGY", "running_mean")
        monkeypatch.setenv("MEMORY_VAULT_MAINTENANCE__QUEUE_CAPACITY", "7")

        config = Settings(_env_file=None)

        assert config.memory.duplicate_threshold == 0.98
        assert config.memory.centroid_strategy is CentroidStrategy.RUNNING_MEAN
        assert config.maintenance.queue_capacity == 7

    def test_defaults(self):
        config = Settings(_env_file=None)
        assert config.memory.quality_floor == 0.2
        assert config.memory.allowed_sources == ["user"]
        assert config.maintenance.decay_factor == 0.95
