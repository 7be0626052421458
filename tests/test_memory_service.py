"""
Tests for the memory write path and user-scoped retrieval.
"""

from unittest.mock import AsyncMock

import pytest

from memory_vault.core.errors import (
    DuplicateDetectedError,
    EmbeddingError,
    PersistenceError,
    QualityTooLowError,
    ValidationFailedError,
    is_expected_outcome,
)
from memory_vault.domain.models import MemoryType
from memory_vault.services.validation import ValidationLevel

ALICE = "My name is Alice and I work as a data scientist"


class TestSave:
    """The gate sequence of ``save``."""

    async def test_alice_is_stored_with_derived_fields(self, memory_service, repository):
        memory = await memory_service.save(ALICE, "alice")

        assert memory.memory_type is MemoryType.PERSONAL
        assert memory.relevance_score == pytest.approx(0.7)
        assert memory.importance_score == pytest.approx(0.595)
        assert memory.semantic_tags == ["name", "alice", "work", "data", "scientist"]
        assert memory.embedding is not None
        assert memory.access_count == 0
        assert memory.reviewed is False
        assert await repository.count_memories("alice") == 1

    async def test_alice_with_employer(self, memory_service):
        memory = await memory_service.save("My name is Alice and I work as a data scientist at Acme Corp.", "u1")
        assert memory.memory_type is MemoryType.PERSONAL
        assert memory.importance_score > 0.5
        assert memory.semantic_tags

    async def test_two_word_statement_hits_quality_floor(self, memory_service, embeddings):
        with pytest.raises(QualityTooLowError) as exc_info:
            await memory_service.save("ok cool", "u1")
        assert exc_info.value.details.score < 0.2
        assert embeddings.calls == []

    @pytest.mark.parametrize("level", [ValidationLevel.NORMAL, ValidationLevel.LENIENT])
    async def test_quality_floor_applies_past_validation(self, memory_service, level):
        with pytest.raises(QualityTooLowError):
            await memory_service.save("sounds wonderful", "u1", validation_level=level)

    async def test_content_is_trimmed(self, memory_service):
        memory = await memory_service.save(f"   {ALICE}  \n", "alice")
        assert memory.content == ALICE

    async def test_question_is_rejected_before_embedding(self, memory_service, embeddings, repository):
        with pytest.raises(ValidationFailedError) as exc_info:
            await memory_service.save("What is the weather today?", "alice")

        assert exc_info.value.reason == "question"
        assert is_expected_outcome(exc_info.value)
        assert embeddings.calls == []
        assert await repository.count_memories("alice") == 0

    async def test_validation_level_is_honoured(self, memory_service):
        with pytest.raises(ValidationFailedError):
            await memory_service.save("I'm Alice and I love hiking?", "alice", validation_level=ValidationLevel.STRICT)
        assert await memory_service.save("I'm Alice and I love hiking?", "alice")

    async def test_low_quality_is_rejected(self, memory_service, embeddings):
        with pytest.raises(QualityTooLowError) as exc_info:
            await memory_service.save("The sky looked rather grey this morning", "alice")
        assert exc_info.value.details.score == 0.0
        assert embeddings.calls == []

    async def test_resubmission_in_session_is_duplicate(self, memory_service, embeddings):
        await memory_service.save(ALICE, "alice")
        calls = len(embeddings.calls)

        with pytest.raises(DuplicateDetectedError) as exc_info:
            await memory_service.save("my name is   ALICE and I work as a data scientist", "alice")

        assert exc_info.value.reason == "session_duplicate"
        assert len(embeddings.calls) == calls

    async def test_exact_duplicate_after_session_expiry(self, memory_service, session_cache, embeddings):
        stored = await memory_service.save(ALICE, "alice")
        session_cache.clear()
        calls = len(embeddings.calls)

        with pytest.raises(DuplicateDetectedError) as exc_info:
            await memory_service.save(ALICE.upper(), "alice")

        assert exc_info.value.reason == "exact_duplicate"
        assert exc_info.value.details.matched_memory_id == str(stored.id)
        assert len(embeddings.calls) == calls

    async def test_near_duplicate(self, memory_service, repository):
        stored = await memory_service.save(ALICE, "alice")

        with pytest.raises(DuplicateDetectedError) as exc_info:
            await memory_service.save(ALICE + "!", "alice")

        assert exc_info.value.reason == "near_duplicate"
        assert exc_info.value.details.score == pytest.approx(1.0)
        assert exc_info.value.details.matched_memory_id == str(stored.id)
        assert await repository.count_memories("alice") == 1

    async def test_duplicate_threshold_override(self, memory_service):
        await memory_service.save(ALICE, "alice")
        # Shares five of six words: similarity ~0.91
        extended = ALICE + " in Berlin"
        with pytest.raises(DuplicateDetectedError):
            await memory_service.save(extended, "alice", duplicate_threshold=0.9)
        assert await memory_service.save(extended, "alice")

    async def test_same_content_for_another_user_is_not_a_duplicate(self, memory_service, repository):
        await memory_service.save(ALICE, "alice")
        await memory_service.save(ALICE, "bob")
        assert await repository.count_memories("alice") == 1
        assert await repository.count_memories("bob") == 1

    async def test_embedding_failure_stores_nothing(self, memory_service, embeddings, repository):
        embeddings.embed_text = AsyncMock(side_effect=EmbeddingError("provider down"))

        with pytest.raises(EmbeddingError):
            await memory_service.save(ALICE, "alice")
        assert await repository.count_memories("alice") == 0

    async def test_persistence_failure_is_not_expected(self, memory_service, repository):
        repository.insert_memory = AsyncMock(side_effect=RuntimeError("disk full"))

        with pytest.raises(PersistenceError) as exc_info:
            await memory_service.save(ALICE, "alice")

        assert not is_expected_outcome(exc_info.value)
        assert isinstance(exc_info.value.__cause__, RuntimeError)

    async def test_source_policy(self, memory_service):
        with pytest.raises(ValidationFailedError) as exc_info:
            await memory_service.save_from_source(ALICE, "alice", source="ai")
        assert exc_info.value.reason == "source_not_allowed"
        assert await memory_service.save_from_source(ALICE, "alice", source="user")


class TestClusterAssignment:
    async def test_first_memory_founds_a_cluster(self, memory_service):
        memory = await memory_service.save(ALICE, "alice")
        clusters = await memory_service.clusters("alice")

        assert len(clusters) == 1
        assert memory.cluster_id == clusters[0].id
        assert clusters[0].name == "Personal Cluster"
        assert clusters[0].memory_count == 1

    async def test_similar_memory_joins_cluster(self, memory_service):
        first = await memory_service.save(ALICE, "alice")
        second = await memory_service.save(ALICE + " in Berlin", "alice")

        clusters = await memory_service.clusters("alice")
        assert len(clusters) == 1
        assert second.cluster_id == first.cluster_id
        assert clusters[0].memory_count == 2
        members = await memory_service.memories_in_cluster(first.cluster_id, "alice")
        assert {m.id for m in members} == {first.id, second.id}

    async def test_unrelated_memory_founds_another_cluster(self, memory_service):
        await memory_service.save(ALICE, "alice")
        await memory_service.save("I prefer green tea over espresso drinks", "alice")
        assert len(await memory_service.clusters("alice")) == 2

    async def test_cluster_failure_does_not_block_save(self, memory_service, repository):
        repository.find_similar_clusters = AsyncMock(side_effect=RuntimeError("index offline"))
        memory = await memory_service.save(ALICE, "alice")
        assert memory.cluster_id is None
        assert await repository.count_memories("alice") == 1


class TestRetrieval:
    async def test_relevant_finds_related_memory(self, memory_service):
        stored = await memory_service.save(ALICE, "alice")

        hits = await memory_service.relevant("alice", "data scientist background", limit=5, similarity_threshold=0.3)

        assert [hit.id for hit in hits] == [stored.id]
        assert hits[0].similarity >= 0.3

    async def test_threshold_filters_weak_hits(self, memory_service):
        await memory_service.save(ALICE, "alice")
        assert await memory_service.relevant("alice", "data scientist background", similarity_threshold=0.9) == []

    async def test_retrieval_is_tenant_scoped(self, memory_service):
        await memory_service.save(ALICE, "alice")
        assert await memory_service.relevant("bob", ALICE, similarity_threshold=0.0) == []

    async def test_limit_and_empty_query(self, memory_service):
        await memory_service.save(ALICE, "alice")
        assert await memory_service.relevant("alice", ALICE, limit=0) == []
        assert await memory_service.relevant("alice", "   ") == []

    async def test_tracking_increments_access(self, memory_service, repository):
        stored = await memory_service.save(ALICE, "alice")

        hits = await memory_service.relevant_with_tracking("alice", ALICE, similarity_threshold=0.5)

        assert hits[0].memory.access_count == 1
        assert hits[0].memory.last_accessed is not None
        persisted = await repository.get_memory(stored.id, "alice")
        assert persisted.access_count == 1

    async def test_update_memory_access(self, memory_service):
        stored = await memory_service.save(ALICE, "alice")
        assert await memory_service.update_memory_access(stored.id, "alice")
        assert not await memory_service.update_memory_access(stored.id, "bob")

    async def test_delete_is_tenant_scoped(self, memory_service, repository):
        stored = await memory_service.save(ALICE, "alice")
        assert not await memory_service.delete_memory(stored.id, "bob")
        assert await memory_service.delete_memory(stored.id, "alice")
        assert await repository.count_memories("alice") == 0


class TestStats:
    async def test_empty_store(self, memory_service):
        stats = await memory_service.stats("nobody")
        assert stats.total_memories == 0
        assert stats.to_payload()["totalMemories"] == 0

    async def test_aggregates(self, memory_service):
        await memory_service.save(ALICE, "alice")
        await memory_service.save("I prefer green tea over espresso drinks", "alice")

        stats = await memory_service.stats("alice")

        assert stats.total_memories == 2
        assert stats.total_clusters == 2
        assert stats.type_distribution == {"personal": 1, "preference": 1}
        assert all(m.embedding is None for m in stats.most_relevant_memories)
        assert "avgRelevanceScore" in stats.to_payload()
