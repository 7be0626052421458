"""
Tests for batch maintenance: decay, duplicate cleanup, consolidation and review.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest

from memory_vault.core.base import ErrorCode
from memory_vault.core.constants import ARCHIVED_RELEVANCE
from memory_vault.core.errors import InvalidInputError
from memory_vault.domain.models import CleanupOptions, Memory, MemoryType
from memory_vault.services.classification import TagExtractor
from memory_vault.services.maintenance import MaintenanceService, merge_contents
from memory_vault.services.summarization import Summarizer

from .conftest import FakeCompletionService

DISTINCT = [
    "Alpine skiing holidays happen every February",
    "Sourdough bread baking needs patience",
    "Vintage motorcycles require careful restoration",
    "Marathon training started last autumn",
    "Chess openings fascinate every student",
    "Watercolour painting relaxes tired minds",
    "Beekeeping produces delicious honey yearly",
]


@pytest.fixture
def store(repository, embeddings):
    async def add(content: str, user_id: str = "alice", **fields) -> Memory:
        memory = Memory(user_id=user_id, content=content, embedding=embeddings.vector(content), **fields)
        return await repository.insert_memory(memory)

    return add


class TestDecay:
    async def test_decay_multiplies_relevance(self, maintenance_service, repository, store):
        memory = await store("Sourdough bread baking needs patience", relevance_score=0.8)

        assert await maintenance_service.decay_all() == 1
        decayed = await repository.get_memory(memory.id, "alice")
        assert decayed.relevance_score == pytest.approx(0.8 * 0.95)

    async def test_repeated_decay_compounds(self, maintenance_service, repository, store):
        memory = await store("Sourdough bread baking needs patience", relevance_score=0.8)

        await maintenance_service.decay_all()
        await maintenance_service.decay_all()

        decayed = await repository.get_memory(memory.id, "alice")
        assert decayed.relevance_score == pytest.approx(0.8 * 0.95 * 0.95)

    async def test_decay_never_goes_negative(self, maintenance_service, repository, store):
        memory = await store("Sourdough bread baking needs patience", relevance_score=0.0)
        await maintenance_service.decay_all(factor=0.5)
        assert (await repository.get_memory(memory.id, "alice")).relevance_score == 0.0

    @pytest.mark.parametrize("factor", [1.5, 0.0, -0.5])
    async def test_factor_outside_unit_interval_is_rejected(self, maintenance_service, repository, store, factor):
        memory = await store("Sourdough bread baking needs patience", relevance_score=0.9)

        with pytest.raises(InvalidInputError) as exc_info:
            await maintenance_service.decay_all(factor=factor)

        assert exc_info.value.code is ErrorCode.INVALID_INPUT
        assert (await repository.get_memory(memory.id, "alice")).relevance_score == 0.9

    async def test_factor_of_one_leaves_scores_unchanged(self, maintenance_service, repository, store):
        memory = await store("Sourdough bread baking needs patience", relevance_score=0.9)
        assert await maintenance_service.decay_all(factor=1.0) == 1
        assert (await repository.get_memory(memory.id, "alice")).relevance_score == 0.9

    async def test_repository_clamps_to_unit_range(self, repository, store):
        memory = await store("Sourdough bread baking needs patience", relevance_score=0.9)
        await repository.decay_relevance(1.5)
        assert (await repository.get_memory(memory.id, "alice")).relevance_score == 1.0

    async def test_decay_spans_all_users(self, maintenance_service, store):
        await store("Sourdough bread baking needs patience", user_id="alice")
        await store("Sourdough bread baking needs patience", user_id="bob")
        assert await maintenance_service.decay_all() == 2


class TestDuplicateCleanup:
    async def test_exact_duplicates_keep_earliest(self, maintenance_service, repository, store):
        first = await store("Chess openings fascinate every student")
        await store("chess openings   fascinate every student")
        await store("CHESS OPENINGS FASCINATE EVERY STUDENT")

        assert await maintenance_service.cleanup_exact_duplicates("alice") == 2
        remaining = await repository.list_memories("alice")
        assert [m.id for m in remaining] == [first.id]

    async def test_near_duplicates_keep_higher_relevance(self, maintenance_service, repository, store):
        await store("Chess openings fascinate every student", relevance_score=0.4)
        keeper = await store("Chess openings fascinate every student!", relevance_score=0.9)

        assert await maintenance_service.remove_duplicates("alice") == 1
        remaining = await repository.list_memories("alice")
        assert [m.id for m in remaining] == [keeper.id]

    async def test_near_duplicates_are_per_user(self, maintenance_service, repository, store):
        await store("Chess openings fascinate every student", user_id="alice")
        await store("Chess openings fascinate every student!", user_id="bob")
        assert await maintenance_service.remove_duplicates("alice") == 0
        assert await repository.count_memories("bob") == 1

    async def test_lookup_failure_skips_memory(self, maintenance_service, repository, store):
        await store("Chess openings fascinate every student")
        await store("Chess openings fascinate every student!")
        repository.find_similar_memories = AsyncMock(side_effect=RuntimeError("index offline"))
        assert await maintenance_service.remove_duplicates("alice") == 0


class TestConsolidation:
    async def test_similar_memories_merge_into_best(self, maintenance_service, repository, embeddings, store):
        words = "alpha bravo charlie delta echo foxtrot golf hotel india juliet"
        primary = await store(words, relevance_score=0.9, importance_score=0.8, semantic_tags=["alpha"])
        await store(words + " kilo", relevance_score=0.3, importance_score=0.4, semantic_tags=["kilo"], access_count=2)

        assert await maintenance_service.consolidate_similar("alice", threshold=0.9) == 1

        [merged] = await repository.list_memories("alice")
        assert merged.id == primary.id
        assert merged.content == merge_contents(words, words + " kilo")
        assert merged.semantic_tags == ["alpha", "kilo"]
        assert merged.importance_score == 0.8
        assert merged.relevance_score == 0.9
        assert merged.access_count == 2
        assert merged.embedding == embeddings.vector(merged.content)

    async def test_dissimilar_memories_are_left_alone(self, maintenance_service, store):
        for content in DISTINCT[:3]:
            await store(content)
        assert await maintenance_service.consolidate_similar("alice") == 0


class TestSummarization:
    async def test_long_memories_are_summarized(self, repository, embeddings, store):
        service = MaintenanceService(
            repository=repository,
            embeddings=embeddings,
            tagger=TagExtractor(),
            summarizer=Summarizer(FakeCompletionService("Alice loves long hikes")),
        )
        long_memory = await store("hiking " * 40, memory_type=MemoryType.PREFERENCE)
        await store("Sourdough bread baking needs patience")

        assert await service.summarize_long_memories("alice") == 1
        updated = await repository.get_memory(long_memory.id, "alice")
        assert updated.content == "Alice loves long hikes"

    async def test_summarizer_failure_keeps_content(self, repository, embeddings, store):
        service = MaintenanceService(
            repository=repository,
            embeddings=embeddings,
            tagger=TagExtractor(),
            summarizer=Summarizer(FakeCompletionService(None)),
        )
        await store("hiking " * 40)
        assert await service.summarize_long_memories("alice") == 0

    async def test_reviewed_memories_are_skipped(self, repository, embeddings, store):
        service = MaintenanceService(
            repository=repository,
            embeddings=embeddings,
            tagger=TagExtractor(),
            summarizer=Summarizer(FakeCompletionService("short")),
        )
        await store("hiking " * 40, reviewed=True)
        assert await service.summarize_long_memories("alice") == 0

    async def test_without_summarizer(self, maintenance_service, store):
        await store("hiking " * 40)
        assert await maintenance_service.summarize_long_memories("alice") == 0


class TestReclassification:
    async def test_changed_memories_are_rewritten(self, maintenance_service, repository, store):
        memory = await store("My name is Alice and I work as a data scientist")

        assert await maintenance_service.reclassify_memories("alice") == 1
        updated = await repository.get_memory(memory.id, "alice")
        assert updated.memory_type is MemoryType.PERSONAL
        assert updated.importance_score == pytest.approx(0.595)

        assert await maintenance_service.reclassify_memories("alice") == 0

    async def test_assistant_replies_are_skipped(self, maintenance_service, store):
        await store("Certainly, here is everything you need to know")
        assert await maintenance_service.reclassify_memories("alice") == 0


class TestComprehensiveCleanup:
    async def test_report(self, maintenance_service, repository, store):
        for content in DISTINCT:
            await store(content)
        for content in DISTINCT[:3]:
            await store(content.upper())
        assert await repository.count_memories("alice") == 10

        report = await maintenance_service.comprehensive_cleanup("alice")

        assert report.total_memories == 10
        assert report.duplicates_removed == 3
        assert report.similar_consolidated == 0
        assert report.memories_summarized == 0
        assert report.memories_marked_reviewed == 7
        assert report.errors == []
        assert await repository.count_memories("alice") == 7
        assert all(m.reviewed and m.reviewed_by == "system" for m in await repository.list_memories("alice"))

    async def test_failed_stage_is_reported(self, maintenance_service, store):
        await store(DISTINCT[0])
        maintenance_service.reclassify_memories = AsyncMock(side_effect=RuntimeError("boom"))

        report = await maintenance_service.comprehensive_cleanup("alice", CleanupOptions(reviewer_id="ops"))

        assert report.errors == ["reclassification: boom"]
        assert report.memories_marked_reviewed == 1

    async def test_stages_can_be_disabled(self, maintenance_service, repository, store):
        await store(DISTINCT[0])
        await store(DISTINCT[0].upper())
        options = CleanupOptions(remove_duplicates=False, mark_reviewed=False)

        report = await maintenance_service.comprehensive_cleanup("alice", options)

        assert report.duplicates_removed == 0
        assert report.memories_marked_reviewed == 0
        assert report.to_payload()["duplicatesRemoved"] == 0


class TestReviewAndPruning:
    async def test_mark_reviewed_is_tenant_scoped(self, maintenance_service, repository, store):
        mine = await store(DISTINCT[0])
        theirs = await store(DISTINCT[1], user_id="bob")

        assert await maintenance_service.mark_reviewed([mine.id, theirs.id], "reviewer", "alice") == 1
        reviewed = await repository.get_memory(mine.id, "alice")
        assert reviewed.reviewed_by == "reviewer"
        assert reviewed.reviewed_at == datetime(2026, 6, 1, tzinfo=UTC)
        assert not (await repository.get_memory(theirs.id, "bob")).reviewed

    async def test_prune_archives_stale_memories(self, maintenance_service, repository, store):
        old = datetime(2026, 1, 1, tzinfo=UTC)
        stale = await store(DISTINCT[0], relevance_score=0.2, created_at=old)
        used = await store(DISTINCT[1], relevance_score=0.2, created_at=old, access_count=5)
        yesterday = datetime(2026, 6, 1, tzinfo=UTC) - timedelta(days=1)
        recent = await store(DISTINCT[2], relevance_score=0.2, created_at=yesterday)

        assert await maintenance_service.prune_low_relevance("alice") == 1
        assert (await repository.get_memory(stale.id, "alice")).relevance_score == ARCHIVED_RELEVANCE
        assert (await repository.get_memory(used.id, "alice")).relevance_score == 0.2
        assert (await repository.get_memory(recent.id, "alice")).relevance_score == 0.2

    async def test_efficiency_metrics(self, maintenance_service, store):
        await store(DISTINCT[0], relevance_score=1.0)
        await store(DISTINCT[0].lower(), relevance_score=0.0)

        metrics = await maintenance_service.efficiency_metrics("alice")

        assert metrics.total_memories == 2
        assert metrics.low_relevance_count == 1
        assert metrics.duplicate_count == 1
        assert metrics.efficiency_score == pytest.approx(0.5 * 50 + 0.5 * 30 + 0.5 * 20)
