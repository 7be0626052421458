"""Batch maintenance over stored memories.

Every batch works item by item: a failure on one memory is logged and the
batch moves on. ``comprehensive_cleanup`` runs the stages in a fixed order and
records a failed stage in the report instead of aborting.
"""

from collections.abc import Awaitable, Callable
from datetime import datetime, timedelta
from uuid import UUID

from memory_vault.core.base import ErrorLevel
from memory_vault.core.config import MaintenanceConfig, settings
from memory_vault.core.constants import (
    ARCHIVED_RELEVANCE,
    CONSOLIDATION_THRESHOLD_DEFAULT,
    DUPLICATE_THRESHOLD_DEFAULT,
    MAX_SEMANTIC_TAGS,
    PRUNE_IDLE_DAYS,
    PRUNE_MAX_ACCESS_COUNT,
    PRUNE_RELEVANCE_THRESHOLD,
    SUMMARIZE_MIN_LENGTH,
)
from memory_vault.core.decorators import with_error_handling
from memory_vault.core.errors import InvalidInputError, ValidationFailedError
from memory_vault.core.logging import bind_log_context, get_logger
from memory_vault.domain.models import CleanupOptions, CleanupReport, EfficiencyMetrics, Memory
from memory_vault.domain.models.utils import normalize_content, utc_now
from memory_vault.infrastructure.repositories.base import MemoryRepository
from memory_vault.services import EmbeddingService
from memory_vault.services.classification import TagExtractor, classify_memory_type, importance_score
from memory_vault.services.quality import QualityScorer
from memory_vault.services.summarization import Summarizer, should_summarize

logger = get_logger(__name__)

# Neighbours inspected per memory during semantic passes
NEIGHBOUR_COUNT = 10


def merge_contents(primary: str, secondary: str) -> str:
    return f"{primary}\n\nAdditional information: {secondary}"


def _merge_tags(*tag_lists: list[str]) -> list[str]:
    merged: list[str] = []
    for tags in tag_lists:
        for tag in tags:
            if tag not in merged:
                merged.append(tag)
    return merged[:MAX_SEMANTIC_TAGS]


class MaintenanceService:
    def __init__(
        self,
        repository: MemoryRepository,
        embeddings: EmbeddingService,
        tagger: TagExtractor,
        summarizer: Summarizer | None = None,
        scorer: QualityScorer | None = None,
        config: MaintenanceConfig | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.repository = repository
        self.embeddings = embeddings
        self.tagger = tagger
        self.summarizer = summarizer
        self.scorer = scorer or QualityScorer()
        self.config = config or settings.maintenance
        self.clock = clock

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    async def decay_all(self, factor: float | None = None) -> int:
        """Multiply every memory's relevance by ``factor`` in (0, 1]; scores stay within [0, 1]."""
        factor = self.config.decay_factor if factor is None else factor
        if not 0.0 < factor <= 1.0:
            raise InvalidInputError(
                f"Decay factor must be in (0, 1], got {factor}",
                details={"source": "maintenance", "operation": "decay_all", "factor": factor},
            )
        updated = await self.repository.decay_relevance(factor)
        logger.info("Applied relevance decay", factor=factor, updated=updated)
        return updated

    async def _delete_quietly(self, memory: Memory, why: str) -> bool:
        try:
            return await self.repository.delete_memory(memory.id, memory.user_id)
        except Exception as e:
            logger.warning("Failed to delete memory during maintenance", memory_id=str(memory.id), why=why, error=e)
            return False

    async def cleanup_exact_duplicates(self, user_id: str) -> int:
        """Keep the earliest memory of each normalized-content group, delete the rest."""
        memories = sorted(await self.repository.list_memories(user_id), key=lambda m: m.created_at)
        seen: set[str] = set()
        removed = 0
        for memory in memories:
            key = normalize_content(memory.content)
            if key not in seen:
                seen.add(key)
                continue
            if await self._delete_quietly(memory, "exact_duplicate"):
                removed += 1
        logger.info("Removed exact duplicates", user_id=user_id, removed=removed)
        return removed

    async def remove_duplicates(self, user_id: str, threshold: float = DUPLICATE_THRESHOLD_DEFAULT) -> int:
        """Delete near duplicates, keeping the memory with the higher relevance score."""
        memories = await self.repository.list_memories(user_id)
        removed_ids: set[UUID] = set()
        removed = 0

        for memory in memories:
            if memory.id in removed_ids or not memory.embedding:
                continue
            try:
                hits = await self.repository.find_similar_memories(
                    memory.embedding, user_id, NEIGHBOUR_COUNT, threshold
                )
            except Exception as e:
                logger.warning("Similarity lookup failed", memory_id=str(memory.id), error=e)
                continue

            for hit in hits:
                other = hit.memory
                if other.id == memory.id or other.id in removed_ids:
                    continue
                # Ties keep the older memory
                if other.relevance_score > memory.relevance_score or (
                    other.relevance_score == memory.relevance_score and other.created_at < memory.created_at
                ):
                    loser = memory
                else:
                    loser = other
                if await self._delete_quietly(loser, "near_duplicate"):
                    removed_ids.add(loser.id)
                    removed += 1
                if loser.id == memory.id:
                    break

        logger.info("Removed near duplicates", user_id=user_id, removed=removed, threshold=threshold)
        return removed

    def _rank_for_consolidation(self, memory: Memory) -> tuple[float, float, float]:
        return (self.scorer.score(memory.content), memory.importance_score, memory.relevance_score)

    async def consolidate_similar(self, user_id: str, threshold: float = CONSOLIDATION_THRESHOLD_DEFAULT) -> int:
        """Fold each group of similar memories into its highest-quality member.

        Returns the number of memories merged away.
        """
        memories = await self.repository.list_memories(user_id)
        consumed: set[UUID] = set()
        consolidated = 0

        for memory in memories:
            if memory.id in consumed or not memory.embedding:
                continue
            try:
                hits = await self.repository.find_similar_memories(
                    memory.embedding, user_id, NEIGHBOUR_COUNT, threshold
                )
            except Exception as e:
                logger.warning("Similarity lookup failed", memory_id=str(memory.id), error=e)
                continue

            group = [memory] + [h.memory for h in hits if h.memory.id != memory.id and h.memory.id not in consumed]
            if len(group) < 2:
                continue

            group.sort(key=self._rank_for_consolidation, reverse=True)
            primary, others = group[0], group[1:]
            content = primary.content
            for other in others:
                content = merge_contents(content, other.content)

            try:
                embedding = await self.embeddings.embed_text(content)
                await self.repository.update_memory(
                    primary.model_copy(
                        update={
                            "content": content,
                            "embedding": embedding,
                            "semantic_tags": _merge_tags(primary.semantic_tags, *(o.semantic_tags for o in others)),
                            "importance_score": max(m.importance_score for m in group),
                            "relevance_score": max(m.relevance_score for m in group),
                            "access_count": sum(m.access_count for m in group),
                        }
                    )
                )
            except Exception as e:
                logger.warning("Failed to consolidate memory group", memory_id=str(primary.id), error=e)
                continue

            consumed.add(primary.id)
            for other in others:
                consumed.add(other.id)
                if await self._delete_quietly(other, "consolidated"):
                    consolidated += 1

        logger.info("Consolidated similar memories", user_id=user_id, consolidated=consolidated)
        return consolidated

    async def summarize_long_memories(self, user_id: str, min_length: int = SUMMARIZE_MIN_LENGTH) -> int:
        """Replace long unreviewed memories by a type-aware summary."""
        if self.summarizer is None:
            logger.debug("No summarizer configured, skipping summarization", user_id=user_id)
            return 0

        summarized = 0
        for memory in await self.repository.list_memories(user_id, reviewed=False):
            if not should_summarize(memory.content, min_length):
                continue
            try:
                summary = await self.summarizer.summarize(memory.content, memory.memory_type)
                if summary == memory.content:
                    continue
                embedding = await self.embeddings.embed_text(summary)
                await self.repository.update_memory(memory.model_copy(update={"content": summary, "embedding": embedding}))
                summarized += 1
            except Exception as e:
                logger.warning("Failed to summarize memory", memory_id=str(memory.id), error=e)

        logger.info("Summarized long memories", user_id=user_id, summarized=summarized)
        return summarized

    async def reclassify_memories(self, user_id: str) -> int:
        """Recompute type, importance and tags of unreviewed memories; write only on change."""
        reclassified = 0
        for memory in await self.repository.list_memories(user_id, reviewed=False):
            try:
                memory_type = classify_memory_type(memory.content)
            except ValidationFailedError:
                logger.info("Skipping memory that reads like an assistant reply", memory_id=str(memory.id))
                continue

            try:
                quality = self.scorer.score(memory.content)
                importance = importance_score(memory.content, memory_type, quality)
                tags = await self.tagger.extract(memory.content)
                changed = (
                    memory_type != memory.memory_type
                    or abs(importance - memory.importance_score) > 1e-9
                    or sorted(tags) != sorted(memory.semantic_tags)
                )
                if not changed:
                    continue
                await self.repository.update_memory(
                    memory.model_copy(
                        update={"memory_type": memory_type, "importance_score": importance, "semantic_tags": tags}
                    )
                )
                reclassified += 1
            except Exception as e:
                logger.warning("Failed to reclassify memory", memory_id=str(memory.id), error=e)

        logger.info("Reclassified memories", user_id=user_id, reclassified=reclassified)
        return reclassified

    async def mark_reviewed(self, memory_ids: list[UUID], reviewer_id: str, user_id: str) -> int:
        if not memory_ids:
            return 0
        return await self.repository.mark_reviewed(memory_ids, reviewer_id, user_id, self.clock())

    async def _mark_all_reviewed(self, user_id: str, reviewer_id: str) -> int:
        pending = await self.repository.list_memories(user_id, reviewed=False)
        return await self.mark_reviewed([m.id for m in pending], reviewer_id, user_id)

    async def comprehensive_cleanup(self, user_id: str, options: CleanupOptions | None = None) -> CleanupReport:
        """Run every cleanup stage in order and report what each one did."""
        options = options or CleanupOptions()

        with bind_log_context(user_id=user_id, operation="comprehensive_cleanup"):
            report = CleanupReport(total_memories=await self.repository.count_memories(user_id))

            async def stage(name: str, run: Callable[[], Awaitable[int]]) -> int:
                try:
                    return await run()
                except Exception as e:
                    logger.error("Cleanup stage failed", stage=name, error=e)
                    report.errors.append(f"{name}: {e!s}")
                    return 0

            if options.remove_duplicates:
                report.duplicates_removed += await stage(
                    "exact_duplicates", lambda: self.cleanup_exact_duplicates(user_id)
                )
                report.duplicates_removed += await stage(
                    "semantic_duplicates", lambda: self.remove_duplicates(user_id, options.duplicate_threshold)
                )
            if options.consolidate_similar:
                report.similar_consolidated = await stage(
                    "consolidation", lambda: self.consolidate_similar(user_id, options.consolidation_threshold)
                )
            if options.summarize_long:
                report.memories_summarized = await stage(
                    "summarization", lambda: self.summarize_long_memories(user_id, options.summarize_min_length)
                )
            if options.reclassify:
                report.memories_reclassified = await stage("reclassification", lambda: self.reclassify_memories(user_id))
            if options.mark_reviewed:
                report.memories_marked_reviewed = await stage(
                    "mark_reviewed", lambda: self._mark_all_reviewed(user_id, options.reviewer_id)
                )

            logger.info("Comprehensive cleanup finished", **report.model_dump(exclude={"errors"}), failed=len(report.errors))
            return report

    async def prune_low_relevance(
        self,
        user_id: str,
        threshold: float = PRUNE_RELEVANCE_THRESHOLD,
        idle_days: int = PRUNE_IDLE_DAYS,
        max_access_count: int = PRUNE_MAX_ACCESS_COUNT,
    ) -> int:
        """Archive stale, rarely used memories by dropping their relevance to the archive level."""
        cutoff = self.clock() - timedelta(days=idle_days)
        archived = 0
        for memory in await self.repository.list_memories(user_id):
            last_used = memory.last_accessed or memory.created_at
            if (
                memory.relevance_score < threshold
                and memory.relevance_score > ARCHIVED_RELEVANCE
                and last_used < cutoff
                and memory.access_count < max_access_count
            ):
                try:
                    await self.repository.update_memory(memory.model_copy(update={"relevance_score": ARCHIVED_RELEVANCE}))
                    archived += 1
                except Exception as e:
                    logger.warning("Failed to archive memory", memory_id=str(memory.id), error=e)
        logger.info("Pruned low relevance memories", user_id=user_id, archived=archived)
        return archived

    async def efficiency_metrics(self, user_id: str) -> EfficiencyMetrics:
        memories = await self.repository.list_memories(user_id)
        total = len(memories)
        if total == 0:
            return EfficiencyMetrics()

        avg_relevance = sum(m.relevance_score for m in memories) / total
        low = sum(1 for m in memories if m.relevance_score < PRUNE_RELEVANCE_THRESHOLD)
        duplicates = total - len({normalize_content(m.content) for m in memories})
        score = avg_relevance * 50 + (1 - low / total) * 30 + (1 - duplicates / total) * 20
        return EfficiencyMetrics(
            total_memories=total,
            avg_relevance=avg_relevance,
            low_relevance_count=low,
            duplicate_count=duplicates,
            efficiency_score=round(max(0.0, min(100.0, score)), 2),
        )
