"""Memory write and read paths.

``save`` runs a fixed sequence of gates; the first one that fails raises and
nothing is written. Retrieval embeds the query, searches the caller's own
memories and orders the hits with ``rank_memories``.
"""

from uuid import UUID

from memory_vault.core.base import DatabaseErrorDetails, ErrorLevel, MemoryErrorDetails
from memory_vault.core.config import MemoryConfig, settings
from memory_vault.core.decorators import with_error_handling
from memory_vault.core.errors import (
    DuplicateDetectedError,
    PersistenceError,
    QualityTooLowError,
    ValidationFailedError,
)
from memory_vault.core.logging import bind_log_context, get_logger
from memory_vault.domain.models import Memory, MemoryCluster, MemoryStats, SimilarMemory
from memory_vault.domain.models.utils import utc_now
from memory_vault.infrastructure.repositories.base import MemoryRepository
from memory_vault.services import EmbeddingService
from memory_vault.services.classification import TagExtractor, classify_memory_type, importance_score
from memory_vault.services.clustering import ClusterAssigner
from memory_vault.services.deduplication import DuplicateDetector
from memory_vault.services.quality import QualityScorer
from memory_vault.services.ranking import rank_memories
from memory_vault.services.session_cache import SessionCache
from memory_vault.services.validation import ContentValidator, ValidationLevel

logger = get_logger(__name__)


def _preview(content: str) -> str:
    return content[:80]


class MemoryService:
    """Owns the memory write path and user-scoped retrieval."""

    def __init__(
        self,
        repository: MemoryRepository,
        embeddings: EmbeddingService,
        session_cache: SessionCache,
        tagger: TagExtractor,
        cluster_assigner: ClusterAssigner | None = None,
        config: MemoryConfig | None = None,
        validator: ContentValidator | None = None,
        scorer: QualityScorer | None = None,
    ) -> None:
        self.repository = repository
        self.embeddings = embeddings
        self.session_cache = session_cache
        self.tagger = tagger
        self.config = config or settings.memory
        self.cluster_assigner = cluster_assigner or ClusterAssigner(
            repository,
            threshold=self.config.cluster_similarity_threshold,
            match_count=self.config.cluster_match_count,
            centroid_strategy=self.config.centroid_strategy,
        )
        self.validator = validator or ContentValidator()
        self.scorer = scorer or QualityScorer()
        self.duplicates = DuplicateDetector(repository, embeddings)

    def _rejection(self, user_id: str, content: str, reason: str, **extra) -> MemoryErrorDetails:
        return MemoryErrorDetails(
            source="MemoryService",
            operation="save",
            user_id=user_id,
            content_preview=_preview(content),
            reason=reason,
            **extra,
        )

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    async def save(
        self,
        content: str,
        user_id: str,
        context: str = "",
        *,
        validation_level: ValidationLevel = ValidationLevel.NORMAL,
        duplicate_threshold: float | None = None,
    ) -> Memory:
        """Validate, score, deduplicate, enrich and persist one memory.

        Raises:
            ValidationFailedError: Content fails validation or reads like an assistant reply
            DuplicateDetectedError: Already seen this session or already stored
            QualityTooLowError: Quality score below the configured floor
            EmbeddingError: The embedding provider failed
            PersistenceError: The datastore write failed
        """
        threshold = self.config.duplicate_threshold if duplicate_threshold is None else duplicate_threshold

        with bind_log_context(user_id=user_id, operation="save_memory"):
            reason = self.validator.rejection_reason(content, validation_level)
            if reason is not None:
                raise ValidationFailedError(
                    f"Content failed validation: {reason}",
                    details=self._rejection(user_id, content, reason),
                )

            content = content.strip()
            if self.session_cache.has_processed(user_id, content):
                raise DuplicateDetectedError(
                    "Content already processed in this session",
                    details=self._rejection(user_id, content, "session_duplicate"),
                )

            quality = self.scorer.score(content, context)
            if quality < self.config.quality_floor:
                raise QualityTooLowError(
                    f"Quality score {quality:.2f} below floor {self.config.quality_floor:.2f}",
                    details=self._rejection(user_id, content, "quality_too_low", score=quality),
                )

            exact = await self.duplicates.find_exact(content, user_id)
            if exact is not None:
                raise DuplicateDetectedError(
                    "Identical memory already stored",
                    details=self._rejection(
                        user_id, content, "exact_duplicate", score=1.0, matched_memory_id=str(exact.memory_id)
                    ),
                )

            embedding = await self.embeddings.embed_text(content)

            near = await self.duplicates.find_near(embedding, user_id, threshold)
            if near is not None:
                raise DuplicateDetectedError(
                    f"Similar memory already stored (similarity {near.similarity:.3f})",
                    details=self._rejection(
                        user_id,
                        content,
                        "near_duplicate",
                        score=near.similarity,
                        matched_memory_id=str(near.memory_id),
                    ),
                )

            self.session_cache.mark_processed(user_id, content)

            tags = await self.tagger.extract(content)
            memory_type = classify_memory_type(content)
            importance = importance_score(content, memory_type, quality)
            cluster_id = await self.cluster_assigner.assign_or_create(
                embedding, user_id, tags, memory_type, relevance=quality
            )

            memory = Memory(
                user_id=user_id,
                content=content,
                embedding=embedding,
                semantic_tags=tags,
                memory_type=memory_type,
                importance_score=importance,
                relevance_score=quality,
                cluster_id=cluster_id,
            )
            stored = await self._persist(memory)
            logger.info(
                "Memory saved",
                memory_id=str(stored.id),
                memory_type=memory_type.value,
                importance=round(importance, 3),
                quality=round(quality, 3),
                cluster_id=str(cluster_id) if cluster_id else None,
            )
            return stored

    async def _persist(self, memory: Memory) -> Memory:
        try:
            return await self.repository.insert_memory(memory)
        except PersistenceError:
            raise
        except Exception as e:
            raise PersistenceError(
                f"Failed to store memory: {e!s}",
                details=DatabaseErrorDetails(
                    source="MemoryService",
                    operation="insert_memory",
                    service_name="repository",
                    table="Memory",
                ),
            ) from e

    async def save_from_source(
        self,
        content: str,
        user_id: str,
        source: str,
        context: str = "",
        **kwargs,
    ) -> Memory:
        """Save only when ``source`` ('user', 'ai', 'system') is allowed by policy."""
        if source not in self.config.allowed_sources:
            raise ValidationFailedError(
                f"Memories from source '{source}' are not allowed",
                details=self._rejection(user_id, content, "source_not_allowed"),
            )
        return await self.save(content, user_id, context, **kwargs)

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    async def delete_memory(self, memory_id: UUID, user_id: str) -> bool:
        deleted = await self.repository.delete_memory(memory_id, user_id)
        logger.info("Memory delete requested", memory_id=str(memory_id), user_id=user_id, deleted=deleted)
        return deleted

    @with_error_handling(error_level=ErrorLevel.ERROR, reraise=True)
    async def relevant(
        self,
        user_id: str,
        query: str,
        limit: int | None = None,
        similarity_threshold: float | None = None,
    ) -> list[SimilarMemory]:
        """The caller's memories most similar to ``query``, best first."""
        limit = self.config.retrieval_limit if limit is None else limit
        threshold = self.config.retrieval_threshold if similarity_threshold is None else similarity_threshold
        if limit <= 0 or not query.strip():
            return []

        embedding = await self.embeddings.embed_text(query)
        # Over-fetch so the tie-break cascade can promote hits just below the top similarity
        hits = await self.repository.find_similar_memories(embedding, user_id, limit * 3, threshold)
        ranked = rank_memories([hit for hit in hits if hit.similarity >= threshold])[:limit]
        logger.debug("Retrieved memories", user_id=user_id, candidates=len(hits), returned=len(ranked))
        return ranked

    async def relevant_with_tracking(
        self,
        user_id: str,
        query: str,
        limit: int | None = None,
        similarity_threshold: float | None = None,
    ) -> list[SimilarMemory]:
        """Like ``relevant`` and records an access for every returned memory."""
        hits = await self.relevant(user_id, query, limit, similarity_threshold)
        if not hits:
            return hits

        now = utc_now()
        await self.repository.record_access([hit.memory.id for hit in hits], user_id, now)
        return [
            hit.model_copy(
                update={
                    "memory": hit.memory.model_copy(
                        update={"access_count": hit.memory.access_count + 1, "last_accessed": now}
                    )
                }
            )
            for hit in hits
        ]

    async def update_memory_access(self, memory_id: UUID, user_id: str) -> bool:
        return await self.repository.record_access([memory_id], user_id, utc_now()) > 0

    async def clusters(self, user_id: str) -> list[MemoryCluster]:
        return await self.repository.list_clusters(user_id)

    async def memories_in_cluster(self, cluster_id: UUID, user_id: str) -> list[Memory]:
        return await self.repository.memories_in_cluster(cluster_id, user_id)

    async def stats(self, user_id: str) -> MemoryStats:
        memories = await self.repository.list_memories(user_id)
        clusters = await self.repository.list_clusters(user_id)
        if not memories:
            return MemoryStats(total_clusters=len(clusters))

        distribution: dict[str, int] = {}
        for memory in memories:
            distribution[memory.memory_type.value] = distribution.get(memory.memory_type.value, 0) + 1

        total = len(memories)
        top = sorted(memories, key=lambda m: m.relevance_score, reverse=True)[:5]
        return MemoryStats(
            total_memories=total,
            total_clusters=len(clusters),
            avg_relevance_score=sum(m.relevance_score for m in memories) / total,
            avg_importance_score=sum(m.importance_score for m in memories) / total,
            total_access_count=sum(m.access_count for m in memories),
            type_distribution=distribution,
            most_relevant_memories=[m.model_copy(update={"embedding": None}) for m in top],
        )

