"""Wiring of repositories, providers and services into the ``MemoryVault`` facade.

``MemoryVault.build`` assembles everything from explicit collaborators (used by
tests and embedders of the library); ``open_vault`` connects to Neo4j, Voyage
and Anthropic from settings and manages their lifetime.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from uuid import UUID

from memory_vault.core.config import Settings, settings as default_settings
from memory_vault.core.logging import configure_logfire, get_logger, setup_logging
from memory_vault.domain.models import (
    CleanupOptions,
    CleanupReport,
    EfficiencyMetrics,
    ExtractionResult,
    Memory,
    MemoryCandidate,
    MemoryCluster,
    MemoryStats,
    Message,
    SimilarMemory,
)
from memory_vault.infrastructure.completions import AnthropicCompletionService
from memory_vault.infrastructure.embeddings import VoyageEmbeddingService
from memory_vault.infrastructure.neo4j.driver import create_neo4j_driver, ensure_schema
from memory_vault.infrastructure.repositories.base import MemoryRepository
from memory_vault.infrastructure.repositories.neo4j import Neo4jMemoryRepository
from memory_vault.services import CompletionService, EmbeddingService
from memory_vault.services.background import BackgroundMemoryQueue
from memory_vault.services.classification import TagExtractor
from memory_vault.services.extraction import MemoryExtractor
from memory_vault.services.maintenance import MaintenanceService
from memory_vault.services.memory_service import MemoryService
from memory_vault.services.ranking import adaptive_threshold, optimal_limit
from memory_vault.services.scheduler import MaintenanceScheduler
from memory_vault.services.session_cache import SessionCache
from memory_vault.services.summarization import Summarizer
from memory_vault.services.validation import ValidationLevel

logger = get_logger(__name__)


class MemoryVault:
    """Application-facing entry point of the memory subsystem."""

    def __init__(
        self,
        memories: MemoryService,
        maintenance: MaintenanceService,
        queue: BackgroundMemoryQueue,
        extractor: MemoryExtractor,
        scheduler: MaintenanceScheduler | None = None,
    ) -> None:
        self.memories = memories
        self.maintenance = maintenance
        self.queue = queue
        self.extractor = extractor
        self.scheduler = scheduler

    @classmethod
    def build(
        cls,
        repository: MemoryRepository,
        embeddings: EmbeddingService,
        completions: CompletionService | None = None,
        config: Settings | None = None,
        session_cache: SessionCache | None = None,
        with_scheduler: bool | None = None,
    ) -> "MemoryVault":
        config = config or default_settings
        session_cache = session_cache or SessionCache(ttl=config.memory.session_ttl_seconds)
        tagger = TagExtractor(completions)

        memories = MemoryService(
            repository=repository,
            embeddings=embeddings,
            session_cache=session_cache,
            tagger=tagger,
            config=config.memory,
        )
        maintenance = MaintenanceService(
            repository=repository,
            embeddings=embeddings,
            tagger=tagger,
            summarizer=Summarizer(completions) if completions is not None else None,
            config=config.maintenance,
        )

        async def save_candidate(candidate: MemoryCandidate) -> Memory:
            return await memories.save(candidate.content, candidate.user_id, candidate.context)

        queue = BackgroundMemoryQueue(save_candidate, config.maintenance)
        extractor = MemoryExtractor(queue)

        if with_scheduler is None:
            with_scheduler = config.maintenance.enable_scheduler
        scheduler = MaintenanceScheduler(maintenance, session_cache, config.maintenance) if with_scheduler else None
        return cls(memories, maintenance, queue, extractor, scheduler)

    async def start(self) -> None:
        self.queue.start()
        if self.scheduler is not None:
            await self.scheduler.start()

    async def stop(self) -> None:
        if self.scheduler is not None:
            await self.scheduler.shutdown()
        await self.queue.stop()

    # Write path

    async def save(
        self,
        content: str,
        user_id: str,
        context: str = "",
        *,
        validation_level: ValidationLevel = ValidationLevel.NORMAL,
        duplicate_threshold: float | None = None,
    ) -> Memory:
        return await self.memories.save(
            content,
            user_id,
            context,
            validation_level=validation_level,
            duplicate_threshold=duplicate_threshold,
        )

    async def save_from_source(self, content: str, user_id: str, source: str, context: str = "") -> Memory:
        return await self.memories.save_from_source(content, user_id, source, context)

    async def delete_memory(self, memory_id: UUID, user_id: str) -> bool:
        return await self.memories.delete_memory(memory_id, user_id)

    async def handle_conversation(self, messages: list[Message], user_id: str) -> ExtractionResult:
        return await self.extractor.handle_conversation(messages, user_id)

    # Read path

    async def relevant(
        self,
        user_id: str,
        query: str,
        limit: int | None = None,
        similarity_threshold: float | None = None,
    ) -> list[SimilarMemory]:
        return await self.memories.relevant(user_id, query, limit, similarity_threshold)

    async def relevant_with_tracking(
        self,
        user_id: str,
        query: str,
        limit: int | None = None,
        similarity_threshold: float | None = None,
    ) -> list[SimilarMemory]:
        return await self.memories.relevant_with_tracking(user_id, query, limit, similarity_threshold)

    async def relevant_adaptive(self, user_id: str, query: str, context: str = "") -> list[SimilarMemory]:
        """Retrieval with threshold and limit tuned to store size and conversation context."""
        count = await self.memories.repository.count_memories(user_id)
        return await self.memories.relevant_with_tracking(
            user_id,
            query,
            optimal_limit(count, context),
            adaptive_threshold(count, context),
        )

    async def clusters(self, user_id: str) -> list[MemoryCluster]:
        return await self.memories.clusters(user_id)

    async def memories_in_cluster(self, cluster_id: UUID, user_id: str) -> list[Memory]:
        return await self.memories.memories_in_cluster(cluster_id, user_id)

    async def stats(self, user_id: str) -> MemoryStats:
        return await self.memories.stats(user_id)

    # Maintenance

    async def decay_all(self) -> int:
        return await self.maintenance.decay_all()

    async def cleanup_exact_duplicates(self, user_id: str) -> int:
        return await self.maintenance.cleanup_exact_duplicates(user_id)

    async def remove_duplicates(self, user_id: str, threshold: float | None = None) -> int:
        if threshold is None:
            return await self.maintenance.remove_duplicates(user_id)
        return await self.maintenance.remove_duplicates(user_id, threshold)

    async def consolidate_similar(self, user_id: str, threshold: float | None = None) -> int:
        if threshold is None:
            return await self.maintenance.consolidate_similar(user_id)
        return await self.maintenance.consolidate_similar(user_id, threshold)

    async def comprehensive_cleanup(self, user_id: str, options: CleanupOptions | None = None) -> CleanupReport:
        return await self.maintenance.comprehensive_cleanup(user_id, options)

    async def mark_reviewed(self, memory_ids: list[UUID], reviewer_id: str, user_id: str) -> int:
        return await self.maintenance.mark_reviewed(memory_ids, reviewer_id, user_id)

    async def prune_low_relevance(self, user_id: str) -> int:
        return await self.maintenance.prune_low_relevance(user_id)

    async def efficiency_metrics(self, user_id: str) -> EfficiencyMetrics:
        return await self.maintenance.efficiency_metrics(user_id)


@asynccontextmanager
async def open_vault(config: Settings | None = None) -> AsyncIterator[MemoryVault]:
    """Connect to Neo4j, Voyage AI and Anthropic and yield a running vault."""
    config = config or default_settings
    configure_logfire(config.service_name)
    setup_logging()

    async with create_neo4j_driver(config.neo4j) as driver:
        await ensure_schema(driver)
        vault = MemoryVault.build(
            repository=Neo4jMemoryRepository(driver),
            embeddings=VoyageEmbeddingService(config.voyage),
            completions=AnthropicCompletionService(config.anthropic),
            config=config,
        )
        await vault.start()
        logger.info("Memory vault ready", service=config.service_name)
        try:
            yield vault
        finally:
            await vault.stop()
