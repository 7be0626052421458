"""Process-local MemoryRepository backed by dictionaries and numpy cosine search.

Used by the test suite and for local runs without a Neo4j instance. Not durable.
"""

from datetime import datetime
from uuid import UUID

from memory_vault.core.errors import PersistenceError
from memory_vault.core.logging import get_logger
from memory_vault.domain.models import (
    Memory,
    MemoryCluster,
    SimilarCluster,
    SimilarMemory,
)
from memory_vault.domain.models.utils import normalize_content, utc_now
from memory_vault.infrastructure.embeddings.similarity import cosine_to_many

logger = get_logger(__name__)


class InMemoryMemoryRepository:
    def __init__(self) -> None:
        self._memories: dict[UUID, Memory] = {}
        self._clusters: dict[UUID, MemoryCluster] = {}

    # Memories

    async def insert_memory(self, memory: Memory) -> Memory:
        stored = memory.model_copy(deep=True)
        self._memories[stored.id] = stored
        return stored.model_copy(deep=True)

    async def get_memory(self, memory_id: UUID, user_id: str) -> Memory | None:
        memory = self._memories.get(memory_id)
        if memory is None or memory.user_id != user_id:
            return None
        return memory.model_copy(deep=True)

    async def update_memory(self, memory: Memory) -> Memory:
        current = self._memories.get(memory.id)
        if current is None or current.user_id != memory.user_id:
            raise PersistenceError(f"Memory {memory.id} not found for user {memory.user_id}")
        stored = memory.model_copy(update={"updated_at": utc_now()}, deep=True)
        self._memories[stored.id] = stored
        return stored.model_copy(deep=True)

    async def delete_memory(self, memory_id: UUID, user_id: str) -> bool:
        memory = self._memories.get(memory_id)
        if memory is None or memory.user_id != user_id:
            return False
        del self._memories[memory_id]
        return True

    def _owned(self, user_id: str) -> list[Memory]:
        return [m for m in self._memories.values() if m.user_id == user_id]

    async def list_memories(self, user_id: str, reviewed: bool | None = None) -> list[Memory]:
        memories = self._owned(user_id)
        if reviewed is not None:
            memories = [m for m in memories if m.reviewed == reviewed]
        memories.sort(key=lambda m: m.created_at)
        return [m.model_copy(deep=True) for m in memories]

    async def count_memories(self, user_id: str) -> int:
        return len(self._owned(user_id))

    async def find_by_normalized_content(self, normalized: str, user_id: str) -> Memory | None:
        for memory in sorted(self._owned(user_id), key=lambda m: m.created_at):
            if normalize_content(memory.content) == normalized:
                return memory.model_copy(deep=True)
        return None

    async def find_similar_memories(
        self,
        embedding: list[float],
        user_id: str,
        match_count: int,
        threshold: float,
    ) -> list[SimilarMemory]:
        candidates = [m for m in self._owned(user_id) if m.embedding]
        scores = cosine_to_many(embedding, [m.embedding for m in candidates])  # type: ignore[misc]
        hits = [
            SimilarMemory(memory=memory.model_copy(deep=True), similarity=float(score))
            for memory, score in zip(candidates, scores, strict=True)
            if score >= threshold
        ]
        hits.sort(key=lambda hit: hit.similarity, reverse=True)
        return hits[:match_count]

    async def record_access(self, memory_ids: list[UUID], user_id: str, at: datetime) -> int:
        updated = 0
        for memory_id in memory_ids:
            memory = self._memories.get(memory_id)
            if memory is None or memory.user_id != user_id:
                continue
            memory.access_count += 1
            memory.last_accessed = at
            updated += 1
        return updated

    async def decay_relevance(self, factor: float) -> int:
        for memory in self._memories.values():
            memory.relevance_score = min(1.0, max(0.0, memory.relevance_score * factor))
        logger.debug("Decayed relevance", factor=factor, count=len(self._memories))
        return len(self._memories)

    async def mark_reviewed(
        self,
        memory_ids: list[UUID],
        reviewer_id: str,
        user_id: str,
        at: datetime,
    ) -> int:
        updated = 0
        for memory_id in memory_ids:
            memory = self._memories.get(memory_id)
            if memory is None or memory.user_id != user_id:
                continue
            memory.reviewed = True
            memory.reviewed_at = at
            memory.reviewed_by = reviewer_id
            updated += 1
        return updated

    # Clusters

    async def insert_cluster(self, cluster: MemoryCluster) -> MemoryCluster:
        stored = cluster.model_copy(deep=True)
        self._clusters[stored.id] = stored
        return stored.model_copy(deep=True)

    async def get_cluster(self, cluster_id: UUID, user_id: str) -> MemoryCluster | None:
        cluster = self._clusters.get(cluster_id)
        if cluster is None or cluster.user_id != user_id:
            return None
        return cluster.model_copy(deep=True)

    async def update_cluster(self, cluster: MemoryCluster) -> MemoryCluster:
        current = self._clusters.get(cluster.id)
        if current is None or current.user_id != cluster.user_id:
            raise PersistenceError(f"Cluster {cluster.id} not found for user {cluster.user_id}")
        stored = cluster.model_copy(update={"updated_at": utc_now()}, deep=True)
        self._clusters[stored.id] = stored
        return stored.model_copy(deep=True)

    async def list_clusters(self, user_id: str) -> list[MemoryCluster]:
        clusters = [c for c in self._clusters.values() if c.user_id == user_id]
        clusters.sort(key=lambda c: c.created_at)
        return [c.model_copy(deep=True) for c in clusters]

    async def find_similar_clusters(
        self,
        embedding: list[float],
        user_id: str,
        match_count: int,
        threshold: float,
    ) -> list[SimilarCluster]:
        clusters = [c for c in self._clusters.values() if c.user_id == user_id]
        scores = cosine_to_many(embedding, [c.centroid_embedding for c in clusters])
        hits = [
            SimilarCluster(cluster=cluster.model_copy(deep=True), similarity=float(score))
            for cluster, score in zip(clusters, scores, strict=True)
            if score >= threshold
        ]
        hits.sort(key=lambda hit: hit.similarity, reverse=True)
        return hits[:match_count]

    async def memories_in_cluster(self, cluster_id: UUID, user_id: str) -> list[Memory]:
        return [m.model_copy(deep=True) for m in self._owned(user_id) if m.cluster_id == cluster_id]
