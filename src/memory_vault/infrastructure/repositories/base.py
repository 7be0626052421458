"""Storage contract the memory services depend on.

Every per-user operation takes ``user_id`` explicitly; no call may read or
write another tenant's rows. Rows are returned as domain models.
"""

from datetime import datetime
from typing import Protocol, runtime_checkable
from uuid import UUID

from memory_vault.domain.models import (
    Memory,
    MemoryCluster,
    SimilarCluster,
    SimilarMemory,
)


@runtime_checkable
class MemoryRepository(Protocol):
    # Memories
    async def insert_memory(self, memory: Memory) -> Memory: ...

    async def get_memory(self, memory_id: UUID, user_id: str) -> Memory | None: ...

    async def update_memory(self, memory: Memory) -> Memory: ...

    async def delete_memory(self, memory_id: UUID, user_id: str) -> bool: ...

    async def list_memories(self, user_id: str, reviewed: bool | None = None) -> list[Memory]: ...

    async def count_memories(self, user_id: str) -> int: ...

    async def find_by_normalized_content(self, normalized: str, user_id: str) -> Memory | None: ...

    async def find_similar_memories(
        self,
        embedding: list[float],
        user_id: str,
        match_count: int,
        threshold: float,
    ) -> list[SimilarMemory]: ...

    async def record_access(self, memory_ids: list[UUID], user_id: str, at: datetime) -> int: ...

    async def decay_relevance(self, factor: float) -> int: ...

    async def mark_reviewed(
        self,
        memory_ids: list[UUID],
        reviewer_id: str,
        user_id: str,
        at: datetime,
    ) -> int: ...

    # Clusters
    async def insert_cluster(self, cluster: MemoryCluster) -> MemoryCluster: ...

    async def get_cluster(self, cluster_id: UUID, user_id: str) -> MemoryCluster | None: ...

    async def update_cluster(self, cluster: MemoryCluster) -> MemoryCluster: ...

    async def list_clusters(self, user_id: str) -> list[MemoryCluster]: ...

    async def find_similar_clusters(
        self,
        embedding: list[float],
        user_id: str,
        match_count: int,
        threshold: float,
    ) -> list[SimilarCluster]: ...

    async def memories_in_cluster(self, cluster_id: UUID, user_id: str) -> list[Memory]: ...
