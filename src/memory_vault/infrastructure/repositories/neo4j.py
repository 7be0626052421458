"""MemoryRepository backed by Neo4j with vector indexes."""

from datetime import datetime
from typing import Any
from uuid import UUID

from neo4j import AsyncDriver
from pydantic import ValidationError

from memory_vault.core.base import DatabaseErrorDetails
from memory_vault.core.errors import PersistenceError
from memory_vault.core.logging import get_logger
from memory_vault.domain.models import (
    Memory,
    MemoryCluster,
    SimilarCluster,
    SimilarMemory,
)
from memory_vault.domain.models.utils import normalize_content, utc_now
from memory_vault.infrastructure.neo4j.driver import Neo4jQuery
from memory_vault.infrastructure.neo4j.queries import ClusterQueries, MemoryQueries

logger = get_logger(__name__)

_MEMORY_DATETIMES = ("created_at", "updated_at", "last_accessed", "reviewed_at")
_CLUSTER_DATETIMES = ("created_at", "updated_at")


def _to_native(props: dict[str, Any], fields: tuple[str, ...]) -> dict[str, Any]:
    for key in fields:
        value = props.get(key)
        if value is not None and hasattr(value, "to_native"):
            props[key] = value.to_native()
    return props


def _schema_error(kind: str, e: ValidationError) -> PersistenceError:
    return PersistenceError(
        message=f"Stored {kind} does not match the schema: {e.error_count()} errors",
        details=DatabaseErrorDetails(
            source="Neo4jMemoryRepository",
            operation=f"parse_{kind}",
            service_name="Neo4j",
            table="Memory" if kind == "memory" else "MemoryCluster",
        ),
    )


def memory_from_node(node: Any) -> Memory:
    props = _to_native(dict(node), _MEMORY_DATETIMES)
    props.pop("normalized_content", None)
    try:
        return Memory.model_validate(props)
    except ValidationError as e:
        raise _schema_error("memory", e) from e


def cluster_from_node(node: Any) -> MemoryCluster:
    props = _to_native(dict(node), _CLUSTER_DATETIMES)
    try:
        return MemoryCluster.model_validate(props)
    except ValidationError as e:
        raise _schema_error("cluster", e) from e


def memory_to_props(memory: Memory) -> dict[str, Any]:
    props = memory.model_dump(mode="python", exclude={"id"})
    props["memory_type"] = memory.memory_type.value
    props["cluster_id"] = str(memory.cluster_id) if memory.cluster_id else None
    props["normalized_content"] = normalize_content(memory.content)
    return props


def cluster_to_props(cluster: MemoryCluster) -> dict[str, Any]:
    return cluster.model_dump(mode="python", exclude={"id"})


class Neo4jMemoryRepository:
    def __init__(self, driver: AsyncDriver) -> None:
        self.driver = driver
        self.query: Neo4jQuery[Any] = Neo4jQuery(driver)

    # Memories

    async def _upsert_memory(self, memory: Memory) -> Memory:
        query, _ = MemoryQueries.upsert()
        stored = await self.query.execute_single(
            query,
            {"id": str(memory.id), "props": memory_to_props(memory)},
            lambda record: memory_from_node(record["m"]),
        )
        if stored is None:
            raise PersistenceError(
                message="Neo4j did not return the stored memory",
                details=DatabaseErrorDetails(
                    source="Neo4jMemoryRepository",
                    operation="upsert_memory",
                    service_name="Neo4j",
                    table="Memory",
                ),
            )
        return stored

    async def insert_memory(self, memory: Memory) -> Memory:
        stored = await self._upsert_memory(memory)
        logger.debug("Stored memory", memory_id=str(memory.id), user_id=memory.user_id)
        return stored

    async def get_memory(self, memory_id: UUID, user_id: str) -> Memory | None:
        query, _ = MemoryQueries.get()
        return await self.query.execute_single(
            query, {"id": str(memory_id), "user_id": user_id}, lambda record: memory_from_node(record["m"])
        )

    async def update_memory(self, memory: Memory) -> Memory:
        query, _ = MemoryQueries.exists()
        found = await self.query.execute_value(query, {"id": str(memory.id), "user_id": memory.user_id})
        if not found:
            raise PersistenceError(f"Memory {memory.id} not found for user {memory.user_id}")
        return await self._upsert_memory(memory.model_copy(update={"updated_at": utc_now()}))

    async def delete_memory(self, memory_id: UUID, user_id: str) -> bool:
        query, _ = MemoryQueries.delete()
        deleted = await self.query.execute_value(query, {"id": str(memory_id), "user_id": user_id})
        return bool(deleted)

    async def list_memories(self, user_id: str, reviewed: bool | None = None) -> list[Memory]:
        query, _ = MemoryQueries.list_for_user()
        return await self.query.execute_list(
            query, {"user_id": user_id, "reviewed": reviewed}, lambda record: memory_from_node(record["m"])
        )

    async def count_memories(self, user_id: str) -> int:
        query, _ = MemoryQueries.count_for_user()
        return int(await self.query.execute_value(query, {"user_id": user_id}) or 0)

    async def find_by_normalized_content(self, normalized: str, user_id: str) -> Memory | None:
        query, _ = MemoryQueries.by_normalized_content()
        return await self.query.execute_single(
            query, {"user_id": user_id, "normalized": normalized}, lambda record: memory_from_node(record["m"])
        )

    async def find_similar_memories(
        self,
        embedding: list[float],
        user_id: str,
        match_count: int,
        threshold: float,
    ) -> list[SimilarMemory]:
        query, _ = MemoryQueries.similarity_search()
        params = {
            "embedding": embedding,
            "user_id": user_id,
            "threshold": threshold,
            "limit": match_count,
        }
        return await self.query.execute_list(
            query,
            params,
            lambda record: SimilarMemory(
                memory=memory_from_node(record["m"]),
                similarity=max(-1.0, min(1.0, float(record["similarity"]))),
            ),
        )

    async def record_access(self, memory_ids: list[UUID], user_id: str, at: datetime) -> int:
        query, _ = MemoryQueries.record_access()
        updated = await self.query.execute_value(
            query, {"ids": [str(i) for i in memory_ids], "user_id": user_id, "at": at}
        )
        return int(updated or 0)

    async def decay_relevance(self, factor: float) -> int:
        query, _ = MemoryQueries.decay_all()
        return int(await self.query.execute_value(query, {"factor": factor}) or 0)

    async def mark_reviewed(
        self,
        memory_ids: list[UUID],
        reviewer_id: str,
        user_id: str,
        at: datetime,
    ) -> int:
        query, _ = MemoryQueries.mark_reviewed()
        updated = await self.query.execute_value(
            query,
            {"ids": [str(i) for i in memory_ids], "user_id": user_id, "reviewer_id": reviewer_id, "at": at},
        )
        return int(updated or 0)

    # Clusters

    async def _upsert_cluster(self, cluster: MemoryCluster) -> MemoryCluster:
        query, _ = ClusterQueries.upsert()
        stored = await self.query.execute_single(
            query,
            {"id": str(cluster.id), "props": cluster_to_props(cluster)},
            lambda record: cluster_from_node(record["c"]),
        )
        if stored is None:
            raise PersistenceError(
                message="Neo4j did not return the stored cluster",
                details=DatabaseErrorDetails(
                    source="Neo4jMemoryRepository",
                    operation="upsert_cluster",
                    service_name="Neo4j",
                    table="MemoryCluster",
                ),
            )
        return stored

    async def insert_cluster(self, cluster: MemoryCluster) -> MemoryCluster:
        return await self._upsert_cluster(cluster)

    async def get_cluster(self, cluster_id: UUID, user_id: str) -> MemoryCluster | None:
        query, _ = ClusterQueries.get()
        return await self.query.execute_single(
            query, {"id": str(cluster_id), "user_id": user_id}, lambda record: cluster_from_node(record["c"])
        )

    async def update_cluster(self, cluster: MemoryCluster) -> MemoryCluster:
        if await self.get_cluster(cluster.id, cluster.user_id) is None:
            raise PersistenceError(f"Cluster {cluster.id} not found for user {cluster.user_id}")
        return await self._upsert_cluster(cluster.model_copy(update={"updated_at": utc_now()}))

    async def list_clusters(self, user_id: str) -> list[MemoryCluster]:
        query, _ = ClusterQueries.list_for_user()
        return await self.query.execute_list(query, {"user_id": user_id}, lambda record: cluster_from_node(record["c"]))

    async def find_similar_clusters(
        self,
        embedding: list[float],
        user_id: str,
        match_count: int,
        threshold: float,
    ) -> list[SimilarCluster]:
        query, _ = ClusterQueries.similarity_search()
        params = {
            "embedding": embedding,
            "user_id": user_id,
            "threshold": threshold,
            "limit": match_count,
        }
        return await self.query.execute_list(
            query,
            params,
            lambda record: SimilarCluster(
                cluster=cluster_from_node(record["c"]),
                similarity=max(-1.0, min(1.0, float(record["similarity"]))),
            ),
        )

    async def memories_in_cluster(self, cluster_id: UUID, user_id: str) -> list[Memory]:
        query, _ = ClusterQueries.members()
        return await self.query.execute_list(
            query, {"cluster_id": str(cluster_id), "user_id": user_id}, lambda record: memory_from_node(record["m"])
        )
