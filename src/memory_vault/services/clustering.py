"""Best-effort assignment of new memories to per-user semantic clusters."""

from uuid import UUID

from memory_vault.core.config import CentroidStrategy
from memory_vault.core.constants import CLUSTER_MATCH_COUNT, CLUSTER_SIMILARITY_THRESHOLD
from memory_vault.core.errors import ClusterAssignmentError
from memory_vault.core.logging import get_logger
from memory_vault.domain.models import MemoryCluster, MemoryType
from memory_vault.infrastructure.embeddings.similarity import running_mean
from memory_vault.infrastructure.repositories.base import MemoryRepository

logger = get_logger(__name__)


def cluster_name(memory_type: MemoryType) -> str:
    return f"{memory_type.label} Cluster"


def cluster_description(memory_type: MemoryType, tags: list[str]) -> str:
    return f"Cluster for {memory_type.value} memories with tags: {', '.join(tags)}"


class ClusterAssigner:
    """Joins the closest existing cluster or founds a new one.

    Failures never propagate: the memory is stored without a cluster instead.
    """

    def __init__(
        self,
        repository: MemoryRepository,
        threshold: float = CLUSTER_SIMILARITY_THRESHOLD,
        match_count: int = CLUSTER_MATCH_COUNT,
        centroid_strategy: CentroidStrategy = CentroidStrategy.STATIC,
    ) -> None:
        self.repository = repository
        self.threshold = threshold
        self.match_count = match_count
        self.centroid_strategy = centroid_strategy

    async def assign_or_create(
        self,
        embedding: list[float],
        user_id: str,
        tags: list[str],
        memory_type: MemoryType,
        relevance: float | None = None,
    ) -> UUID | None:
        try:
            return await self._assign(embedding, user_id, tags, memory_type, relevance)
        except Exception as e:
            error = e if isinstance(e, ClusterAssignmentError) else ClusterAssignmentError(str(e))
            logger.warning(
                "Cluster assignment failed, storing memory without cluster",
                user_id=user_id,
                error=error,
                cause=type(e).__name__,
            )
            return None

    async def _assign(
        self,
        embedding: list[float],
        user_id: str,
        tags: list[str],
        memory_type: MemoryType,
        relevance: float | None,
    ) -> UUID:
        hits = await self.repository.find_similar_clusters(embedding, user_id, self.match_count, self.threshold)
        if hits:
            best = hits[0].cluster
            await self._join(best, embedding, relevance)
            logger.debug("Assigned memory to cluster", cluster_id=str(best.id), similarity=round(hits[0].similarity, 4))
            return best.id

        cluster = await self.repository.insert_cluster(
            MemoryCluster(
                user_id=user_id,
                name=cluster_name(memory_type),
                description=cluster_description(memory_type, tags),
                centroid_embedding=embedding,
                memory_count=1,
                average_relevance_score=relevance if relevance is not None else 0.0,
            )
        )
        logger.info("Created memory cluster", cluster_id=str(cluster.id), user_id=user_id, name=cluster.name)
        return cluster.id

    async def _join(self, cluster: MemoryCluster, embedding: list[float], relevance: float | None) -> None:
        count = cluster.memory_count
        update: dict = {"memory_count": count + 1}
        if relevance is not None:
            update["average_relevance_score"] = (cluster.average_relevance_score * count + relevance) / (count + 1)
        if self.centroid_strategy is CentroidStrategy.RUNNING_MEAN:
            update["centroid_embedding"] = running_mean(cluster.centroid_embedding, embedding, max(count, 1))
        await self.repository.update_cluster(cluster.model_copy(update=update))
