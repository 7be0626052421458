"""Two-tier duplicate detection: normalized exact match, then embedding similarity."""

from uuid import UUID

from pydantic import BaseModel

from memory_vault.core.constants import DUPLICATE_MATCH_COUNT
from memory_vault.core.logging import get_logger
from memory_vault.domain.models.utils import normalize_content
from memory_vault.infrastructure.repositories.base import MemoryRepository
from memory_vault.services import EmbeddingService

logger = get_logger(__name__)

__all__ = ["DuplicateDetector", "DuplicateMatch", "normalize_content"]


class DuplicateMatch(BaseModel):
    memory_id: UUID
    similarity: float
    exact: bool


class DuplicateDetector:
    """Finds an existing memory of the same user that a new text duplicates.

    The exact tier never calls the embedding provider. The near tier embeds the
    content once unless the caller already has the embedding.
    """

    def __init__(
        self,
        repository: MemoryRepository,
        embeddings: EmbeddingService,
        match_count: int = DUPLICATE_MATCH_COUNT,
    ) -> None:
        self.repository = repository
        self.embeddings = embeddings
        self.match_count = match_count

    async def find_exact(self, content: str, user_id: str) -> DuplicateMatch | None:
        existing = await self.repository.find_by_normalized_content(normalize_content(content), user_id)
        if existing is None:
            return None
        return DuplicateMatch(memory_id=existing.id, similarity=1.0, exact=True)

    async def find_near(self, embedding: list[float], user_id: str, threshold: float) -> DuplicateMatch | None:
        hits = await self.repository.find_similar_memories(embedding, user_id, self.match_count, threshold)
        if not hits:
            return None

        best = hits[0]
        logger.debug(
            "Near-duplicate found",
            user_id=user_id,
            memory_id=str(best.memory.id),
            similarity=round(best.similarity, 4),
            threshold=threshold,
        )
        return DuplicateMatch(memory_id=best.memory.id, similarity=best.similarity, exact=False)

    async def find_duplicate(
        self,
        content: str,
        user_id: str,
        threshold: float,
        embedding: list[float] | None = None,
    ) -> DuplicateMatch | None:
        exact = await self.find_exact(content, user_id)
        if exact is not None:
            return exact

        if embedding is None:
            embedding = await self.embeddings.embed_text(content)
        return await self.find_near(embedding, user_id, threshold)

    async def is_duplicate(
        self,
        content: str,
        user_id: str,
        threshold: float,
        embedding: list[float] | None = None,
    ) -> bool:
        return await self.find_duplicate(content, user_id, threshold, embedding) is not None
