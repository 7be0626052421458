"""Voyage AI embedding service."""

import time
from typing import Any, cast

import voyageai

from memory_vault.core.base import AIServiceErrorDetails, ErrorLevel
from memory_vault.core.config import VoyageConfig, settings
from memory_vault.core.decorators import with_error_handling
from memory_vault.core.errors import EmbeddingError
from memory_vault.core.logging import get_logger
from memory_vault.infrastructure.embeddings.similarity import cosine_similarity

logger = get_logger(__name__)

MODEL_DIMENSIONS = {
    "voyage-3-large": 1024,
    "voyage-3": 1024,
    "voyage-3-lite": 512,
    "voyage-code-3": 1024,
    "voyage-large-2": 1536,
    "voyage-code-2": 1536,
}


class VoyageEmbeddingService:
    """Voyage AI embedding service implementation.

    Input longer than ``max_input_chars`` is truncated before the call. Any
    provider failure surfaces as ``EmbeddingError``; there is no retry and no
    placeholder vector, so a failed embedding always means "not stored".
    """

    def __init__(
        self,
        config: VoyageConfig | None = None,
        client: Any | None = None,
    ) -> None:
        """Initialize the Voyage embedding service.

        Args:
            config: Voyage settings (defaults to ``settings.voyage``)
            client: Optional pre-built ``voyageai.AsyncClient``, mainly for tests

        Raises:
            EmbeddingError: If no client is given and the API key is not configured
        """
        self.config = config or settings.voyage
        self.model = self.config.model
        self.max_input_chars = self.config.max_input_chars

        if client is None:
            api_key = self.config.api_key.get_secret_value()
            if not api_key:
                raise EmbeddingError(
                    message="Voyage API key not configured",
                    details=self._details("initialization"),
                )
            client = voyageai.AsyncClient(api_key=api_key)
        # voyageai client doesn't expose a public type
        self.client: Any = client

    def _details(self, operation: str, **extra: Any) -> AIServiceErrorDetails:
        return AIServiceErrorDetails(
            source="VoyageEmbeddingService",
            operation=operation,
            service_name="Voyage AI",
            endpoint="/embeddings",
            model_name=self.model,
            **extra,
        )

    def _prepare(self, text: str) -> str:
        if len(text) > self.max_input_chars:
            logger.debug("Truncating embedding input", original_chars=len(text), max_chars=self.max_input_chars)
            return text[: self.max_input_chars]
        return text

    async def _call_api(self, texts: list[str], operation: str) -> list[list[float]]:
        start = time.perf_counter()
        try:
            response = await self.client.embed(texts=texts, model=self.model)
        except Exception as e:
            raise EmbeddingError(
                message=f"Voyage embedding request failed: {e!s}",
                details=self._details(
                    operation,
                    input_chars=sum(len(t) for t in texts),
                    latency_ms=(time.perf_counter() - start) * 1000,
                ),
            ) from e

        embeddings = getattr(response, "embeddings", None) or []
        if len(embeddings) != len(texts):
            raise EmbeddingError(
                message="Voyage API returned incomplete embeddings",
                details=self._details(operation, status_code=200, input_chars=sum(len(t) for t in texts)),
            )
        return [cast("list[float]", list(emb)) for emb in embeddings]

    @with_error_handling(error_level=ErrorLevel.ERROR)
    async def embed_text(self, text: str) -> list[float]:
        """Generate an embedding vector for the provided text."""
        if not text or not text.strip():
            raise EmbeddingError(
                message="Cannot embed empty text",
                details=self._details("embed_text", input_chars=len(text or "")),
            )

        embeddings = await self._call_api([self._prepare(text)], "embed_text")
        return embeddings[0]

    @with_error_handling(error_level=ErrorLevel.ERROR)
    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embedding vectors for a batch of texts, preserving order.

        Raises:
            EmbeddingError: If any text is empty or the provider call fails
        """
        if not texts:
            return []

        if any(not text.strip() for text in texts):
            raise EmbeddingError(
                message="Batch contains empty texts",
                details=self._details("embed_batch"),
            )

        return await self._call_api([self._prepare(t) for t in texts], "embed_batch")

    def compute_similarity(self, vector_a: list[float], vector_b: list[float]) -> float:
        """Cosine similarity between two embeddings produced by this service."""
        return cosine_similarity(vector_a, vector_b)

    def get_model_dimensions(self) -> int:
        return MODEL_DIMENSIONS.get(self.model, 1024)
