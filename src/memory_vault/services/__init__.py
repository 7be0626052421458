"""Service layer interfaces and implementations."""

from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbeddingService(Protocol):
    """Protocol for embedding services."""

    async def embed_text(self, text: str) -> list[float]:
        """Generate embedding for a single text."""
        ...

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for multiple texts."""
        ...


@runtime_checkable
class CompletionService(Protocol):
    """Protocol for text completion services (tagging, summarization)."""

    async def complete(self, prompt: str, system: str | None = None) -> str:
        """Return the model's text reply to ``prompt``."""
        ...


__all__ = ["CompletionService", "EmbeddingService"]
