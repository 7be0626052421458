"""
Pytest fixtures for memory-vault tests.

Everything runs against the in-memory repository and deterministic fakes of
the embedding and completion providers; no network or database is needed.
"""

import re
from datetime import UTC, datetime

import pytest

from memory_vault.core.config import MaintenanceConfig, MemoryConfig, Settings
from memory_vault.core.errors import CompletionError
from memory_vault.infrastructure.repositories import InMemoryMemoryRepository
from memory_vault.services.classification import TagExtractor
from memory_vault.services.maintenance import MaintenanceService
from memory_vault.services.memory_service import MemoryService
from memory_vault.services.session_cache import SessionCache

DIMENSIONS = 512


class FakeEmbeddingService:
    """Bag-of-words vectors: one dimension per distinct word of four or more letters.

    Texts sharing no such word are orthogonal, identical word sets give
    similarity 1.0, so test expectations can be computed by hand.
    """

    def __init__(self, dimensions: int = DIMENSIONS):
        self.dimensions = dimensions
        self.vocabulary: dict[str, int] = {}
        self.calls: list[str] = []

    def tokens(self, text: str) -> list[str]:
        return [w for w in re.sub(r"[^\w\s]", "", text.lower()).split() if len(w) >= 4]

    def vector(self, text: str) -> list[float]:
        vector = [0.0] * self.dimensions
        for token in self.tokens(text):
            index = self.vocabulary.setdefault(token, len(self.vocabulary))
            vector[index] += 1.0
        return vector

    async def embed_text(self, text: str) -> list[float]:
        self.calls.append(text)
        return self.vector(text)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        return [await self.embed_text(text) for text in texts]


class FakeCompletionService:
    """Replies with a fixed string, or raises when ``reply`` is None."""

    def __init__(self, reply: str | None = '["alpha", "beta"]'):
        self.reply = reply
        self.prompts: list[tuple[str, str | None]] = []

    async def complete(self, prompt: str, system: str | None = None) -> str:
        self.prompts.append((prompt, system))
        if self.reply is None:
            raise CompletionError("completion backend unavailable")
        return self.reply


class FrozenClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def embeddings():
    return FakeEmbeddingService()


@pytest.fixture
def completions():
    return FakeCompletionService()


@pytest.fixture
def repository():
    return InMemoryMemoryRepository()


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def session_cache(clock):
    return SessionCache(ttl=1800, clock=clock)


@pytest.fixture
def memory_config():
    return MemoryConfig()


@pytest.fixture
def maintenance_config():
    return MaintenanceConfig(batch_pause_seconds=0, enable_scheduler=False)


@pytest.fixture
def settings(memory_config, maintenance_config):
    return Settings(memory=memory_config, maintenance=maintenance_config)


@pytest.fixture
def memory_service(repository, embeddings, session_cache, memory_config):
    return MemoryService(
        repository=repository,
        embeddings=embeddings,
        session_cache=session_cache,
        tagger=TagExtractor(),
        config=memory_config,
    )


@pytest.fixture
def maintenance_service(repository, embeddings, maintenance_config):
    return MaintenanceService(
        repository=repository,
        embeddings=embeddings,
        tagger=TagExtractor(),
        config=maintenance_config,
        clock=lambda: datetime(2026, 6, 1, tzinfo=UTC),
    )
