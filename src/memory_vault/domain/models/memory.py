"""Memory and cluster domain models."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from memory_vault.core.constants import MAX_SEMANTIC_TAGS
from memory_vault.domain.models.utils import ensure_utc, utc_now


class MemoryType(str, Enum):
    """Coarse category of a stored memory."""

    PERSONAL = "personal"
    PREFERENCE = "preference"
    TECHNICAL = "technical"
    PROJECT = "project"
    GENERAL = "general"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class Memory(BaseModel):
    """A durable, user-scoped fact extracted from conversation."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(min_length=1)
    content: str = Field(min_length=1)
    embedding: list[float] | None = None
    semantic_tags: list[str] = Field(default_factory=list, max_length=MAX_SEMANTIC_TAGS)
    memory_type: MemoryType = MemoryType.GENERAL
    importance_score: float = Field(default=0.5, ge=0.0, le=1.0)
    relevance_score: float = Field(default=1.0, ge=0.0, le=1.0)
    access_count: int = Field(default=0, ge=0)
    cluster_id: UUID | None = None
    reviewed: bool = False
    reviewed_at: datetime | None = None
    reviewed_by: str | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime | None = None
    last_accessed: datetime | None = None

    @field_validator("created_at", "updated_at", "last_accessed", "reviewed_at")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None


class SimilarMemory(BaseModel):
    """A memory returned by vector search together with its cosine similarity."""

    memory: Memory
    similarity: float = Field(ge=-1.0, le=1.0)

    @property
    def id(self) -> UUID:
        return self.memory.id


class MemoryCluster(BaseModel):
    """A per-user group of semantically related memories."""

    id: UUID = Field(default_factory=uuid4)
    user_id: str = Field(min_length=1)
    name: str
    description: str = ""
    centroid_embedding: list[float]
    memory_count: int = Field(default=0, ge=0)
    average_relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime | None = None


class SimilarCluster(BaseModel):
    cluster: MemoryCluster
    similarity: float = Field(ge=-1.0, le=1.0)
