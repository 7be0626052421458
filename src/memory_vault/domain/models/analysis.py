"""Reporting models: quality assessments, statistics and maintenance reports."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from memory_vault.domain.models.memory import Memory


class Recommendation(str, Enum):
    SAVE = "save"
    REVIEW = "review"
    SKIP = "skip"


class QualityAssessment(BaseModel):
    """Score plus the human-readable reasons behind it."""

    score: float = Field(ge=0.0, le=1.0)
    reasons: list[str] = Field(default_factory=list)
    recommendation: Recommendation


class _CamelModel(BaseModel):
    # Application layer reads these as camelCase JSON
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class MemoryStats(_CamelModel):
    total_memories: int = 0
    total_clusters: int = 0
    avg_relevance_score: float = 0.0
    avg_importance_score: float = 0.0
    total_access_count: int = 0
    type_distribution: dict[str, int] = Field(default_factory=dict)
    most_relevant_memories: list[Memory] = Field(default_factory=list)


class CleanupOptions(BaseModel):
    """Which stages of ``comprehensive_cleanup`` run and with what thresholds."""

    remove_duplicates: bool = True
    duplicate_threshold: float = Field(default=0.95, ge=0.0, le=1.0)
    consolidate_similar: bool = True
    consolidation_threshold: float = Field(default=0.9, ge=0.0, le=1.0)
    summarize_long: bool = True
    summarize_min_length: int = Field(default=200, ge=1)
    reclassify: bool = True
    mark_reviewed: bool = True
    reviewer_id: str = "system"


class CleanupReport(_CamelModel):
    duplicates_removed: int = 0
    similar_consolidated: int = 0
    memories_summarized: int = 0
    memories_reclassified: int = 0
    memories_marked_reviewed: int = 0
    total_memories: int = 0
    errors: list[str] = Field(default_factory=list)


class EfficiencyMetrics(_CamelModel):
    total_memories: int = 0
    avg_relevance: float = 0.0
    low_relevance_count: int = 0
    duplicate_count: int = 0
    efficiency_score: float = Field(default=0.0, ge=0.0, le=100.0)
