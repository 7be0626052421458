"""Domain models for the memory vault."""

from .analysis import (
    CleanupOptions,
    CleanupReport,
    EfficiencyMetrics,
    MemoryStats,
    QualityAssessment,
    Recommendation,
)
from .conversation import (
    ConversationAnalysis,
    ExtractionPriority,
    ExtractionResult,
    MemoryCandidate,
    Message,
    MessageRole,
)
from .memory import Memory, MemoryCluster, MemoryType, SimilarCluster, SimilarMemory

__all__ = [
    "CleanupOptions",
    "CleanupReport",
    "ConversationAnalysis",
    "EfficiencyMetrics",
    "ExtractionPriority",
    "ExtractionResult",
    "Memory",
    "MemoryCandidate",
    "MemoryCluster",
    "MemoryStats",
    "MemoryType",
    "Message",
    "MessageRole",
    "QualityAssessment",
    "Recommendation",
    "SimilarCluster",
    "SimilarMemory",
]
