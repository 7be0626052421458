"""Ordering of retrieval results and context-aware retrieval parameters."""

from functools import cmp_to_key

from memory_vault.core.constants import RANKING_TOLERANCE, RETRIEVAL_LIMIT_DEFAULT, RETRIEVAL_THRESHOLD_DEFAULT
from memory_vault.domain.models import SimilarMemory


def _compare(a: SimilarMemory, b: SimilarMemory, tolerance: float) -> int:
    if abs(a.similarity - b.similarity) > tolerance:
        return -1 if a.similarity > b.similarity else 1
    if abs(a.memory.relevance_score - b.memory.relevance_score) > tolerance:
        return -1 if a.memory.relevance_score > b.memory.relevance_score else 1
    return b.memory.access_count - a.memory.access_count


def rank_memories(hits: list[SimilarMemory], tolerance: float = RANKING_TOLERANCE) -> list[SimilarMemory]:
    """Sort by similarity, then relevance, then access count.

    A field only decides the order when the gap exceeds ``tolerance``;
    otherwise the next field is consulted.
    """
    return sorted(hits, key=cmp_to_key(lambda a, b: _compare(a, b, tolerance)))


def adaptive_threshold(memory_count: int, context: str = "") -> float:
    """Similarity threshold loosened for small stores and for specific contexts."""
    if memory_count < 10:
        threshold = 0.4
    elif memory_count < 50:
        threshold = 0.5
    else:
        threshold = RETRIEVAL_THRESHOLD_DEFAULT

    lowered = context.lower()
    if any(word in lowered for word in ("code", "programming", "development")):
        threshold -= 0.1
    if any(word in lowered for word in ("name", "prefer", "like", "work")):
        threshold -= 0.1
    if any(word in lowered for word in ("project", "task", "goal")):
        threshold -= 0.05
    return round(max(0.2, threshold), 4)


def optimal_limit(memory_count: int, context: str = "") -> int:
    if memory_count > 100:
        limit = 8
    elif memory_count > 50:
        limit = 6
    else:
        limit = RETRIEVAL_LIMIT_DEFAULT

    lowered = context.lower()
    if "code" in lowered or "programming" in lowered:
        limit += 2
    if len(context) > 100:
        limit += 1
    return min(10, limit)
