"""Memory type classification, importance scoring and semantic tagging."""

import re
from collections import Counter

from pydantic import TypeAdapter, ValidationError

from memory_vault.core.base import MemoryErrorDetails
from memory_vault.core.constants import MAX_SEMANTIC_TAGS
from memory_vault.core.errors import ValidationFailedError
from memory_vault.core.logging import get_logger
from memory_vault.domain.models import MemoryType
from memory_vault.services import CompletionService
from memory_vault.services.validation import is_ai_response

logger = get_logger(__name__)

# Checked in order; first match wins
TYPE_RULES: list[tuple[MemoryType, tuple[str, ...]]] = [
    (MemoryType.TECHNICAL, ("code", "programming", "function")),
    (MemoryType.PREFERENCE, ("prefer", "like", "dislike")),
    (MemoryType.PERSONAL, ("name", "work", "job")),
    (MemoryType.PROJECT, ("project", "task", "goal")),
]

TYPE_BONUS = {
    MemoryType.PERSONAL: 0.2,
    MemoryType.PREFERENCE: 0.15,
    MemoryType.TECHNICAL: 0.1,
}

REASONING_WORDS = ("because", "since", "when")

TAG_SYSTEM_PROMPT = (
    "Extract 3-5 relevant semantic tags from the following text. Return only the tags as a JSON array "
    "of strings. Tags should be single words or short phrases that capture the key concepts."
)

_tag_list = TypeAdapter(list[str])
_json_array = re.compile(r"\[.*?\]", re.DOTALL)


def classify_memory_type(content: str) -> MemoryType:
    """Keyword rules over lowercased content.

    Raises:
        ValidationFailedError: If the content reads like an assistant reply
    """
    if is_ai_response(content):
        raise ValidationFailedError(
            "Content appears to be an AI response, not user information",
            details=MemoryErrorDetails(
                source="classification",
                operation="classify_memory_type",
                reason="ai_response",
                content_preview=content[:80],
            ),
        )

    lowered = content.lower()
    for memory_type, keywords in TYPE_RULES:
        if any(keyword in lowered for keyword in keywords):
            return memory_type
    return MemoryType.GENERAL


def base_importance(content: str, memory_type: MemoryType) -> float:
    score = 0.5 + TYPE_BONUS.get(memory_type, 0.0)
    if len(content) > 100:
        score += 0.1
    if any(word in content for word in REASONING_WORDS):
        score += 0.1
    return min(1.0, score)


def importance_score(content: str, memory_type: MemoryType, quality: float) -> float:
    """Type-based importance scaled by quality: half weight at quality 0, full weight at 1."""
    return min(1.0, base_importance(content, memory_type) * (0.5 + 0.5 * quality))


def keyword_tags(content: str, limit: int = MAX_SEMANTIC_TAGS) -> list[str]:
    """Most frequent words longer than three characters, ties broken by first appearance."""
    words = [w for w in re.sub(r"[^\w\s]", "", content.lower()).split() if len(w) > 3]
    counts = Counter(words)
    first_seen = {word: i for i, word in reversed(list(enumerate(words)))}
    ranked = sorted(counts, key=lambda w: (-counts[w], first_seen[w]))
    return ranked[:limit]


def parse_tags(reply: str, limit: int = MAX_SEMANTIC_TAGS) -> list[str] | None:
    """Parse a JSON array of tags out of a model reply; None when there is none."""
    match = _json_array.search(reply)
    if match is None:
        return None
    try:
        tags = _tag_list.validate_json(match.group(0))
    except ValidationError:
        return None

    cleaned: list[str] = []
    for tag in tags:
        tag = " ".join(tag.strip().lower().split())
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned[:limit]


class TagExtractor:
    """Semantic tags from the completion service, keyword frequency as fallback.

    Never raises: a tagging problem must not fail a write.
    """

    def __init__(self, completions: CompletionService | None = None, limit: int = MAX_SEMANTIC_TAGS) -> None:
        self.completions = completions
        self.limit = limit

    async def extract(self, content: str) -> list[str]:
        if self.completions is not None:
            try:
                reply = await self.completions.complete(content, system=TAG_SYSTEM_PROMPT)
            except Exception as e:
                logger.warning("Tag extraction failed, using keyword fallback", error=e)
            else:
                tags = parse_tags(reply, self.limit)
                if tags:
                    return tags
                logger.debug("Unparseable tag reply, using keyword fallback", reply=reply[:100])
        return keyword_tags(content, self.limit)
