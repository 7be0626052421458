"""Heuristic extraction of memory candidates from a finished conversation turn.

Only the user's side of the conversation is inspected. The analysis is cheap
and synchronous; persistence happens later on the background queue.
"""

import re
import time

from memory_vault.core.constants import (
    CANDIDATE_MIN_CONFIDENCE,
    CANDIDATE_MIN_LENGTH,
    EXTRACTION_BUDGET_SECONDS,
    MAX_CONTENT_LENGTH,
    MAX_MEMORIES_PER_CONVERSATION,
)
from memory_vault.core.logging import get_logger
from memory_vault.domain.models import (
    ConversationAnalysis,
    ExtractionPriority,
    ExtractionResult,
    MemoryCandidate,
    Message,
    MessageRole,
)
from memory_vault.services.background import BackgroundMemoryQueue
from memory_vault.services.quality import PERSONAL_CUES, PREFERENCE_CUES, PROJECT_CUES
from memory_vault.services.validation import is_question

logger = get_logger(__name__)

TOPIC_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("project", re.compile(r"project|goal|objective", re.IGNORECASE)),
    ("work", re.compile(r"work|job|career|profession", re.IGNORECASE)),
    ("family", re.compile(r"family|wife|husband|children|kids", re.IGNORECASE)),
    ("hobby", re.compile(r"hobby|interest|passion|enjoy", re.IGNORECASE)),
    ("technology", re.compile(r"technology|tech|software|programming|coding", re.IGNORECASE)),
    ("business", re.compile(r"business|company|startup|entrepreneur", re.IGNORECASE)),
]

SIMPLE_QUESTION = re.compile(
    r"^(are you|is this|does this|do you|can you|could you|would you|what is|what are|how do|when do|where do)\b",
    re.IGNORECASE,
)

PRIORITY_BOOST = {
    ExtractionPriority.HIGH: 0.3,
    ExtractionPriority.MEDIUM: 0.1,
    ExtractionPriority.LOW: -0.1,
}


def is_simple_question(content: str | None) -> bool:
    """Short or context-free questions that never carry memorable facts."""
    if not content:
        return True
    trimmed = content.strip()
    return len(trimmed) < 20 or bool(SIMPLE_QUESTION.match(trimmed))


def extract_topics(content: str) -> list[str]:
    return [topic for topic, pattern in TOPIC_PATTERNS if pattern.search(content)]


class ConversationAnalyzer:
    def analyze(self, messages: list[Message]) -> ConversationAnalysis:
        user_messages = [m for m in messages if m.role is MessageRole.USER]
        assistant_count = sum(1 for m in messages if m.role is MessageRole.ASSISTANT)
        if not user_messages:
            return ConversationAnalysis(conversation_length=len(messages))

        text = " ".join(m.content for m in user_messages)
        avg_length = sum(len(m.content) for m in user_messages) / len(user_messages)
        engagement = min(1.0, (avg_length / 100) * (len(user_messages) / max(1, assistant_count)))

        analysis = ConversationAnalysis(
            has_personal_info=bool(PERSONAL_CUES.search(text)),
            has_preferences=bool(PREFERENCE_CUES.search(text)),
            has_project_info=bool(PROJECT_CUES.search(text)),
            is_question_answer=any(is_question(m.content) for m in user_messages),
            engagement_level=engagement,
            topics=extract_topics(text),
            conversation_length=len(messages),
            user_message_count=len(user_messages),
        )
        analysis.priority = self.priority(analysis)
        return analysis

    @staticmethod
    def priority(analysis: ConversationAnalysis) -> ExtractionPriority:
        if analysis.has_personal_info or analysis.engagement_level > 0.7:
            return ExtractionPriority.HIGH
        if analysis.has_preferences or analysis.has_project_info or analysis.engagement_level > 0.4:
            return ExtractionPriority.MEDIUM
        if analysis.engagement_level > 0.2 and analysis.conversation_length > 2:
            return ExtractionPriority.LOW
        if analysis.engagement_level < 0.2 or analysis.is_question_answer:
            return ExtractionPriority.SKIP
        return ExtractionPriority.LOW


def candidate_confidence(content: str, analysis: ConversationAnalysis) -> float:
    confidence = 0.5 + PRIORITY_BOOST.get(analysis.priority, 0.0)
    lowered = content.lower()
    if PERSONAL_CUES.search(lowered):
        confidence += 0.2
    if PREFERENCE_CUES.search(lowered):
        confidence += 0.15
    if PROJECT_CUES.search(lowered):
        confidence += 0.15
    if any(topic in lowered for topic in analysis.topics):
        confidence += 0.1

    words = len(content.split())
    if words < 5:
        confidence -= 0.2
    if words > 200:
        confidence -= 0.1
    return max(0.0, min(1.0, confidence))


class MemoryExtractor:
    """Turns a conversation into at most a handful of queued memory candidates."""

    def __init__(
        self,
        queue: BackgroundMemoryQueue,
        analyzer: ConversationAnalyzer | None = None,
        max_candidates: int = MAX_MEMORIES_PER_CONVERSATION,
        min_confidence: float = CANDIDATE_MIN_CONFIDENCE,
        budget_seconds: float = EXTRACTION_BUDGET_SECONDS,
    ) -> None:
        self.queue = queue
        self.analyzer = analyzer or ConversationAnalyzer()
        self.max_candidates = max_candidates
        self.min_confidence = min_confidence
        self.budget_seconds = budget_seconds

    def candidates(self, messages: list[Message], user_id: str, analysis: ConversationAnalysis) -> list[MemoryCandidate]:
        found: list[MemoryCandidate] = []
        context = " ".join(analysis.topics)
        for message in messages:
            if message.role is not MessageRole.USER:
                continue
            content = message.content.strip()
            if not CANDIDATE_MIN_LENGTH <= len(content) <= MAX_CONTENT_LENGTH or is_question(content):
                continue
            confidence = candidate_confidence(content, analysis)
            if confidence < self.min_confidence:
                continue
            found.append(
                MemoryCandidate(
                    content=content,
                    user_id=user_id,
                    context=context,
                    confidence=confidence,
                    priority=analysis.priority,
                    source_message_id=message.id,
                )
            )
        found.sort(key=lambda c: c.confidence, reverse=True)
        return found[: self.max_candidates]

    def extract(self, messages: list[Message], user_id: str) -> ExtractionResult:
        start = time.perf_counter()
        last = messages[-1].content if messages else None

        if is_simple_question(last):
            analysis = ConversationAnalysis(conversation_length=len(messages), priority=ExtractionPriority.SKIP)
            candidates: list[MemoryCandidate] = []
        else:
            analysis = self.analyzer.analyze(messages)
            if analysis.priority is ExtractionPriority.SKIP:
                candidates = []
            else:
                candidates = self.candidates(messages, user_id, analysis)

        elapsed = time.perf_counter() - start
        over_budget = elapsed > self.budget_seconds
        if over_budget:
            logger.warning("Memory extraction exceeded its time budget", elapsed_s=round(elapsed, 3), user_id=user_id)
        return ExtractionResult(
            analysis=analysis,
            candidates=candidates,
            skipped=not candidates,
            analysis_ms=elapsed * 1000,
            over_budget=over_budget,
        )

    async def handle_conversation(self, messages: list[Message], user_id: str) -> ExtractionResult:
        """Analyze the conversation and enqueue its candidates without waiting for persistence."""
        result = self.extract(messages, user_id)
        for candidate in result.candidates:
            self.queue.submit(candidate)
        result.queued = len(result.candidates)
        logger.debug(
            "Handled conversation",
            user_id=user_id,
            priority=result.analysis.priority.value,
            queued=result.queued,
            analysis_ms=round(result.analysis_ms, 2),
        )
        return result
