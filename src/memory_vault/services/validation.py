"""Content validation for candidate memories.

Everything here is pure and synchronous: a validator decides whether a piece
of text is worth considering at all, before any model or datastore is touched.
"""

import re
from enum import Enum

from memory_vault.core.constants import MAX_CONTENT_LENGTH, MIN_CONTENT_LENGTH

QUESTION_PREFIX = re.compile(
    r"^(what|how|when|where|why|who|which|do you|can you|could you|would you|are you|is this|does this)\b",
    re.IGNORECASE,
)

AI_RESPONSE_PATTERNS = re.compile(
    r"^(of course|certainly|sure[!,.]|absolutely[!,.]|i'd be happy to|i would be happy to|i'd be glad to"
    r"|as an ai|as a language model|as an assistant|great question|good question"
    r"|i apologize|i'm sorry, but|i can help you|let me help|i hope this helps)",
    re.IGNORECASE,
)

BOILERPLATE = frozenset(
    {
        "hi",
        "hello",
        "hey",
        "thanks",
        "thank you",
        "thx",
        "ok",
        "okay",
        "k",
        "lol",
        "yes",
        "no",
        "sure",
        "cool",
        "nice",
        "great",
        "bye",
        "goodbye",
    }
)


class ValidationLevel(str, Enum):
    STRICT = "strict"
    NORMAL = "normal"
    LENIENT = "lenient"


MIN_WORDS = {
    ValidationLevel.STRICT: 4,
    ValidationLevel.NORMAL: 2,
    ValidationLevel.LENIENT: 2,
}


def is_ai_response(content: str) -> bool:
    """True when the text reads like an assistant reply rather than a user statement."""
    return bool(AI_RESPONSE_PATTERNS.match(content.strip()))


def is_question(content: str) -> bool:
    return bool(QUESTION_PREFIX.match(content.strip()))


def _is_boilerplate(content: str) -> bool:
    stripped = re.sub(r"[^\w\s]", "", content.strip().lower())
    return " ".join(stripped.split()) in BOILERPLATE


class ContentValidator:
    """Decides whether text may become a memory.

    Levels differ only in thresholds: ``strict`` additionally rejects trailing
    question marks and conversational filler, ``lenient`` drops the upper length
    bound because long content is summarized later.
    """

    def __init__(self, min_length: int = MIN_CONTENT_LENGTH, max_length: int = MAX_CONTENT_LENGTH) -> None:
        self.min_length = min_length
        self.max_length = max_length

    def rejection_reason(self, content: str, level: ValidationLevel = ValidationLevel.NORMAL) -> str | None:
        """Return the first failed rule's name, or None when the content is acceptable."""
        if not content or not content.strip():
            return "empty"

        text = content.strip()
        if is_ai_response(text):
            return "ai_response"
        if len(text) < self.min_length:
            return "too_short"
        if level is not ValidationLevel.LENIENT and len(text) > self.max_length:
            return "too_long"
        if len(text.split()) < MIN_WORDS[level]:
            return "too_few_words"
        if is_question(text):
            return "question"
        if level is ValidationLevel.STRICT:
            if text.endswith("?"):
                return "question"
            if _is_boilerplate(text):
                return "boilerplate"
        return None

    def validate(self, content: str, level: ValidationLevel = ValidationLevel.NORMAL) -> bool:
        return self.rejection_reason(content, level) is None
