"""Conversation models consumed by background memory extraction."""

from datetime import datetime
from enum import Enum
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from memory_vault.domain.models.utils import utc_now


class MessageRole(str, Enum):
    """Message roles in a conversation."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class Message(BaseModel):
    """A single message in a conversation."""

    id: UUID = Field(default_factory=uuid4)
    role: MessageRole
    content: str
    timestamp: datetime = Field(default_factory=utc_now)


class ExtractionPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    SKIP = "skip"


class ConversationAnalysis(BaseModel):
    """Signals the analyzer reads off the user's side of a conversation."""

    has_personal_info: bool = False
    has_preferences: bool = False
    has_project_info: bool = False
    is_question_answer: bool = False
    engagement_level: float = Field(default=0.0, ge=0.0, le=1.0)
    topics: list[str] = Field(default_factory=list)
    conversation_length: int = 0
    user_message_count: int = 0
    priority: ExtractionPriority = ExtractionPriority.SKIP


class MemoryCandidate(BaseModel):
    """A user utterance proposed for background persistence."""

    content: str
    user_id: str
    context: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    priority: ExtractionPriority = ExtractionPriority.LOW
    source_message_id: UUID | None = None


class ExtractionResult(BaseModel):
    """What ``handle_conversation`` reports back to the caller."""

    analysis: ConversationAnalysis
    candidates: list[MemoryCandidate] = Field(default_factory=list)
    queued: int = 0
    skipped: bool = False
    analysis_ms: float = 0.0
    over_budget: bool = False
