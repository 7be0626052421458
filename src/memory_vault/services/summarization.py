"""Type-aware summarization of long memories."""

from memory_vault.core.constants import SUMMARIZE_MIN_LENGTH
from memory_vault.core.logging import get_logger
from memory_vault.domain.models import MemoryType
from memory_vault.services import CompletionService

logger = get_logger(__name__)

TYPE_PROMPTS = {
    MemoryType.PERSONAL: (
        "Summarize this personal information in a clear, concise way. Focus on key details like name, "
        "role, location, or important personal facts."
    ),
    MemoryType.PREFERENCE: (
        "Summarize this preference or opinion in a clear way. Focus on what the person likes, dislikes, or prefers."
    ),
    MemoryType.TECHNICAL: (
        "Summarize this technical information in a concise way. Focus on technologies, tools, skills, "
        "or technical preferences."
    ),
    MemoryType.PROJECT: (
        "Summarize this project information in a clear way. Focus on goals, deadlines, requirements, "
        "or project details."
    ),
    MemoryType.GENERAL: (
        "Summarize this information in a concise, clear way that captures the key points for future reference."
    ),
}


def should_summarize(content: str, min_length: int = SUMMARIZE_MIN_LENGTH) -> bool:
    return len(content) > min_length


class Summarizer:
    def __init__(self, completions: CompletionService) -> None:
        self.completions = completions

    async def summarize(self, content: str, memory_type: MemoryType = MemoryType.GENERAL) -> str:
        """Summary of ``content``; the original text when the model fails or replies with nothing."""
        try:
            summary = await self.completions.complete(content, system=TYPE_PROMPTS[memory_type])
        except Exception as e:
            logger.warning("Summarization failed, keeping original content", error=e, memory_type=memory_type.value)
            return content
        return summary.strip() or content
