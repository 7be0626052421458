"""Anthropic completion service used for tag extraction and summarization."""

import time
from typing import Any

from anthropic import AsyncAnthropic

from memory_vault.core.base import AIServiceErrorDetails, ErrorLevel
from memory_vault.core.config import AnthropicConfig, settings
from memory_vault.core.decorators import with_error_handling
from memory_vault.core.errors import CompletionError
from memory_vault.core.logging import get_logger

logger = get_logger(__name__)


class AnthropicCompletionService:
    """Thin adapter over ``AsyncAnthropic.messages.create`` returning plain text."""

    def __init__(self, config: AnthropicConfig | None = None, client: Any | None = None) -> None:
        self.config = config or settings.anthropic
        if client is None:
            api_key = self.config.api_key.get_secret_value()
            if not api_key:
                raise CompletionError(
                    message="Anthropic API key not configured",
                    details=self._details("initialization"),
                )
            client = AsyncAnthropic(api_key=api_key)
        self.client: Any = client

    def _details(self, operation: str, **extra: Any) -> AIServiceErrorDetails:
        return AIServiceErrorDetails(
            source="AnthropicCompletionService",
            operation=operation,
            service_name="Anthropic",
            endpoint="/v1/messages",
            model_name=self.config.model,
            **extra,
        )

    @with_error_handling(error_level=ErrorLevel.WARNING)
    async def complete(self, prompt: str, system: str | None = None) -> str:
        kwargs: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            kwargs["system"] = system

        start = time.perf_counter()
        try:
            response = await self.client.messages.create(**kwargs)
        except Exception as e:
            raise CompletionError(
                message=f"Anthropic request failed: {e!s}",
                details=self._details(
                    "complete",
                    input_chars=len(prompt),
                    latency_ms=(time.perf_counter() - start) * 1000,
                ),
            ) from e

        text = "".join(getattr(block, "text", "") for block in response.content).strip()
        if not text:
            raise CompletionError(message="Anthropic returned an empty completion", details=self._details("complete"))
        return text
