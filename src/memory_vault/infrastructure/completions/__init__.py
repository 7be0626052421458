from .anthropic_client import AnthropicCompletionService

__all__ = ["AnthropicCompletionService"]
