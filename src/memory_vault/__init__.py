"""Long-term memory for conversational assistants."""

from memory_vault.bootstrap import MemoryVault, open_vault

__version__ = "0.1.0"

__all__ = ["MemoryVault", "open_vault"]
