from .base import MemoryRepository
from .in_memory import InMemoryMemoryRepository

__all__ = ["InMemoryMemoryRepository", "MemoryRepository"]
