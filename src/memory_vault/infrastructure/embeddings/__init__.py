from .similarity import cosine_similarity, cosine_to_many, running_mean
from .voyage import VoyageEmbeddingService

__all__ = ["VoyageEmbeddingService", "cosine_similarity", "cosine_to_many", "running_mean"]
