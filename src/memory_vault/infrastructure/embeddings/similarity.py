"""Vector math shared by the in-memory store and cluster centroids."""

import numpy as np


def cosine_similarity(vector_a: list[float], vector_b: list[float]) -> float:
    """Cosine similarity in [-1, 1]; 0.0 when either vector has zero norm."""
    a = np.asarray(vector_a, dtype=float)
    b = np.asarray(vector_b, dtype=float)
    if a.shape != b.shape:
        raise ValueError(f"Vector dimensions differ: {a.shape[0]} != {b.shape[0]}")

    norm_a = np.linalg.norm(a)
    norm_b = np.linalg.norm(b)
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return float(np.clip(np.dot(a, b) / (norm_a * norm_b), -1.0, 1.0))


def cosine_to_many(query: list[float], vectors: list[list[float]]) -> np.ndarray:
    """Similarity of ``query`` against each row of ``vectors``."""
    if not vectors:
        return np.zeros(0)
    matrix = np.asarray(vectors, dtype=float)
    q = np.asarray(query, dtype=float)
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(q)
    dots = matrix @ q
    with np.errstate(divide="ignore", invalid="ignore"):
        scores = np.where(norms > 0, dots / norms, 0.0)
    return np.clip(scores, -1.0, 1.0)


def running_mean(centroid: list[float], vector: list[float], count: int) -> list[float]:
    """Fold ``vector`` into a centroid that currently averages ``count`` members."""
    c = np.asarray(centroid, dtype=float)
    v = np.asarray(vector, dtype=float)
    return ((c * count + v) / (count + 1)).tolist()
