"""Cosine similarity and ranking over embedding vectors.

Pure and deterministic: no I/O, no shared state. Degenerate (zero-magnitude)
vectors score 0 so un-embedded records rank last instead of aborting a batch.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from llm_workspace.errors import DimensionMismatch


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Compute cosine similarity between two vectors, in [-1, 1]."""
    if len(a) != len(b):
        raise DimensionMismatch(len(a), len(b))
    a_arr = np.asarray(a, dtype=np.float64)
    b_arr = np.asarray(b, dtype=np.float64)
    norm = np.linalg.norm(a_arr) * np.linalg.norm(b_arr)
    if norm == 0:
        return 0.0
    return float(np.clip(np.dot(a_arr, b_arr) / norm, -1.0, 1.0))


def rank(
    query: Sequence[float],
    corpus: Sequence[Sequence[float]],
    k: int,
) -> list[tuple[int, float]]:
    """Rank corpus vectors against a query.

    Returns up to ``k`` ``(corpus_index, score)`` pairs sorted by descending
    score. Equal scores keep their corpus order.
    """
    if k <= 0 or not corpus:
        return []
    scored = [(i, cosine_similarity(query, vector)) for i, vector in enumerate(corpus)]
    scored.sort(key=lambda pair: pair[1], reverse=True)
    return scored[:k]
