"""
Eurotir Assist - Vector Math
============================
Cosine similarity over fixed-length embedding vectors.

A return value of exactly ``-1.0`` from ``cosine_similarity`` is a
contract-violation signal (missing vector, dimension mismatch or a
non-finite component), not a low-confidence score.  Callers rely on it
falling below every sane similarity threshold.
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

# Denominator floor: a zero vector yields ~0.0 instead of NaN / inf
EPSILON = 1e-10
INVALID_SIMILARITY = -1.0

Vector = Sequence[float] | np.ndarray


def as_vector(values: Vector | None) -> np.ndarray | None:
    """Convert *values* to a 1-D float64 array, or ``None`` when empty / absent."""
    if values is None:
        return None
    array = np.asarray(values, dtype=np.float64).ravel()
    if array.size == 0:
        return None
    return array


def magnitude(vector: Vector) -> float:
    """Return ``sqrt(Σ v_i²)``."""
    return float(np.linalg.norm(np.asarray(vector, dtype=np.float64)))


def cosine_similarity(query: Vector | None, vector: Vector | None, vector_magnitude: float, query_magnitude: float | None = None) -> float:
    """
    Cosine similarity between *query* and *vector*.

    Parameters
    ----------
    query
        Query embedding.
    vector
        Item embedding.
    vector_magnitude
        Precomputed ``magnitude(vector)`` (owned by the knowledge store).
    query_magnitude
        Optional precomputed ``magnitude(query)``; avoids recomputing it
        for every item of a scan.

    Returns
    -------
    float
        ``-1.0`` when either vector is absent, the lengths differ or the
        result is not finite (NaN / inf components),
        otherwise ``dot(q, v) / max(|q| · |v|, 1e-10)``.
    """
    if query is None or vector is None:
        return INVALID_SIMILARITY
    if len(query) != len(vector):
        return INVALID_SIMILARITY

    q = np.asarray(query, dtype=np.float64)
    v = np.asarray(vector, dtype=np.float64)
    if query_magnitude is None:
        query_magnitude = float(np.linalg.norm(q))

    with np.errstate(invalid="ignore", over="ignore"):
        denominator = max(query_magnitude * vector_magnitude, EPSILON)
        similarity = float(np.dot(q, v) / denominator)

    # NaN / inf components poison the dot product
    if not math.isfinite(similarity):
        return INVALID_SIMILARITY
    return similarity


def is_finite_vector(vector: Vector) -> bool:
    """True when every component of *vector* is a finite number."""
    return bool(np.all(np.isfinite(np.asarray(vector, dtype=np.float64))))
