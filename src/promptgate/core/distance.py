"""Vector distance and normalization utilities."""

from typing import Iterable, NamedTuple, Union

import numpy as np

from .types import SimilarityMethod


class SimilarityScore(NamedTuple):
    """Raw metric value plus its mapping into a [0, 1] similarity."""
    score: float
    normalized: float
    method: SimilarityMethod


def l2_normalize(M: np.ndarray) -> np.ndarray:
    """
    L2 normalize vectors along the last dimension.

    Args:
        M: Array of shape (..., D) where D is the vector dimension

    Returns:
        np.ndarray: L2-normalized vectors of same shape
    """
    norm = np.linalg.norm(M, axis=-1, keepdims=True) + 1e-12
    return M / norm


def _check_dims(u: np.ndarray, v: np.ndarray) -> None:
    if u.shape != v.shape:
        raise ValueError(f"Vector dimensions must match: {u.shape} vs {v.shape}")


def cosine(u: np.ndarray, v: np.ndarray) -> float:
    """
    Cosine similarity clamped to [0, 1].

    Zero vectors have similarity 0 with everything.
    """
    _check_dims(u, v)
    nu = np.linalg.norm(u)
    nv = np.linalg.norm(v)
    if nu == 0 or nv == 0:
        return 0.0
    sim = float(np.dot(u, v) / (nu * nv))
    return min(max(sim, 0.0), 1.0)


def cosine_batch(queries: np.ndarray, targets: np.ndarray) -> np.ndarray:
    """
    Compute cosine similarities between queries and targets.

    Args:
        queries: Shape (N, D) - query vectors (L2-normalized)
        targets: Shape (M, D) - target vectors (L2-normalized)

    Returns:
        np.ndarray: Shape (N, M) - similarity matrix
    """
    return np.dot(queries, targets.T)


def euclidean(u: np.ndarray, v: np.ndarray) -> float:
    _check_dims(u, v)
    return float(np.linalg.norm(u - v))


def dot_product(u: np.ndarray, v: np.ndarray) -> float:
    _check_dims(u, v)
    return float(np.dot(u, v))


def manhattan(u: np.ndarray, v: np.ndarray) -> float:
    _check_dims(u, v)
    return float(np.abs(u - v).sum())


def calculate(u: np.ndarray, v: np.ndarray,
              method: Union[SimilarityMethod, str] = SimilarityMethod.COSINE) -> SimilarityScore:
    """
    Compare two vectors with the chosen metric.

    Distances are mapped to similarities with 1 / (1 + d); dot products are
    clamped to [0, 1] (vectors are expected to be L2-normalized).

    Raises:
        ValueError: On unknown method or mismatched dimensions
    """
    method = SimilarityMethod(method)
    u = np.asarray(u, dtype=np.float64)
    v = np.asarray(v, dtype=np.float64)

    if u.size == 0 or v.size == 0:
        _check_dims(u, v)
        return SimilarityScore(0.0, 0.0, method)

    if method is SimilarityMethod.COSINE:
        score = cosine(u, v)
        normalized = score
    elif method is SimilarityMethod.EUCLIDEAN:
        score = euclidean(u, v)
        normalized = 1.0 / (1.0 + score)
    elif method is SimilarityMethod.DOT_PRODUCT:
        score = dot_product(u, v)
        normalized = min(max(score, 0.0), 1.0)
    else:
        score = manhattan(u, v)
        normalized = 1.0 / (1.0 + score)

    return SimilarityScore(score, normalized, method)


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """Jaccard index of two token collections; 0 when both are empty."""
    sa, sb = set(a), set(b)
    union = sa | sb
    if not union:
        return 0.0
    return len(sa & sb) / len(union)
