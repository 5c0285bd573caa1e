"""Vector similarity strategies used at query time."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Protocol, Tuple

import numpy as np

from jsonlsearch.errors import SimilarityBackendUnavailable

LOGGER = logging.getLogger(__name__)

MAX_CACHED_INDEXES = 2


def cosine_similarity(a: np.ndarray, b: np.ndarray) -> float:
    """Cosine similarity over the common prefix of ``a`` and ``b``.

    Returns 0.0 when either vector has zero norm.
    """
    if a is None or b is None:
        return 0.0
    length = min(len(a), len(b))
    if length == 0:
        return 0.0
    vec_a = np.asarray(a[:length], dtype="float64")
    vec_b = np.asarray(b[:length], dtype="float64")
    norm_a = float(np.linalg.norm(vec_a))
    norm_b = float(np.linalg.norm(vec_b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


class SimilarityBackend(Protocol):
    name: str

    def similarities(self, query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
        """Return one cosine score per row of ``matrix``."""
        ...


class ExactScan:
    """Brute-force cosine similarity against every row.

    Vectorized form of :func:`cosine_similarity`: rows and query are compared
    over their common prefix and zero-norm pairs score 0.
    """

    name = "exact"

    def similarities(self, query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
        if matrix.size == 0:
            return np.zeros(matrix.shape[0] if matrix.ndim == 2 else 0, dtype="float64")
        length = min(query.shape[-1], matrix.shape[1])
        vectors = np.asarray(matrix[:, :length], dtype="float64")
        target = np.asarray(query[:length], dtype="float64")
        norms = np.linalg.norm(vectors, axis=1) * np.linalg.norm(target)
        dots = vectors @ target
        scores = np.zeros(len(vectors), dtype="float64")
        np.divide(dots, norms, out=scores, where=norms > 0)
        return scores


class FaissScan:
    """Approximate inner-product search over L2-normalized vectors.

    Only the ``candidates`` nearest rows receive a score; every other row
    scores 0.
    """

    name = "faiss"

    def __init__(self, candidates: int = 64, *, neighbors: int = 32) -> None:
        try:
            import faiss
        except ImportError as exc:
            raise SimilarityBackendUnavailable(
                "faiss is not installed. Install the extra with \"python -m pip install '.[faiss]'\""
            ) from exc
        self._faiss = faiss
        self.candidates = candidates
        self.neighbors = neighbors
        # Content and title matrices of the current index.
        self._cache: List[Tuple[np.ndarray, object]] = []

    def _normalized(self, vectors: np.ndarray) -> np.ndarray:
        array = np.ascontiguousarray(vectors, dtype="float32").copy()
        self._faiss.normalize_L2(array)
        return array

    def _index_for(self, matrix: np.ndarray):
        for cached, index in self._cache:
            if cached is matrix:
                return index
        index = self._faiss.IndexHNSWFlat(matrix.shape[1], self.neighbors, self._faiss.METRIC_INNER_PRODUCT)
        index.add(self._normalized(matrix))
        self._cache = [*self._cache[-(MAX_CACHED_INDEXES - 1):], (matrix, index)]
        return index

    def similarities(self, query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
        scores = np.zeros(matrix.shape[0] if matrix.ndim == 2 else 0, dtype="float64")
        if matrix.size == 0 or not np.any(query):
            return scores
        if query.shape[-1] != matrix.shape[1]:
            LOGGER.debug("Dimension mismatch, falling back to exact scan")
            return ExactScan().similarities(query, matrix)
        index = self._index_for(matrix)
        k = min(self.candidates, matrix.shape[0])
        distances, labels = index.search(self._normalized(query.reshape(1, -1)), k)
        zero_rows = ~np.any(matrix, axis=1)
        for label, distance in zip(labels[0], distances[0]):
            if label >= 0 and not zero_rows[label]:
                scores[label] = float(distance)
        return scores


BACKENDS: Dict[str, Callable[[], SimilarityBackend]] = {
    ExactScan.name: ExactScan,
    FaissScan.name: FaissScan,
}


def get_backend(name: str) -> SimilarityBackend:
    """Instantiate the similarity backend registered under ``name``."""
    try:
        factory = BACKENDS[name]
    except KeyError:
        raise SimilarityBackendUnavailable(
            f"Unknown similarity backend '{name}', expected one of: {', '.join(BACKENDS)}"
        ) from None
    return factory()
