"""Hybrid semantic + keyword search."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from pathlib import Path
from typing import Any, Dict, List

import numpy as np

from jsonlsearch.embedding.encoder import EmbeddingClient
from jsonlsearch.expansion.expander import QueryExpander
from jsonlsearch.index.similarity import SimilarityBackend, get_backend
from jsonlsearch.index.storage import IndexStore, LoadedIndex
from jsonlsearch.utils.text import TextNormalizer, terms

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class SearchResult:
    id: int
    title: str
    content: str
    score: float
    relevance: float
    semantic_score: float
    keyword_score: float
    title_score: float
    title_match: float
    original_fields: Dict[str, Any] = field(default_factory=dict)


def title_similarity(query: str, title: str) -> float:
    """Case-insensitive string similarity between the raw query and a title."""
    if not title:
        return 0.0
    return SequenceMatcher(None, query.lower(), title.lower()).ratio()


def normalize_keyword_scores(raw: np.ndarray) -> np.ndarray:
    """Scale raw keyword scores by their maximum; all zeros when the max is 0."""
    if raw.size == 0:
        return raw.astype("float64")
    top = float(raw.max())
    if top <= 0.0:
        return np.zeros_like(raw, dtype="float64")
    return raw / top


def _check_unit(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} must be between 0 and 1, got {value}")


class HybridSearcher:
    """Ranks indexed documents by semantic, keyword and title relevance."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        normalizer: TextNormalizer,
        expander: QueryExpander | None = None,
        backend: SimilarityBackend | None = None,
        *,
        length_normalized: bool = False,
    ) -> None:
        self.embedder = embedder
        self.normalizer = normalizer
        self.expander = expander or QueryExpander()
        self.backend = backend
        self.length_normalized = length_normalized
        self._backends: Dict[str, SimilarityBackend] = {}

    def backend_for(self, name: str) -> SimilarityBackend:
        """The injected backend, or the one named in the index metadata.

        Resolved backends are kept so that per-index caches survive between
        queries.
        """
        if self.backend is not None:
            return self.backend
        if name not in self._backends:
            self._backends[name] = get_backend(name)
        return self._backends[name]

    def query_terms(self, query: str, normalized_query: str) -> List[str]:
        """Normalized query terms united with the normalized expansion terms."""
        expansion = self.expander.expand(query)
        if expansion.failures:
            LOGGER.debug("Query expansion skipped %d lookups", len(expansion.failures))
        expanded = self.normalizer.normalize(expansion.text)
        return terms(f"{normalized_query} {expanded}")

    def search(
        self,
        query: str,
        index: LoadedIndex,
        *,
        limit: int = 10,
        threshold: float = 0.5,
        semantic_weight: float = 0.7,
        title_weight: float = 0.3,
    ) -> List[SearchResult]:
        _check_unit("semantic_weight", semantic_weight)
        _check_unit("title_weight", title_weight)
        _check_unit("threshold", threshold)
        if limit < 0:
            raise ValueError(f"limit must be non-negative, got {limit}")
        if not index.documents:
            return []

        normalized_query = self.normalizer.normalize(query)
        query_result = self.embedder.embed_with_diagnostics([normalized_query])[0]
        if not query_result.ok:
            LOGGER.warning("Query embedding failed, semantic scores will be 0: %s", query_result.error)
        query_embedding = query_result.vector

        backend = self.backend_for(index.metadata.similarity_backend)
        content_sim = backend.similarities(query_embedding, index.content_matrix)
        if index.metadata.title_boost:
            title_sim = backend.similarities(query_embedding, index.title_matrix)
            has_title = np.array([doc.title_embedding is not None for doc in index.documents])
            title_sim = np.where(has_title, title_sim, 0.0)
        else:
            title_sim = np.zeros(len(index.documents), dtype="float64")

        term_set = self.query_terms(query, normalized_query)
        raw_keyword = np.array(
            [index.keywords.score(term_set, doc.id, normalized=self.length_normalized) for doc in index.documents]
        )
        keyword = normalize_keyword_scores(raw_keyword)

        results: List[SearchResult] = []
        for position, doc in enumerate(index.documents):
            title_match = title_similarity(query, doc.title)
            score = (
                content_sim[position] * semantic_weight
                + keyword[position] * (1 - semantic_weight)
                + (title_sim[position] + title_match) / 2 * title_weight
            )
            if score < threshold:
                continue
            results.append(
                SearchResult(
                    id=doc.id,
                    title=doc.title,
                    content=doc.content,
                    score=float(score),
                    relevance=float(score),
                    semantic_score=float(content_sim[position]),
                    keyword_score=float(keyword[position]),
                    title_score=float(title_sim[position]),
                    title_match=title_match,
                    original_fields=doc.original_fields,
                )
            )

        results.sort(key=lambda result: (-result.score, result.id))
        return results[:limit]


def search_index(
    query: str,
    index_dir: Path,
    searcher: HybridSearcher,
    **options: Any,
) -> List[SearchResult]:
    """Load the index stored in ``index_dir`` and search it."""
    index = IndexStore(index_dir).load()
    return searcher.search(query, index, **options)
