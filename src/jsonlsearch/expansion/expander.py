"""Query expansion from lexical synonyms and word-vector neighbours."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Protocol, Sequence

import numpy as np

from jsonlsearch.errors import ExpansionProviderFailure

LOGGER = logging.getLogger(__name__)


class SynonymSource(Protocol):
    def lookup(self, token: str) -> List[List[str]]:
        """Return synonym groups for ``token``, best first."""
        ...


class NeighborSource(Protocol):
    def nearest(self, token: str, k: int) -> List[str]:
        """Return up to ``k`` words closest to ``token``."""
        ...


class WordNetSynonyms:
    """Synonym groups from NLTK's WordNet, one group per synset."""

    def __init__(self) -> None:
        from nltk.corpus import wordnet

        self._wordnet = wordnet

    def lookup(self, token: str) -> List[List[str]]:
        return [list(synset.lemma_names()) for synset in self._wordnet.synsets(token)]


class WordVectorNeighbors:
    """Nearest neighbours over a word2vec text-format vector table."""

    def __init__(self, words: Sequence[str], vectors: np.ndarray) -> None:
        if len(words) != len(vectors):
            raise ValueError("words and vectors must have the same length")
        self.words = list(words)
        self._positions: Dict[str, int] = {word: i for i, word in enumerate(self.words)}
        matrix = np.asarray(vectors, dtype="float32")
        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        self._unit = np.divide(matrix, norms, out=np.zeros_like(matrix), where=norms > 0)

    @classmethod
    def from_file(cls, path: Path, *, limit: int | None = None) -> "WordVectorNeighbors":
        """Load vectors written as ``word v1 v2 ...`` lines (optional header)."""
        words: List[str] = []
        rows: List[List[float]] = []
        with Path(path).open("r", encoding="utf-8") as handle:
            for number, line in enumerate(handle):
                parts = line.rstrip().split(" ")
                if number == 0 and len(parts) == 2:
                    continue
                if len(parts) < 2:
                    continue
                words.append(parts[0])
                rows.append([float(value) for value in parts[1:]])
                if limit is not None and len(words) >= limit:
                    break
        LOGGER.info("Loaded %d word vectors from %s", len(words), path)
        return cls(words, np.array(rows, dtype="float32"))

    def nearest(self, token: str, k: int) -> List[str]:
        position = self._positions.get(token)
        if position is None or k <= 0:
            return []
        scores = self._unit @ self._unit[position]
        scores[position] = -np.inf
        count = min(k, len(self.words) - 1)
        if count <= 0:
            return []
        top = np.argpartition(scores, -count)[-count:]
        top = top[np.argsort(scores[top])[::-1]]
        return [self.words[i] for i in top]


@dataclass(slots=True)
class ExpansionResult:
    """Expanded query text plus the reasons any lookups were skipped."""

    query: str
    terms: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        return " ".join([self.query, *self.terms])


class QueryExpander:
    """Collects synonyms and neighbours for each query token.

    Lookups are best effort: a failing or missing collaborator contributes no
    terms and is recorded in :attr:`ExpansionResult.failures`.
    """

    def __init__(
        self,
        synonyms: SynonymSource | None = None,
        neighbors: NeighborSource | None = None,
        *,
        max_synonym_groups: int = 3,
        neighbor_count: int = 3,
        min_token_length: int = 3,
    ) -> None:
        self.synonyms = synonyms
        self.neighbors = neighbors
        self.max_synonym_groups = max_synonym_groups
        self.neighbor_count = neighbor_count
        self.min_token_length = min_token_length

    def _synonyms_for(self, token: str) -> List[str]:
        if self.synonyms is None:
            return []
        try:
            groups = self.synonyms.lookup(token) or []
        except Exception as exc:
            raise ExpansionProviderFailure(f"synonym lookup failed for '{token}': {exc}") from exc
        return [word for group in groups[: self.max_synonym_groups] for word in group if word != token]

    def _neighbors_for(self, token: str) -> List[str]:
        if self.neighbors is None:
            return []
        try:
            return [word for word in self.neighbors.nearest(token, self.neighbor_count) or [] if word]
        except Exception as exc:
            raise ExpansionProviderFailure(f"word-vector lookup failed for '{token}': {exc}") from exc

    def expand(self, query: str) -> ExpansionResult:
        result = ExpansionResult(query=query)
        found: Dict[str, None] = {}
        for token in query.lower().split():
            if len(token) < self.min_token_length:
                continue
            for source in (self._synonyms_for, self._neighbors_for):
                try:
                    words = source(token)
                except ExpansionProviderFailure as exc:
                    LOGGER.debug("%s", exc)
                    result.failures.append(str(exc))
                    continue
                for word in words:
                    if word != token:
                        found.setdefault(word, None)
        result.terms = list(found)
        return result
