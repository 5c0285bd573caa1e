"""Term-frequency / document-frequency keyword index."""

from __future__ import annotations

import math
from collections import Counter
from typing import Any, Dict, Iterable, List, Sequence


class KeywordIndex:
    """TF-IDF statistics over normalized document text.

    Scores are plain sums of per-term tf-idf values and are not length
    normalized unless ``normalized=True`` is requested explicitly.
    """

    def __init__(
        self,
        term_counts: Sequence[Dict[str, int]] | None = None,
        document_frequency: Dict[str, int] | None = None,
    ) -> None:
        self.term_counts: List[Counter] = [Counter(counts) for counts in term_counts or []]
        if document_frequency is None:
            document_frequency = Counter()
            for counts in self.term_counts:
                document_frequency.update(counts.keys())
        self.document_frequency: Dict[str, int] = dict(document_frequency)
        self._lengths = [sum(counts.values()) for counts in self.term_counts]

    @classmethod
    def build(cls, documents: Iterable[str]) -> "KeywordIndex":
        """Build the index from normalized, space separated document texts."""
        return cls([Counter(text.split()) for text in documents])

    @property
    def total_documents(self) -> int:
        return len(self.term_counts)

    def __len__(self) -> int:
        return self.total_documents

    def idf(self, term: str) -> float:
        if not self.total_documents:
            return 0.0
        return math.log(self.total_documents / max(1, self.document_frequency.get(term, 0)))

    def tfidf(self, term: str, doc_id: int) -> float:
        if not 0 <= doc_id < self.total_documents:
            return 0.0
        count = self.term_counts[doc_id].get(term, 0)
        if not count:
            return 0.0
        return count * self.idf(term)

    def score(self, terms: Iterable[str], doc_id: int, *, normalized: bool = False) -> float:
        total = sum(self.tfidf(term, doc_id) for term in terms)
        if normalized and total:
            total /= self._lengths[doc_id]
        return total

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_documents": self.total_documents,
            "document_frequency": self.document_frequency,
            "term_counts": [dict(counts) for counts in self.term_counts],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "KeywordIndex":
        index = cls(data.get("term_counts", []), data.get("document_frequency"))
        expected = data.get("total_documents", index.total_documents)
        if expected != index.total_documents:
            raise ValueError(
                f"Keyword statistics list {index.total_documents} documents, expected {expected}"
            )
        return index
