"""Tests for the TF-IDF keyword index."""

from __future__ import annotations

import math

import pytest

from jsonlsearch.index.keywords import KeywordIndex


@pytest.fixture
def keywords() -> KeywordIndex:
    return KeywordIndex.build(
        [
            "cat small mammal cat cat cat",
            "dog loyal companion dog dog dog",
            "space exploration use rocket space space space",
        ]
    )


class TestKeywordIndex:
    """Test KeywordIndex scoring."""

    def test_counts(self, keywords: KeywordIndex) -> None:
        assert len(keywords) == 3
        assert keywords.term_counts[0]["cat"] == 4
        assert keywords.document_frequency["cat"] == 1

    def test_idf(self, keywords: KeywordIndex) -> None:
        assert keywords.idf("cat") == pytest.approx(math.log(3))
        # Unknown terms use a document frequency of 1.
        assert keywords.idf("unicorn") == pytest.approx(math.log(3))

    def test_idf_zero_for_term_in_every_document(self) -> None:
        index = KeywordIndex.build(["common a", "common b"])

        assert index.idf("common") == 0.0
        assert index.tfidf("common", 0) == 0.0

    def test_tfidf(self, keywords: KeywordIndex) -> None:
        assert keywords.tfidf("cat", 0) == pytest.approx(4 * math.log(3))
        assert keywords.tfidf("cat", 1) == 0.0

    def test_tfidf_out_of_range(self, keywords: KeywordIndex) -> None:
        assert keywords.tfidf("cat", 99) == 0.0
        assert keywords.tfidf("cat", -1) == 0.0

    def test_tfidf_never_negative(self, keywords: KeywordIndex) -> None:
        for doc_id in range(len(keywords)):
            for term in ("cat", "dog", "space", "unicorn"):
                assert keywords.tfidf(term, doc_id) >= 0.0

    def test_score_sums_terms(self, keywords: KeywordIndex) -> None:
        expected = keywords.tfidf("cat", 0) + keywords.tfidf("mammal", 0)

        assert keywords.score(["cat", "mammal", "rocket"], 0) == pytest.approx(expected)

    def test_score_length_normalized(self, keywords: KeywordIndex) -> None:
        raw = keywords.score(["cat"], 0)

        assert keywords.score(["cat"], 0, normalized=True) == pytest.approx(raw / 6)

    def test_empty_index(self) -> None:
        index = KeywordIndex.build([])

        assert len(index) == 0
        assert index.idf("anything") == 0.0
        assert index.score(["anything"], 0) == 0.0

    def test_empty_document(self) -> None:
        index = KeywordIndex.build(["", "cat"])

        assert index.score(["cat"], 0, normalized=True) == 0.0


class TestKeywordPersistence:
    """Test to_dict / from_dict."""

    def test_round_trip(self, keywords: KeywordIndex) -> None:
        restored = KeywordIndex.from_dict(keywords.to_dict())

        assert restored.total_documents == keywords.total_documents
        assert restored.document_frequency == keywords.document_frequency
        assert restored.tfidf("rocket", 2) == pytest.approx(keywords.tfidf("rocket", 2))

    def test_count_mismatch(self, keywords: KeywordIndex) -> None:
        data = keywords.to_dict()
        data["total_documents"] = 5

        with pytest.raises(ValueError, match="expected 5"):
            KeywordIndex.from_dict(data)
