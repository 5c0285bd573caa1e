"""Text normalization shared by index construction and query processing.

Keyword scores only make sense when documents and queries go through the
same normalizer, so both :class:`~jsonlsearch.index.indexer.IndexBuilder` and
:class:`~jsonlsearch.index.search.HybridSearcher` take a ``TextNormalizer``
instance instead of building their own.
"""

from __future__ import annotations

import logging
import re
from typing import Callable, Iterable, List

from jsonlsearch.errors import CorpusUnavailable

LOGGER = logging.getLogger(__name__)

_NON_WORD = re.compile(r"[^\w\s]|_")
_WHITESPACE = re.compile(r"\s+")

Lemmatizer = Callable[[str], str]


def ensure_corpus(name: str) -> None:
    """Make sure the NLTK corpus ``name`` is installed, downloading it if needed.

    Raises:
        CorpusUnavailable: if the corpus is missing and the download fails.
    """
    import nltk

    resource = f"corpora/{name}"
    try:
        nltk.data.find(resource)
        return
    except LookupError:
        LOGGER.info("Downloading NLTK %s corpus", name)
    nltk.download(name, quiet=True)
    try:
        nltk.data.find(resource)
    except LookupError as exc:
        raise CorpusUnavailable(name) from exc


def load_stopwords(language: str = "english") -> frozenset[str]:
    """Return the NLTK stopword list for ``language``.

    The corpus is downloaded on first use when it is not installed yet.
    """
    from nltk.corpus import stopwords

    ensure_corpus("stopwords")
    return frozenset(stopwords.words(language))


def wordnet_lemmatizer() -> Lemmatizer:
    """Build a lemmatizer reducing nouns first, then verbs.

    The WordNet corpus is downloaded on first use when it is not installed yet.
    """
    from nltk.stem import WordNetLemmatizer

    ensure_corpus("wordnet")
    lemmatizer = WordNetLemmatizer()

    def lemmatize(token: str) -> str:
        lemma = lemmatizer.lemmatize(token, pos="n")
        if lemma == token:
            lemma = lemmatizer.lemmatize(token, pos="v")
        return lemma

    return lemmatize


class TextNormalizer:
    """Lowercase, strip punctuation, drop stopwords and lemmatize."""

    def __init__(
        self,
        stopwords: Iterable[str] | None = None,
        lemmatizer: Lemmatizer | None = None,
    ) -> None:
        self.stopwords = frozenset(stopwords) if stopwords is not None else load_stopwords()
        self.lemmatizer = lemmatizer if lemmatizer is not None else wordnet_lemmatizer()

    def _lemmatize(self, token: str) -> str:
        try:
            return self.lemmatizer(token) or token
        except Exception:
            # The reducer may be missing its corpus or reject odd tokens.
            return token

    def tokens(self, text: str | None) -> List[str]:
        if not text:
            return []
        cleaned = _NON_WORD.sub(" ", text.lower())
        cleaned = _WHITESPACE.sub(" ", cleaned).strip()
        return [
            self._lemmatize(token)
            for token in cleaned.split()
            if token not in self.stopwords
        ]

    def normalize(self, text: str | None) -> str:
        """Return the normalized form of ``text``; empty input gives ``""``."""
        return " ".join(self.tokens(text))

    def __call__(self, text: str | None) -> str:
        return self.normalize(text)


def terms(normalized: str) -> List[str]:
    """Split already-normalized text into its unique terms, keeping order."""
    return list(dict.fromkeys(token for token in normalized.split() if token))
