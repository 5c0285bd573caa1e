"""Shared fixtures: deterministic embeddings, normalizer and synonym source."""

from __future__ import annotations

import json
import zlib
from pathlib import Path
from typing import Dict, List, Sequence

import numpy as np
import pytest

from jsonlsearch.embedding.encoder import EmbeddingClient, EmbeddingConfig
from jsonlsearch.utils.text import TextNormalizer

DIMENSION = 8

# Words sharing a concept land on the same axis so related texts embed close together.
CONCEPTS: Dict[str, int] = {
    "cat": 0,
    "feline": 0,
    "kitten": 0,
    "dog": 1,
    "puppy": 1,
    "canine": 1,
    "pet": 2,
    "companion": 2,
    "loyal": 2,
    "mammal": 3,
    "animal": 3,
    "space": 4,
    "rocket": 4,
    "exploration": 4,
    "astronaut": 4,
}

STOPWORDS = frozenset({"a", "an", "the", "is", "are", "of", "and", "to", "in", "on", "for"})


def simple_lemmatizer(token: str) -> str:
    if len(token) > 3 and token.endswith("s") and not token.endswith("ss"):
        return token[:-1]
    return token


class FakeProvider:
    """Bag-of-concepts embeddings with optional injected failures."""

    def __init__(self, dimension: int = DIMENSION, fail_on: Sequence[str] = (), fail_all: bool = False) -> None:
        self.dimension = dimension
        self.fail_on = set(fail_on)
        self.fail_all = fail_all
        self.calls: List[List[str]] = []

    def vector(self, text: str) -> np.ndarray:
        vector = np.zeros(self.dimension, dtype="float32")
        for word in text.split():
            axis = CONCEPTS.get(word)
            if axis is None:
                axis = 5 + zlib.crc32(word.encode()) % (self.dimension - 5)
            vector[axis] += 1.0
        return vector

    def embed_batch(self, texts: Sequence[str]) -> np.ndarray:
        self.calls.append(list(texts))
        if self.fail_all or any(text in self.fail_on for text in texts):
            raise RuntimeError("provider unavailable")
        return np.vstack([self.vector(text) for text in texts])


class StaticSynonyms:
    def __init__(self, table: Dict[str, List[List[str]]]) -> None:
        self.table = table

    def lookup(self, token: str) -> List[List[str]]:
        return self.table.get(token, [])


@pytest.fixture
def normalizer() -> TextNormalizer:
    return TextNormalizer(stopwords=STOPWORDS, lemmatizer=simple_lemmatizer)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def embedder(provider: FakeProvider) -> EmbeddingClient:
    return EmbeddingClient(provider, EmbeddingConfig(batch_size=8, max_concurrency=5))


@pytest.fixture
def animals_jsonl(tmp_path: Path) -> Path:
    path = tmp_path / "animals.jsonl"
    records = [
        {"title": "Cats", "content": "Cats are small mammals"},
        {"title": "Dogs", "content": "Dogs are loyal companions"},
        {"title": "Space", "content": "Space exploration uses rockets"},
    ]
    path.write_text("\n".join(json.dumps(record) for record in records) + "\n", encoding="utf-8")
    return path
