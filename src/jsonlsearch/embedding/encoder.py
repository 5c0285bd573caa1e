"""Embedding model management.

Texts are turned into fixed-dimension vectors by an :class:`EmbeddingProvider`
(remote Hugging Face inference or a local sentence-transformers model). The
:class:`EmbeddingClient` in front of it batches requests, bounds how many are
in flight, and replaces any failed text with a zero vector so that callers
always get one vector per input, in input order.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Dict, Iterable, List, Literal, Protocol, Sequence

import numpy as np

from jsonlsearch.errors import EmbeddingProviderFailure, ModelInitializationFailure

DEFAULT_MODEL = "universal-sentence-encoder"
DEFAULT_DIMENSION = 384

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ModelSpec:
    model_id: str
    dimension: int


MODEL_REGISTRY: Dict[str, ModelSpec] = {
    "universal-sentence-encoder": ModelSpec("sentence-transformers/all-MiniLM-L6-v2", 384),
    "all-minilm": ModelSpec("sentence-transformers/all-MiniLM-L6-v2", 384),
    "all-mpnet": ModelSpec("sentence-transformers/all-mpnet-base-v2", 768),
    "multi-qa-minilm": ModelSpec("sentence-transformers/multi-qa-MiniLM-L6-cos-v1", 384),
}


def resolve_model(name: str) -> ModelSpec:
    """Map a logical model name (or a registered model id) to its spec."""
    if name in MODEL_REGISTRY:
        return MODEL_REGISTRY[name]
    for spec in MODEL_REGISTRY.values():
        if spec.model_id == name:
            return spec
    known = ", ".join(sorted(MODEL_REGISTRY))
    raise ModelInitializationFailure(name, f"unknown model, expected one of: {known}")


@dataclass(slots=True)
class EmbeddingConfig:
    model_name: str = DEFAULT_MODEL
    provider: Literal["huggingface", "local"] = "huggingface"
    api_key: str | None = None
    batch_size: int = 8
    max_concurrency: int = 5
    normalize: bool = True
    device: str | None = None


class EmbeddingProvider(Protocol):
    dimension: int

    def embed_batch(self, texts: Sequence[str]) -> np.ndarray:
        """Return a ``(len(texts), dimension)`` array or raise."""
        ...


def _pool(output: np.ndarray, count: int) -> np.ndarray:
    """Reduce raw feature-extraction output to one vector per input text."""
    array = np.asarray(output, dtype="float32")
    if array.ndim == 1:
        array = array.reshape(1, -1)
    if array.ndim == 3:
        # Token-level features: mean pool over tokens.
        array = array.mean(axis=1)
    elif array.ndim == 2 and count == 1 and array.shape[0] != 1:
        array = array.mean(axis=0, keepdims=True)
    return array


class HuggingFaceInferenceProvider:
    """Feature extraction through the Hugging Face inference API."""

    def __init__(self, spec: ModelSpec, *, api_key: str | None = None) -> None:
        from huggingface_hub import InferenceClient

        if not api_key:
            logger.warning(
                "No Hugging Face API key provided. Using the API without a key "
                "may result in rate limiting."
            )
        self.spec = spec
        self.dimension = spec.dimension
        try:
            self._client = InferenceClient(model=spec.model_id, token=api_key or None)
        except Exception as exc:
            raise ModelInitializationFailure(spec.model_id, str(exc)) from exc
        logger.info(f"Using Hugging Face model: {spec.model_id}")

    def embed_batch(self, texts: Sequence[str]) -> np.ndarray:
        inputs = list(texts)
        payload = inputs[0] if len(inputs) == 1 else inputs
        output = self._client.feature_extraction(payload, model=self.spec.model_id)
        return _pool(output, len(inputs))


class SentenceTransformerProvider:
    """Local `SentenceTransformer` model."""

    def __init__(self, spec: ModelSpec, *, normalize: bool = True, device: str | None = None) -> None:
        from sentence_transformers import SentenceTransformer

        self.spec = spec
        self.normalize = normalize
        try:
            self._model = SentenceTransformer(spec.model_id, device=device)
        except Exception as exc:
            raise ModelInitializationFailure(spec.model_id, str(exc)) from exc
        self.dimension = int(self._model.get_sentence_embedding_dimension() or spec.dimension)
        logger.info(f"Loaded local model: {spec.model_id} | Device: {self._model.device}")

    def embed_batch(self, texts: Sequence[str]) -> np.ndarray:
        embeddings = self._model.encode(
            list(texts),
            batch_size=len(texts) or 1,
            show_progress_bar=False,
            convert_to_numpy=True,
            normalize_embeddings=self.normalize,
        )
        return embeddings.astype("float32", copy=False)


def build_provider(config: EmbeddingConfig) -> EmbeddingProvider:
    """Instantiate the provider named by ``config.provider``."""
    spec = resolve_model(config.model_name)
    if config.provider == "huggingface":
        return HuggingFaceInferenceProvider(spec, api_key=config.api_key)
    if config.provider == "local":
        return SentenceTransformerProvider(spec, normalize=config.normalize, device=config.device)
    raise ModelInitializationFailure(config.model_name, f"unknown provider '{config.provider}'")


@dataclass(slots=True)
class EmbeddingResult:
    """Vector for one text, or a zero vector plus the reason it failed."""

    vector: np.ndarray
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class EmbeddingClient:
    """Order-preserving, failure-isolating front end for an embedding provider."""

    def __init__(self, provider: EmbeddingProvider, config: EmbeddingConfig | None = None) -> None:
        self.provider = provider
        self.config = config or EmbeddingConfig()
        self.dimension = int(getattr(provider, "dimension", DEFAULT_DIMENSION) or DEFAULT_DIMENSION)

    @classmethod
    def from_config(cls, config: EmbeddingConfig) -> "EmbeddingClient":
        return cls(build_provider(config), config)

    def _zero(self) -> np.ndarray:
        return np.zeros(self.dimension, dtype="float32")

    def _call(self, texts: Sequence[str]) -> np.ndarray:
        try:
            vectors = np.asarray(self.provider.embed_batch(texts), dtype="float32")
        except Exception as exc:
            raise EmbeddingProviderFailure(str(exc) or type(exc).__name__) from exc
        if vectors.ndim != 2 or vectors.shape != (len(texts), self.dimension):
            raise EmbeddingProviderFailure(
                f"expected shape ({len(texts)}, {self.dimension}), got {vectors.shape}"
            )
        return vectors

    def _embed_chunk(self, texts: Sequence[str]) -> List[EmbeddingResult]:
        try:
            return [EmbeddingResult(vector) for vector in self._call(texts)]
        except EmbeddingProviderFailure as exc:
            if len(texts) == 1:
                logger.error(f"Error embedding text: {exc}")
                return [EmbeddingResult(self._zero(), str(exc))]
            logger.warning(f"Batch of {len(texts)} texts failed ({exc}), retrying one by one")

        results: List[EmbeddingResult] = []
        for text in texts:
            try:
                results.append(EmbeddingResult(self._call([text])[0]))
            except EmbeddingProviderFailure as exc:
                logger.error(f"Error embedding text: {exc}")
                results.append(EmbeddingResult(self._zero(), str(exc)))
        return results

    def embed_with_diagnostics(self, texts: Sequence[str] | Iterable[str]) -> List[EmbeddingResult]:
        """Embed ``texts`` and report which positions fell back to zero vectors."""
        items = list(texts)
        if not items:
            return []

        size = max(1, self.config.batch_size)
        slots: List[EmbeddingResult | None] = [None] * len(items)
        starts = range(0, len(items), size)
        logger.debug(f"Embedding {len(items)} texts in {len(starts)} calls")

        workers = max(1, min(self.config.max_concurrency, len(starts)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                start: executor.submit(self._embed_chunk, items[start : start + size])
                for start in starts
            }
            for start, future in futures.items():
                for offset, result in enumerate(future.result()):
                    slots[start + offset] = result

        return [slot if slot is not None else EmbeddingResult(self._zero(), "missing result") for slot in slots]

    def embed(self, texts: Sequence[str] | Iterable[str]) -> List[np.ndarray]:
        """Return one vector per input text, in input order."""
        return [result.vector for result in self.embed_with_diagnostics(texts)]

    def embed_one(self, text: str) -> np.ndarray:
        """Convenience wrapper for single-query embedding."""
        return self.embed([text])[0]
