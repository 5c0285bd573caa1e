"""Exception hierarchy shared by the build and search paths."""

from __future__ import annotations

from pathlib import Path


class JsonlSearchError(Exception):
    """Base class for every error raised by jsonlsearch."""


class MalformedLine(JsonlSearchError):
    """A source line is blank, not valid JSON, or not a JSON object."""

    def __init__(self, line_number: int, reason: str) -> None:
        super().__init__(f"line {line_number}: {reason}")
        self.line_number = line_number
        self.reason = reason


class MissingContentField(JsonlSearchError):
    """A decoded record has no usable value in the content field."""

    def __init__(self, field: str, line_number: int | None = None) -> None:
        where = f"line {line_number}: " if line_number is not None else ""
        super().__init__(f"{where}record has no content in field '{field}'")
        self.field = field
        self.line_number = line_number


class EmbeddingProviderFailure(JsonlSearchError):
    """The embedding provider failed for a single text or call."""


class ExpansionProviderFailure(JsonlSearchError):
    """A synonym or word-vector lookup failed for a single token."""


class SourceNotFound(JsonlSearchError):
    """The JSONL source file does not exist."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"File not found: {path}")
        self.path = Path(path)


class IndexNotFound(JsonlSearchError):
    """One or both persisted index artifacts are missing."""

    def __init__(self, index_dir: Path, missing: list[Path]) -> None:
        names = ", ".join(str(path) for path in missing)
        super().__init__(f"Index not found in {index_dir} (missing: {names})")
        self.index_dir = Path(index_dir)
        self.missing = list(missing)


class ModelInitializationFailure(JsonlSearchError):
    """The embedding model name cannot be resolved or loaded."""

    def __init__(self, model_name: str, reason: str | None = None) -> None:
        message = f"Failed to initialize embedding model: {model_name}"
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)
        self.model_name = model_name


class SimilarityBackendUnavailable(JsonlSearchError):
    """The requested vector similarity backend is unknown or not installed."""


class CorpusUnavailable(JsonlSearchError):
    """An NLTK corpus is neither installed nor downloadable."""

    def __init__(self, corpus: str) -> None:
        super().__init__(
            f"NLTK corpus '{corpus}' is not installed and could not be downloaded "
            f"(install it with: python -m nltk.downloader {corpus})"
        )
        self.corpus = corpus
