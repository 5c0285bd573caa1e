"""Core jsonlsearch data models."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict

import numpy as np


@dataclass(slots=True)
class Document:
    """One indexed JSONL record with its derived text and vectors."""

    id: int
    title: str
    content: str
    normalized_title: str
    normalized_content: str
    original_fields: Dict[str, Any]
    content_embedding: np.ndarray | None = None
    title_embedding: np.ndarray | None = None


@dataclass(slots=True)
class IndexMetadata:
    """Metadata block stored alongside the documents."""

    source: str
    content_field: str
    title_field: str
    model: str
    title_boost: bool
    document_count: int
    dimension: int
    similarity_backend: str = "exact"
    created_at: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "IndexMetadata":
        known = {name: data[name] for name in cls.__dataclass_fields__ if name in data}
        return cls(**known)


@dataclass(slots=True)
class BuildStats:
    """Outcome of a single index build."""

    index_dir: Path
    indexed: int = 0
    blank_lines: int = 0
    malformed: int = 0
    missing_content: int = 0
    embedding_failures: int = 0

    @property
    def skipped(self) -> int:
        return self.blank_lines + self.malformed + self.missing_content
