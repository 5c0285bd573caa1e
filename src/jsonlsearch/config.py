"""Application configuration defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from jsonlsearch.embedding.encoder import DEFAULT_MODEL

API_KEY_ENV_VARS = ("HF_API_KEY", "HF_TOKEN")


def _get_default_api_key() -> str | None:
    """Return the first provider credential found in the environment."""
    for name in API_KEY_ENV_VARS:
        value = os.environ.get(name)
        if value:
            return value
    return None


@dataclass(slots=True)
class AppConfig:
    index_dir: Path = Path("index")
    model_name: str = DEFAULT_MODEL
    provider: str = "huggingface"
    content_field: str = "content"
    title_field: str = "title"
    title_boost: bool = True
    api_key: str | None = None
    limit: int = 10
    threshold: float = 0.5
    semantic_weight: float = 0.7
    title_weight: float = 0.3
    similarity_backend: str = "exact"

    def __post_init__(self) -> None:
        if self.api_key is None:
            self.api_key = _get_default_api_key()

    def resolve_index_dir(self, base_dir: Path | None = None) -> Path:
        if Path(self.index_dir).is_absolute() or base_dir is None:
            return Path(self.index_dir)
        return base_dir / self.index_dir
