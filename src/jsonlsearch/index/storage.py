"""SQLite record store plus JSON keyword statistics."""

from __future__ import annotations

import json
import logging
import os
import sqlite3
from contextlib import closing
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Sequence

import numpy as np

from jsonlsearch.errors import IndexNotFound
from jsonlsearch.index.keywords import KeywordIndex
from jsonlsearch.models import Document, IndexMetadata

LOGGER = logging.getLogger(__name__)

RECORDS_FILE = "index.db"
KEYWORDS_FILE = "keywords.json"


def _to_blob(vector: np.ndarray | None) -> sqlite3.Binary | None:
    if vector is None:
        return None
    return sqlite3.Binary(np.asarray(vector, dtype="float32").tobytes())


def _from_blob(blob: bytes | None) -> np.ndarray | None:
    if blob is None:
        return None
    return np.frombuffer(blob, dtype="float32").copy()


@dataclass(slots=True)
class LoadedIndex:
    """A persisted index read back into memory."""

    metadata: IndexMetadata
    documents: List[Document]
    keywords: KeywordIndex
    _content_matrix: np.ndarray | None = field(default=None, repr=False)
    _title_matrix: np.ndarray | None = field(default=None, repr=False)

    def __len__(self) -> int:
        return len(self.documents)

    def _stack(self, vectors: Sequence[np.ndarray | None]) -> np.ndarray:
        dimension = self.metadata.dimension
        rows = [
            vector[:dimension] if vector is not None else np.zeros(dimension, dtype="float32")
            for vector in vectors
        ]
        if not rows:
            return np.zeros((0, dimension), dtype="float32")
        padded = [np.pad(row, (0, dimension - len(row))) if len(row) < dimension else row for row in rows]
        return np.vstack(padded).astype("float32", copy=False)

    @property
    def content_matrix(self) -> np.ndarray:
        if self._content_matrix is None:
            self._content_matrix = self._stack([doc.content_embedding for doc in self.documents])
        return self._content_matrix

    @property
    def title_matrix(self) -> np.ndarray:
        """Title embeddings, with zero rows where a document has none."""
        if self._title_matrix is None:
            self._title_matrix = self._stack([doc.title_embedding for doc in self.documents])
        return self._title_matrix


class IndexStore:
    """Persistence layer for one index directory.

    The directory holds two artifacts which are always written and read
    together: the SQLite record store and the keyword statistics.
    """

    def __init__(self, index_dir: Path) -> None:
        self.index_dir = Path(index_dir)

    @property
    def records_path(self) -> Path:
        return self.index_dir / RECORDS_FILE

    @property
    def keywords_path(self) -> Path:
        return self.index_dir / KEYWORDS_FILE

    def missing_artifacts(self) -> List[Path]:
        return [path for path in (self.records_path, self.keywords_path) if not path.is_file()]

    def exists(self) -> bool:
        return not self.missing_artifacts()

    def save(
        self,
        metadata: IndexMetadata,
        documents: Sequence[Document],
        keywords: KeywordIndex,
    ) -> Path:
        """Write both artifacts, replacing any previous index in the directory."""
        self.index_dir.mkdir(parents=True, exist_ok=True)

        records_tmp = self.records_path.with_name(RECORDS_FILE + ".tmp")
        records_tmp.unlink(missing_ok=True)
        with closing(sqlite3.connect(records_tmp)) as conn:
            self._write_records(conn, metadata, documents)
        os.replace(records_tmp, self.records_path)

        keywords_tmp = self.keywords_path.with_name(KEYWORDS_FILE + ".tmp")
        keywords_tmp.write_text(json.dumps(keywords.to_dict()), encoding="utf-8")
        os.replace(keywords_tmp, self.keywords_path)

        LOGGER.info("Saved %d documents to %s", len(documents), self.index_dir)
        return self.index_dir

    def _write_records(
        self,
        conn: sqlite3.Connection,
        metadata: IndexMetadata,
        documents: Sequence[Document],
    ) -> None:
        with conn:
            conn.execute("CREATE TABLE metadata (key TEXT PRIMARY KEY, value TEXT NOT NULL)")
            conn.execute(
                """
                CREATE TABLE documents (
                    id INTEGER PRIMARY KEY,
                    title TEXT NOT NULL,
                    content TEXT NOT NULL,
                    normalized_title TEXT NOT NULL,
                    normalized_content TEXT NOT NULL,
                    content_embedding BLOB NOT NULL,
                    title_embedding BLOB,
                    original_fields TEXT NOT NULL
                )
                """
            )
            conn.executemany(
                "INSERT INTO metadata(key, value) VALUES (?, ?)",
                [(key, json.dumps(value)) for key, value in metadata.to_dict().items()],
            )
            conn.executemany(
                """
                INSERT INTO documents(
                    id, title, content, normalized_title, normalized_content,
                    content_embedding, title_embedding, original_fields
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                [
                    (
                        doc.id,
                        doc.title,
                        doc.content,
                        doc.normalized_title,
                        doc.normalized_content,
                        _to_blob(doc.content_embedding),
                        _to_blob(doc.title_embedding),
                        json.dumps(doc.original_fields, ensure_ascii=False),
                    )
                    for doc in documents
                ],
            )

    def load(self) -> LoadedIndex:
        """Read both artifacts back.

        Raises:
            IndexNotFound: if either artifact is missing.
        """
        missing = self.missing_artifacts()
        if missing:
            raise IndexNotFound(self.index_dir, missing)

        with closing(sqlite3.connect(self.records_path)) as conn:
            conn.row_factory = sqlite3.Row
            meta_rows = conn.execute("SELECT key, value FROM metadata").fetchall()
            metadata = IndexMetadata.from_dict({row["key"]: json.loads(row["value"]) for row in meta_rows})
            documents = [
                Document(
                    id=row["id"],
                    title=row["title"],
                    content=row["content"],
                    normalized_title=row["normalized_title"],
                    normalized_content=row["normalized_content"],
                    original_fields=json.loads(row["original_fields"]),
                    content_embedding=_from_blob(row["content_embedding"]),
                    title_embedding=_from_blob(row["title_embedding"]),
                )
                for row in conn.execute("SELECT * FROM documents ORDER BY id")
            ]

        keywords = KeywordIndex.from_dict(json.loads(self.keywords_path.read_text(encoding="utf-8")))
        if len(keywords) != len(documents):
            LOGGER.warning(
                "Keyword statistics cover %d documents but the record store has %d",
                len(keywords),
                len(documents),
            )
        return LoadedIndex(metadata=metadata, documents=documents, keywords=keywords)
