"""Index construction pipeline."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Sequence

from jsonlsearch.embedding.encoder import DEFAULT_MODEL, EmbeddingClient
from jsonlsearch.errors import MalformedLine, MissingContentField, SourceNotFound
from jsonlsearch.index.keywords import KeywordIndex
from jsonlsearch.index.storage import IndexStore
from jsonlsearch.ingestion.jsonl_loader import extract_fields, parse_record
from jsonlsearch.models import BuildStats, Document, IndexMetadata
from jsonlsearch.utils.files import iter_lines
from jsonlsearch.utils.text import TextNormalizer

LOGGER = logging.getLogger(__name__)


def keyword_text(document: Document, title_repeat: int) -> str:
    """Content followed by the title repeated ``title_repeat`` times.

    Repeating the title raises the term frequency of title words without
    touching the stored title.
    """
    text = document.normalized_content
    if document.normalized_title:
        text += (" " + document.normalized_title) * title_repeat
    return text


class IndexBuilder:
    """Coordinates record ingestion, embedding and persistence."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        normalizer: TextNormalizer,
        *,
        content_field: str = "content",
        title_field: str = "title",
        title_boost: bool = True,
        model_name: str = DEFAULT_MODEL,
        batch_size: int = 32,
        title_repeat: int = 3,
        similarity_backend: str = "exact",
    ) -> None:
        self.embedder = embedder
        self.normalizer = normalizer
        self.content_field = content_field
        self.title_field = title_field
        self.title_boost = title_boost
        self.model_name = model_name
        self.batch_size = batch_size
        self.title_repeat = title_repeat
        self.similarity_backend = similarity_backend

    def read_documents(self, source: Path, stats: BuildStats) -> List[Document]:
        """Decode and normalize every usable record of ``source``."""
        documents: List[Document] = []
        for line_number, line in iter_lines(source):
            if not line.strip():
                LOGGER.debug("Skipping empty line %d", line_number)
                stats.blank_lines += 1
                continue
            try:
                record = parse_record(line, line_number)
                content, title = extract_fields(
                    record, self.content_field, self.title_field, line_number=line_number
                )
            except MalformedLine as exc:
                LOGGER.error("Error processing %s", exc)
                stats.malformed += 1
                continue
            except MissingContentField as exc:
                LOGGER.warning("Skipping %s", exc)
                stats.missing_content += 1
                continue

            documents.append(
                Document(
                    id=len(documents),
                    title=title,
                    content=content,
                    normalized_title=self.normalizer.normalize(title),
                    normalized_content=self.normalizer.normalize(content),
                    original_fields=record,
                )
            )
        return documents

    def embed_documents(self, documents: Sequence[Document], stats: BuildStats) -> None:
        """Attach content (and, with title boost, title) embeddings in batches."""
        total = len(documents)
        for start in range(0, total, self.batch_size):
            batch = documents[start : start + self.batch_size]

            results = self.embedder.embed_with_diagnostics([doc.normalized_content for doc in batch])
            for doc, result in zip(batch, results):
                doc.content_embedding = result.vector
                if not result.ok:
                    stats.embedding_failures += 1

            if self.title_boost:
                titled = [doc for doc in batch if doc.normalized_title]
                results = self.embedder.embed_with_diagnostics([doc.normalized_title for doc in titled])
                for doc, result in zip(titled, results):
                    doc.title_embedding = result.vector
                    if not result.ok:
                        stats.embedding_failures += 1

            LOGGER.info("Generated embeddings for %d/%d entries", min(start + self.batch_size, total), total)

    def build(self, source: Path, index_dir: Path) -> BuildStats:
        """Build and persist an index for ``source`` into ``index_dir``."""
        source = Path(source)
        if not source.is_file():
            raise SourceNotFound(source)

        stats = BuildStats(index_dir=Path(index_dir))
        documents = self.read_documents(source, stats)
        LOGGER.info("Processed %d entries, generating embeddings...", len(documents))

        self.embed_documents(documents, stats)
        keywords = KeywordIndex.build(keyword_text(doc, self.title_repeat) for doc in documents)

        metadata = IndexMetadata(
            source=source.name,
            content_field=self.content_field,
            title_field=self.title_field,
            model=self.model_name,
            title_boost=self.title_boost,
            document_count=len(documents),
            dimension=self.embedder.dimension,
            similarity_backend=self.similarity_backend,
        )
        IndexStore(index_dir).save(metadata, documents, keywords)

        stats.indexed = len(documents)
        if stats.embedding_failures:
            LOGGER.warning("%d embeddings fell back to zero vectors", stats.embedding_failures)
        LOGGER.info(
            "Indexed %d documents (%d malformed lines, %d without content)",
            stats.indexed,
            stats.malformed,
            stats.missing_content,
        )
        return stats
