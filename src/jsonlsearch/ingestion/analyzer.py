"""Field statistics for a JSONL database."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterable, Set

from jsonlsearch.errors import MalformedLine, SourceNotFound
from jsonlsearch.ingestion.jsonl_loader import parse_record
from jsonlsearch.utils.files import format_file_size, iter_lines

LOGGER = logging.getLogger(__name__)

MAX_TRACKED_VALUES = 1000
MAX_TRACKED_LENGTH = 100


@dataclass(slots=True)
class FieldStats:
    type: str
    count: int = 0
    total_length: int = 0
    values: Set[str] | None = field(default_factory=set)

    def coverage(self, total_entries: int) -> int:
        if not total_entries:
            return 0
        return round(self.count / total_entries * 100)

    @property
    def average_length(self) -> int:
        if not self.count:
            return 0
        return round(self.total_length / self.count)

    @property
    def unique_values(self) -> int | None:
        return len(self.values) if self.values is not None else None


@dataclass(slots=True)
class DatabaseStats:
    total_entries: int
    file_size: str
    fields: Dict[str, FieldStats]
    malformed_lines: int = 0
    sampled_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())


def value_type(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if isinstance(value, list):
        if not value:
            return "empty_array"
        return f"array_of_{value_type(value[0])}"
    return "object"


def value_length(value: Any) -> int:
    if value is None:
        return 0
    if isinstance(value, (list, dict, str)):
        return len(value)
    return len(str(value))


def _track(stats: FieldStats, value: Any) -> None:
    if stats.values is None or not isinstance(value, str) or len(value) >= MAX_TRACKED_LENGTH:
        return
    if len(stats.values) < MAX_TRACKED_VALUES:
        stats.values.add(value)
    else:
        # Too many distinct values to be useful.
        stats.values = None


def analyze_database(
    path: Path,
    *,
    fields: Iterable[str] | None = None,
    sample_size: int | None = None,
) -> DatabaseStats:
    """Scan ``path`` and collect per-field type, coverage and length statistics."""
    path = Path(path)
    if not path.is_file():
        raise SourceNotFound(path)

    wanted = set(fields) if fields else None
    stats = DatabaseStats(total_entries=0, file_size=format_file_size(path.stat().st_size), fields={})

    for line_number, line in iter_lines(path):
        if not line.strip():
            continue
        try:
            record = parse_record(line, line_number)
        except MalformedLine as exc:
            LOGGER.error("Error parsing %s", exc)
            stats.malformed_lines += 1
            continue

        stats.total_entries += 1
        for name, value in record.items():
            if wanted is not None and name not in wanted:
                continue
            current = value_type(value)
            field_stats = stats.fields.get(name)
            if field_stats is None:
                field_stats = stats.fields[name] = FieldStats(type=current)
            elif field_stats.type != current:
                field_stats.type = "mixed"
            field_stats.count += 1
            field_stats.total_length += value_length(value)
            _track(field_stats, value)

        if sample_size is not None and stats.total_entries >= sample_size:
            break

    return stats
