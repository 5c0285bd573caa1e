"""JSONL record decoding and field extraction."""

from __future__ import annotations

import json
from typing import Any, Dict, Tuple

from jsonlsearch.errors import MalformedLine, MissingContentField


def parse_record(line: str | bytes, line_number: int) -> Dict[str, Any]:
    """Decode one JSONL line (raw bytes or text) into a mapping."""
    if isinstance(line, bytes):
        try:
            line = line.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedLine(line_number, "invalid UTF-8") from exc
    if not line.strip():
        raise MalformedLine(line_number, "empty line")
    try:
        record = json.loads(line)
    except json.JSONDecodeError as exc:
        raise MalformedLine(line_number, f"invalid JSON ({exc.msg})") from exc
    if not isinstance(record, dict):
        raise MalformedLine(line_number, f"expected a JSON object, got {type(record).__name__}")
    return record


def _as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    return str(value)


def extract_fields(
    record: Dict[str, Any],
    content_field: str,
    title_field: str,
    *,
    line_number: int | None = None,
) -> Tuple[str, str]:
    """Return ``(content, title)`` from ``record``.

    Raises:
        MissingContentField: if the content value is absent or empty.
    """
    content = _as_text(record.get(content_field))
    if not content:
        raise MissingContentField(content_field, line_number)
    return content, _as_text(record.get(title_field))
