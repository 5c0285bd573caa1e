"""Tests for file utilities."""

from __future__ import annotations

import codecs
from pathlib import Path

from jsonlsearch.utils.files import format_file_size, iter_lines


class TestIterLines:
    """Test iter_lines function."""

    def test_numbers_from_one(self, tmp_path: Path) -> None:
        path = tmp_path / "data.jsonl"
        path.write_text("first\nsecond\n", encoding="utf-8")

        assert list(iter_lines(path)) == [(1, b"first"), (2, b"second")]

    def test_strips_line_endings_only(self, tmp_path: Path) -> None:
        """Windows line endings go, other whitespace stays."""
        path = tmp_path / "data.jsonl"
        path.write_bytes(b"  padded  \r\nlast")

        assert list(iter_lines(path)) == [(1, b"  padded  "), (2, b"last")]

    def test_blank_lines_are_kept(self, tmp_path: Path) -> None:
        path = tmp_path / "data.jsonl"
        path.write_text("a\n\nb\n", encoding="utf-8")

        assert [number for number, _ in iter_lines(path)] == [1, 2, 3]

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.jsonl"
        path.write_text("", encoding="utf-8")

        assert list(iter_lines(path)) == []

    def test_invalid_utf8_does_not_raise(self, tmp_path: Path) -> None:
        """Undecodable bytes are passed through for the caller to reject."""
        path = tmp_path / "data.jsonl"
        path.write_bytes(b"good\nbad \xff\xfe\nalso good\n")

        assert list(iter_lines(path)) == [(1, b"good"), (2, b"bad \xff\xfe"), (3, b"also good")]

    def test_byte_order_mark_dropped(self, tmp_path: Path) -> None:
        path = tmp_path / "data.jsonl"
        path.write_bytes(codecs.BOM_UTF8 + b'{"a": 1}\n' + codecs.BOM_UTF8 + b"x\n")

        lines = list(iter_lines(path))

        assert lines[0] == (1, b'{"a": 1}')
        # Only a mark at the very start of the file is a byte order mark.
        assert lines[1] == (2, codecs.BOM_UTF8 + b"x")


class TestFormatFileSize:
    """Test format_file_size function."""

    def test_bytes(self) -> None:
        assert format_file_size(0) == "0.00 B"
        assert format_file_size(512) == "512.00 B"

    def test_kilobytes(self) -> None:
        assert format_file_size(1536) == "1.50 KB"

    def test_megabytes(self) -> None:
        assert format_file_size(5 * 1024 * 1024) == "5.00 MB"

    def test_caps_at_largest_unit(self) -> None:
        assert format_file_size(2048 * 1024**4) == "2048.00 TB"
