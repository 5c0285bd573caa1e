"""Utility helpers for working with files."""

from __future__ import annotations

import codecs
from pathlib import Path
from typing import Iterator, Tuple

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def iter_lines(path: Path) -> Iterator[Tuple[int, bytes]]:
    """Yield ``(line_number, raw_line)`` pairs, 1-based, without trailing newlines.

    Lines are returned undecoded so that one bad byte sequence only affects
    its own line. A UTF-8 byte order mark at the start of the file is dropped.
    """
    with Path(path).open("rb") as handle:
        for number, line in enumerate(handle, start=1):
            if number == 1:
                line = line.removeprefix(codecs.BOM_UTF8)
            yield number, line.rstrip(b"\r\n")


def format_file_size(size: int) -> str:
    """Format a byte count as a human readable string."""
    value = float(size)
    unit = 0
    while value >= 1024 and unit < len(_SIZE_UNITS) - 1:
        value /= 1024
        unit += 1
    return f"{value:.2f} {_SIZE_UNITS[unit]}"
