"""Line-level reading of inventory files.

Inventory files are plain comma-separated lines without CSV escaping: a field
never contains a comma, and quotes are decoration to be removed.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, TextIO

from reconciler.exceptions import InputFileError, SnapshotFormatError

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

logger = logging.getLogger(__name__)

BOM = "\ufeff"
DEFAULT_ENCODING = "utf-8-sig"


def iter_lines(lines: Iterable[str]) -> Iterator[tuple[int, str]]:
    """Yield ``(line_number, text)`` with line endings removed.

    A byte-order mark at the very start of the stream is discarded. Line
    numbers are 1-based and count every physical line.
    """
    iterator = iter(lines)
    line_number = 0
    while True:
        try:
            raw = next(iterator)
        except StopIteration:
            return
        except UnicodeDecodeError as exc:
            msg = f"Cannot decode inventory line {line_number + 1}: {exc.reason}"
            raise InputFileError(msg) from exc
        line_number += 1
        text = raw.rstrip("\r\n")
        if line_number == 1 and text.startswith(BOM):
            text = text[len(BOM) :]
        yield line_number, text


def split_fields(text: str, expected: int, line_number: int) -> list[str]:
    """Split a line on commas and check the field count.

    Raises ``SnapshotFormatError`` when the count differs from ``expected``.
    """
    fields = text.split(",")
    if len(fields) != expected:
        msg = f"malformed inventory row: expected {expected} fields, got {len(fields)}"
        raise SnapshotFormatError(
            msg, line_number=line_number, expected=expected, actual=len(fields)
        )
    return fields


@contextmanager
def open_inventory(path: Path, encoding: str = DEFAULT_ENCODING) -> Iterator[TextIO]:
    """Open an inventory file for reading, raising ``InputFileError`` on failure."""
    try:
        handle = path.open(encoding=encoding, newline="")
    except OSError as exc:
        msg = f"Cannot open inventory file {path}: {exc.strerror or exc}"
        raise InputFileError(msg) from exc
    logger.debug("Opened inventory file %s (%s)", path, encoding)
    with handle:
        yield handle


def open_output(path: Path) -> TextIO:
    """Create or truncate an output file, raising ``InputFileError`` on failure."""
    try:
        return path.open("w", encoding="utf-8", newline="")
    except OSError as exc:
        msg = f"Cannot open output file {path}: {exc.strerror or exc}"
        raise InputFileError(msg) from exc
