"""Synthetic temp storage snapshots built from a project source list.

Each project row becomes a 7-field file row with Windows separators. When a
destination index is given, the row borrows that file's recorded timestamp so
the result can stand in for a real temp storage listing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from reconciler.filesystem.snapshot_reader import (
    DEFAULT_ENCODING,
    iter_lines,
    open_inventory,
    open_output,
    split_fields,
)
from reconciler.schemas.rows import ProjectRow
from reconciler.services.datetime_service import format_snapshot_date
from reconciler.services.index_service import build_destination_index_from_path
from reconciler.services.path_service import normalize_path, normalize_prefix

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from datetime import datetime
    from pathlib import Path

    from reconciler.services.index_service import DestinationIndex, IndexEntry

logger = logging.getLogger(__name__)

PLACEHOLDER_DATE = "2022/3/5"
PLACEHOLDER_TIME = "15:04:05"


@dataclass
class DummyListStats:
    read: int = 0
    written: int = 0
    matched: int = 0


def format_dummy_time(dt: datetime) -> str:
    """``H:MM:SS`` with no zero padding on the hour."""
    return f"{dt.hour}:{dt.minute:02d}:{dt.second:02d}"


def dummy_timestamp(entry: IndexEntry | None) -> tuple[str, str]:
    """Date and time columns for a synthetic row.

    The old snapshot's time wins when that snapshot recorded the file;
    unknown files get a fixed placeholder.
    """
    if entry is None:
        return PLACEHOLDER_DATE, PLACEHOLDER_TIME
    modified = entry.modified_at_old if entry.size_old != 0 else entry.modified_at
    return format_snapshot_date(modified), format_dummy_time(modified)


def format_dummy_row(path: str, size: int, entry: IndexEntry | None = None) -> str:
    """Render a file row; ``path`` uses ``/`` and is written with ``\\``."""
    name = path.rsplit("/", 1)[-1]
    extension = name.rpartition(".")[2] if "." in name else ""
    date, time = dummy_timestamp(entry)
    windows_path = path.replace("/", "\\")
    return f'"{name}","{windows_path}","{extension}",{size},FALSE,{date},{time}'


def iter_dummy_rows(
    lines: Iterable[str],
    base_dir: str,
    index: DestinationIndex | None = None,
    stats: DummyListStats | None = None,
) -> Iterator[str]:
    """Turn 5-field project rows into snapshot rows under ``base_dir``."""
    stats = stats if stats is not None else DummyListStats()
    prefix = normalize_prefix(base_dir)
    for line_number, text in iter_lines(lines):
        stats.read += 1
        if not text:
            continue
        fields = split_fields(text, ProjectRow.FIELD_COUNT, line_number)
        row = ProjectRow.from_fields(fields, line_number)
        path = prefix + normalize_path(row.relative_path)
        entry = index.lookup(path) if index is not None else None
        if entry is not None:
            stats.matched += 1
        yield format_dummy_row(path, row.size, entry)
        stats.written += 1


def write_dummy_list(
    source: Path,
    output: Path,
    base_dir: str,
    dest: Path | None = None,
    dest_old: Path | None = None,
    encoding: str = DEFAULT_ENCODING,
) -> DummyListStats:
    """Write a CRLF snapshot synthesized from the project list at ``source``."""
    index = None
    if dest is not None:
        index = build_destination_index_from_path(dest, dest_old, encoding)

    stats = DummyListStats()
    with open_inventory(source, encoding) as lines, open_output(output) as handle:
        for row in iter_dummy_rows(lines, base_dir, index, stats):
            handle.write(row + "\r\n")
    logger.info(
        "Wrote %d dummy snapshot rows from %d source lines (%d timestamps from destination)",
        stats.written,
        stats.read,
        stats.matched,
    )
    return stats
