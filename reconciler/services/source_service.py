"""Source inventory streaming: the files expected to exist in the destination."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from reconciler.filesystem.snapshot_reader import iter_lines, split_fields
from reconciler.schemas.rows import FOLDER_FLAG, ProjectRow, SnapshotRow
from reconciler.services.path_service import normalize_path, normalize_prefix

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from datetime import datetime

logger = logging.getLogger(__name__)

LOCK_FILE_PREFIX = "~$"
LOCK_FILE_MAX_SIZE = 200
THUMBNAIL_CACHE_NAME = "Thumbs.db"


@dataclass(frozen=True, slots=True)
class FileDescriptor:
    """A file expected at ``path`` with ``size`` bytes."""

    path: str
    size: int
    modified_at: datetime | None = None


@dataclass
class SourceStats:
    """Counters of one pass over a source inventory."""

    read: int = 0
    emitted: int = 0
    skipped_blank: int = 0
    skipped_ignored: int = 0
    skipped_folder: int = 0
    skipped_invalid: int = 0
    finished: bool = False

    @property
    def skipped(self) -> int:
        return (
            self.skipped_blank + self.skipped_ignored + self.skipped_folder + self.skipped_invalid
        )


def is_transient_file(name: str, size: int) -> bool:
    """Office lock files under 200 bytes and ``Thumbs.db`` are never reconciled."""
    if name == THUMBNAIL_CACHE_NAME:
        return True
    return name.startswith(LOCK_FILE_PREFIX) and size < LOCK_FILE_MAX_SIZE


def iter_project_inventory(
    lines: Iterable[str],
    base_dir: str,
    ignore: str = "",
    stats: SourceStats | None = None,
) -> Iterator[FileDescriptor]:
    """Stream descriptors from a 5-field project list.

    Paths are ``base_dir`` + ``project/category/subcategory/segment``. Rows
    whose path segment contains ``ignore`` are dropped. Raises
    ``SnapshotFormatError`` on a malformed row.
    """
    stats = stats if stats is not None else SourceStats()
    prefix = normalize_prefix(base_dir)
    for line_number, text in iter_lines(lines):
        stats.read += 1
        if not text:
            stats.skipped_blank += 1
            continue
        fields = split_fields(text, ProjectRow.FIELD_COUNT, line_number)
        if ignore and ignore in fields[3]:
            stats.skipped_ignored += 1
            continue
        row = ProjectRow.from_fields(fields, line_number)
        yield FileDescriptor(path=prefix + normalize_path(row.relative_path), size=row.size)
        stats.emitted += 1

    stats.finished = True
    logger.info(
        "Read source project list: %d read, %d ignored, %d blank, %d to check",
        stats.read,
        stats.skipped_ignored,
        stats.skipped_blank,
        stats.emitted,
    )


def iter_snapshot_inventory(
    lines: Iterable[str],
    ignore: str = "",
    stats: SourceStats | None = None,
) -> Iterator[FileDescriptor]:
    """Stream descriptors from a 7-field snapshot used as the source side.

    Folder rows, transient files, and rows whose full path contains
    ``ignore`` are dropped.
    """
    stats = stats if stats is not None else SourceStats()
    for line_number, text in iter_lines(lines):
        stats.read += 1
        if not text:
            stats.skipped_blank += 1
            continue
        fields = split_fields(text, SnapshotRow.FIELD_COUNT, line_number)
        if fields[4] == FOLDER_FLAG:
            stats.skipped_folder += 1
            continue
        row = SnapshotRow.from_fields(fields, line_number)
        if is_transient_file(row.name, row.size):
            stats.skipped_invalid += 1
            continue
        if ignore and ignore in fields[1]:
            stats.skipped_ignored += 1
            continue
        yield FileDescriptor(
            path=normalize_path(row.path), size=row.size, modified_at=row.modified_at
        )
        stats.emitted += 1

    stats.finished = True
    logger.info(
        "Read source snapshot: %d read, %d folders, %d ignored, %d transient, %d to check",
        stats.read,
        stats.skipped_folder,
        stats.skipped_ignored,
        stats.skipped_invalid,
        stats.emitted,
    )
