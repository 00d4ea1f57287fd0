"""Directory listing: write a 7-field snapshot of a directory tree."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING

from reconciler.exceptions import InputFileError
from reconciler.filesystem.snapshot_reader import open_output
from reconciler.services.datetime_service import format_snapshot_date, format_snapshot_time

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ListingEntry:
    """One filesystem entry below the listed directory."""

    name: str
    path: str
    size: int
    is_dir: bool
    modified_at: datetime


def _raise_walk_error(exc: OSError) -> None:
    msg = f"Cannot list {exc.filename}: {exc.strerror or exc}"
    raise InputFileError(msg) from exc


def iter_listing(base_dir: Path) -> Iterator[ListingEntry]:
    """Walk ``base_dir`` recursively, yielding every entry except the root itself.

    Directories are yielded before their contents. Symlinks are not followed.
    An unreadable directory or entry raises ``InputFileError`` rather than
    leaving a gap in the listing.
    """
    if not base_dir.is_dir():
        msg = f"Cannot list {base_dir}: not a directory"
        raise InputFileError(msg)
    for root, dirs, files in os.walk(base_dir, onerror=_raise_walk_error):
        dirs.sort()
        for name in [*dirs, *sorted(files)]:
            full = Path(root) / name
            try:
                stat = full.lstat()
            except OSError as exc:
                msg = f"Cannot stat {full}: {exc.strerror or exc}"
                raise InputFileError(msg) from exc
            yield ListingEntry(
                name=name,
                path=str(full),
                size=stat.st_size,
                is_dir=name in dirs,
                modified_at=datetime.fromtimestamp(stat.st_mtime),
            )


def format_listing_row(entry: ListingEntry) -> str:
    """Render an entry as a snapshot row. The extension column is left empty."""
    folder_flag = "TRUE" if entry.is_dir else "FALSE"
    return (
        f'"{entry.name}","{entry.path}","",{entry.size},{folder_flag},'
        f"{format_snapshot_date(entry.modified_at)},{format_snapshot_time(entry.modified_at)}"
    )


def write_listing(base_dir: Path, output: Path, progress_every: int = 0) -> int:
    """Write the snapshot of ``base_dir`` to ``output`` and return the row count."""
    count = 0
    with open_output(output) as handle:
        for entry in iter_listing(base_dir):
            handle.write(format_listing_row(entry) + "\n")
            count += 1
            if progress_every and count % progress_every == 0:
                logger.info("%d entries listed...", count)
    logger.info("Listed %d entries under %s", count, base_dir)
    return count
