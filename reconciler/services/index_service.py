"""Destination index: lookup of files present in the target storage."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, replace
from types import MappingProxyType
from typing import TYPE_CHECKING

from reconciler.filesystem.snapshot_reader import (
    DEFAULT_ENCODING,
    iter_lines,
    open_inventory,
    split_fields,
)
from reconciler.schemas.rows import FOLDER_FLAG, FOLDER_KIND, CloudRow, SnapshotRow
from reconciler.services.datetime_service import ZERO_TIME
from reconciler.services.path_service import normalize_prefix, path_key

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime
    from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IndexEntry:
    """Size and modification time of one destination file.

    ``size_old`` / ``modified_at_old`` come from the optional "old" snapshot;
    ``0`` / ``ZERO_TIME`` mean absent.
    """

    size: int
    modified_at: datetime
    size_old: int = 0
    modified_at_old: datetime = ZERO_TIME


@dataclass(frozen=True, slots=True)
class IndexStats:
    """Counters of one pass over a destination snapshot."""

    read: int = 0
    added: int = 0
    updated: int = 0
    skipped: int = 0


class DestinationIndex(Mapping[str, IndexEntry]):
    """Read-only mapping of normalized path key -> ``IndexEntry``.

    Shared by all comparison workers without locking; nothing can write to it
    once it exists.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Mapping[str, IndexEntry]) -> None:
        self._entries = MappingProxyType(dict(entries))

    def __getitem__(self, key: str) -> IndexEntry:
        return self._entries[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def lookup(self, path: str) -> IndexEntry | None:
        """Find the entry for ``path`` regardless of separators, quotes, and case."""
        return self._entries.get(path_key(path))


class IndexBuilder:
    """Mutable staging area for a ``DestinationIndex``."""

    def __init__(self) -> None:
        self._entries: dict[str, IndexEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, path: str, size: int, modified_at: datetime) -> None:
        self._entries[path_key(path)] = IndexEntry(size=size, modified_at=modified_at)

    def update_old(self, path: str, size: int, modified_at: datetime) -> bool:
        """Record old-snapshot values on an existing entry.

        Returns ``False`` (and changes nothing) when the path is not indexed.
        """
        key = path_key(path)
        entry = self._entries.get(key)
        if entry is None:
            return False
        self._entries[key] = replace(entry, size_old=size, modified_at_old=modified_at)
        return True

    def freeze(self) -> DestinationIndex:
        return DestinationIndex(self._entries)


def _iter_snapshot_rows(
    lines: Iterable[str], counters: dict[str, int]
) -> Iterator[SnapshotRow]:
    """Yield the file rows of a 7-field snapshot, counting blanks and folders as skipped."""
    for line_number, text in iter_lines(lines):
        counters["read"] += 1
        if not text:
            counters["skipped"] += 1
            continue
        fields = split_fields(text, SnapshotRow.FIELD_COUNT, line_number)
        if fields[4] == FOLDER_FLAG:
            counters["skipped"] += 1
            continue
        yield SnapshotRow.from_fields(fields, line_number)


def load_snapshot(builder: IndexBuilder, lines: Iterable[str]) -> IndexStats:
    """Index every file row of a 7-field destination snapshot."""
    counters = {"read": 0, "skipped": 0}
    added = 0
    for row in _iter_snapshot_rows(lines, counters):
        builder.add(row.path, row.size, row.modified_at)
        added += 1

    stats = IndexStats(read=counters["read"], added=added, skipped=counters["skipped"])
    logger.info(
        "Loaded destination snapshot: %d read, %d indexed, %d skipped",
        stats.read,
        stats.added,
        stats.skipped,
    )
    return stats


def merge_old_snapshot(builder: IndexBuilder, lines: Iterable[str]) -> IndexStats:
    """Attach old sizes and times from a second 7-field snapshot.

    Only paths already in the builder are touched; unknown paths are ignored.
    """
    counters = {"read": 0, "skipped": 0}
    updated = 0
    for row in _iter_snapshot_rows(lines, counters):
        if builder.update_old(row.path, row.size, row.modified_at):
            updated += 1

    stats = IndexStats(read=counters["read"], updated=updated, skipped=counters["skipped"])
    logger.info(
        "Merged old destination snapshot: %d read, %d updated, %d skipped",
        stats.read,
        stats.updated,
        stats.skipped,
    )
    return stats


def build_destination_index(
    primary: Iterable[str], old: Iterable[str] | None = None
) -> DestinationIndex:
    """Build the index from a 7-field snapshot and an optional old snapshot.

    Raises ``SnapshotFormatError`` on the first malformed row of either input.
    """
    builder = IndexBuilder()
    load_snapshot(builder, primary)
    if old is not None:
        merge_old_snapshot(builder, old)
    return builder.freeze()


def load_cloud_listing(
    builder: IndexBuilder, lines: Iterable[str], path_prefix: str, strip_substring: str = ""
) -> IndexStats:
    """Index every file row of a 6-field cloud listing.

    The first line is a header. Each path is rebuilt as
    ``path_prefix + parent/name`` with ``strip_substring`` removed from the
    relative part.
    """
    prefix = normalize_prefix(path_prefix)
    read = added = skipped = 0
    for line_number, text in iter_lines(lines):
        read += 1
        if line_number == 1 or not text:
            skipped += 1
            continue
        fields = split_fields(text, CloudRow.FIELD_COUNT, line_number)
        if fields[4].replace('"', "") == FOLDER_KIND:
            skipped += 1
            continue
        row = CloudRow.from_fields(fields, line_number)
        relative = row.relative_path
        if strip_substring:
            relative = relative.replace(strip_substring, "")
        builder.add(prefix + relative, row.size, row.modified_at)
        added += 1

    stats = IndexStats(read=read, added=added, skipped=skipped)
    logger.info(
        "Loaded cloud listing: %d read, %d indexed, %d skipped",
        stats.read,
        stats.added,
        stats.skipped,
    )
    return stats


def build_cloud_index(
    lines: Iterable[str], path_prefix: str, strip_substring: str = ""
) -> DestinationIndex:
    builder = IndexBuilder()
    load_cloud_listing(builder, lines, path_prefix, strip_substring)
    return builder.freeze()


def build_destination_index_from_path(
    primary: Path, old: Path | None = None, encoding: str = DEFAULT_ENCODING
) -> DestinationIndex:
    """Open the snapshot files and build the destination index."""
    builder = IndexBuilder()
    with open_inventory(primary, encoding) as handle:
        load_snapshot(builder, handle)
    if old is not None:
        with open_inventory(old, encoding) as handle:
            merge_old_snapshot(builder, handle)
    return builder.freeze()


def build_cloud_index_from_path(
    path: Path, path_prefix: str, strip_substring: str = "", encoding: str = DEFAULT_ENCODING
) -> DestinationIndex:
    with open_inventory(path, encoding) as handle:
        return build_cloud_index(handle, path_prefix, strip_substring)
