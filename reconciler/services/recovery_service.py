"""Recovery scripts: re-upload commands for files missing from cloud storage."""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from reconciler.exceptions import SnapshotFormatError
from reconciler.filesystem.snapshot_reader import (
    DEFAULT_ENCODING,
    iter_lines,
    open_inventory,
    open_output,
    split_fields,
)
from reconciler.services.compare_service import reason_from_text

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator
    from pathlib import Path

    from reconciler.services.compare_service import MismatchReason

logger = logging.getLogger(__name__)

DOCUMENT_LIBRARY = "Shared%20Documents"


@dataclass
class RecoveryStats:
    read: int = 0
    written: int = 0
    reasons: Counter[MismatchReason] = field(default_factory=Counter)


def _with_leading_slash(value: str) -> str:
    return value if value.startswith("/") else "/" + value


def _escape(value: str) -> str:
    """Escape ``$`` for PowerShell double-quoted strings."""
    return value.replace("$", "`$")


def upload_folder(path: str, trim: str = "", upload_root: str = "") -> str:
    """Derive the library folder for ``path``.

    The folder is the text from the first ``/`` up to the last ``/``; ``trim``
    is removed from its start and ``upload_root`` is prepended.
    """
    first, last = path.find("/"), path.rfind("/")
    if first < 0:
        msg = f"Path has no folder component: {path!r}"
        raise ValueError(msg)
    folder = path[first:last]
    if trim:
        folder = folder.removeprefix(_with_leading_slash(trim))
    if upload_root:
        folder = _with_leading_slash(upload_root) + folder
    return folder


def format_upload_command(path: str, folder: str) -> str:
    return f'Add-PnPFile -Path "{_escape(path)}" -Folder "{DOCUMENT_LIBRARY}{_escape(folder)}"'


def iter_recovery_commands(
    lines: Iterable[str],
    trim: str = "",
    upload_root: str = "",
    stats: RecoveryStats | None = None,
) -> Iterator[str]:
    """Turn ``<reason>,<path>`` report lines into upload commands.

    The reason may be a tag or its localized label; anything else is a
    ``SnapshotFormatError``.
    """
    stats = stats if stats is not None else RecoveryStats()
    for line_number, text in iter_lines(lines):
        stats.read += 1
        if not text:
            continue
        reason, path = split_fields(text, 2, line_number)
        try:
            mismatch = reason_from_text(reason)
            folder = upload_folder(path, trim, upload_root)
        except ValueError as exc:
            raise SnapshotFormatError(str(exc), line_number=line_number) from exc
        yield format_upload_command(path, folder)
        stats.written += 1
        stats.reasons[mismatch] += 1


def write_recovery_script(
    report: Path,
    output: Path,
    trim: str = "",
    upload_root: str = "",
    encoding: str = DEFAULT_ENCODING,
) -> RecoveryStats:
    """Write one upload command per line of a reconciliation report."""
    stats = RecoveryStats()
    with open_inventory(report, encoding) as source, open_output(output) as handle:
        for command in iter_recovery_commands(source, trim, upload_root, stats):
            handle.write(command + "\n")
    logger.info("Wrote %d recovery commands from %d report lines", stats.written, stats.read)
    return stats
