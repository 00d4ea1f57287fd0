"""Comparison policies: decide whether a source file is correctly present."""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING

from reconciler.services.datetime_service import epoch_seconds

if TYPE_CHECKING:
    from reconciler.services.index_service import DestinationIndex, IndexEntry
    from reconciler.services.source_service import FileDescriptor


class CompareMode(StrEnum):
    """How a destination entry must relate to its source file."""

    SIZE_EQ = "size-eq"
    SIZE_GE = "size-ge"
    SIZE_GE_MOD_AFTER = "size-ge-mod-after"


class MismatchReason(StrEnum):
    """Why a source file failed reconciliation."""

    NON_EXISTENT = "NonExistent"
    SIZE_MISMATCH = "SizeMismatch"
    SIZE_SHRINK = "SizeShrink"
    MODIFIED_TIME_INVALID = "ModifiedTimeInvalid"

    @property
    def label(self) -> str:
        """Localized label written to reconciliation reports."""
        return _REASON_LABELS[self]


_REASON_LABELS = {
    MismatchReason.NON_EXISTENT: "ファイルなし",
    MismatchReason.SIZE_MISMATCH: "ファイルサイズ不一致",
    MismatchReason.SIZE_SHRINK: "ファイルサイズ縮小",
    MismatchReason.MODIFIED_TIME_INVALID: "ファイル更新日時エラー",
}

_REASONS_BY_TEXT = {
    **{reason.value: reason for reason in MismatchReason},
    **{label: reason for reason, label in _REASON_LABELS.items()},
}


def reason_from_text(text: str) -> MismatchReason:
    """Accept either a tag (``SizeShrink``) or its localized label."""
    try:
        return _REASONS_BY_TEXT[text]
    except KeyError:
        msg = f"Unknown mismatch reason: {text!r}"
        raise ValueError(msg) from None


@dataclass(frozen=True, slots=True)
class MismatchRecord:
    """A source file that failed reconciliation."""

    path: str
    reason: MismatchReason


def check_entry(
    descriptor: FileDescriptor, entry: IndexEntry, mode: CompareMode
) -> MismatchReason | None:
    """Apply ``mode`` to an indexed file. ``None`` means the file matches."""
    if mode == CompareMode.SIZE_EQ:
        # The old snapshot size is accepted too.
        if descriptor.size not in (entry.size, entry.size_old):
            return MismatchReason.SIZE_MISMATCH
        return None

    if entry.size < descriptor.size:
        return MismatchReason.SIZE_SHRINK
    if mode == CompareMode.SIZE_GE:
        return None

    # The destination copy must be strictly newer than the source.
    if epoch_seconds(entry.modified_at) <= epoch_seconds(descriptor.modified_at):
        return MismatchReason.MODIFIED_TIME_INVALID
    return None


def compare(
    descriptor: FileDescriptor, index: DestinationIndex, mode: CompareMode
) -> MismatchRecord | None:
    """Evaluate one source file against the destination index."""
    entry = index.lookup(descriptor.path)
    if entry is None:
        return MismatchRecord(descriptor.path, MismatchReason.NON_EXISTENT)
    reason = check_entry(descriptor, entry, mode)
    if reason is None:
        return None
    return MismatchRecord(descriptor.path, reason)
