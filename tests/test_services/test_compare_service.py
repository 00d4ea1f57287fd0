"""Tests for the comparison policies."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from reconciler.services.compare_service import (
    CompareMode,
    MismatchReason,
    MismatchRecord,
    check_entry,
    compare,
    reason_from_text,
)
from reconciler.services.datetime_service import ZERO_TIME
from reconciler.services.index_service import DestinationIndex, IndexEntry
from reconciler.services.path_service import path_key
from reconciler.services.source_service import FileDescriptor

T0 = datetime(2024, 1, 1, 10, 0, 0, tzinfo=timezone.utc)
T1 = datetime(2024, 1, 1, 10, 0, 1, tzinfo=timezone.utc)


def _index(path: str, entry: IndexEntry) -> DestinationIndex:
    return DestinationIndex({path_key(path): entry})


class TestCompare:
    def test_missing_file_is_non_existent(self) -> None:
        index = _index("/a/b.txt", IndexEntry(size=10, modified_at=T0))
        record = compare(FileDescriptor("/a/c.txt", 5), index, CompareMode.SIZE_EQ)
        assert record == MismatchRecord("/a/c.txt", MismatchReason.NON_EXISTENT)

    @pytest.mark.parametrize("mode", list(CompareMode))
    def test_missing_file_reason_ignores_mode(self, mode: CompareMode) -> None:
        record = compare(FileDescriptor("/x", 1), DestinationIndex({}), mode)
        assert record is not None
        assert record.reason is MismatchReason.NON_EXISTENT

    def test_match_returns_none(self) -> None:
        index = _index("/a/b.txt", IndexEntry(size=10, modified_at=T0))
        assert compare(FileDescriptor("/a/b.txt", 10), index, CompareMode.SIZE_EQ) is None

    def test_lookup_ignores_case_and_separators(self) -> None:
        index = _index("C:/Data/File.TXT", IndexEntry(size=10, modified_at=T0))
        assert compare(FileDescriptor("c:\\data\\file.txt", 10), index, CompareMode.SIZE_EQ) is None

    def test_record_keeps_source_path(self) -> None:
        index = _index("/a/b.txt", IndexEntry(size=9, modified_at=T0))
        record = compare(FileDescriptor("/A/B.txt", 10), index, CompareMode.SIZE_EQ)
        assert record == MismatchRecord("/A/B.txt", MismatchReason.SIZE_MISMATCH)


class TestSizeEq:
    def test_equal_size_passes(self) -> None:
        entry = IndexEntry(size=100, modified_at=T0)
        assert check_entry(FileDescriptor("/p", 100), entry, CompareMode.SIZE_EQ) is None

    def test_old_size_is_accepted(self) -> None:
        entry = IndexEntry(size=100, modified_at=T0, size_old=90)
        assert check_entry(FileDescriptor("/p", 90), entry, CompareMode.SIZE_EQ) is None

    def test_other_size_mismatches(self) -> None:
        entry = IndexEntry(size=100, modified_at=T0, size_old=90)
        reason = check_entry(FileDescriptor("/p", 95), entry, CompareMode.SIZE_EQ)
        assert reason is MismatchReason.SIZE_MISMATCH

    def test_larger_destination_mismatches(self) -> None:
        entry = IndexEntry(size=101, modified_at=T0)
        reason = check_entry(FileDescriptor("/p", 100), entry, CompareMode.SIZE_EQ)
        assert reason is MismatchReason.SIZE_MISMATCH

    def test_zero_byte_source_matches_absent_old_size(self) -> None:
        entry = IndexEntry(size=100, modified_at=T0)
        assert check_entry(FileDescriptor("/p", 0), entry, CompareMode.SIZE_EQ) is None


class TestSizeGe:
    def test_shrink(self) -> None:
        entry = IndexEntry(size=99, modified_at=T1)
        reason = check_entry(FileDescriptor("/p", 100), entry, CompareMode.SIZE_GE)
        assert reason is MismatchReason.SIZE_SHRINK

    def test_growth_passes(self) -> None:
        entry = IndexEntry(size=150, modified_at=ZERO_TIME)
        assert check_entry(FileDescriptor("/p", 100), entry, CompareMode.SIZE_GE) is None

    def test_equal_passes(self) -> None:
        entry = IndexEntry(size=100, modified_at=T0)
        assert check_entry(FileDescriptor("/p", 100, T1), entry, CompareMode.SIZE_GE) is None


class TestSizeGeModAfter:
    def test_newer_and_larger_passes(self) -> None:
        entry = IndexEntry(size=100, modified_at=T1)
        descriptor = FileDescriptor("/p", 100, T0)
        assert check_entry(descriptor, entry, CompareMode.SIZE_GE_MOD_AFTER) is None

    def test_same_second_is_invalid(self) -> None:
        entry = IndexEntry(size=100, modified_at=T0)
        descriptor = FileDescriptor("/p", 100, T0)
        reason = check_entry(descriptor, entry, CompareMode.SIZE_GE_MOD_AFTER)
        assert reason is MismatchReason.MODIFIED_TIME_INVALID

    def test_sub_second_difference_is_invalid(self) -> None:
        entry = IndexEntry(size=100, modified_at=T0.replace(microsecond=900_000))
        descriptor = FileDescriptor("/p", 100, T0)
        reason = check_entry(descriptor, entry, CompareMode.SIZE_GE_MOD_AFTER)
        assert reason is MismatchReason.MODIFIED_TIME_INVALID

    def test_shrink_reported_before_time(self) -> None:
        entry = IndexEntry(size=99, modified_at=T0)
        descriptor = FileDescriptor("/p", 100, T1)
        reason = check_entry(descriptor, entry, CompareMode.SIZE_GE_MOD_AFTER)
        assert reason is MismatchReason.SIZE_SHRINK

    def test_zero_time_destination_is_invalid(self) -> None:
        entry = IndexEntry(size=100, modified_at=ZERO_TIME)
        descriptor = FileDescriptor("/p", 100, T0)
        reason = check_entry(descriptor, entry, CompareMode.SIZE_GE_MOD_AFTER)
        assert reason is MismatchReason.MODIFIED_TIME_INVALID

    def test_missing_source_time_counts_as_zero(self) -> None:
        entry = IndexEntry(size=100, modified_at=T0)
        assert check_entry(FileDescriptor("/p", 100), entry, CompareMode.SIZE_GE_MOD_AFTER) is None


class TestReasonFromText:
    @pytest.mark.parametrize("reason", list(MismatchReason))
    def test_accepts_tag_and_label(self, reason: MismatchReason) -> None:
        assert reason_from_text(reason.value) is reason
        assert reason_from_text(reason.label) is reason

    def test_unknown_text(self) -> None:
        with pytest.raises(ValueError, match="Unknown mismatch reason"):
            reason_from_text("Gone")

    def test_labels(self) -> None:
        assert MismatchReason.NON_EXISTENT.label == "ファイルなし"
        assert MismatchReason.MODIFIED_TIME_INVALID.label == "ファイル更新日時エラー"
