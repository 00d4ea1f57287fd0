"""Property-based tests for the comparison policies."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from reconciler.services.compare_service import (
    CompareMode,
    MismatchReason,
    check_entry,
    compare,
)
from reconciler.services.index_service import DestinationIndex, IndexEntry
from reconciler.services.path_service import path_key
from reconciler.services.source_service import FileDescriptor

PROPERTY_SETTINGS = settings(
    max_examples=200,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow],
)

_SIZES = st.integers(min_value=0, max_value=10**12)
_TIMES = st.datetimes(
    min_value=datetime(2000, 1, 1),
    max_value=datetime(2100, 1, 1),
    timezones=st.just(timezone.utc),
)
_SEGMENT = st.text(
    alphabet=st.characters(blacklist_categories=("Cs",), blacklist_characters='/\\",\r\n'),
    min_size=1,
    max_size=8,
)
_PATHS = st.lists(_SEGMENT, min_size=1, max_size=4).map(lambda parts: "/" + "/".join(parts))


class TestComparisonProperties:
    @PROPERTY_SETTINGS
    @given(path=_PATHS, size=_SIZES, mode=st.sampled_from(list(CompareMode)))
    def test_absent_path_is_non_existent_for_every_mode(
        self, path: str, size: int, mode: CompareMode
    ) -> None:
        record = compare(FileDescriptor(path, size), DestinationIndex({}), mode)
        assert record is not None
        assert record.reason is MismatchReason.NON_EXISTENT
        assert record.path == path

    @PROPERTY_SETTINGS
    @given(source=_SIZES, dest=_SIZES, old=_SIZES, time=_TIMES)
    def test_size_eq_accepts_exactly_current_or_old_size(
        self, source: int, dest: int, old: int, time: datetime
    ) -> None:
        entry = IndexEntry(size=dest, modified_at=time, size_old=old)
        reason = check_entry(FileDescriptor("/p", source), entry, CompareMode.SIZE_EQ)
        assert (reason is None) == (source in (dest, old))

    @PROPERTY_SETTINGS
    @given(source=_SIZES, dest=_SIZES, time=_TIMES)
    def test_size_ge_ignores_time(self, source: int, dest: int, time: datetime) -> None:
        entry = IndexEntry(size=dest, modified_at=time)
        reason = check_entry(FileDescriptor("/p", source, time), entry, CompareMode.SIZE_GE)
        expected = None if dest >= source else MismatchReason.SIZE_SHRINK
        assert reason is expected

    @PROPERTY_SETTINGS
    @given(size=_SIZES, time=_TIMES, delta=st.integers(min_value=1, max_value=10**6))
    def test_mod_after_needs_a_later_second(self, size: int, time: datetime, delta: int) -> None:
        source = FileDescriptor("/p", size, time.replace(microsecond=0))
        newer = IndexEntry(size=size, modified_at=source.modified_at + timedelta(seconds=delta))
        same = IndexEntry(size=size, modified_at=time.replace(microsecond=999_999))
        assert check_entry(source, newer, CompareMode.SIZE_GE_MOD_AFTER) is None
        assert (
            check_entry(source, same, CompareMode.SIZE_GE_MOD_AFTER)
            is MismatchReason.MODIFIED_TIME_INVALID
        )

    @PROPERTY_SETTINGS
    @given(path=_PATHS, size=_SIZES)
    def test_indexed_path_is_never_non_existent(self, path: str, size: int) -> None:
        entry = IndexEntry(size=size + 1, modified_at=datetime(2000, 1, 1, tzinfo=timezone.utc))
        index = DestinationIndex({path_key(path): entry})
        for mode in CompareMode:
            record = compare(FileDescriptor(path, size), index, mode)
            assert record is None or record.reason is not MismatchReason.NON_EXISTENT
