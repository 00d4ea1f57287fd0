"""Reconciliation runs: wire index, source stream, and pipeline from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from reconciler.filesystem.snapshot_reader import open_inventory, open_output
from reconciler.services.compare_service import CompareMode
from reconciler.services.index_service import (
    build_cloud_index_from_path,
    build_destination_index_from_path,
)
from reconciler.services.pipeline_service import ReconcileSummary, run_pipeline
from reconciler.services.source_service import (
    SourceStats,
    iter_project_inventory,
    iter_snapshot_inventory,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator
    from typing import TextIO

    from reconciler.config import Settings
    from reconciler.services.index_service import DestinationIndex
    from reconciler.services.source_service import FileDescriptor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReconcileReport:
    """Outcome of one reconciliation run."""

    mode: CompareMode
    indexed: int
    source: SourceStats
    summary: ReconcileSummary


def _run(
    settings: Settings,
    index: DestinationIndex,
    mode: CompareMode,
    make_source: Callable[[Iterable[str], SourceStats], Iterator[FileDescriptor]],
) -> ReconcileReport:
    stats = SourceStats()
    output: TextIO = open_output(settings.required_path("output_path"))
    with output, open_inventory(
        settings.required_path("source_path"), settings.input_encoding
    ) as source:
        summary = run_pipeline(
            make_source(source, stats),
            index,
            mode,
            output,
            concurrency=settings.worker_count(),
            capacity=settings.queue_capacity,
            label_style=settings.label_style,
        )
    return ReconcileReport(mode=mode, indexed=len(index), source=stats, summary=summary)


def check_temp(settings: Settings) -> ReconcileReport:
    """Check a project source list against a temp storage snapshot.

    Default mode is ``size-eq``; an optional old snapshot supplies the
    alternative sizes that mode accepts.
    """
    settings.require("base_dir", "source_path", "dest_path", "output_path")
    base_dir = settings.base_dir or ""
    mode = settings.mode_or(CompareMode.SIZE_EQ)

    index = build_destination_index_from_path(
        settings.required_path("dest_path"), settings.dest_old_path, settings.input_encoding
    )
    return _run(
        settings,
        index,
        mode,
        lambda lines, stats: iter_project_inventory(lines, base_dir, settings.ignore, stats),
    )


def check_spo(settings: Settings) -> ReconcileReport:
    """Check a temp storage snapshot against a cloud storage listing.

    Default mode is ``size-ge-mod-after``: the cloud copy must be at least as
    large and strictly newer than the temp storage file.
    """
    settings.require("base_dir", "cloud_dir", "source_path", "dest_path", "output_path")
    base_dir = settings.base_dir or ""
    mode = settings.mode_or(CompareMode.SIZE_GE_MOD_AFTER)

    index = build_cloud_index_from_path(
        settings.required_path("dest_path"), base_dir, settings.cloud_dir, settings.input_encoding
    )
    return _run(
        settings,
        index,
        mode,
        lambda lines, stats: iter_snapshot_inventory(lines, settings.ignore, stats),
    )
