"""Concurrent reconciliation pipeline.

One producer thread streams source descriptors into a bounded channel, a pool
of worker threads compares them against the destination index and pushes
mismatches into a second bounded channel, and one sink thread writes them out.

A failure in any stage sets a shared cancellation event. Every blocked channel
operation polls that event, so the remaining stages stop instead of waiting
forever, and ``run_pipeline`` re-raises the failure as ``PipelineError``.
"""

from __future__ import annotations

import logging
import os
import queue
import threading
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from reconciler.exceptions import PipelineCancelled, PipelineError
from reconciler.services.compare_service import (
    CompareMode,
    MismatchReason,
    MismatchRecord,
    compare,
)

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Iterator
    from concurrent.futures import Future
    from typing import TextIO

    from reconciler.services.index_service import DestinationIndex
    from reconciler.services.source_service import FileDescriptor

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_CAPACITY = 50
POLL_INTERVAL = 0.1


class LabelStyle(StrEnum):
    """How mismatch reasons are spelled in the report."""

    LOCALIZED = "localized"
    TAG = "tag"


def resolve_worker_count(requested: int) -> int:
    """Use ``requested`` when positive, otherwise half the CPUs (at least one)."""
    if requested > 0:
        return requested
    return max(1, (os.cpu_count() or 1) // 2)


@dataclass(frozen=True, slots=True)
class _EndOfStream:
    error: BaseException | None = None


class Channel(Generic[T]):
    """Bounded FIFO shared by several producers and consumers.

    ``close()`` appends an end marker behind the buffered items, so consumers
    receive everything that was sent before they observe the end.
    """

    def __init__(
        self, name: str, cancel: threading.Event, capacity: int = DEFAULT_CAPACITY
    ) -> None:
        self.name = name
        self._cancel = cancel
        self._queue: queue.Queue[T | _EndOfStream] = queue.Queue(maxsize=capacity)
        self._closed = False

    def put(self, item: T) -> None:
        if self._closed:
            msg = f"Channel {self.name} is closed"
            raise RuntimeError(msg)
        self._put(item)

    def close(self, error: BaseException | None = None) -> None:
        """Signal end of stream; a no-op once the pipeline is cancelled.

        With ``error``, consumers raise ``PipelineError`` when they reach the
        end instead of finishing normally.
        """
        if self._closed or self._cancel.is_set():
            return
        self._closed = True
        self._put(_EndOfStream(error))

    def get(self) -> T | _EndOfStream:
        while True:
            if self._cancel.is_set():
                raise PipelineCancelled(f"{self.name}: pipeline cancelled")
            try:
                item = self._queue.get(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue
            if isinstance(item, _EndOfStream):
                # Leave the marker for the other consumers.
                self._queue.put_nowait(item)
            return item

    def __iter__(self) -> Iterator[T]:
        while True:
            item = self.get()
            if isinstance(item, _EndOfStream):
                if item.error is not None:
                    msg = f"{self.name}: stream ended with an error: {item.error}"
                    raise PipelineError(msg) from item.error
                return
            yield item

    def _put(self, item: T | _EndOfStream) -> None:
        while True:
            if self._cancel.is_set():
                raise PipelineCancelled(f"{self.name}: pipeline cancelled")
            try:
                self._queue.put(item, timeout=POLL_INTERVAL)
            except queue.Full:
                continue
            return


@dataclass
class ReconcileSummary:
    """Counts of written mismatch records, per reason."""

    counts: Counter[MismatchReason] = field(default_factory=Counter)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def count(self, reason: MismatchReason) -> int:
        return self.counts.get(reason, 0)

    def as_dict(self) -> dict[str, int]:
        """Per-reason counts in declaration order, zeros included."""
        return {reason.value: self.count(reason) for reason in MismatchReason}


class ResultSink:
    """Single consumer that writes mismatch records as ``<reason>,<path>`` lines."""

    def __init__(self, output: TextIO, label_style: LabelStyle = LabelStyle.LOCALIZED) -> None:
        self._output = output
        self._label_style = label_style
        self.summary = ReconcileSummary()
        self.done = threading.Event()

    def format(self, record: MismatchRecord) -> str:
        reason = record.reason
        text = reason.label if self._label_style == LabelStyle.LOCALIZED else reason.value
        return f"{text},{record.path}\n"

    def write(self, record: MismatchRecord) -> None:
        self._output.write(self.format(record))
        self.summary.counts[record.reason] += 1

    def drain(self, results: Channel[MismatchRecord]) -> ReconcileSummary:
        """Write records until the channel is closed, then flush and signal done."""
        try:
            for record in results:
                self.write(record)
        finally:
            self._output.flush()
            self.done.set()
        logger.info(
            "Wrote %d mismatch records: %s",
            self.summary.total,
            ", ".join(f"{name}={count}" for name, count in self.summary.as_dict().items()),
        )
        return self.summary


def produce(descriptors: Iterable[FileDescriptor], channel: Channel[FileDescriptor]) -> int:
    """Feed every descriptor into ``channel`` and close it."""
    sent = 0
    try:
        for descriptor in descriptors:
            channel.put(descriptor)
            sent += 1
    except PipelineCancelled:
        raise
    except Exception as exc:
        channel.close(exc)
        raise
    channel.close()
    return sent


def compare_worker(
    descriptors: Channel[FileDescriptor],
    index: DestinationIndex,
    mode: CompareMode,
    results: Channel[MismatchRecord],
) -> int:
    """Compare descriptors until the channel ends; returns how many were checked."""
    checked = 0
    for descriptor in descriptors:
        record = compare(descriptor, index, mode)
        if record is not None:
            results.put(record)
        checked += 1
    return checked


def _guarded(cancel: threading.Event, stage: str, func: Callable[..., Any], *args: Any) -> Any:
    try:
        return func(*args)
    except PipelineCancelled:
        raise
    except Exception:
        logger.exception("Reconciliation %s failed", stage)
        cancel.set()
        raise


def _first_failure(futures: list[tuple[str, Future[Any]]]) -> tuple[str, BaseException] | None:
    for stage, future in futures:
        exc = future.exception()
        if exc is not None and not isinstance(exc, PipelineCancelled):
            return stage, exc
    return None


def run_pipeline(
    descriptors: Iterable[FileDescriptor],
    index: DestinationIndex,
    mode: CompareMode,
    output: TextIO,
    *,
    concurrency: int = 0,
    capacity: int = DEFAULT_CAPACITY,
    label_style: LabelStyle = LabelStyle.LOCALIZED,
) -> ReconcileSummary:
    """Compare every descriptor against ``index`` and write mismatches to ``output``.

    Returns the sink's summary. Raises ``PipelineError`` when any stage fails;
    lines already written stay in ``output``.
    """
    workers = resolve_worker_count(concurrency)
    cancel = threading.Event()
    source: Channel[FileDescriptor] = Channel("descriptors", cancel, capacity)
    results: Channel[MismatchRecord] = Channel("results", cancel, capacity)
    sink = ResultSink(output, label_style)
    logger.info("Comparing with %d workers (mode %s)", workers, mode)

    pool = ThreadPoolExecutor(max_workers=workers + 2, thread_name_prefix="reconcile")
    with pool as executor:
        sink_future = executor.submit(_guarded, cancel, "sink", sink.drain, results)
        producer_future = executor.submit(
            _guarded, cancel, "producer", produce, descriptors, source
        )
        worker_futures = [
            executor.submit(
                _guarded, cancel, "worker", compare_worker, source, index, mode, results
            )
            for _ in range(workers)
        ]
        wait(worker_futures)
        # Every worker has stopped sending, so the sink may finish.
        results.close()
        wait([producer_future, sink_future])

    failure = _first_failure(
        [
            ("producer", producer_future),
            *(("worker", future) for future in worker_futures),
            ("sink", sink_future),
        ]
    )
    if failure is not None:
        stage, exc = failure
        msg = f"Reconciliation {stage} failed: {exc}"
        raise PipelineError(msg) from exc
    if cancel.is_set():
        raise PipelineError("Reconciliation was cancelled")

    logger.info(
        "Checked %d source files, %d mismatches",
        sum(future.result() for future in worker_futures),
        sink.summary.total,
    )
    return sink.summary
