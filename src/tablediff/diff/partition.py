"""
Range-partitioned parallel diff.

The key space is cut at caller-supplied boundary keys into half-open
ranges. Each range is diffed independently in a worker thread with its
own pair of streams; partitions share nothing but the cancellation token.
Records come back in key order because ranges are ordered and disjoint,
and each partition streams through a bounded queue rather than being
collected first.
"""

import logging
import queue
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from datetime import UTC, datetime
from typing import Any

from opentelemetry import trace

from tablediff.cancellation import CancellationToken
from tablediff.errors import (
    NoDeterministicOrderError,
    RunCancelledError,
    SourceReadFailure,
    TableDiffError,
)
from tablediff.hashing import RowDigest
from tablediff.stream import KeyRange
from tablediff.utils.metrics import PARTITIONS_PROCESSED
from tablediff.utils.tracing import trace_operation

from .differ import DiffRecord, DiffSummary, diff

logger = logging.getLogger(__name__)

# Seconds a blocked producer or consumer waits before re-checking its partition
_POLL_INTERVAL = 0.05

# Marks the end of a partition that finished cleanly
_END = object()

# Builds the (left, right) streams of one partition
StreamFactory = Callable[
    [KeyRange, CancellationToken],
    tuple[Iterable[RowDigest], Iterable[RowDigest]],
]


def _as_key(boundary: Any) -> tuple:
    return boundary if isinstance(boundary, tuple) else (boundary,)


def split_ranges(boundaries: Sequence[Any]) -> list[KeyRange]:
    """
    Cut the key space at boundary keys.

    Args:
        boundaries: Strictly ascending boundary keys (tuples, or scalars
            for single-column keys)

    Returns:
        len(boundaries) + 1 half-open ranges covering the whole key space

    Raises:
        ValueError: If boundaries are not strictly ascending
    """
    keys = [_as_key(b) for b in boundaries]
    for previous, current in zip(keys, keys[1:]):
        if not previous < current:
            raise ValueError(f"Boundaries must be strictly ascending: {previous!r} >= {current!r}")

    lowers: list[tuple | None] = [None] + keys
    uppers: list[tuple | None] = keys + [None]
    return [KeyRange(lower, upper) for lower, upper in zip(lowers, uppers)]


class ParallelDiffer:
    """
    Diffs key-range partitions of one table concurrently.

    Each partition streams its records through a bounded queue that the
    caller drains in partition order, so memory stays bounded by
    max_workers * buffer_size records however wide a partition is. A
    failing partition cancels the run's token so that the other partitions
    stop at their next row, and its error is raised to the caller once all
    workers have finished.
    """

    def __init__(self, max_workers: int = 4, table_name: str = "table", buffer_size: int = 1000):
        """
        Initialize parallel differ.

        Args:
            max_workers: Maximum concurrent partitions (default: 4)
            table_name: Name used in logs and spans
            buffer_size: Records a partition may run ahead of the consumer
                (default: 1000)
        """
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        if buffer_size < 1:
            raise ValueError("buffer_size must be at least 1")
        self.max_workers = max_workers
        self.table_name = table_name
        self.buffer_size = buffer_size
        self.summary = DiffSummary()

        logger.info(
            f"ParallelDiffer initialized: max_workers={max_workers}, "
            f"buffer_size={buffer_size}, table={table_name}"
        )

    def diff(
        self,
        ranges: Sequence[KeyRange],
        stream_factory: StreamFactory,
        cancel_token: CancellationToken | None = None,
    ) -> Iterator[DiffRecord]:
        """
        Diff every range and yield all records in key order.

        Args:
            ranges: Disjoint ranges in ascending order (see split_ranges)
            stream_factory: Called once per range in a worker thread with the
                range and the run's token; returns that range's (left, right)
                streams
            cancel_token: Run token; created when not given. Cancelled when a
                partition fails or the consumer stops early.

        Yields:
            DiffRecord per key, ascending

        Raises:
            NoDeterministicOrderError: If a partition yields a key outside
                its range
            SourceReadFailure: If stream_factory fails with a non-engine error
            TableDiffError: The first non-cancellation error of any partition
        """
        token = cancel_token or CancellationToken()
        self.summary = DiffSummary()
        start_time = datetime.now(UTC)

        if not ranges:
            logger.warning(f"No partitions to diff for {self.table_name}")
            return

        logger.info(
            f"Starting parallel diff of {self.table_name}: "
            f"{len(ranges)} partitions, {self.max_workers} workers"
        )

        buffers: list[queue.Queue] = [queue.Queue(maxsize=self.buffer_size) for _ in ranges]

        # Partitions start in submission order, so the one being drained always has a worker
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            futures = [
                executor.submit(
                    self._diff_partition, index, key_range, stream_factory, token, buffers[index]
                )
                for index, key_range in enumerate(ranges)
            ]

            try:
                for future, buffer in zip(futures, buffers):
                    try:
                        for record in self._drain(future, buffer):
                            self.summary.add(record)
                            yield record
                    except Exception:
                        token.cancel(f"partition of {self.table_name} failed")
                        wait(futures)
                        raise self._first_error(futures)
            except GeneratorExit:
                token.cancel("consumer stopped reading")
                raise

        duration = (datetime.now(UTC) - start_time).total_seconds()
        logger.info(
            f"Parallel diff of {self.table_name} complete: {self.summary.total} keys "
            f"in {len(ranges)} partitions in {duration:.2f}s"
        )

    @staticmethod
    def _drain(future: Future, buffer: queue.Queue) -> Iterator[DiffRecord]:
        while True:
            try:
                item = buffer.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                # A failed partition leaves no end marker behind
                if future.done() and buffer.empty():
                    future.result()
                    return
                continue

            if item is _END:
                future.result()
                return
            yield item

    @staticmethod
    def _first_error(futures: list[Future]) -> BaseException:
        errors = [f.exception() for f in futures if not f.cancelled() and f.exception()]
        for error in errors:
            if not isinstance(error, RunCancelledError):
                return error
        return errors[0]

    @staticmethod
    def _offer(buffer: queue.Queue, item: Any, token: CancellationToken, index: int) -> None:
        while True:
            try:
                buffer.put(item, timeout=_POLL_INTERVAL)
                return
            except queue.Full:
                token.raise_if_cancelled(f"partition {index}")

    def _diff_partition(
        self,
        index: int,
        key_range: KeyRange,
        stream_factory: StreamFactory,
        token: CancellationToken,
        buffer: queue.Queue,
    ) -> int:
        with trace_operation(
            "diff_partition",
            kind=trace.SpanKind.INTERNAL,
            table=self.table_name,
            partition=index,
            key_range=str(key_range),
        ):
            count = 0
            try:
                token.raise_if_cancelled(f"partition {index}")
                try:
                    left, right = stream_factory(key_range, token)
                except TableDiffError:
                    raise
                except Exception as e:
                    raise SourceReadFailure(f"partition {index} {key_range}", e) from e

                for record in diff(left, right, token):
                    if not self._in_range(key_range, record.key):
                        raise NoDeterministicOrderError(
                            f"Key {record.key!r} outside partition {index} {key_range}"
                        )
                    self._offer(buffer, record, token, index)
                    count += 1
                self._offer(buffer, _END, token, index)

            except RunCancelledError:
                PARTITIONS_PROCESSED.labels(status="cancelled").inc()
                logger.debug(f"Partition {index} of {self.table_name} cancelled")
                raise
            except Exception as e:
                token.cancel(f"partition {index} failed: {e}")
                PARTITIONS_PROCESSED.labels(status="failed").inc()
                logger.error(f"Partition {index} {key_range} of {self.table_name} failed: {e}")
                raise

            PARTITIONS_PROCESSED.labels(status="success").inc()
            logger.debug(f"Partition {index} {key_range}: {count} records")
            return count

    @staticmethod
    def _in_range(key_range: KeyRange, key: tuple) -> bool:
        try:
            return key_range.contains(key)
        except TypeError as e:
            raise NoDeterministicOrderError(
                f"Key {key!r} is not comparable with range {key_range}"
            ) from e
