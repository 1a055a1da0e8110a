"""
Sorted-merge table differ.

Walks two ordered row digest streams in lockstep and classifies every key
as matched, changed, or present on one side only. Runs in linear time and
holds one row digest per side.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from opentelemetry import trace

from tablediff.cancellation import CancellationToken
from tablediff.errors import SchemaMismatchError, TableDiffError
from tablediff.hashing import RowDigest
from tablediff.stream.ordered import check_key_order
from tablediff.utils.metrics import DIFF_RECORDS, DIFF_TIME
from tablediff.utils.tracing import span_operation

logger = logging.getLogger(__name__)


class DiffStatus(str, Enum):
    """
    Outcome for one key.

    Inherits from str for JSON serialization compatibility.
    """

    MATCHED = "MATCHED"
    CHANGED = "CHANGED"
    ONLY_LEFT = "ONLY_LEFT"
    ONLY_RIGHT = "ONLY_RIGHT"


@dataclass(frozen=True)
class DiffRecord:
    """One key and how it compares across the two sides."""

    key: tuple
    status: DiffStatus

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"key": list(self.key), "status": self.status.value}


@dataclass
class DiffSummary:
    """Running counts of diff records by status."""

    matched: int = 0
    changed: int = 0
    only_left: int = 0
    only_right: int = 0

    def add(self, record: DiffRecord) -> None:
        if record.status is DiffStatus.MATCHED:
            self.matched += 1
        elif record.status is DiffStatus.CHANGED:
            self.changed += 1
        elif record.status is DiffStatus.ONLY_LEFT:
            self.only_left += 1
        else:
            self.only_right += 1

    @property
    def total(self) -> int:
        return self.matched + self.changed + self.only_left + self.only_right

    @property
    def has_divergence(self) -> bool:
        return (self.changed + self.only_left + self.only_right) > 0

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "matched": self.matched,
            "changed": self.changed,
            "only_left": self.only_left,
            "only_right": self.only_right,
            "total": self.total,
        }


@dataclass
class DiffReport:
    """
    Materialized diff.

    complete is False when the run stopped early; records then hold only
    what was produced before the error, which is kept in error.
    """

    table: str
    records: list[DiffRecord] = field(default_factory=list)
    summary: DiffSummary = field(default_factory=DiffSummary)
    complete: bool = False
    error: TableDiffError | None = None

    @property
    def has_divergence(self) -> bool:
        return self.summary.has_divergence

    def raise_for_error(self) -> None:
        """Re-raise the error that ended the run, if any."""
        if self.error is not None:
            raise self.error

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "table": self.table,
            "complete": self.complete,
            "error": str(self.error) if self.error else None,
            "summary": self.summary.to_dict(),
            "records": [r.to_dict() for r in self.records],
        }


def _compare_keys(left: tuple, right: tuple) -> int:
    try:
        if left == right:
            return 0
        return -1 if left < right else 1
    except TypeError as e:
        raise SchemaMismatchError(
            f"Left key {left!r} and right key {right!r} are not comparable"
        ) from e


class _CheckedSide:
    """Iterator over one side that asserts strictly ascending keys."""

    def __init__(self, stream: Iterable[RowDigest], side: str):
        self._it = iter(stream)
        self._side = side
        self._previous: tuple | None = None

    def next(self) -> RowDigest | None:
        row_digest = next(self._it, None)
        if row_digest is not None:
            check_key_order(self._previous, row_digest.key, self._side)
            self._previous = row_digest.key
        return row_digest


def diff(
    left: Iterable[RowDigest],
    right: Iterable[RowDigest],
    cancel_token: CancellationToken | None = None,
) -> Iterator[DiffRecord]:
    """
    Diff two ordered row digest streams.

    Every key present on either side is emitted exactly once, in ascending
    key order.

    Args:
        left: Row digests ascending by key
        right: Row digests ascending by key
        cancel_token: Optional token checked once per emitted record

    Yields:
        DiffRecord per key

    Raises:
        NoDeterministicOrderError: If a side's keys go backwards or hold NULL
        DuplicateKeyError: If a side repeats a key
        SchemaMismatchError: If keys of the two sides cannot be compared
        RunCancelledError: If cancelled
    """
    lefts = _CheckedSide(left, "left")
    rights = _CheckedSide(right, "right")

    a = lefts.next()
    b = rights.next()

    while a is not None or b is not None:
        if cancel_token is not None:
            cancel_token.raise_if_cancelled("diff")

        if b is None:
            yield DiffRecord(a.key, DiffStatus.ONLY_LEFT)
            a = lefts.next()
        elif a is None:
            yield DiffRecord(b.key, DiffStatus.ONLY_RIGHT)
            b = rights.next()
        else:
            order = _compare_keys(a.key, b.key)
            if order < 0:
                yield DiffRecord(a.key, DiffStatus.ONLY_LEFT)
                a = lefts.next()
            elif order > 0:
                yield DiffRecord(b.key, DiffStatus.ONLY_RIGHT)
                b = rights.next()
            else:
                status = DiffStatus.MATCHED if a.digest == b.digest else DiffStatus.CHANGED
                yield DiffRecord(a.key, status)
                a = lefts.next()
                b = rights.next()


class TableDiffer:
    """
    Diff runner for one table: counts, logs, traces and records metrics.

    The summary is reset at the start of every run.
    """

    def __init__(self, table_name: str = "table"):
        self.table_name = table_name
        self.summary = DiffSummary()

    def diff(
        self,
        left: Iterable[RowDigest],
        right: Iterable[RowDigest],
        cancel_token: CancellationToken | None = None,
    ) -> Iterator[DiffRecord]:
        """Stream diff records while keeping summary counts."""
        self.summary = DiffSummary()
        table = self.table_name

        with span_operation("diff_table", kind=trace.SpanKind.INTERNAL, table=table) as span:
            with DIFF_TIME.labels(table=table).time():
                try:
                    for record in diff(left, right, cancel_token):
                        self.summary.add(record)
                        yield record
                finally:
                    for status, count in (
                        (DiffStatus.MATCHED, self.summary.matched),
                        (DiffStatus.CHANGED, self.summary.changed),
                        (DiffStatus.ONLY_LEFT, self.summary.only_left),
                        (DiffStatus.ONLY_RIGHT, self.summary.only_right),
                    ):
                        if count:
                            DIFF_RECORDS.labels(table=table, status=status.value).inc(count)
                    span.set_attribute("diff.total", self.summary.total)
                    span.set_attribute("diff.divergent", self.summary.has_divergence)

        logger.info(
            f"Diff of {table}: {self.summary.matched} matched, "
            f"{self.summary.changed} changed, {self.summary.only_left} only left, "
            f"{self.summary.only_right} only right"
        )

    def collect(
        self,
        left: Iterable[RowDigest],
        right: Iterable[RowDigest],
        cancel_token: CancellationToken | None = None,
    ) -> DiffReport:
        """Materialize a diff into a DiffReport (see build_report)."""
        return build_report(self.table_name, self.diff(left, right, cancel_token))


def build_report(table: str, records: Iterable[DiffRecord]) -> DiffReport:
    """
    Materialize diff records into a DiffReport.

    Engine errors end the run and are stored on the report with
    complete=False; call raise_for_error() to propagate them.

    Args:
        table: Table name for the report
        records: Diff records, e.g. from TableDiffer.diff or ParallelDiffer.diff

    Returns:
        DiffReport
    """
    report = DiffReport(table=table)
    try:
        for record in records:
            report.records.append(record)
            report.summary.add(record)
        report.complete = True
    except TableDiffError as e:
        logger.error(f"Diff of {table} stopped after {len(report.records)} records: {e}")
        report.error = e
    return report


def collect_diff(
    left: Iterable[RowDigest],
    right: Iterable[RowDigest],
    cancel_token: CancellationToken | None = None,
    table_name: str | None = None,
) -> DiffReport:
    """
    Diff two streams into a DiffReport.

    Args:
        left: Left row digests (e.g. an OrderedRowStream)
        right: Right row digests
        cancel_token: Optional cancellation token
        table_name: Name for logs and metrics (defaults to the left stream's)

    Returns:
        DiffReport; check complete before trusting has_divergence
    """
    name = table_name or getattr(left, "table_name", "table")
    return TableDiffer(name).collect(left, right, cancel_token)
