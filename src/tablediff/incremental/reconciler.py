"""
Incremental reconciliation.

Re-fingerprints only the rows changed since a watermark and decides, per
row, what a caller has to do to bring its digest store up to date.
"""

import logging
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from opentelemetry import trace

from tablediff.cancellation import CancellationToken
from tablediff.config import DEFAULT_CONFIG, EngineConfig
from tablediff.schema import TableSchema
from tablediff.stream import DataSource, OrderedRowStream
from tablediff.utils.metrics import PLAN_ACTIONS
from tablediff.utils.tracing import span_operation

from .store import DigestStore

logger = logging.getLogger(__name__)


class MergeAction(str, Enum):
    """
    What to do with one changed row.

    Inherits from str for JSON serialization compatibility.
    """

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    SKIP = "SKIP"


@dataclass(frozen=True)
class MergePlanEntry:
    """One row's planned action and the digest it should be stored with."""

    key: tuple
    action: MergeAction
    new_digest: bytes

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "key": list(self.key),
            "action": self.action.value,
            "new_digest": self.new_digest.hex(),
        }


def _without_change_column(schema: TableSchema, column: str) -> TableSchema:
    # A touched row moves its change-tracking column even when nothing else changed
    tracked = column.lower()
    if tracked in (k.lower() for k in schema.key_columns):
        return schema
    hashed = [c.name.lower() for c in schema.hashed_columns]
    if tracked not in hashed or len(hashed) == 1:
        return schema
    logger.debug(f"Excluding change-tracking column {column!r} from {schema.name} digests")
    return schema.excluding({tracked})


class IncrementalReconciler:
    """
    Plans digest store updates for rows modified after a watermark.

    The reconciler reads the store but never writes it, so planning twice
    against the same store gives the same plan. The change-tracking column
    selects candidate rows but is left out of their digests, so a row that
    was touched without changing plans SKIP.
    """

    def __init__(
        self,
        schema: TableSchema,
        source: DataSource,
        store: DigestStore,
        config: EngineConfig = DEFAULT_CONFIG,
        cancel_token: CancellationToken | None = None,
    ):
        """
        Initialize incremental reconciler.

        Args:
            schema: Table schema
            source: Data source able to filter on config.change_tracking_column
            store: Digest store from previous runs
            config: Engine configuration
            cancel_token: Optional token checked once per row
        """
        self.schema = _without_change_column(schema, config.change_tracking_column)
        self.source = source
        self.store = store
        self.config = config
        self.cancel_token = cancel_token

    def plan(self, watermark: datetime | None) -> Iterator[MergePlanEntry]:
        """
        Plan actions for every row changed after the watermark.

        Args:
            watermark: Exclusive lower bound on the change-tracking column;
                None re-plans the whole table

        Yields:
            MergePlanEntry per candidate row, ascending by key
        """
        stream = OrderedRowStream(
            self.schema,
            self.source,
            self.config,
            cancel_token=self.cancel_token,
            modified_after=watermark,
        )
        table = self.schema.name
        counts = {action: 0 for action in MergeAction}

        logger.info(
            f"Planning merge for {table} "
            f"(watermark={watermark.isoformat() if watermark else 'none'})"
        )

        with span_operation(
            "plan_merge",
            kind=trace.SpanKind.INTERNAL,
            table=table,
            watermark=watermark.isoformat() if watermark else "none",
        ) as span:
            try:
                for row_digest in stream:
                    stored = self.store.get(row_digest.key)
                    if stored is None:
                        action = MergeAction.INSERT
                    elif stored.digest != row_digest.digest:
                        action = MergeAction.UPDATE
                    else:
                        action = MergeAction.SKIP

                    counts[action] += 1
                    yield MergePlanEntry(row_digest.key, action, row_digest.digest)
            finally:
                for action, count in counts.items():
                    if count:
                        PLAN_ACTIONS.labels(table=table, action=action.value).inc(count)
                    span.set_attribute(f"plan.{action.value.lower()}", count)

        logger.info(
            f"Merge plan for {table}: {counts[MergeAction.INSERT]} insert, "
            f"{counts[MergeAction.UPDATE]} update, {counts[MergeAction.SKIP]} skip"
        )


def summarize_plan(entries: Iterable[MergePlanEntry]) -> dict[str, int]:
    """Count plan entries by action name."""
    summary = {action.value: 0 for action in MergeAction}
    for entry in entries:
        summary[entry.action.value] += 1
    return summary


def apply_merge_plan(
    entries: Iterable[MergePlanEntry],
    store: DigestStore,
    seen_at: datetime | None = None,
) -> dict[str, int]:
    """
    Write a merge plan into a digest store.

    INSERT and UPDATE entries store their new digest; SKIP entries are
    re-stored unchanged so their last_seen_at moves forward.

    Args:
        entries: Plan entries (e.g. from IncrementalReconciler.plan)
        store: Store to update
        seen_at: Timestamp recorded on every entry (defaults to now)

    Returns:
        Counts by action name
    """
    seen_at = seen_at or datetime.now(UTC)
    summary = {action.value: 0 for action in MergeAction}

    for entry in entries:
        store.put(entry.key, entry.new_digest, seen_at)
        summary[entry.action.value] += 1

    logger.debug(f"Applied merge plan: {summary}")
    return summary
