"""
Whole-table digest aggregation.

Concatenates row digests in stream order and hashes the result with the
same digest function used for rows. The table digest is order dependent:
two tables with identical rows under different key orders produce different
table digests. The per-row diff compares independently of order.
"""

import logging
from collections.abc import Iterable

from opentelemetry import trace

from tablediff.cancellation import CancellationToken
from tablediff.config import DEFAULT_CONFIG, EngineConfig
from tablediff.utils.metrics import TABLE_DIGEST_TIME
from tablediff.utils.tracing import trace_operation

from .digests import RowDigest, TableDigest

logger = logging.getLogger(__name__)


class TableDigestAccumulator:
    """
    Streaming reduction of row digests into a table digest.

    Holds the running hash state and a row count, never the row digests.
    """

    def __init__(self, config: EngineConfig = DEFAULT_CONFIG):
        self.config = config
        self._hasher = config.new_digest()
        self._row_count = 0
        self._finalized = False

    @property
    def row_count(self) -> int:
        return self._row_count

    def update(self, row_digest: RowDigest) -> None:
        """Fold one row digest into the running table digest."""
        if self._finalized:
            raise RuntimeError("Accumulator already finalized")
        self._hasher.update(row_digest.digest)
        self._row_count += 1

    def finalize(self) -> TableDigest:
        """Return the table digest; the accumulator cannot be updated afterwards."""
        self._finalized = True
        return TableDigest(
            digest=self._hasher.digest(),
            row_count=self._row_count,
            algorithm=self.config.digest_algorithm,
        )


def aggregate(
    stream: Iterable[RowDigest],
    cancel_token: CancellationToken | None = None,
    config: EngineConfig | None = None,
) -> TableDigest:
    """
    Reduce an ordered row digest stream to one table digest.

    Args:
        stream: Row digests in ascending key order (e.g. an OrderedRowStream)
        cancel_token: Optional token checked once per row
        config: Engine configuration; defaults to the stream's own config
            when it has one

    Returns:
        TableDigest over the whole stream

    Raises:
        RunCancelledError: If cancelled; no partial digest is returned
        TableDiffError: Any error raised while producing the stream
    """
    if config is None:
        config = getattr(stream, "config", DEFAULT_CONFIG)
    table = getattr(stream, "table_name", "unknown")

    with trace_operation("aggregate_table", kind=trace.SpanKind.INTERNAL, table=table) as span:
        with TABLE_DIGEST_TIME.labels(table=table).time():
            accumulator = TableDigestAccumulator(config)

            for row_digest in stream:
                if cancel_token is not None:
                    cancel_token.raise_if_cancelled(f"aggregate {table}")
                accumulator.update(row_digest)

            result = accumulator.finalize()
            span.set_attribute("row_count", result.row_count)

    logger.info(f"Table digest for {table}: {result.hex()[:16]}... ({result.row_count} rows)")
    return result
