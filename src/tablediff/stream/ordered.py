"""
Ordered row stream.

Pulls raw rows from a data source in key order, hashes them one at a time
and asserts the order it was promised. A source that breaks the order
contract fails the run instead of silently producing a wrong diff.
"""

import logging
from collections.abc import Iterator, Sequence
from datetime import datetime

from opentelemetry import trace

from tablediff.cancellation import CancellationToken
from tablediff.config import DEFAULT_CONFIG, EngineConfig
from tablediff.errors import (
    DuplicateKeyError,
    NoDeterministicOrderError,
    SourceReadFailure,
    TableDiffError,
)
from tablediff.hashing import RowDigest, RowHasher
from tablediff.schema import TableSchema
from tablediff.utils.metrics import ROWS_HASHED, SOURCE_READ_ERRORS
from tablediff.utils.tracing import span_operation

from .source import DataSource, KeyRange

logger = logging.getLogger(__name__)


def check_key_order(previous: tuple | None, key: tuple, side: str) -> None:
    """
    Assert that key strictly follows previous.

    Raises:
        NoDeterministicOrderError: NULL key component, key going backwards,
            or key values that do not compare
        DuplicateKeyError: key equal to previous
    """
    if any(part is None for part in key):
        raise NoDeterministicOrderError(f"NULL key component in {side}: {key!r}")

    if previous is None:
        return

    try:
        if key == previous:
            raise DuplicateKeyError(key, side)
        if key < previous:
            raise NoDeterministicOrderError(
                f"Key {key!r} arrived after {previous!r} in {side}"
            )
    except TypeError as e:
        raise NoDeterministicOrderError(
            f"Keys {previous!r} and {key!r} in {side} are not comparable"
        ) from e


class OrderedRowStream:
    """
    Row digests of one table in ascending key order.

    Iterating the stream issues a fresh read against the source, so a
    stream may be consumed more than once (e.g. aggregate, then diff).
    """

    def __init__(
        self,
        schema: TableSchema,
        source: DataSource,
        config: EngineConfig = DEFAULT_CONFIG,
        cancel_token: CancellationToken | None = None,
        order_by: Sequence[str] | None = None,
        modified_after: datetime | None = None,
        key_range: KeyRange | None = None,
    ):
        """
        Initialize ordered row stream.

        Args:
            schema: Table schema
            source: Data source producing rows in key order
            config: Engine configuration
            cancel_token: Optional token checked once per row
            order_by: Explicit ordering columns overriding the schema key
            modified_after: Only rows whose change-tracking column is later
            key_range: Only rows whose key falls in this half-open range

        Raises:
            NoDeterministicOrderError: If no key and no order_by is given
        """
        if order_by:
            schema = schema.with_key(tuple(order_by))
        if not schema.key_columns:
            raise NoDeterministicOrderError(
                f"No key columns or explicit ordering for {schema.name}"
            )

        self.schema = schema
        self.source = source
        self.config = config
        self.cancel_token = cancel_token
        self.modified_after = modified_after
        self.key_range = key_range
        self.hasher = RowHasher(schema, config)

    @property
    def table_name(self) -> str:
        return self.schema.name

    @property
    def key_columns(self) -> tuple[str, ...]:
        return self.schema.key_columns

    def _columns(self) -> list[str]:
        columns = list(self.schema.key_columns)
        for spec in self.schema.hashed_columns:
            if spec.name not in columns:
                columns.append(spec.name)
        return columns

    def _read(self) -> Iterator:
        try:
            return iter(
                self.source.rows(
                    self.schema.key_columns,
                    self._columns(),
                    modified_after=self.modified_after,
                    modified_column=(
                        self.config.change_tracking_column if self.modified_after else None
                    ),
                    key_range=self.key_range,
                )
            )
        except TableDiffError:
            raise
        except Exception as e:
            SOURCE_READ_ERRORS.labels(table=self.table_name).inc()
            raise SourceReadFailure(self.source, e) from e

    def __iter__(self) -> Iterator[RowDigest]:
        return self._generate()

    def _generate(self) -> Iterator[RowDigest]:
        table = self.table_name
        previous: tuple | None = None
        count = 0

        with span_operation(
            "read_ordered_rows",
            kind=trace.SpanKind.CLIENT,
            table=table,
            source=str(self.source),
            key_range=str(self.key_range) if self.key_range else "all",
        ) as span:
            try:
                rows = self._read()
                while True:
                    if self.cancel_token is not None:
                        self.cancel_token.raise_if_cancelled(f"read {table}")

                    try:
                        row = next(rows)
                    except StopIteration:
                        break
                    except TableDiffError:
                        raise
                    except Exception as e:
                        SOURCE_READ_ERRORS.labels(table=table).inc()
                        raise SourceReadFailure(self.source, e) from e

                    row_digest = self.hasher.hash(row)
                    check_key_order(previous, row_digest.key, table)
                    previous = row_digest.key
                    count += 1
                    yield row_digest
            finally:
                ROWS_HASHED.labels(table=table).inc(count)
                span.set_attribute("row_count", count)

        logger.debug(f"Streamed {count} rows from {self.source}")
