"""
Data source port and in-process adapters.

A data source yields raw rows (mappings of column name to value) in
ascending key order, optionally restricted to rows modified after a
watermark and to a half-open key range. Iterating rows() again reissues
the read from the start; sources are never resumed mid-stream.
"""

import json
import logging
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)

RawRow = Mapping[str, Any]


@dataclass(frozen=True)
class KeyRange:
    """
    Half-open key range [lower, upper).

    None on either side leaves that side unbounded.
    """

    lower: tuple | None = None
    upper: tuple | None = None

    def contains(self, key: tuple) -> bool:
        if self.lower is not None and key < self.lower:
            return False
        if self.upper is not None and key >= self.upper:
            return False
        return True

    def __str__(self) -> str:
        lower = "-inf" if self.lower is None else repr(self.lower)
        upper = "+inf" if self.upper is None else repr(self.upper)
        return f"[{lower}, {upper})"


class DataSource(Protocol):
    """Port for anything that can produce a table's rows in key order."""

    name: str

    def rows(
        self,
        order_by: Sequence[str],
        columns: Sequence[str],
        modified_after: datetime | None = None,
        modified_column: str | None = None,
        key_range: KeyRange | None = None,
    ) -> Iterator[RawRow]:
        ...


def _as_datetime(value: Any) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if not isinstance(value, datetime):
        raise TypeError(f"Not a timestamp: {value!r}")
    return value


def is_modified_after(value: Any, watermark: datetime) -> bool:
    """
    Compare a change-tracking value with a watermark.

    Naive timestamps on either side are taken to be UTC.
    """
    changed = _as_datetime(value)
    if changed is None:
        return False
    if changed.tzinfo is None and watermark.tzinfo is not None:
        changed = changed.replace(tzinfo=UTC)
    elif changed.tzinfo is not None and watermark.tzinfo is None:
        watermark = watermark.replace(tzinfo=UTC)
    return changed > watermark


def _sort_key(row: RawRow, order_by: Sequence[str]) -> tuple:
    # NULLs sort first instead of breaking the sort; the ordered stream rejects them
    return tuple((row.get(col) is not None, row.get(col)) for col in order_by)


class IterableSource:
    """
    In-memory data source.

    Rows are sorted by the requested key on every read, so callers may
    hand them over in any order.
    """

    def __init__(
        self,
        rows: Iterable[RawRow] | Callable[[], Iterable[RawRow]],
        name: str = "memory",
    ):
        """
        Initialize an in-memory source.

        Args:
            rows: Rows, or a callable returning a fresh iterable per read
            name: Name used in logs and errors
        """
        self._rows = rows if callable(rows) else list(rows)
        self.name = name

    def _load(self) -> Iterable[RawRow]:
        return self._rows() if callable(self._rows) else self._rows

    def rows(
        self,
        order_by: Sequence[str],
        columns: Sequence[str],
        modified_after: datetime | None = None,
        modified_column: str | None = None,
        key_range: KeyRange | None = None,
    ) -> Iterator[RawRow]:
        selected = self._load()

        if modified_after is not None:
            if not modified_column:
                raise ValueError("modified_after requires a modified_column")
            selected = [
                r for r in selected if is_modified_after(r.get(modified_column), modified_after)
            ]

        ordered = sorted(selected, key=lambda r: _sort_key(r, order_by))

        for row in ordered:
            if key_range is not None:
                key = tuple(row.get(col) for col in order_by)
                if None not in key and not key_range.contains(key):
                    continue
            yield row

    def __str__(self) -> str:
        return self.name


class JsonLinesSource(IterableSource):
    """
    File data source: one JSON object per line.

    Decimals are parsed exactly (never through float) and temporal values
    are expected as ISO-8601 strings. The file is re-read on every read.
    """

    def __init__(self, path: str, name: str | None = None):
        self.path = Path(path)
        super().__init__(self._read_file, name=name or self.path.name)

    def _read_file(self) -> list[RawRow]:
        rows = []
        with open(self.path, encoding="utf-8") as f:
            for line_number, line in enumerate(f, 1):
                line = line.strip()
                if not line:
                    continue
                try:
                    rows.append(json.loads(line, parse_float=Decimal))
                except json.JSONDecodeError as e:
                    raise ValueError(f"{self.path}:{line_number}: invalid JSON: {e}") from e

        logger.debug(f"Read {len(rows)} rows from {self.path}")
        return rows
