"""
Ordered row streams and the data sources behind them.
"""

from .cursor import CursorSource, keyset_predicate
from .ordered import OrderedRowStream, check_key_order
from .quoting import Dialect, quote_identifier
from .source import DataSource, IterableSource, JsonLinesSource, KeyRange, RawRow

__all__ = [
    "CursorSource",
    "DataSource",
    "Dialect",
    "IterableSource",
    "JsonLinesSource",
    "KeyRange",
    "OrderedRowStream",
    "RawRow",
    "check_key_order",
    "keyset_predicate",
    "quote_identifier",
]
