"""
Row hashing and whole-table digest aggregation.
"""

from .aggregator import TableDigestAccumulator, aggregate
from .digests import RowDigest, TableDigest
from .row_hasher import RowHasher, hash_row, row_payload

__all__ = [
    "RowDigest",
    "TableDigest",
    "RowHasher",
    "hash_row",
    "row_payload",
    "TableDigestAccumulator",
    "aggregate",
]
