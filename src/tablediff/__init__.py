"""
Table fingerprinting and divergence detection.

This package detects divergence between two copies of the same logical table
without relying on engine-native replication or declared foreign keys.

Components:
- schema: Typed column model resolved once per run
- canonical: Column value canonicalization
- hashing: Row digests and whole-table digests
- stream: Data source adapters and key-ordered row digest streams
- diff: Sorted-merge table differ (single pass or range-partitioned)
- incremental: Watermark-driven merge planning against stored row digests
- report: Output formats for digests, diff reports and merge plans

Usage:
    from tablediff.schema import TableSchema
    from tablediff.stream import IterableSource, OrderedRowStream
    from tablediff.hashing import aggregate
    from tablediff.diff import diff
"""

__version__ = "1.0.0"
__all__ = [
    "canonical",
    "config",
    "diff",
    "errors",
    "hashing",
    "incremental",
    "report",
    "schema",
    "stream",
]
