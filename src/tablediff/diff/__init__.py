"""
Table diffing: sorted merge of two ordered row digest streams.
"""

from .differ import (
    DiffRecord,
    DiffReport,
    DiffStatus,
    DiffSummary,
    TableDiffer,
    build_report,
    collect_diff,
    diff,
)
from .partition import ParallelDiffer, split_ranges

__all__ = [
    "DiffRecord",
    "DiffReport",
    "DiffStatus",
    "DiffSummary",
    "ParallelDiffer",
    "TableDiffer",
    "build_report",
    "collect_diff",
    "diff",
    "split_ranges",
]
