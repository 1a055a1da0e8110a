"""
Prometheus metrics for the fingerprinting engine

Usage:
    from tablediff.utils.metrics import MetricsPublisher

    # Expose /metrics while a long diff runs
    MetricsPublisher(port=9091).start()
"""

from .engine import (
    DIFF_RECORDS,
    DIFF_TIME,
    PARTITIONS_PROCESSED,
    PLAN_ACTIONS,
    ROWS_HASHED,
    SOURCE_READ_ERRORS,
    TABLE_DIGEST_TIME,
)
from .publisher import MetricsPublisher
from .registry import get_or_create_metric

__all__ = [
    "MetricsPublisher",
    "get_or_create_metric",
    "ROWS_HASHED",
    "TABLE_DIGEST_TIME",
    "DIFF_RECORDS",
    "DIFF_TIME",
    "PARTITIONS_PROCESSED",
    "PLAN_ACTIONS",
    "SOURCE_READ_ERRORS",
]
