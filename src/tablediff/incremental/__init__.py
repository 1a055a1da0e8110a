"""
Incremental reconciliation against stored row digests.
"""

from .reconciler import (
    IncrementalReconciler,
    MergeAction,
    MergePlanEntry,
    apply_merge_plan,
    summarize_plan,
)
from .store import (
    DigestStore,
    InMemoryDigestStore,
    JsonFileDigestStore,
    StoredRowDigest,
    key_id,
)

__all__ = [
    "DigestStore",
    "IncrementalReconciler",
    "InMemoryDigestStore",
    "JsonFileDigestStore",
    "MergeAction",
    "MergePlanEntry",
    "StoredRowDigest",
    "apply_merge_plan",
    "key_id",
    "summarize_plan",
]
