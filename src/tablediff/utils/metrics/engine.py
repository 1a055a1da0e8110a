"""
Prometheus metrics for the fingerprinting engine.

Counters are registered under the names prometheus_client derives for
them (Counter names lose their _total suffix in the registry lookup).
"""

from prometheus_client import Counter, Histogram

from .registry import get_or_create_metric

ROWS_HASHED = get_or_create_metric(
    lambda: Counter(
        "tablediff_rows_hashed_total",
        "Rows canonicalized and hashed",
        ["table"],
    ),
    "tablediff_rows_hashed",
)

TABLE_DIGEST_TIME = get_or_create_metric(
    lambda: Histogram(
        "tablediff_table_digest_seconds",
        "Time to aggregate a whole-table digest",
        ["table"],
        buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 300, 600, 1800, 3600],
    ),
    "tablediff_table_digest_seconds",
)

DIFF_RECORDS = get_or_create_metric(
    lambda: Counter(
        "tablediff_diff_records_total",
        "Diff records emitted by status",
        ["table", "status"],
    ),
    "tablediff_diff_records",
)

DIFF_TIME = get_or_create_metric(
    lambda: Histogram(
        "tablediff_diff_seconds",
        "Time to diff two tables",
        ["table"],
        buckets=[0.1, 0.5, 1, 5, 10, 30, 60, 300, 600, 1800, 3600],
    ),
    "tablediff_diff_seconds",
)

PARTITIONS_PROCESSED = get_or_create_metric(
    lambda: Counter(
        "tablediff_partitions_processed_total",
        "Key-range partitions diffed in parallel",
        ["status"],  # success, failed, cancelled
    ),
    "tablediff_partitions_processed",
)

PLAN_ACTIONS = get_or_create_metric(
    lambda: Counter(
        "tablediff_plan_actions_total",
        "Merge plan entries by action",
        ["table", "action"],
    ),
    "tablediff_plan_actions",
)

SOURCE_READ_ERRORS = get_or_create_metric(
    lambda: Counter(
        "tablediff_source_read_errors_total",
        "Fatal data source read failures",
        ["table"],
    ),
    "tablediff_source_read_errors",
)
