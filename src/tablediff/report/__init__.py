"""
Output formats for digests, diffs and merge plans.
"""

from .formatters import (
    COMPLETE,
    INCOMPLETE,
    export_report_csv,
    export_report_json,
    format_digest,
    format_report_console,
    write_diff_jsonl,
    write_plan_jsonl,
)

__all__ = [
    "COMPLETE",
    "INCOMPLETE",
    "export_report_csv",
    "export_report_json",
    "format_digest",
    "format_report_console",
    "write_diff_jsonl",
    "write_plan_jsonl",
]
