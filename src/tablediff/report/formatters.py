"""
Report formatting and export utilities.

This module renders digests, diffs and merge plans as console text, JSON,
CSV and JSON lines. Streamed outputs end with a sentinel line telling a
reader whether the run finished: COMPLETE with summary counts, or
INCOMPLETE with the error that stopped it.
"""

import csv
import json
from collections.abc import Iterable
from typing import Any, TextIO

from tablediff.diff import DiffRecord, DiffReport, DiffSummary
from tablediff.hashing import TableDigest
from tablediff.incremental import MergePlanEntry

COMPLETE = "COMPLETE"
INCOMPLETE = "INCOMPLETE"


def _dumps(obj: Any) -> str:
    # Key values (Decimal, datetime, UUID) have no JSON form of their own
    return json.dumps(obj, default=str)


def format_digest(digest: TableDigest) -> str:
    """
    Format a table digest as a single line

    Args:
        digest: Table digest

    Returns:
        '<hex digest>  <row count> rows'
    """
    return f"{digest.hex()}  {digest.row_count} rows"


def complete_sentinel(summary: dict[str, Any]) -> dict[str, Any]:
    return {"sentinel": COMPLETE, "summary": summary}


def incomplete_sentinel(error: BaseException, summary: dict[str, Any]) -> dict[str, Any]:
    return {
        "sentinel": INCOMPLETE,
        "error": str(error),
        "error_type": type(error).__name__,
        "summary": summary,
    }


def write_diff_jsonl(records: Iterable[DiffRecord], out: TextIO) -> DiffSummary:
    """
    Stream diff records as JSON lines, one record per line

    Each line is written as soon as its record is produced. If producing
    records fails with any exception, an INCOMPLETE sentinel is written and
    the exception is re-raised; otherwise a COMPLETE sentinel closes the
    output.

    Args:
        records: Diff records (e.g. from TableDiffer.diff)
        out: Text stream to write to

    Returns:
        Summary of the records written
    """
    summary = DiffSummary()
    try:
        for record in records:
            summary.add(record)
            out.write(_dumps(record.to_dict()) + "\n")
    except Exception as e:
        out.write(_dumps(incomplete_sentinel(e, summary.to_dict())) + "\n")
        out.flush()
        raise

    out.write(_dumps(complete_sentinel(summary.to_dict())) + "\n")
    out.flush()
    return summary


def write_plan_jsonl(entries: Iterable[MergePlanEntry], out: TextIO) -> dict[str, int]:
    """
    Stream merge plan entries as JSON lines with a trailing sentinel

    Args:
        entries: Merge plan entries
        out: Text stream to write to

    Returns:
        Counts by action name
    """
    counts: dict[str, int] = {}
    try:
        for entry in entries:
            counts[entry.action.value] = counts.get(entry.action.value, 0) + 1
            out.write(_dumps(entry.to_dict()) + "\n")
    except Exception as e:
        out.write(_dumps(incomplete_sentinel(e, counts)) + "\n")
        out.flush()
        raise

    out.write(_dumps(complete_sentinel(counts)) + "\n")
    out.flush()
    return counts


def export_report_json(report: DiffReport, output_path: str) -> None:
    """
    Export diff report to JSON file

    Args:
        report: Diff report
        output_path: Path to output file
    """
    with open(output_path, 'w') as f:
        f.write(json.dumps(report.to_dict(), indent=2, default=str))


def export_report_csv(report: DiffReport, output_path: str) -> None:
    """
    Export diff report to CSV file

    The last row carries the completion sentinel in the status column.

    Args:
        report: Diff report
        output_path: Path to output file
    """
    with open(output_path, 'w', newline='') as f:
        writer = csv.writer(f)

        writer.writerow(["Key", "Status"])

        for record in report.records:
            writer.writerow([_dumps(list(record.key)), record.status.value])

        writer.writerow(["", COMPLETE if report.complete else INCOMPLETE])


def format_report_console(report: DiffReport, max_records: int = 50) -> str:
    """
    Format diff report for console output

    Matched keys are counted but not listed.

    Args:
        report: Diff report
        max_records: Maximum divergent keys to list

    Returns:
        Formatted string for console display
    """
    lines = []
    summary = report.summary

    if not report.complete:
        status = INCOMPLETE
    elif summary.has_divergence:
        status = "DIVERGED"
    else:
        status = "MATCH"

    lines.append("=" * 80)
    lines.append("TABLE DIFF REPORT")
    lines.append("=" * 80)
    lines.append(f"Table: {report.table}")
    lines.append(f"Status: {status}")
    lines.append(f"Keys Compared: {summary.total:,}")
    lines.append(f"Matched: {summary.matched:,}")
    lines.append(f"Changed: {summary.changed:,}")
    lines.append(f"Only Left: {summary.only_left:,}")
    lines.append(f"Only Right: {summary.only_right:,}")
    lines.append("")

    if report.error is not None:
        lines.append("ERROR")
        lines.append("-" * 80)
        lines.append(f"{type(report.error).__name__}: {report.error}")
        lines.append("")

    divergent = [r for r in report.records if r.status.value != "MATCHED"]
    if divergent:
        lines.append("DIVERGENT KEYS")
        lines.append("-" * 80)
        for record in divergent[:max_records]:
            lines.append(f"  {record.status.value:<10} {_dumps(list(record.key))}")
        if len(divergent) > max_records:
            lines.append(f"  ... and {len(divergent) - max_records:,} more")
        lines.append("")

    lines.append("=" * 80)

    return "\n".join(lines)
