"""
CLI command implementations.

This module contains the implementation of the three CLI commands:
- fingerprint: Whole-table digest
- diff: Row-level diff of two tables
- reconcile: Incremental merge plan against stored digests

Each command returns the process exit code.
"""

import argparse
import dataclasses
import json
import logging
import sys
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any, TextIO

from tablediff.cancellation import CancellationToken
from tablediff.config import EngineConfig
from tablediff.diff import DiffRecord, ParallelDiffer, TableDiffer, build_report, split_ranges
from tablediff.errors import TableDiffError
from tablediff.hashing import aggregate
from tablediff.incremental import (
    IncrementalReconciler,
    JsonFileDigestStore,
    MergeAction,
    MergePlanEntry,
    apply_merge_plan,
)
from tablediff.report import (
    export_report_csv,
    export_report_json,
    format_digest,
    format_report_console,
    write_diff_jsonl,
    write_plan_jsonl,
)
from tablediff.schema import TableSchema, align_schemas, load_schema
from tablediff.stream import KeyRange, OrderedRowStream

from .connections import SourceOpener

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_DIVERGENCE = 1
EXIT_ERROR = 2


def engine_config(args: argparse.Namespace) -> EngineConfig:
    """Build the engine configuration from the environment and global flags."""
    config = EngineConfig.from_env()
    if getattr(args, "digest", None):
        config = dataclasses.replace(config, digest_algorithm=args.digest)
    return config


def _load_schema(path: str, key_arg: str | None) -> TableSchema:
    keys = [k.strip() for k in key_arg.split(',')] if key_arg else None
    return load_schema(path, keys)


def parse_boundary(text: str) -> tuple:
    """Parse a --boundary value: JSON scalar, JSON list, or bare text."""
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        value = text
    if isinstance(value, list):
        return tuple(value)
    return (value,)


def parse_timestamp(text: str) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing Z means UTC."""
    text = text.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return datetime.fromisoformat(text)


@contextmanager
def _output(path: str | None) -> Iterator[TextIO]:
    if path is None:
        yield sys.stdout
    else:
        with open(path, 'w') as f:
            yield f


def _collecting(entries: Iterable[MergePlanEntry], sink: list) -> Iterator[MergePlanEntry]:
    for entry in entries:
        sink.append(entry)
        yield entry


def cmd_fingerprint(args: argparse.Namespace) -> int:
    """
    Compute and print a table digest

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (1 when --expect is given and does not match)
    """
    config = engine_config(args)
    schema = _load_schema(args.schema, args.key)
    opener = SourceOpener(args, config)

    logger.info(f"Fingerprinting {schema.name} from {args.source}")

    try:
        source = opener.open(args.source, schema)
        digest = aggregate(OrderedRowStream(schema, source, config))
    finally:
        opener.close()

    if args.format == "json":
        print(json.dumps({"table": schema.name, **digest.to_dict()}))
    else:
        print(format_digest(digest))

    if args.expect and args.expect.strip().lower() != digest.hex():
        logger.warning(f"Digest of {schema.name} differs from the expected digest")
        return EXIT_DIVERGENCE
    return EXIT_OK


def _diff_records(
    args: argparse.Namespace,
    left_schema: TableSchema,
    right_schema: TableSchema,
    opener: SourceOpener,
    config: EngineConfig,
) -> Iterator[DiffRecord]:
    if args.boundary:
        ranges = split_ranges([parse_boundary(b) for b in args.boundary])

        def stream_factory(key_range: KeyRange, token: CancellationToken):
            left = OrderedRowStream(
                left_schema, opener.open(args.left, left_schema), config,
                cancel_token=token, key_range=key_range,
            )
            right = OrderedRowStream(
                right_schema, opener.open(args.right, right_schema), config,
                cancel_token=token, key_range=key_range,
            )
            return left, right

        differ = ParallelDiffer(max_workers=args.workers, table_name=left_schema.name)
        return differ.diff(ranges, stream_factory)

    left = OrderedRowStream(left_schema, opener.open(args.left, left_schema), config)
    right = OrderedRowStream(right_schema, opener.open(args.right, right_schema), config)
    return TableDiffer(left_schema.name).diff(left, right)


def cmd_diff(args: argparse.Namespace) -> int:
    """
    Diff two tables and write the report

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code: 0 no divergence, 1 divergence
    """
    config = engine_config(args)
    left_schema = _load_schema(args.schema, args.key)
    if args.right_schema:
        right_schema = _load_schema(args.right_schema, args.key)
    else:
        right_schema = left_schema
    left_schema, right_schema = align_schemas(left_schema, right_schema)

    logger.info(f"Diffing {args.left} against {args.right}")

    if args.format in ("json", "csv") and not args.output:
        raise ValueError(f"Output file required for {args.format} format")

    opener = SourceOpener(args, config)
    try:
        records = _diff_records(args, left_schema, right_schema, opener, config)

        if args.format == "jsonl":
            with _output(args.output) as out:
                summary = write_diff_jsonl(records, out)
            return EXIT_DIVERGENCE if summary.has_divergence else EXIT_OK

        report = build_report(left_schema.name, records)
    finally:
        opener.close()

    if args.format == "json":
        export_report_json(report, args.output)
        logger.info(f"Report saved to {args.output}")
    elif args.format == "csv":
        export_report_csv(report, args.output)
        logger.info(f"Report saved to {args.output}")
    else:
        with _output(args.output) as out:
            out.write(format_report_console(report) + "\n")

    report.raise_for_error()

    if report.has_divergence:
        logger.warning(f"Divergence found in {report.table}")
        return EXIT_DIVERGENCE
    logger.info(f"No divergence in {report.table}")
    return EXIT_OK


def cmd_reconcile(args: argparse.Namespace) -> int:
    """
    Plan (and optionally apply) an incremental digest update

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code: 0 when every candidate row is unchanged, 1 otherwise
    """
    config = engine_config(args)
    schema = _load_schema(args.schema, args.key)
    store = JsonFileDigestStore(args.state_dir, schema.name)

    watermark: datetime | None
    if args.full:
        watermark = None
    elif args.since:
        watermark = parse_timestamp(args.since)
    else:
        watermark = store.get_watermark()

    run_started = datetime.now(UTC)
    entries: list[MergePlanEntry] = []
    opener = SourceOpener(args, config)

    try:
        source = opener.open(args.source, schema)
        reconciler = IncrementalReconciler(schema, source, store, config)
        with _output(args.output) as out:
            counts = write_plan_jsonl(_collecting(reconciler.plan(watermark), entries), out)
    finally:
        opener.close()

    if args.apply:
        apply_merge_plan(entries, store, seen_at=run_started)
        store.set_watermark(run_started)
        store.save()
        logger.info(f"Applied {len(entries)} plan entries; watermark now {run_started.isoformat()}")

    changed = counts.get(MergeAction.INSERT.value, 0) + counts.get(MergeAction.UPDATE.value, 0)
    return EXIT_DIVERGENCE if changed else EXIT_OK


COMMANDS: dict[str, Any] = {
    "fingerprint": cmd_fingerprint,
    "diff": cmd_diff,
    "reconcile": cmd_reconcile,
}


def run_command(args: argparse.Namespace) -> int:
    """
    Run the selected command, mapping failures to EXIT_ERROR

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    try:
        return COMMANDS[args.command](args)
    except TableDiffError as e:
        logger.error(f"{args.command} failed: {type(e).__name__}: {e}")
        return EXIT_ERROR
    except Exception as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        return EXIT_ERROR
