"""
Command-line argument parser configuration.

This module sets up the argument parser for the tablediff CLI tool,
defining all commands and their options.
"""

import argparse


def _add_database_options(parser: argparse.ArgumentParser) -> None:
    # SQL Server options
    parser.add_argument('--sqlserver-server', help='SQL Server host')
    parser.add_argument('--sqlserver-database', help='SQL Server database name')
    parser.add_argument('--sqlserver-user', help='SQL Server username')
    parser.add_argument('--sqlserver-password', help='SQL Server password')
    # PostgreSQL options
    parser.add_argument('--postgres-host', help='PostgreSQL host')
    parser.add_argument('--postgres-port', help='PostgreSQL port')
    parser.add_argument('--postgres-database', help='PostgreSQL database name')
    parser.add_argument('--postgres-user', help='PostgreSQL username')
    parser.add_argument('--postgres-password', help='PostgreSQL password')


def _add_key_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--key',
        help='Comma-separated key columns (default: key from the schema file)'
    )


def create_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser for the CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="tablediff",
        description="Content fingerprinting and row-level diff for relational tables",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Data sources:
  path/to/rows.jsonl          JSON lines file, one row object per line
  sqlserver:dbo.customers     SQL Server table (pyodbc)
  postgresql:public.customers PostgreSQL table (psycopg2)

Examples:
  # Fingerprint a table
  tablediff fingerprint --schema customers.json --source sqlserver:dbo.customers

  # Diff a SQL Server table against its PostgreSQL copy
  tablediff diff --schema customers.json --right-schema customers_pg.json \\
      --left sqlserver:dbo.customers --right postgresql:public.customers

  # Stream the diff as JSON lines, four partitions in parallel
  tablediff diff --schema customers.json --left a.jsonl --right b.jsonl \\
      --format jsonl --boundary 1000 --boundary 2000 --boundary 3000

  # Plan an incremental update and record it
  tablediff reconcile --schema customers.json --source postgresql:public.customers \\
      --state-dir ./state --apply

Exit codes: 0 no divergence, 1 divergence found, 2 error.
        """
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='INFO',
        help='Logging level (default: INFO)'
    )
    parser.add_argument(
        '--log-json',
        action='store_true',
        help='Emit logs as JSON'
    )
    parser.add_argument(
        '--metrics-port',
        type=int,
        help='Expose Prometheus metrics on this port while running'
    )
    parser.add_argument(
        '--otlp-endpoint',
        help='OTLP collector endpoint for traces (e.g. localhost:4317)'
    )
    parser.add_argument(
        '--digest',
        help='Digest algorithm (default: sha256 or TABLEDIFF_DIGEST)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # ========== Fingerprint command ==========
    fp_parser = subparsers.add_parser('fingerprint', help='Compute a table digest')
    fp_parser.add_argument('--schema', required=True, help='Schema descriptor JSON file')
    fp_parser.add_argument('--source', required=True, help='Data source (see above)')
    _add_key_option(fp_parser)
    fp_parser.add_argument(
        '--format',
        choices=['text', 'json'],
        default='text',
        help='Output format (default: text)'
    )
    fp_parser.add_argument(
        '--expect',
        help='Expected hex digest; exit 1 when the table digest differs'
    )
    _add_database_options(fp_parser)

    # ========== Diff command ==========
    diff_parser = subparsers.add_parser('diff', help='Diff two tables row by row')
    diff_parser.add_argument('--schema', required=True, help='Schema descriptor JSON file (left side)')
    diff_parser.add_argument(
        '--right-schema',
        help='Schema descriptor for the right side (default: same as --schema)'
    )
    diff_parser.add_argument('--left', required=True, help='Left data source')
    diff_parser.add_argument('--right', required=True, help='Right data source')
    _add_key_option(diff_parser)
    diff_parser.add_argument(
        '--format',
        choices=['console', 'json', 'csv', 'jsonl'],
        default='console',
        help='Output format (default: console)'
    )
    diff_parser.add_argument(
        '--output',
        help='Output file path (default: stdout for console and jsonl)'
    )
    diff_parser.add_argument(
        '--boundary',
        action='append',
        default=[],
        help='Partition boundary key as JSON (repeatable; a list for composite keys)'
    )
    diff_parser.add_argument(
        '--workers',
        type=int,
        default=4,
        help='Parallel workers when boundaries are given (default: 4)'
    )
    _add_database_options(diff_parser)

    # ========== Reconcile command ==========
    rec_parser = subparsers.add_parser('reconcile', help='Plan an incremental digest update')
    rec_parser.add_argument('--schema', required=True, help='Schema descriptor JSON file')
    rec_parser.add_argument('--source', required=True, help='Data source (see above)')
    _add_key_option(rec_parser)
    rec_parser.add_argument(
        '--state-dir',
        default='./tablediff_state',
        help='Directory holding digest state files (default: ./tablediff_state)'
    )
    rec_parser.add_argument(
        '--since',
        help='Watermark as ISO-8601 timestamp (default: watermark saved by the last applied run)'
    )
    rec_parser.add_argument(
        '--full',
        action='store_true',
        help='Ignore any watermark and plan the whole table'
    )
    rec_parser.add_argument(
        '--apply',
        action='store_true',
        help='Write the plan into the state file and advance the watermark'
    )
    rec_parser.add_argument(
        '--output',
        help='Write the plan as JSON lines to this file (default: stdout)'
    )
    _add_database_options(rec_parser)

    return parser
