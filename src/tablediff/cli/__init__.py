"""
Command-line interface for table fingerprinting and diffing.

Available commands:
- fingerprint: Compute a whole-table digest
- diff: Row-level diff of two tables
- reconcile: Incremental merge plan against stored digests
"""

import sys

from tablediff.utils.logging import setup_logging
from tablediff.utils.metrics import MetricsPublisher
from tablediff.utils.tracing import initialize_tracing, shutdown_tracing

from .commands import EXIT_ERROR, cmd_diff, cmd_fingerprint, cmd_reconcile, run_command
from .parser import create_parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the tablediff CLI"""
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, json_format=args.log_json)

    if not args.command:
        parser.print_help()
        sys.exit(EXIT_ERROR)

    tracing = bool(args.otlp_endpoint)
    if tracing:
        initialize_tracing(otlp_endpoint=args.otlp_endpoint)

    publisher = MetricsPublisher(port=args.metrics_port) if args.metrics_port else None
    if publisher:
        publisher.start()

    try:
        code = run_command(args)
    finally:
        if publisher:
            publisher.stop()
        if tracing:
            shutdown_tracing()

    sys.exit(code)


__all__ = [
    'main',
    'cmd_fingerprint',
    'cmd_diff',
    'cmd_reconcile',
    'create_parser',
    'run_command',
]


if __name__ == '__main__':
    main()
