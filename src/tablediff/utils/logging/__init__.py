"""
Structured logging configuration

Usage:
    from tablediff.utils.logging import setup_logging, get_logger

    # Setup logging (call once at application startup)
    setup_logging(level="INFO", json_format=True)

    logger = get_logger(__name__)
    logger.info("Diff complete", extra={"table": "customers", "changed": 3})
"""

from .config import get_logger, setup_logging
from .formatters import ConsoleFormatter, JSONFormatter

__all__ = [
    "setup_logging",
    "get_logger",
    "JSONFormatter",
    "ConsoleFormatter",
]
