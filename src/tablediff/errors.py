"""
Error taxonomy for the fingerprinting engine.

Every error terminates the current operation and is surfaced to the caller.
A digest computed past a swallowed error looks valid but is wrong, so none of
these are ever caught and ignored inside the engine.
"""

from typing import Any


class TableDiffError(Exception):
    """Base class for all engine errors."""

    pass


class UnsupportedTypeError(TableDiffError):
    """Raised when a value cannot be represented as a canonical token."""

    def __init__(self, column: str, kind: str, reason: str):
        self.column = column
        self.kind = kind
        self.reason = reason
        super().__init__(f"Cannot canonicalize column {column!r} ({kind}): {reason}")


class NoDeterministicOrderError(TableDiffError):
    """Raised when rows cannot be produced in a stable ascending key order."""

    pass


class DuplicateKeyError(TableDiffError):
    """Raised when the same key appears twice on one side of a merge."""

    def __init__(self, key: tuple, side: str = "stream"):
        self.key = key
        self.side = side
        super().__init__(f"Duplicate key {key!r} in {side}")


class SourceReadFailure(TableDiffError):
    """Raised when the underlying data source fails while being read."""

    def __init__(self, source: Any, cause: BaseException):
        self.source = source
        self.cause = cause
        super().__init__(f"Failed reading from {source}: {type(cause).__name__}: {cause}")


class SchemaMismatchError(TableDiffError):
    """Raised when two schemas cannot be compared (missing key, no common columns)."""

    pass


class RunCancelledError(TableDiffError):
    """Raised when a run is stopped through its cancellation token."""

    pass
