"""
Cooperative cancellation.

Components check their token once per row (or per partition) and stop by
raising RunCancelledError. Digests computed before the stop are discarded;
a cancelled run never returns a result that could pass for a complete one.
"""

import threading

from tablediff.errors import RunCancelledError


class CancellationToken:
    """Thread-safe cancellation flag shared between a caller and a run."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self.reason: str | None = None

    def cancel(self, reason: str = "cancelled by caller") -> None:
        """Request that the run stop after the current row."""
        self.reason = reason
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, operation: str = "run") -> None:
        """Raise RunCancelledError if cancellation was requested."""
        if self._event.is_set():
            raise RunCancelledError(f"{operation} cancelled: {self.reason}")
