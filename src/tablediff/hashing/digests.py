"""
Digest value types.
"""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RowDigest:
    """Digest of one row's canonical content, identified by its key."""

    key: tuple
    digest: bytes

    def hex(self) -> str:
        return self.digest.hex()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"key": list(self.key), "digest": self.digest.hex()}


@dataclass(frozen=True)
class TableDigest:
    """
    Digest of a whole table, sensitive to row traversal order.

    Only produced by a run that consumed its whole stream; cancelled or
    failed runs raise instead of returning one.
    """

    digest: bytes
    row_count: int
    algorithm: str = "sha256"

    def hex(self) -> str:
        """Fixed-length hexadecimal rendering."""
        return self.digest.hex()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "digest": self.hex(),
            "row_count": self.row_count,
            "algorithm": self.algorithm,
        }
