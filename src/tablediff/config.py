"""
Engine configuration.

The engine holds no process-wide state: every entry point receives an
EngineConfig explicitly. DEFAULT_CONFIG is used when the caller passes none.
"""

import hashlib
import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Bytes that never occur in well-formed UTF-8
NON_UTF8_BYTES = frozenset({0xC0, 0xC1} | set(range(0xF5, 0x100)))

# Digests acceptable only when the caller does not need collision resistance
WEAK_DIGESTS = frozenset({"md5", "sha1"})


@dataclass(frozen=True)
class EngineConfig:
    """
    Settings shared by canonicalization, hashing and streaming.

    Attributes:
        delimiter: Single byte joining encoded tokens; must be a byte that
            cannot appear in UTF-8 so no token can ever contain it
        digest_algorithm: hashlib algorithm name for row and table digests
        max_token_width: Upper bound on numeric/other token length
        fetch_size: Rows fetched per round trip by cursor-backed sources
        change_tracking_column: Column compared against the watermark
    """

    delimiter: bytes = b"\xff"
    digest_algorithm: str = "sha256"
    max_token_width: int = 500
    fetch_size: int = 10000
    change_tracking_column: str = "updated_at"

    def __post_init__(self) -> None:
        if len(self.delimiter) != 1 or self.delimiter[0] not in NON_UTF8_BYTES:
            raise ValueError(
                f"Delimiter must be a single byte that cannot occur in UTF-8, "
                f"got {self.delimiter!r}"
            )

        if self.digest_algorithm not in hashlib.algorithms_available:
            raise ValueError(f"Unknown digest algorithm: {self.digest_algorithm}")

        if self.max_token_width <= 0:
            raise ValueError("max_token_width must be positive")

        if self.fetch_size <= 0:
            raise ValueError("fetch_size must be positive")

        if self.digest_algorithm in WEAK_DIGESTS:
            logger.warning(
                f"Digest algorithm {self.digest_algorithm} is not collision resistant; "
                f"use it only when digests are not trusted for integrity"
            )

    def new_digest(self):
        """Create a fresh hashlib object for the configured algorithm."""
        return hashlib.new(self.digest_algorithm)

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """
        Build a configuration from environment variables

        Environment variables:
            TABLEDIFF_DIGEST: Digest algorithm (default: sha256)
            TABLEDIFF_MAX_TOKEN_WIDTH: Token width cap (default: 500)
            TABLEDIFF_FETCH_SIZE: Rows per fetch (default: 10000)
            TABLEDIFF_CHANGE_COLUMN: Change tracking column (default: updated_at)

        Returns:
            EngineConfig instance
        """
        return cls(
            digest_algorithm=os.getenv("TABLEDIFF_DIGEST", "sha256"),
            max_token_width=int(os.getenv("TABLEDIFF_MAX_TOKEN_WIDTH", "500")),
            fetch_size=int(os.getenv("TABLEDIFF_FETCH_SIZE", "10000")),
            change_tracking_column=os.getenv("TABLEDIFF_CHANGE_COLUMN", "updated_at"),
        )


DEFAULT_CONFIG = EngineConfig()
