"""
Row hashing.

Joins a row's canonical tokens in ordinal order with the reserved delimiter
byte and hashes the result. Column order is part of the digest: reordering
or renaming columns is a content change that needs an explicit re-baseline.
"""

import logging
from collections.abc import Mapping, Sequence
from typing import Any

from tablediff.canonical import canonical_bytes
from tablediff.config import DEFAULT_CONFIG, EngineConfig
from tablediff.errors import SchemaMismatchError
from tablediff.schema import ColumnSpec, TableSchema

from .digests import RowDigest

logger = logging.getLogger(__name__)


def row_payload(
    row: Mapping[str, Any],
    ordered_specs: Sequence[ColumnSpec],
    config: EngineConfig = DEFAULT_CONFIG,
) -> bytes:
    """
    Build the byte sequence hashed for a row.

    Args:
        row: Raw row mapping column name to value; missing columns read as NULL
        ordered_specs: Hashed column specs in ordinal order
        config: Engine configuration

    Returns:
        Delimiter-joined UTF-8 tokens
    """
    return config.delimiter.join(
        canonical_bytes(row.get(spec.name), spec, config) for spec in ordered_specs
    )


def hash_row(
    row: Mapping[str, Any],
    ordered_specs: Sequence[ColumnSpec],
    key_columns: Sequence[str],
    config: EngineConfig = DEFAULT_CONFIG,
) -> RowDigest:
    """
    Hash one row.

    Args:
        row: Raw row mapping column name to value
        ordered_specs: Hashed column specs in ordinal order
        key_columns: Columns forming the row's identity
        config: Engine configuration

    Returns:
        RowDigest for the row
    """
    hasher = config.new_digest()
    hasher.update(row_payload(row, ordered_specs, config))
    key = tuple(row.get(col) for col in key_columns)
    return RowDigest(key=key, digest=hasher.digest())


class RowHasher:
    """Hashes rows of one table; excluded columns are never read."""

    def __init__(self, schema: TableSchema, config: EngineConfig = DEFAULT_CONFIG):
        """
        Initialize row hasher.

        Args:
            schema: Table schema (hashed columns and key columns)
            config: Engine configuration

        Raises:
            SchemaMismatchError: If the schema has no hashed columns
        """
        self.schema = schema
        self.config = config
        self.ordered_specs = schema.hashed_columns
        self.key_columns = schema.key_columns

        if not self.ordered_specs:
            raise SchemaMismatchError(f"No hashable columns in {schema.name}")

        logger.debug(
            f"RowHasher for {schema.name}: "
            f"{len(self.ordered_specs)} hashed columns, key={list(self.key_columns)}"
        )

    def hash(self, row: Mapping[str, Any]) -> RowDigest:
        """Hash one row of this table."""
        return hash_row(row, self.ordered_specs, self.key_columns, self.config)
