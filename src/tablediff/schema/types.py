"""
Declared column type mapping.

Maps SQL Server and PostgreSQL declared type names onto the small set of
column kinds the canonicalizer understands. Change-tracking types (an
ever-incrementing version stamp with no business meaning) are flagged so the
schema descriptor can exclude them from hashing.
"""

import re
from enum import Enum


class ColumnKind(str, Enum):
    """
    Kind of a column as seen by the canonicalizer.

    Inherits from str for JSON serialization compatibility and
    easy comparison with string values.
    """

    BOOLEAN = "boolean"
    TEXT = "text"
    NUMERIC = "numeric"
    TEMPORAL = "temporal"
    BINARY = "binary"
    OTHER = "other"

    @classmethod
    def parse(cls, value: "str | ColumnKind") -> "ColumnKind":
        """Parse a kind name case-insensitively."""
        if isinstance(value, ColumnKind):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ValueError(f"Unknown column kind: {value}") from None


_TYPE_KINDS: dict[str, ColumnKind] = {
    # Boolean
    "bit": ColumnKind.BOOLEAN,
    "bool": ColumnKind.BOOLEAN,
    "boolean": ColumnKind.BOOLEAN,
    # Text and structured text
    "char": ColumnKind.TEXT,
    "nchar": ColumnKind.TEXT,
    "varchar": ColumnKind.TEXT,
    "nvarchar": ColumnKind.TEXT,
    "text": ColumnKind.TEXT,
    "ntext": ColumnKind.TEXT,
    "character": ColumnKind.TEXT,
    "character varying": ColumnKind.TEXT,
    "bpchar": ColumnKind.TEXT,
    "citext": ColumnKind.TEXT,
    "xml": ColumnKind.TEXT,
    "json": ColumnKind.TEXT,
    "jsonb": ColumnKind.TEXT,
    "sysname": ColumnKind.TEXT,
    # Numeric
    "tinyint": ColumnKind.NUMERIC,
    "smallint": ColumnKind.NUMERIC,
    "int": ColumnKind.NUMERIC,
    "integer": ColumnKind.NUMERIC,
    "bigint": ColumnKind.NUMERIC,
    "int2": ColumnKind.NUMERIC,
    "int4": ColumnKind.NUMERIC,
    "int8": ColumnKind.NUMERIC,
    "decimal": ColumnKind.NUMERIC,
    "numeric": ColumnKind.NUMERIC,
    "money": ColumnKind.NUMERIC,
    "smallmoney": ColumnKind.NUMERIC,
    "float": ColumnKind.NUMERIC,
    "float4": ColumnKind.NUMERIC,
    "float8": ColumnKind.NUMERIC,
    "real": ColumnKind.NUMERIC,
    "double precision": ColumnKind.NUMERIC,
    "serial": ColumnKind.NUMERIC,
    "bigserial": ColumnKind.NUMERIC,
    # Temporal
    "date": ColumnKind.TEMPORAL,
    "time": ColumnKind.TEMPORAL,
    "datetime": ColumnKind.TEMPORAL,
    "datetime2": ColumnKind.TEMPORAL,
    "smalldatetime": ColumnKind.TEMPORAL,
    "datetimeoffset": ColumnKind.TEMPORAL,
    "timestamptz": ColumnKind.TEMPORAL,
    "timetz": ColumnKind.TEMPORAL,
    "time with time zone": ColumnKind.TEMPORAL,
    "time without time zone": ColumnKind.TEMPORAL,
    "timestamp with time zone": ColumnKind.TEMPORAL,
    "timestamp without time zone": ColumnKind.TEMPORAL,
    # Binary
    "binary": ColumnKind.BINARY,
    "varbinary": ColumnKind.BINARY,
    "image": ColumnKind.BINARY,
    "bytea": ColumnKind.BINARY,
    # Other
    "uniqueidentifier": ColumnKind.OTHER,
    "uuid": ColumnKind.OTHER,
}

# SQL Server's "timestamp" is a rowversion, not a temporal value
_SQLSERVER_CHANGE_TRACKING = frozenset({"rowversion", "timestamp"})
_POSTGRES_CHANGE_TRACKING = frozenset({"xid", "xid8"})

_TYPE_ARGS = re.compile(r"\s*\(.*\)\s*")


def normalize_type_name(declared_type: str) -> str:
    """Strip length/precision arguments and normalize case: 'NUMERIC(10, 2)' -> 'numeric'."""
    return _TYPE_ARGS.sub(" ", declared_type).strip().lower()


def is_change_tracking_type(declared_type: str, dialect: str = "sqlserver") -> bool:
    """
    Check whether a declared type is a pure change-tracking artifact.

    Args:
        declared_type: Declared column type from the catalog
        dialect: 'sqlserver' or 'postgresql'

    Returns:
        True if the column must be excluded from hashing
    """
    name = normalize_type_name(declared_type)
    if dialect == "postgresql":
        return name in _POSTGRES_CHANGE_TRACKING
    return name in _SQLSERVER_CHANGE_TRACKING


def kind_for_type(declared_type: str, dialect: str = "sqlserver") -> ColumnKind:
    """
    Map a declared type name to a column kind.

    Args:
        declared_type: Declared column type (e.g. 'nvarchar(50)', 'timestamp')
        dialect: 'sqlserver' or 'postgresql'; decides what 'timestamp' means

    Returns:
        ColumnKind for the type (OTHER when unknown)
    """
    name = normalize_type_name(declared_type)

    if name == "timestamp":
        # PostgreSQL timestamp is temporal; SQL Server timestamp is a rowversion
        return ColumnKind.TEMPORAL if dialect == "postgresql" else ColumnKind.BINARY
    if name == "rowversion":
        return ColumnKind.BINARY
    if name.endswith("[]"):
        return ColumnKind.OTHER

    return _TYPE_KINDS.get(name, ColumnKind.OTHER)
