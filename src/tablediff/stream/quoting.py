"""
SQL identifier quoting and dialect detection.

Identifiers are validated against a strict ASCII pattern before quoting so
that table and column names taken from a schema descriptor can never carry
SQL into a query.
"""

import re
from enum import Enum
from typing import Any

VALID_IDENTIFIER_PATTERN = re.compile(
    r'^[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)?$'
)


class Dialect(str, Enum):
    """
    Supported SQL dialects.

    Inherits from str for JSON serialization compatibility and
    easy comparison with string values.
    """

    POSTGRESQL = "postgresql"
    SQLSERVER = "sqlserver"

    @classmethod
    def detect(cls, connection: Any) -> "Dialect":
        """
        Detect dialect from a DB-API connection or cursor.

        Args:
            connection: psycopg2 or pyodbc connection/cursor

        Returns:
            Dialect (SQL Server when the driver is not recognized)
        """
        module = type(connection).__module__.lower()
        class_name = type(connection).__name__.lower()

        if "psycopg" in module or "psycopg" in class_name or "postgres" in class_name:
            return cls.POSTGRESQL
        return cls.SQLSERVER

    @property
    def placeholder(self) -> str:
        """Parameter placeholder: psycopg2 uses %s, pyodbc uses ?."""
        return "%s" if self is Dialect.POSTGRESQL else "?"

    @property
    def binary_collation(self) -> str:
        """Collation ordering text by code point, matching Python string order."""
        if self is Dialect.POSTGRESQL:
            return 'COLLATE "C"'
        return "COLLATE Latin1_General_BIN2"


def _validate(identifier: str) -> str:
    clean = identifier.replace('[', '').replace(']', '').replace('"', '')
    if not VALID_IDENTIFIER_PATTERN.match(clean):
        raise ValueError(f"Invalid identifier format: {identifier}")
    return clean


def quote_identifier(identifier: str, dialect: Dialect) -> str:
    """
    Quote a table or column identifier (optionally schema-qualified).

    Args:
        identifier: 'name' or 'schema.name', bare or already quoted
        dialect: Target SQL dialect

    Returns:
        Quoted identifier, e.g. "public"."customers" or [dbo].[customers]

    Raises:
        ValueError: If identifier format is invalid
    """
    parts = _validate(identifier).split('.')
    if dialect is Dialect.POSTGRESQL:
        return '.'.join(f'"{p}"' for p in parts)
    return '.'.join(f'[{p}]' for p in parts)
