"""
Database settings and data source resolution for the CLI.

Settings come from command-line flags, falling back to SQLSERVER_* and
POSTGRES_* environment variables. Drivers are imported when a database
source is actually requested, so file-only runs need neither ODBC nor libpq.
"""

import argparse
import logging
import os
import threading
from typing import Any

from tablediff.config import EngineConfig
from tablediff.schema import ColumnKind, TableSchema
from tablediff.stream import CursorSource, DataSource, Dialect, JsonLinesSource

logger = logging.getLogger(__name__)

SQLSERVER_PREFIX = "sqlserver:"
POSTGRES_PREFIXES = ("postgresql:", "postgres:")


def get_sqlserver_config(args: argparse.Namespace) -> dict[str, Any]:
    """
    Get SQL Server settings from args or environment

    Raises:
        ValueError: If no password is provided
    """
    config = {
        "server": args.sqlserver_server or os.getenv("SQLSERVER_HOST", "localhost"),
        "database": args.sqlserver_database or os.getenv("SQLSERVER_DATABASE", "master"),
        "username": args.sqlserver_user or os.getenv("SQLSERVER_USER", "sa"),
        "password": args.sqlserver_password or os.getenv("SQLSERVER_PASSWORD"),
        "driver": os.getenv("SQLSERVER_DRIVER", "ODBC Driver 18 for SQL Server"),
    }
    if not config["password"]:
        raise ValueError("SQL Server password not provided")
    return config


def get_postgres_config(args: argparse.Namespace) -> dict[str, Any]:
    """
    Get PostgreSQL settings from args or environment

    Raises:
        ValueError: If no password is provided
    """
    config = {
        "host": args.postgres_host or os.getenv("POSTGRES_HOST", "localhost"),
        "port": int(args.postgres_port or os.getenv("POSTGRES_PORT", "5432")),
        "database": args.postgres_database or os.getenv("POSTGRES_DB", "postgres"),
        "username": args.postgres_user or os.getenv("POSTGRES_USER", "postgres"),
        "password": args.postgres_password or os.getenv("POSTGRES_PASSWORD"),
    }
    if not config["password"]:
        raise ValueError("PostgreSQL password not provided")
    return config


def connect_sqlserver(config: dict[str, Any]) -> Any:
    import pyodbc

    connection = pyodbc.connect(
        f"DRIVER={{{config['driver']}}};"
        f"SERVER={config['server']};"
        f"DATABASE={config['database']};"
        f"UID={config['username']};"
        f"PWD={config['password']};"
        f"TrustServerCertificate=yes;"
    )
    logger.info(f"Connected to SQL Server {config['server']}/{config['database']}")
    return connection


def connect_postgres(config: dict[str, Any]) -> Any:
    import psycopg2

    connection = psycopg2.connect(
        host=config['host'],
        port=config['port'],
        database=config['database'],
        user=config['username'],
        password=config['password']
    )
    logger.info(f"Connected to PostgreSQL {config['host']}:{config['port']}/{config['database']}")
    return connection


def _text_keys(schema: TableSchema) -> list[str]:
    return [k for k in schema.key_columns if schema.column(k).kind is ColumnKind.TEXT]


class SourceOpener:
    """
    Resolves data source arguments and owns the connections it opens.

    Every call to open() for a database source opens a new connection, so
    parallel partitions never share one. close() closes them all.
    """

    def __init__(self, args: argparse.Namespace, config: EngineConfig):
        self.args = args
        self.config = config
        self._connections: list[Any] = []
        self._lock = threading.Lock()

    def open(self, spec: str, schema: TableSchema) -> DataSource:
        """
        Open a data source.

        Args:
            spec: 'sqlserver:<table>', 'postgresql:<table>' or a JSON lines path
            schema: Schema of the table (for text key collation)

        Returns:
            DataSource
        """
        if spec.startswith(SQLSERVER_PREFIX):
            table = spec[len(SQLSERVER_PREFIX):]
            connection = connect_sqlserver(get_sqlserver_config(self.args))
            dialect = Dialect.SQLSERVER
        elif spec.startswith(POSTGRES_PREFIXES):
            table = spec.split(":", 1)[1]
            connection = connect_postgres(get_postgres_config(self.args))
            dialect = Dialect.POSTGRESQL
        else:
            return JsonLinesSource(spec)

        with self._lock:
            self._connections.append(connection)
        return CursorSource(
            connection,
            table,
            dialect=dialect,
            text_key_columns=_text_keys(schema),
            fetch_size=self.config.fetch_size,
        )

    def close(self) -> None:
        with self._lock:
            connections = list(self._connections)
            self._connections.clear()
        for connection in connections:
            try:
                connection.close()
            except Exception as e:
                logger.warning(f"Error closing connection: {e}")
