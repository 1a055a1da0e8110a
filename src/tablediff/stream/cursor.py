"""
DB-API data source for SQL Server (pyodbc) and PostgreSQL (psycopg2).

Rows are read with keyset pagination: each page is
SELECT ... WHERE key > last_key ORDER BY key, fetched with retries on
transient errors. Text key columns are compared and ordered under a
binary collation so the database agrees with Python on key order.
"""

import logging
from collections.abc import Iterable, Iterator, Sequence
from datetime import datetime
from typing import Any

from tablediff.utils.retry import retry_database_operation

from .quoting import Dialect, quote_identifier
from .source import KeyRange, RawRow

logger = logging.getLogger(__name__)


def keyset_predicate(
    key_exprs: Sequence[str],
    values: Sequence[Any],
    operator: str,
    placeholder: str,
) -> tuple[str, list[Any]]:
    """
    Build a lexicographic comparison over a composite key.

    (a, b) > (x, y) expands to (a > x) OR (a = x AND b > y), which both
    dialects accept; SQL Server has no row value constructors.

    Args:
        key_exprs: Column expressions, most significant first
        values: Values to compare against, same length as key_exprs
        operator: One of '>', '>=', '<'
        placeholder: Parameter placeholder for the driver

    Returns:
        Tuple of (SQL fragment, parameters in placeholder order)
    """
    if operator not in (">", ">=", "<"):
        raise ValueError(f"Unsupported key operator: {operator}")
    if len(key_exprs) != len(values):
        raise ValueError("Key expressions and values differ in length")

    strict = operator[0]
    clauses = []
    params: list[Any] = []

    for i in range(len(key_exprs)):
        op = operator if i == len(key_exprs) - 1 else strict
        terms = [f"{key_exprs[j]} = {placeholder}" for j in range(i)]
        terms.append(f"{key_exprs[i]} {op} {placeholder}")
        params.extend(values[:i])
        params.append(values[i])
        clauses.append("(" + " AND ".join(terms) + ")")

    return "(" + " OR ".join(clauses) + ")", params


class CursorSource:
    """
    Data source backed by a DB-API connection.

    A new cursor is opened for every read and closed when the read ends,
    so one CursorSource may serve several partitions as long as the
    connection itself tolerates concurrent cursors.
    """

    def __init__(
        self,
        connection: Any,
        table: str,
        dialect: Dialect | str | None = None,
        text_key_columns: Iterable[str] = (),
        fetch_size: int = 10000,
        max_retries: int = 3,
    ):
        """
        Initialize cursor source.

        Args:
            connection: pyodbc or psycopg2 connection
            table: Table name, optionally schema-qualified
            dialect: SQL dialect (detected from the connection when None)
            text_key_columns: Key columns holding text, compared under a
                binary collation
            fetch_size: Rows per page
            max_retries: Retries for transient errors per page
        """
        self.connection = connection
        self.table = table
        self.dialect = Dialect(dialect) if dialect else Dialect.detect(connection)
        self.text_key_columns = {c.lower() for c in text_key_columns}
        self.fetch_size = fetch_size
        self.name = f"{self.dialect.value}:{table}"
        self._fetch_page = retry_database_operation(max_retries=max_retries)(self._execute)

        logger.debug(f"CursorSource {self.name} (fetch_size={fetch_size})")

    def _key_expr(self, column: str) -> str:
        quoted = quote_identifier(column, self.dialect)
        if column.lower() in self.text_key_columns:
            return f"{quoted} {self.dialect.binary_collation}"
        return quoted

    def build_query(
        self,
        order_by: Sequence[str],
        columns: Sequence[str],
        after_key: tuple | None = None,
        modified_after: datetime | None = None,
        modified_column: str | None = None,
        key_range: KeyRange | None = None,
    ) -> tuple[str, list[Any]]:
        """
        Build one page query.

        Returns:
            Tuple of (query, parameters)
        """
        ph = self.dialect.placeholder
        key_exprs = [self._key_expr(c) for c in order_by]
        select_list = ", ".join(quote_identifier(c, self.dialect) for c in columns)
        table = quote_identifier(self.table, self.dialect)

        predicates: list[str] = []
        params: list[Any] = []

        if modified_after is not None:
            if not modified_column:
                raise ValueError("modified_after requires a modified_column")
            predicates.append(f"{quote_identifier(modified_column, self.dialect)} > {ph}")
            params.append(modified_after)

        if key_range is not None and key_range.lower is not None:
            sql, p = keyset_predicate(key_exprs, key_range.lower, ">=", ph)
            predicates.append(sql)
            params.extend(p)

        if key_range is not None and key_range.upper is not None:
            sql, p = keyset_predicate(key_exprs, key_range.upper, "<", ph)
            predicates.append(sql)
            params.extend(p)

        if after_key is not None:
            sql, p = keyset_predicate(key_exprs, after_key, ">", ph)
            predicates.append(sql)
            params.extend(p)

        order_clause = ", ".join(f"{expr} ASC" for expr in key_exprs)

        if self.dialect is Dialect.SQLSERVER:
            query = f"SELECT TOP ({int(self.fetch_size)}) {select_list} FROM {table}"
        else:
            query = f"SELECT {select_list} FROM {table}"

        if predicates:
            query += " WHERE " + " AND ".join(predicates)
        query += f" ORDER BY {order_clause}"

        if self.dialect is Dialect.POSTGRESQL:
            query += f" LIMIT {int(self.fetch_size)}"

        return query, params

    def _execute(self, cursor: Any, query: str, params: list[Any]) -> list[RawRow]:
        cursor.execute(query, params)
        names = [desc[0] for desc in cursor.description]
        return [dict(zip(names, row)) for row in cursor.fetchall()]

    def rows(
        self,
        order_by: Sequence[str],
        columns: Sequence[str],
        modified_after: datetime | None = None,
        modified_column: str | None = None,
        key_range: KeyRange | None = None,
    ) -> Iterator[RawRow]:
        if not order_by:
            raise ValueError("CursorSource needs at least one order_by column")

        cursor = self.connection.cursor()
        after_key = None
        pages = 0
        try:
            while True:
                query, params = self.build_query(
                    order_by, columns, after_key, modified_after, modified_column, key_range
                )
                page = self._fetch_page(cursor, query, params)
                pages += 1

                yield from page

                if len(page) < self.fetch_size:
                    break
                last = page[-1]
                after_key = tuple(last.get(c) for c in order_by)
        finally:
            cursor.close()
            logger.debug(f"Read {pages} page(s) from {self.name}")

    def __str__(self) -> str:
        return self.name
