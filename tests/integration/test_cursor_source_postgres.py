"""
Integration tests for keyset-paged reads from a REAL PostgreSQL database.

Connection settings come from the POSTGRES_* environment variables; the
tests are skipped when no server is reachable.
"""

import os
from datetime import UTC, datetime

import pytest

from tablediff.diff import collect_diff
from tablediff.hashing import aggregate
from tablediff.schema import TableSchema
from tablediff.stream import CursorSource, Dialect, IterableSource, OrderedRowStream

psycopg2 = pytest.importorskip("psycopg2")

pytestmark = pytest.mark.integration

ROWS = [
    {"code": "a", "seq": 1, "amount": "10.50", "updated_at": datetime(2024, 1, 1, tzinfo=UTC)},
    {"code": "a", "seq": 2, "amount": None, "updated_at": datetime(2024, 2, 1, tzinfo=UTC)},
    {"code": "B", "seq": 1, "amount": "0.00", "updated_at": datetime(2024, 3, 1, tzinfo=UTC)},
    {"code": "b", "seq": 1, "amount": "-3.25", "updated_at": datetime(2024, 4, 1, tzinfo=UTC)},
    {"code": "Z", "seq": 9, "amount": "99.99", "updated_at": datetime(2024, 5, 1, tzinfo=UTC)},
]


@pytest.fixture(scope="module")
def postgres_connection():
    """Connection to the test database, or skip when none is reachable."""
    try:
        connection = psycopg2.connect(
            host=os.getenv("POSTGRES_HOST", "localhost"),
            port=int(os.getenv("POSTGRES_PORT", "5432")),
            database=os.getenv("POSTGRES_DB", "postgres"),
            user=os.getenv("POSTGRES_USER", "postgres"),
            password=os.getenv("POSTGRES_PASSWORD"),
            connect_timeout=3,
        )
    except psycopg2.OperationalError as e:
        pytest.skip(f"PostgreSQL not available: {e}")

    connection.autocommit = True
    cursor = connection.cursor()
    cursor.execute("DROP TABLE IF EXISTS tablediff_it_ledger")
    cursor.execute(
        "CREATE TABLE tablediff_it_ledger ("
        " code varchar(10) NOT NULL, seq integer NOT NULL, amount numeric(12,2),"
        " updated_at timestamptz NOT NULL, PRIMARY KEY (code, seq))"
    )
    for row in ROWS:
        cursor.execute(
            "INSERT INTO tablediff_it_ledger VALUES (%s, %s, %s, %s)",
            (row["code"], row["seq"], row["amount"], row["updated_at"]),
        )
    cursor.close()

    yield connection

    cursor = connection.cursor()
    cursor.execute("DROP TABLE IF EXISTS tablediff_it_ledger")
    cursor.close()
    connection.close()


@pytest.fixture
def ledger_schema() -> TableSchema:
    return TableSchema.from_descriptor(
        "tablediff_it_ledger",
        [
            {"name": "code", "declared_type": "varchar(10)", "nullable": False},
            {"name": "seq", "declared_type": "integer", "nullable": False},
            {"name": "amount", "declared_type": "numeric(12,2)"},
            {"name": "updated_at", "declared_type": "timestamptz", "nullable": False},
        ],
        key_columns=["code", "seq"],
        dialect="postgresql",
    )


def _cursor_source(connection, fetch_size):
    return CursorSource(
        connection,
        "tablediff_it_ledger",
        dialect=Dialect.POSTGRESQL,
        text_key_columns=["code"],
        fetch_size=fetch_size,
    )


class TestCursorSourcePostgres:
    """Keyset paging against a real table"""

    @pytest.mark.parametrize("fetch_size", [1, 2, 5, 100])
    def test_pages_cover_table_in_code_point_order(
        self, postgres_connection, ledger_schema, fetch_size
    ):
        stream = OrderedRowStream(ledger_schema, _cursor_source(postgres_connection, fetch_size))

        keys = [row_digest.key for row_digest in stream]

        assert keys == [("B", 1), ("Z", 9), ("a", 1), ("a", 2), ("b", 1)]

    def test_digest_matches_file_copy(self, postgres_connection, ledger_schema):
        from decimal import Decimal

        copy = [
            {**row, "amount": Decimal(row["amount"]) if row["amount"] else None}
            for row in ROWS
        ]
        db_digest = aggregate(
            OrderedRowStream(ledger_schema, _cursor_source(postgres_connection, 2))
        )
        file_digest = aggregate(OrderedRowStream(ledger_schema, IterableSource(copy)))

        assert db_digest == file_digest

    def test_watermark_filter(self, postgres_connection, ledger_schema):
        stream = OrderedRowStream(
            ledger_schema,
            _cursor_source(postgres_connection, 2),
            modified_after=datetime(2024, 2, 15, tzinfo=UTC),
        )

        assert [d.key for d in stream] == [("B", 1), ("Z", 9), ("b", 1)]

    def test_diff_against_modified_copy(self, postgres_connection, ledger_schema):
        from decimal import Decimal

        copy = [
            {**row, "amount": Decimal(row["amount"]) if row["amount"] else None}
            for row in ROWS if row["code"] != "Z"
        ]
        copy[0]["amount"] = Decimal("10.51")

        report = collect_diff(
            OrderedRowStream(ledger_schema, _cursor_source(postgres_connection, 2)),
            OrderedRowStream(ledger_schema, IterableSource(copy)),
        )

        assert report.summary.to_dict() == {
            "matched": 3, "changed": 1, "only_left": 1, "only_right": 0, "total": 5,
        }
