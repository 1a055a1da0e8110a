"""
Unit tests for row hashing and table digest aggregation.

Tests verify:
- Row payload layout (ordinal order, reserved delimiter)
- Column order sensitivity and NULL vs false
- Table digest determinism, order dependence and cancellation
"""

import hashlib

import pytest

from tablediff.cancellation import CancellationToken
from tablediff.config import EngineConfig
from tablediff.errors import RunCancelledError, SchemaMismatchError
from tablediff.hashing import (
    RowDigest,
    RowHasher,
    TableDigestAccumulator,
    aggregate,
    hash_row,
    row_payload,
)
from tablediff.schema import ColumnKind, ColumnSpec, TableSchema


class TestRowPayload:
    """Test the byte sequence hashed per row"""

    def test_tokens_joined_with_delimiter(self, people_schema):
        payload = row_payload({"id": 1, "name": "Alice"}, people_schema.hashed_columns)
        assert payload == b"1\xffAlice"

    def test_missing_column_reads_as_null(self, people_schema):
        payload = row_payload({"id": 1}, people_schema.hashed_columns)
        assert payload == b"1\xff"

    def test_excluded_columns_not_hashed(self, customers_schema):
        row = {
            "customer_id": 7, "email": "a@example.com", "active": True,
            "balance": None, "updated_at": None, "row_ver": b"\x00\x00\x07\xd1",
        }
        # row_ver is binary and would raise if it were hashed
        payload = row_payload(row, customers_schema.hashed_columns)
        assert payload == b"7\xffa@example.com\xff1\xff\xff"


class TestRowHasher:
    """Test RowHasher and hash_row"""

    def test_digest_is_sha256_of_payload(self, people_schema):
        hasher = RowHasher(people_schema)

        result = hasher.hash({"id": 1, "name": "Alice"})

        assert result.key == (1,)
        assert result.digest == hashlib.sha256(b"1\xffAlice").digest()
        assert len(result.digest) == 32

    def test_same_row_same_digest(self, people_schema):
        hasher = RowHasher(people_schema)
        assert hasher.hash({"id": 1, "name": "A"}) == hasher.hash({"name": "A", "id": 1})

    def test_column_order_changes_digest(self):
        row = {"a": "x", "b": "y"}
        first = (ColumnSpec("a", ColumnKind.TEXT, True, 1), ColumnSpec("b", ColumnKind.TEXT, True, 2))
        swapped = (ColumnSpec("b", ColumnKind.TEXT, True, 1), ColumnSpec("a", ColumnKind.TEXT, True, 2))

        assert hash_row(row, first, ["a"]).digest != hash_row(row, swapped, ["a"]).digest

    def test_null_vs_false_boolean(self):
        schema = TableSchema(
            name="flags",
            columns=(
                ColumnSpec("id", ColumnKind.NUMERIC, False, 1, is_key_component=True),
                ColumnSpec("active", ColumnKind.BOOLEAN, True, 2),
            ),
        )
        hasher = RowHasher(schema)

        assert hasher.hash({"id": 5, "active": None}).digest != hasher.hash(
            {"id": 5, "active": False}
        ).digest

    def test_token_boundaries_are_unambiguous(self):
        specs = (ColumnSpec("a", ColumnKind.TEXT, True, 1), ColumnSpec("b", ColumnKind.TEXT, True, 2))
        assert hash_row({"a": "ab", "b": "c"}, specs, ["a"]).digest != hash_row(
            {"a": "a", "b": "bc"}, specs, ["a"]
        ).digest

    def test_configured_algorithm(self, people_schema):
        hasher = RowHasher(people_schema, EngineConfig(digest_algorithm="sha512"))
        assert len(hasher.hash({"id": 1, "name": "x"}).digest) == 64

    def test_no_hashed_columns_rejected(self):
        schema = TableSchema(
            name="t",
            columns=(ColumnSpec("v", ColumnKind.BINARY, True, 1, excluded=True),),
        )
        with pytest.raises(SchemaMismatchError):
            RowHasher(schema)

    def test_row_digest_to_dict(self):
        digest = RowDigest(key=(1, "a"), digest=b"\x01\x02")
        assert digest.to_dict() == {"key": [1, "a"], "digest": "0102"}


class TestAggregation:
    """Test whole-table digests"""

    def _digests(self, *values: bytes) -> list[RowDigest]:
        return [RowDigest((i,), hashlib.sha256(v).digest()) for i, v in enumerate(values)]

    def test_digest_over_concatenated_row_digests(self):
        rows = self._digests(b"a", b"b")

        result = aggregate(rows)

        expected = hashlib.sha256(rows[0].digest + rows[1].digest).digest()
        assert result.digest == expected
        assert result.row_count == 2
        assert len(result.hex()) == 64

    def test_deterministic(self):
        rows = self._digests(b"a", b"b", b"c")
        assert aggregate(rows) == aggregate(list(rows))

    def test_order_dependent(self):
        rows = self._digests(b"a", b"b")
        assert aggregate(rows).digest != aggregate(list(reversed(rows))).digest

    def test_empty_table(self):
        result = aggregate([])
        assert result.row_count == 0
        assert result.digest == hashlib.sha256(b"").digest()

    def test_cancelled_run_returns_nothing(self):
        token = CancellationToken()
        token.cancel("operator abort")

        with pytest.raises(RunCancelledError, match="operator abort"):
            aggregate(self._digests(b"a"), cancel_token=token)

    def test_accumulator_matches_aggregate(self):
        rows = self._digests(b"a", b"b")
        accumulator = TableDigestAccumulator()
        for row in rows:
            accumulator.update(row)

        assert accumulator.row_count == 2
        assert accumulator.finalize() == aggregate(rows)

    def test_accumulator_rejects_update_after_finalize(self):
        accumulator = TableDigestAccumulator()
        accumulator.finalize()
        with pytest.raises(RuntimeError):
            accumulator.update(RowDigest((1,), b"x"))

    def test_table_digest_to_dict(self):
        data = aggregate(self._digests(b"a")).to_dict()
        assert data["row_count"] == 1
        assert data["algorithm"] == "sha256"
