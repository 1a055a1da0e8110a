"""
Unit tests for the schema descriptor model.

Tests declared type mapping, change-tracking exclusion, descriptor loading
and alignment of two schemas for a diff.
"""

import json
import tempfile
from pathlib import Path

import pytest

from tablediff.errors import SchemaMismatchError
from tablediff.schema import (
    ColumnKind,
    ColumnSpec,
    TableSchema,
    align_schemas,
    is_change_tracking_type,
    kind_for_type,
    load_schema,
    normalize_type_name,
)


class TestTypeMapping:
    """Test declared type to kind mapping"""

    @pytest.mark.parametrize("declared,dialect,kind", [
        ("bit", "sqlserver", ColumnKind.BOOLEAN),
        ("NVARCHAR(255)", "sqlserver", ColumnKind.TEXT),
        ("decimal(12, 2)", "sqlserver", ColumnKind.NUMERIC),
        ("datetime2(7)", "sqlserver", ColumnKind.TEMPORAL),
        ("timestamp", "sqlserver", ColumnKind.BINARY),
        ("timestamp", "postgresql", ColumnKind.TEMPORAL),
        ("timestamp(6) with time zone", "postgresql", ColumnKind.TEMPORAL),
        ("bytea", "postgresql", ColumnKind.BINARY),
        ("uuid", "postgresql", ColumnKind.OTHER),
        ("integer[]", "postgresql", ColumnKind.OTHER),
        ("geography", "sqlserver", ColumnKind.OTHER),
    ])
    def test_kind_for_type(self, declared, dialect, kind):
        assert kind_for_type(declared, dialect) is kind

    def test_normalize_type_name(self):
        assert normalize_type_name("NUMERIC(10, 2)") == "numeric"
        assert normalize_type_name(" Character Varying(20) ") == "character varying"

    @pytest.mark.parametrize("declared,dialect,expected", [
        ("rowversion", "sqlserver", True),
        ("timestamp", "sqlserver", True),
        ("timestamp", "postgresql", False),
        ("xid", "postgresql", True),
        ("datetime2", "sqlserver", False),
    ])
    def test_change_tracking_types(self, declared, dialect, expected):
        assert is_change_tracking_type(declared, dialect) is expected

    def test_parse_kind(self):
        assert ColumnKind.parse("Temporal") is ColumnKind.TEMPORAL
        with pytest.raises(ValueError, match="Unknown column kind"):
            ColumnKind.parse("blob")


class TestTableSchema:
    """Test TableSchema construction and helpers"""

    def test_columns_sorted_by_ordinal(self):
        schema = TableSchema(
            name="t",
            columns=(
                ColumnSpec("b", ColumnKind.TEXT, True, 2),
                ColumnSpec("a", ColumnKind.NUMERIC, False, 1, is_key_component=True),
            ),
        )
        assert schema.column_names == ["a", "b"]
        assert schema.key_columns == ("a",)

    def test_duplicate_names_rejected(self):
        with pytest.raises(SchemaMismatchError, match="Duplicate column names"):
            TableSchema(
                name="t",
                columns=(
                    ColumnSpec("a", ColumnKind.TEXT, True, 1),
                    ColumnSpec("a", ColumnKind.TEXT, True, 2),
                ),
            )

    def test_duplicate_positions_rejected(self):
        with pytest.raises(SchemaMismatchError, match="Duplicate ordinal"):
            TableSchema(
                name="t",
                columns=(
                    ColumnSpec("a", ColumnKind.TEXT, True, 1),
                    ColumnSpec("b", ColumnKind.TEXT, True, 1),
                ),
            )

    def test_unknown_key_rejected(self):
        with pytest.raises(SchemaMismatchError, match="not found"):
            TableSchema(
                name="t",
                columns=(ColumnSpec("a", ColumnKind.TEXT, True, 1),),
                key_columns=("missing",),
            )

    def test_change_tracking_column_excluded(self, customers_schema):
        assert customers_schema.column("row_ver").excluded is True
        assert "row_ver" not in [c.name for c in customers_schema.hashed_columns]
        assert customers_schema.column("updated_at").excluded is False

    def test_excluding_leaves_columns_out_of_hashing(self, customers_schema):
        trimmed = customers_schema.excluding({"updated_at"})

        assert trimmed.column("updated_at").excluded is True
        assert trimmed.column("row_ver").excluded is True
        assert trimmed.key_columns == customers_schema.key_columns
        assert customers_schema.column("updated_at").excluded is False

    def test_from_descriptor_requires_kind_or_type(self):
        with pytest.raises(ValueError, match="needs a kind or declared_type"):
            TableSchema.from_descriptor("t", [{"name": "a"}])

    def test_explicit_key_overrides_flags(self, customers_schema):
        rekeyed = customers_schema.with_key(["email"])
        assert rekeyed.key_columns == ("email",)

    def test_to_dict(self, people_schema):
        data = people_schema.column("id").to_dict()
        assert data["kind"] == "numeric"
        assert data["is_key_component"] is True


class TestLoadSchema:
    """Test loading schema descriptor files"""

    def setup_method(self):
        self.temp_dir = tempfile.mkdtemp()

    def teardown_method(self):
        import shutil
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def _write(self, descriptor: dict) -> str:
        path = Path(self.temp_dir) / "schema.json"
        path.write_text(json.dumps(descriptor))
        return str(path)

    def test_load_descriptor(self):
        path = self._write({
            "table": "public.orders",
            "dialect": "postgresql",
            "key": ["order_id"],
            "columns": [
                {"name": "order_id", "declared_type": "bigint"},
                {"name": "placed_at", "declared_type": "timestamp"},
                {"name": "xmin", "declared_type": "xid"},
            ],
        })

        schema = load_schema(path)

        assert schema.name == "public.orders"
        assert schema.key_columns == ("order_id",)
        assert schema.column("placed_at").kind is ColumnKind.TEMPORAL
        assert schema.column("xmin").excluded is True

    def test_key_argument_overrides_file(self):
        path = self._write({
            "key": ["a"],
            "columns": [{"name": "a", "kind": "numeric"}, {"name": "b", "kind": "text"}],
        })
        assert load_schema(path, key_columns=["b"]).key_columns == ("b",)

    def test_table_name_defaults_to_file_stem(self):
        path = self._write({"columns": [{"name": "a", "kind": "numeric"}]})
        assert load_schema(path).name == "schema"

    def test_invalid_descriptor_rejected(self):
        path = self._write({"columns": [{"name": "a"}]})
        with pytest.raises(ValueError, match="Invalid schema descriptor"):
            load_schema(path)

    def test_unknown_dialect_rejected(self):
        path = self._write({"dialect": "oracle", "columns": [{"name": "a", "kind": "text"}]})
        with pytest.raises(ValueError, match="Invalid schema descriptor"):
            load_schema(path)


class TestAlignSchemas:
    """Test restricting two schemas to their common columns"""

    def _schema(self, name, columns, key):
        return TableSchema.from_descriptor(name, columns, key_columns=key)

    def test_case_insensitive_match(self):
        left = self._schema("l", [
            {"name": "ID", "kind": "numeric"}, {"name": "Name", "kind": "text"},
        ], ["ID"])
        right = self._schema("r", [
            {"name": "id", "kind": "numeric"}, {"name": "name", "kind": "text"},
        ], None)

        aligned_left, aligned_right = align_schemas(left, right)

        assert aligned_right.key_columns == ("id",)
        assert aligned_left.column_names == ["ID", "Name"]
        assert aligned_right.column_names == ["id", "name"]

    def test_one_sided_columns_dropped(self):
        left = self._schema("l", [
            {"name": "id", "kind": "numeric"}, {"name": "legacy", "kind": "text"},
            {"name": "name", "kind": "text"},
        ], ["id"])
        right = self._schema("r", [
            {"name": "id", "kind": "numeric"}, {"name": "name", "kind": "text"},
            {"name": "extra", "kind": "text"},
        ], None)

        aligned_left, aligned_right = align_schemas(left, right)

        assert aligned_left.column_names == ["id", "name"]
        assert aligned_right.column_names == ["id", "name"]

    def test_missing_key_on_right(self):
        left = self._schema("l", [{"name": "id", "kind": "numeric"}], ["id"])
        right = self._schema("r", [{"name": "other", "kind": "numeric"}], None)

        with pytest.raises(SchemaMismatchError, match="absent"):
            align_schemas(left, right)

    def test_no_key_on_left(self):
        left = self._schema("l", [{"name": "id", "kind": "numeric"}], None)
        right = self._schema("r", [{"name": "id", "kind": "numeric"}], None)

        with pytest.raises(SchemaMismatchError, match="No key columns"):
            align_schemas(left, right)

    def test_no_common_hashed_columns(self):
        left = self._schema("l", [
            {"name": "id", "kind": "numeric", "excluded": True},
        ], ["id"])
        right = self._schema("r", [{"name": "id", "kind": "numeric"}], None)

        with pytest.raises(SchemaMismatchError, match="No common columns"):
            align_schemas(left, right)
