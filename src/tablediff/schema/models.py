"""
Schema descriptor model.

A TableSchema is resolved once per run and passed to the engine as data.
Column order is taken from ordinal positions only and is never re-derived
from the engine or from the order rows happen to arrive in.
"""

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

import jsonschema

from tablediff.errors import SchemaMismatchError

from .types import ColumnKind, is_change_tracking_type, kind_for_type

logger = logging.getLogger(__name__)

# Shape of a schema descriptor file
DESCRIPTOR_SCHEMA = {
    "type": "object",
    "required": ["columns"],
    "properties": {
        "table": {"type": "string"},
        "dialect": {"type": "string", "enum": ["sqlserver", "postgresql"]},
        "key": {"type": "array", "items": {"type": "string"}},
        "columns": {
            "type": "array",
            "minItems": 1,
            "items": {
                "type": "object",
                "required": ["name"],
                "anyOf": [{"required": ["kind"]}, {"required": ["declared_type"]}],
                "properties": {
                    "name": {"type": "string", "minLength": 1},
                    "kind": {"type": "string"},
                    "declared_type": {"type": "string"},
                    "nullable": {"type": "boolean"},
                    "ordinal_position": {"type": "integer", "minimum": 1},
                    "is_key_component": {"type": "boolean"},
                    "excluded": {"type": "boolean"},
                },
            },
        },
    },
}


@dataclass(frozen=True)
class ColumnSpec:
    """One column of a table as the engine sees it."""

    name: str
    kind: ColumnKind
    nullable: bool
    ordinal_position: int
    is_key_component: bool = False
    excluded: bool = False
    declared_type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "kind": self.kind.value,
            "nullable": self.nullable,
            "ordinal_position": self.ordinal_position,
            "is_key_component": self.is_key_component,
            "excluded": self.excluded,
            "declared_type": self.declared_type,
        }


@dataclass(frozen=True)
class TableSchema:
    """
    Ordered column specs for a table plus its key columns.

    Columns are kept sorted by ordinal position. key_columns lists the
    identity columns in the order keys are compared.
    """

    name: str
    columns: tuple[ColumnSpec, ...]
    key_columns: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.columns, key=lambda c: c.ordinal_position))
        object.__setattr__(self, "columns", ordered)

        names = [c.name for c in ordered]
        if len(set(names)) != len(names):
            raise SchemaMismatchError(f"Duplicate column names in {self.name}: {names}")

        positions = [c.ordinal_position for c in ordered]
        if len(set(positions)) != len(positions):
            raise SchemaMismatchError(f"Duplicate ordinal positions in {self.name}: {positions}")

        if not self.key_columns:
            keys = tuple(c.name for c in ordered if c.is_key_component)
            object.__setattr__(self, "key_columns", keys)
        else:
            object.__setattr__(self, "key_columns", tuple(self.key_columns))

        missing = [k for k in self.key_columns if k not in names]
        if missing:
            raise SchemaMismatchError(f"Key column(s) {missing} not found in {self.name}")

    @property
    def hashed_columns(self) -> tuple[ColumnSpec, ...]:
        """Columns that participate in the row digest, in ordinal order."""
        return tuple(c for c in self.columns if not c.excluded)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def column(self, name: str) -> ColumnSpec:
        """Look up a column by exact name."""
        for col in self.columns:
            if col.name == name:
                return col
        raise KeyError(name)

    def with_key(self, key_columns: list[str] | tuple[str, ...]) -> "TableSchema":
        """Return a copy of this schema keyed on the given columns."""
        return TableSchema(name=self.name, columns=self.columns, key_columns=tuple(key_columns))

    def excluding(self, names: set[str]) -> "TableSchema":
        """Return a copy with columns whose lower-cased name is in names left out of hashing."""
        columns = tuple(
            replace(c, excluded=True) if c.name.lower() in names else c for c in self.columns
        )
        return TableSchema(name=self.name, columns=columns, key_columns=self.key_columns)

    def restrict_to(
        self, names: set[str], key_columns: tuple[str, ...] | None = None
    ) -> "TableSchema":
        """Return a copy keeping only columns whose lower-cased name is in names."""
        kept = tuple(c for c in self.columns if c.name.lower() in names)
        keys = self.key_columns if key_columns is None else key_columns
        return TableSchema(name=self.name, columns=kept, key_columns=keys)

    @classmethod
    def from_descriptor(
        cls,
        name: str,
        columns: list[dict[str, Any]],
        key_columns: list[str] | None = None,
        dialect: str = "sqlserver",
    ) -> "TableSchema":
        """
        Build a schema from a schema descriptor.

        Each entry needs a 'name' and either a 'kind' or a 'declared_type'.
        Optional fields: 'nullable' (default True), 'is_key_component'
        (default False), 'ordinal_position' (default: list position, 1-based),
        'excluded' (default: True for change-tracking declared types).

        Args:
            name: Table name
            columns: Descriptor entries
            key_columns: Explicit key columns overriding is_key_component flags
            dialect: 'sqlserver' or 'postgresql', used to resolve declared types

        Returns:
            TableSchema instance

        Raises:
            SchemaMismatchError: If a key column is not in the descriptor
            ValueError: If an entry has neither kind nor declared_type
        """
        specs = []
        for position, entry in enumerate(columns, 1):
            declared = entry.get("declared_type")
            if "kind" in entry:
                kind = ColumnKind.parse(entry["kind"])
            elif declared:
                kind = kind_for_type(declared, dialect)
            else:
                raise ValueError(f"Column {entry.get('name')!r} needs a kind or declared_type")

            excluded = entry.get("excluded")
            if excluded is None:
                excluded = bool(declared) and is_change_tracking_type(declared, dialect)

            specs.append(
                ColumnSpec(
                    name=entry["name"],
                    kind=kind,
                    nullable=bool(entry.get("nullable", True)),
                    ordinal_position=int(entry.get("ordinal_position", position)),
                    is_key_component=bool(entry.get("is_key_component", False)),
                    excluded=bool(excluded),
                    declared_type=declared,
                )
            )

        schema = cls(name=name, columns=tuple(specs), key_columns=tuple(key_columns or ()))

        excluded_names = [c.name for c in schema.columns if c.excluded]
        if excluded_names:
            logger.debug(f"Excluding change-tracking columns from {name}: {excluded_names}")

        return schema


def load_schema(path: str, key_columns: list[str] | None = None) -> TableSchema:
    """
    Load a schema descriptor from a JSON file.

    File format:
        {
          "table": "dbo.customers",
          "dialect": "sqlserver",
          "key": ["customer_id"],
          "columns": [{"name": "customer_id", "declared_type": "int"}, ...]
        }

    Args:
        path: Descriptor file path
        key_columns: Explicit key columns overriding the file's 'key'

    Returns:
        TableSchema instance

    Raises:
        ValueError: If the file does not match DESCRIPTOR_SCHEMA
    """
    with open(path) as f:
        descriptor = json.load(f)

    try:
        jsonschema.validate(instance=descriptor, schema=DESCRIPTOR_SCHEMA)
    except jsonschema.exceptions.ValidationError as e:
        raise ValueError(f"Invalid schema descriptor {path}: {e.message}") from e

    return TableSchema.from_descriptor(
        name=descriptor.get("table", Path(path).stem),
        columns=descriptor["columns"],
        key_columns=key_columns or descriptor.get("key"),
        dialect=descriptor.get("dialect", "sqlserver"),
    )


def align_schemas(left: TableSchema, right: TableSchema) -> tuple[TableSchema, TableSchema]:
    """
    Restrict two schemas to the columns they share.

    Columns are matched by case-insensitive name. Each side keeps its own
    ordinal positions, so a column reorder between the sides still shows up
    as a content change. The right side is keyed on the left side's key
    columns, in the left side's key order.

    Args:
        left: Left schema
        right: Right schema

    Returns:
        Tuple of (left, right) schemas restricted to common columns

    Raises:
        SchemaMismatchError: If the left side has no key, a key column is
            absent on the right, or the sides share no hashed column
    """
    if not left.key_columns:
        raise SchemaMismatchError(f"No key columns defined for {left.name}")

    right_by_lower = {c.name.lower(): c for c in right.columns}
    left_by_lower = {c.name.lower(): c for c in left.columns}

    right_keys = []
    for key in left.key_columns:
        match = right_by_lower.get(key.lower())
        if match is None:
            raise SchemaMismatchError(f"Key column {key!r} absent from {right.name}")
        right_keys.append(match.name)

    common = set(left_by_lower) & set(right_by_lower)
    hashed_common = {
        n for n in common
        if not left_by_lower[n].excluded and not right_by_lower[n].excluded
    }
    if not hashed_common:
        raise SchemaMismatchError(f"No common columns between {left.name} and {right.name}")

    dropped = sorted((set(left_by_lower) | set(right_by_lower)) - common)
    if dropped:
        logger.warning(f"Columns present on one side only are not compared: {dropped}")

    for name in sorted(common):
        if left_by_lower[name].kind != right_by_lower[name].kind:
            logger.warning(
                f"Column {name!r} has kind {left_by_lower[name].kind.value} on the left "
                f"and {right_by_lower[name].kind.value} on the right"
            )

    aligned_left = left.restrict_to(common)
    aligned_right = right.restrict_to(common, key_columns=tuple(right_keys))
    return aligned_left, aligned_right
