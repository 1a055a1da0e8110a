"""
Schema descriptor: typed column model consumed by the engine.

The engine never infers types from raw values; kinds come from the
descriptor, either directly or mapped from declared SQL type names.
"""

from .models import ColumnSpec, TableSchema, align_schemas, load_schema
from .types import ColumnKind, is_change_tracking_type, kind_for_type, normalize_type_name

__all__ = [
    "ColumnKind",
    "ColumnSpec",
    "TableSchema",
    "align_schemas",
    "load_schema",
    "kind_for_type",
    "is_change_tracking_type",
    "normalize_type_name",
]
