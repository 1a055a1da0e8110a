"""
Column value canonicalization.

Turns one raw value plus its column spec into a canonical text token,
stripped of driver and locale rendering variance. Rules, in priority order:

1. NULL becomes the empty string. NULL and empty text are therefore
   indistinguishable after canonicalization; this is a known limitation.
2. Boolean becomes "1" or "0".
3. Temporal values use the fixed-width pattern from temporal.py.
4. UUIDs (uuid.UUID values or uniqueidentifier/uuid columns) become
   lower-case hyphenated text.
5. Text passes through unchanged.
6. Numeric and everything else becomes fixed-point decimal text, bounded
   by EngineConfig.max_token_width.

Raw binary values are never canonicalized; large objects are hashed out of
band and the canonicalizer raises UnsupportedTypeError for them.
"""

import math
import uuid
from decimal import Decimal
from typing import Any

from tablediff.config import DEFAULT_CONFIG, EngineConfig
from tablediff.errors import UnsupportedTypeError
from tablediff.schema import ColumnKind, ColumnSpec, normalize_type_name

from .temporal import format_temporal

NULL_TOKEN = ""

_BINARY_TYPES = (bytes, bytearray, memoryview)

_UUID_TYPES = ("uniqueidentifier", "uuid")


def _boolean_token(value: Any, spec: ColumnSpec) -> str:
    # bool is an int subclass; 0/1 integers come back from BIT columns on some drivers
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int) and value in (0, 1):
        return str(value)
    if isinstance(value, str) and value.strip().lower() in ("true", "false", "1", "0", "t", "f"):
        return "1" if value.strip().lower() in ("true", "1", "t") else "0"
    raise UnsupportedTypeError(spec.name, spec.kind.value, f"not a boolean: {value!r}")


def _decimal_text(value: Decimal) -> str:
    if value.is_nan():
        return "NaN"
    if value.is_infinite():
        return "-Infinity" if value < 0 else "Infinity"
    text = format(value, "f")
    # Negative zero carries no information
    if text.startswith("-") and value == 0:
        text = text[1:]
    return text


def _number_text(value: Any) -> str | None:
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "NaN"
        if math.isinf(value):
            return "-Infinity" if value < 0 else "Infinity"
        # repr is the shortest round-tripping form; Decimal strips the exponent
        return _decimal_text(Decimal(repr(value)))
    if isinstance(value, Decimal):
        return _decimal_text(value)
    return None


def _is_uuid(value: Any, spec: ColumnSpec) -> bool:
    if isinstance(value, uuid.UUID):
        return True
    return spec.declared_type is not None and normalize_type_name(spec.declared_type) in _UUID_TYPES


def _uuid_token(value: Any, spec: ColumnSpec) -> str:
    # Drivers disagree on case: pyodbc returns upper-case text, psycopg2 a UUID
    try:
        return str(uuid.UUID(str(value)))
    except ValueError as e:
        raise UnsupportedTypeError(spec.name, spec.kind.value, f"not a UUID: {value!r}") from e


def _fixed_point_token(value: Any, spec: ColumnSpec, config: EngineConfig) -> str:
    token = _number_text(value)
    if token is None:
        token = str(value)

    if len(token) > config.max_token_width:
        raise UnsupportedTypeError(
            spec.name,
            spec.kind.value,
            f"token of {len(token)} characters exceeds width cap {config.max_token_width}",
        )
    return token


def _canonical_text(value: Any, spec: ColumnSpec, config: EngineConfig) -> str:
    if value is None:
        return NULL_TOKEN

    if isinstance(value, _BINARY_TYPES) or spec.kind is ColumnKind.BINARY:
        raise UnsupportedTypeError(
            spec.name, spec.kind.value, "raw binary values must be hashed out of band"
        )

    if spec.kind is ColumnKind.BOOLEAN:
        return _boolean_token(value, spec)

    if spec.kind is ColumnKind.TEMPORAL:
        try:
            return format_temporal(value)
        except (TypeError, ValueError) as e:
            raise UnsupportedTypeError(spec.name, spec.kind.value, str(e)) from e

    if _is_uuid(value, spec):
        return _uuid_token(value, spec)

    if spec.kind is ColumnKind.TEXT:
        return value if isinstance(value, str) else str(value)

    return _fixed_point_token(value, spec, config)


def canonicalize(value: Any, spec: ColumnSpec, config: EngineConfig = DEFAULT_CONFIG) -> str:
    """
    Canonicalize one column value.

    Args:
        value: Raw value from the data source (None for NULL)
        spec: Column spec describing the value's kind
        config: Engine configuration (width cap)

    Returns:
        Canonical token

    Raises:
        UnsupportedTypeError: For raw binary values, non-temporal values in a
            temporal column, non-boolean values in a boolean column, tokens
            over the width cap, or text that cannot be encoded as UTF-8
    """
    token = _canonical_text(value, spec, config)
    canonical_bytes_of(token, spec)
    return token


def canonical_bytes(value: Any, spec: ColumnSpec, config: EngineConfig = DEFAULT_CONFIG) -> bytes:
    """Canonicalize one column value straight to its UTF-8 bytes."""
    return canonical_bytes_of(_canonical_text(value, spec, config), spec)


def canonical_bytes_of(token: str, spec: ColumnSpec) -> bytes:
    """
    Encode a token as UTF-8.

    The row delimiter is a byte that cannot occur in UTF-8, so a token that
    encodes cleanly can never contain it.
    """
    try:
        return token.encode("utf-8")
    except UnicodeEncodeError as e:
        raise UnsupportedTypeError(spec.name, spec.kind.value, f"not encodable as UTF-8: {e}") from e
