"""
Unit tests for column canonicalization.

Tests verify:
- NULL and empty text collapse to the same token
- Boolean, temporal, numeric and text rendering rules
- Rejection of binary values and oversized tokens
"""

import uuid
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal

import pytest

from tablediff.canonical import NULL_TOKEN, canonical_bytes, canonicalize, format_temporal
from tablediff.config import EngineConfig
from tablediff.errors import UnsupportedTypeError
from tablediff.schema import ColumnKind, ColumnSpec


def spec(kind: ColumnKind, name: str = "col") -> ColumnSpec:
    return ColumnSpec(name, kind, nullable=True, ordinal_position=1)


class TestNullHandling:
    """NULL collapses to the empty token for every kind"""

    @pytest.mark.parametrize("kind", list(ColumnKind))
    def test_null_is_empty_token(self, kind):
        assert canonicalize(None, spec(kind)) == NULL_TOKEN == ""

    def test_null_and_empty_text_collapse(self):
        text = spec(ColumnKind.TEXT)
        assert canonicalize(None, text) == canonicalize("", text)


class TestBoolean:
    """Test boolean tokens"""

    @pytest.mark.parametrize("value,expected", [
        (True, "1"), (False, "0"), (1, "1"), (0, "0"),
        ("true", "1"), ("FALSE", "0"), ("t", "1"), ("0", "0"),
    ])
    def test_boolean_tokens(self, value, expected):
        assert canonicalize(value, spec(ColumnKind.BOOLEAN)) == expected

    def test_null_differs_from_false(self):
        boolean = spec(ColumnKind.BOOLEAN)
        assert canonicalize(None, boolean) != canonicalize(False, boolean)

    def test_non_boolean_rejected(self):
        with pytest.raises(UnsupportedTypeError, match="not a boolean"):
            canonicalize(2, spec(ColumnKind.BOOLEAN))


class TestTemporal:
    """Test fixed-width temporal rendering"""

    def test_naive_datetime(self):
        value = datetime(2024, 3, 5, 7, 8, 9, 123456)
        assert canonicalize(value, spec(ColumnKind.TEMPORAL)) == "2024-03-05T07:08:09.1234560"

    def test_aware_datetime_converted_to_utc(self):
        value = datetime(2024, 3, 5, 9, 0, 0, tzinfo=timezone(timedelta(hours=2)))
        assert format_temporal(value) == "2024-03-05T07:00:00.0000000Z"

    def test_same_instant_different_offsets_match(self):
        utc = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        plus_five = utc.astimezone(timezone(timedelta(hours=5)))
        assert format_temporal(utc) == format_temporal(plus_five)

    def test_date_renders_at_midnight(self):
        assert format_temporal(date(2024, 2, 29)) == "2024-02-29T00:00:00.0000000"

    def test_time_of_day(self):
        assert format_temporal(time(23, 59, 58, 5)) == "23:59:58.0000050"

    def test_string_keeps_seven_fraction_digits(self):
        assert format_temporal("2024-03-05 07:08:09.1234567") == "2024-03-05T07:08:09.1234567"

    def test_string_and_datetime_agree(self):
        assert format_temporal("2024-03-05T07:08:09.5") == format_temporal(
            datetime(2024, 3, 5, 7, 8, 9, 500000)
        )

    def test_string_with_offset(self):
        assert format_temporal("2024-03-05T09:00:00+02:00") == "2024-03-05T07:00:00.0000000Z"

    def test_string_date(self):
        assert format_temporal("2024-03-05") == "2024-03-05T00:00:00.0000000"

    def test_years_below_1000_zero_padded(self):
        assert format_temporal(datetime(999, 1, 2, 3, 4, 5)) == "0999-01-02T03:04:05.0000000"
        assert format_temporal(date(5, 1, 1)) == "0005-01-01T00:00:00.0000000"
        assert format_temporal("0001-01-01") == "0001-01-01T00:00:00.0000000"

    def test_early_aware_datetime_zero_padded(self):
        value = datetime(12, 6, 1, 12, 0, tzinfo=timezone.utc)
        assert format_temporal(value) == "0012-06-01T12:00:00.0000000Z"

    def test_non_temporal_value_rejected(self):
        with pytest.raises(UnsupportedTypeError):
            canonicalize(12345, spec(ColumnKind.TEMPORAL))

    def test_unparseable_string_rejected(self):
        with pytest.raises(UnsupportedTypeError):
            canonicalize("yesterday", spec(ColumnKind.TEMPORAL))


class TestNumeric:
    """Test fixed-point numeric tokens"""

    @pytest.mark.parametrize("value,expected", [
        (42, "42"),
        (-7, "-7"),
        (Decimal("10.50"), "10.50"),
        (Decimal("1E+3"), "1000"),
        (Decimal("1E-7"), "0.0000001"),
        (0.1, "0.1"),
        (1e20, "100000000000000000000"),
        (Decimal("-0"), "0"),
        (-0.0, "0.0"),
    ])
    def test_fixed_point(self, value, expected):
        assert canonicalize(value, spec(ColumnKind.NUMERIC)) == expected

    def test_never_scientific(self):
        token = canonicalize(1.5e-10, spec(ColumnKind.NUMERIC))
        assert "e" not in token.lower()

    @pytest.mark.parametrize("value,expected", [
        (float("nan"), "NaN"),
        (float("inf"), "Infinity"),
        (float("-inf"), "-Infinity"),
        (Decimal("NaN"), "NaN"),
    ])
    def test_special_values_spelled_out(self, value, expected):
        assert canonicalize(value, spec(ColumnKind.NUMERIC)) == expected

    def test_width_cap(self):
        config = EngineConfig(max_token_width=10)
        with pytest.raises(UnsupportedTypeError, match="exceeds width cap"):
            canonicalize(Decimal("1E+20"), spec(ColumnKind.NUMERIC), config)

    def test_uuid_other_kind(self):
        value = uuid.UUID("12345678-1234-5678-1234-567812345678")
        assert canonicalize(value, spec(ColumnKind.OTHER)) == "12345678-1234-5678-1234-567812345678"


class TestUuid:
    """GUIDs render the same whichever driver returned them"""

    GUID = "6F9619FF-8B86-D011-B42D-00C04FC964FF"

    def guid_spec(self, declared_type: str = "uniqueidentifier") -> ColumnSpec:
        return ColumnSpec(
            "guid", ColumnKind.OTHER, nullable=True, ordinal_position=1, declared_type=declared_type
        )

    def test_text_and_uuid_value_agree(self):
        from_text = canonicalize(self.GUID, self.guid_spec())
        from_uuid = canonicalize(uuid.UUID(self.GUID), self.guid_spec("uuid"))
        assert from_text == from_uuid == "6f9619ff-8b86-d011-b42d-00c04fc964ff"

    def test_braced_text_normalized(self):
        assert canonicalize("{" + self.GUID + "}", self.guid_spec()) == self.GUID.lower()

    def test_uuid_value_without_declared_type(self):
        assert canonicalize(uuid.UUID(self.GUID), spec(ColumnKind.OTHER)) == self.GUID.lower()

    def test_malformed_guid_rejected(self):
        with pytest.raises(UnsupportedTypeError, match="not a UUID"):
            canonicalize("not-a-guid", self.guid_spec())

    def test_null_guid_is_empty_token(self):
        assert canonicalize(None, self.guid_spec()) == NULL_TOKEN


class TestTextAndBinary:
    """Test text pass-through and binary rejection"""

    def test_text_unchanged(self):
        assert canonicalize("  Zoë\t", spec(ColumnKind.TEXT)) == "  Zoë\t"

    def test_binary_kind_rejected(self):
        with pytest.raises(UnsupportedTypeError) as exc_info:
            canonicalize(b"\x00\x01", spec(ColumnKind.BINARY, name="photo"))
        assert exc_info.value.column == "photo"

    def test_bytes_in_text_column_rejected(self):
        with pytest.raises(UnsupportedTypeError):
            canonicalize(b"abc", spec(ColumnKind.TEXT))

    def test_unencodable_text_rejected(self):
        with pytest.raises(UnsupportedTypeError, match="UTF-8"):
            canonicalize("\ud800", spec(ColumnKind.TEXT))

    def test_canonical_bytes_is_utf8(self):
        assert canonical_bytes("é", spec(ColumnKind.TEXT)) == "é".encode("utf-8")

    def test_delimiter_never_in_token(self):
        config = EngineConfig()
        encoded = canonical_bytes("ÿ\U0010ffff", spec(ColumnKind.TEXT), config)
        assert config.delimiter not in encoded
