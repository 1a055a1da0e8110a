"""
Fixed-width temporal rendering.

Two engines or drivers may render the same instant differently (precision,
separator, offset style). Every temporal value is rendered to one pattern:

    YYYY-MM-DDTHH:MM:SS.fffffff      naive datetime or date
    YYYY-MM-DDTHH:MM:SS.fffffffZ     timezone-aware, converted to UTC
    HH:MM:SS.fffffff                 time of day

Seven fractional digits match the 100ns resolution of SQL Server datetime2.
Python values carry microseconds, so the seventh digit is always 0 for them;
string input keeps up to seven digits as written.
"""

import re
from datetime import UTC, date, datetime, time

FRACTION_DIGITS = 7

_FRACTION = re.compile(r"(?<=\d\d:\d\d:\d\d)\.(\d+)")


def _pad_fraction(digits: str) -> str:
    return digits[:FRACTION_DIGITS].ljust(FRACTION_DIGITS, "0")


def _date_text(value: date) -> str:
    # strftime %Y does not zero-pad years below 1000 on every platform
    return f"{value.year:04d}-{value.month:02d}-{value.day:02d}"


def _format_datetime(value: datetime, fraction: str) -> str:
    suffix = ""
    if value.tzinfo is not None and value.utcoffset() is not None:
        value = value.astimezone(UTC)
        suffix = "Z"
    return f"{_date_text(value)}T{value:%H:%M:%S}.{fraction}{suffix}"


def _format_time(value: time, fraction: str) -> str:
    # Offsets on a bare time cannot be normalized without a date
    suffix = ""
    offset = value.utcoffset()
    if offset is not None:
        minutes = int(offset.total_seconds() // 60)
        sign = "+" if minutes >= 0 else "-"
        suffix = f"{sign}{abs(minutes) // 60:02d}:{abs(minutes) % 60:02d}"
    return f"{value:%H:%M:%S}.{fraction}{suffix}"


def format_temporal(value: datetime | date | time | str) -> str:
    """
    Render a temporal value in the fixed-width canonical pattern.

    Args:
        value: datetime, date, time, or an ISO-8601 string as returned by
            drivers that hand temporal values back as text

    Returns:
        Canonical temporal token

    Raises:
        ValueError: If a string is not ISO-8601
        TypeError: If the value is not a temporal type
    """
    if isinstance(value, datetime):
        return _format_datetime(value, _pad_fraction(f"{value.microsecond:06d}"))

    if isinstance(value, date):
        return f"{_date_text(value)}T00:00:00.{'0' * FRACTION_DIGITS}"

    if isinstance(value, time):
        return _format_time(value, _pad_fraction(f"{value.microsecond:06d}"))

    if isinstance(value, str):
        return _format_temporal_text(value.strip())

    raise TypeError(f"Not a temporal value: {type(value).__name__}")


def _format_temporal_text(text: str) -> str:
    # Pull the fraction out first; fromisoformat caps precision at microseconds
    match = _FRACTION.search(text)
    fraction = _pad_fraction(match.group(1) if match else "")
    if match:
        text = text[: match.start()] + text[match.end():]

    if ":" in text[:3]:
        return _format_time(time.fromisoformat(text), fraction)

    parsed = datetime.fromisoformat(text)
    if len(text) == 10:
        return f"{_date_text(parsed)}T00:00:00.{fraction}"
    return _format_datetime(parsed, fraction)
