"""
Column canonicalizer: raw value plus column spec to canonical token.
"""

from .canonicalizer import NULL_TOKEN, canonical_bytes, canonicalize
from .temporal import FRACTION_DIGITS, format_temporal

__all__ = [
    "NULL_TOKEN",
    "FRACTION_DIGITS",
    "canonicalize",
    "canonical_bytes",
    "format_temporal",
]
