"""Small parsing and HTTP helpers shared across infrastructure modules."""

from __future__ import annotations

from .converters import to_float, to_int
from .parsers import parse_size_to_bytes

__all__ = [
    "parse_size_to_bytes",
    "to_float",
    "to_int",
]
