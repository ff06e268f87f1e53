"""Parsing utilities for scraped values."""

from __future__ import annotations

import re

_SIZE_RE = re.compile(r"([\d.,]+)\s*([KMGTP]?I?B|[KMGTP])?\b", re.I)

_MULTIPLIERS: dict[str, int] = {
    "B": 1,
    "K": 1024,
    "M": 1024**2,
    "G": 1024**3,
    "T": 1024**4,
    "P": 1024**5,
}


def _number(raw: str) -> float:
    # "1,234.5" and "1.234,5" both occur; the last separator is the decimal one
    if "," in raw and "." in raw:
        if raw.rfind(",") > raw.rfind("."):
            raw = raw.replace(".", "").replace(",", ".")
        else:
            raw = raw.replace(",", "")
    elif "," in raw:
        head, _, tail = raw.rpartition(",")
        if len(tail) == 3:
            raw = raw.replace(",", "")
        else:
            raw = f"{head.replace(',', '')}.{tail}"
    return float(raw)


def parse_size_to_bytes(size_str: str | None) -> int | None:
    """Parse a human size string to bytes.

    Supports formats:
        - "1234" (raw bytes)
        - "4.5 GB" / "4.5 GiB" / "4,5 GB"
        - "1,234 MB"
        - "500M"

    Units use 1024 multipliers. Returns ``None`` for unparseable input.
    """
    if not size_str:
        return None

    text = size_str.strip()
    if text.isdigit():
        return int(text)

    match = _SIZE_RE.search(text)
    if not match:
        return None

    try:
        value = _number(match.group(1))
    except ValueError:
        return None

    unit = (match.group(2) or "B").upper()
    return int(value * _MULTIPLIERS.get(unit[0], 1))
