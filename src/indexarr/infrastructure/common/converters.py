"""Type conversion utilities."""

from __future__ import annotations


def to_int(raw: str | int | None) -> int | None:
    """Convert string or int to int, return None if invalid.

    Handles various formats:
        - None -> None
        - int -> int (passthrough)
        - "123" -> 123
        - "1,234" -> 1234
        - "1 234" -> 1234
        - "" -> None
    """
    if raw is None:
        return None

    if isinstance(raw, int):
        return raw

    txt = "".join(ch for ch in str(raw) if ch.isdigit())
    if not txt:
        return None
    return int(txt)


def to_float(raw: str | float | None) -> float | None:
    """Convert ``"0.5"``/``"1,5"`` to float, ``None`` if invalid."""
    if raw is None:
        return None
    if isinstance(raw, (int, float)):
        return float(raw)
    try:
        return float(str(raw).strip().replace(",", "."))
    except ValueError:
        return None
