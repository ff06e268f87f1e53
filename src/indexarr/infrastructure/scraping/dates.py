"""Date parsing helpers for the ``dateparse``/``timeago``/``fuzzytime`` filters."""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime, parsedate_to_datetime

# Go reference layout tokens, longest first.
_GO_TOKENS: tuple[tuple[str, str], ...] = (
    ("January", "%B"),
    ("Monday", "%A"),
    ("Z07:00", "%z"),
    ("-07:00", "%z"),
    ("-0700", "%z"),
    (".000000", ".%f"),
    (".000", ".%f"),
    ("2006", "%Y"),
    ("Jan", "%b"),
    ("Mon", "%a"),
    ("MST", "%Z"),
    ("_2", "%d"),
    ("01", "%m"),
    ("02", "%d"),
    ("03", "%I"),
    ("04", "%M"),
    ("05", "%S"),
    ("06", "%y"),
    ("15", "%H"),
    ("PM", "%p"),
    ("pm", "%p"),
    ("1", "%m"),
    ("2", "%d"),
    ("3", "%I"),
    ("4", "%M"),
    ("5", "%S"),
)
_GO_RE = re.compile("|".join(re.escape(tok) for tok, _ in _GO_TOKENS))
_GO_MAP = dict(_GO_TOKENS)

_COMMON_FORMATS: tuple[str, ...] = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%d",
    "%d.%m.%Y %H:%M:%S",
    "%d.%m.%Y %H:%M",
    "%d.%m.%Y",
    "%d/%m/%Y %H:%M",
    "%d/%m/%Y",
    "%m/%d/%Y %H:%M",
    "%d %b %Y %H:%M",
    "%d %b %Y",
    "%b %d %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %B %Y",
)

_UNIT_SECONDS: dict[str, int] = {
    "s": 1,
    "sec": 1,
    "second": 1,
    "m": 60,
    "min": 60,
    "minute": 60,
    "h": 3600,
    "hr": 3600,
    "hour": 3600,
    "d": 86400,
    "day": 86400,
    "w": 604800,
    "wk": 604800,
    "week": 604800,
    "mo": 2592000,
    "month": 2592000,
    "y": 31536000,
    "yr": 31536000,
    "year": 31536000,
}
_RELATIVE_RE = re.compile(
    r"(\d+(?:\.\d+)?)\s*(seconds?|secs?|minutes?|mins?|hours?|hrs?|days?|weeks?|wks?"
    r"|months?|mo|years?|yrs?|[smhdwy])\b",
    re.I,
)
_CLOCK_RE = re.compile(r"(\d{1,2}):(\d{2})(?::(\d{2}))?\s*([ap]m)?", re.I)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def go_layout_to_strptime(layout: str) -> str:
    """Translate a Go time layout (``2006-01-02 15:04``) into strptime format."""
    escaped = layout.replace("%", "%%")
    return _GO_RE.sub(lambda m: _GO_MAP[m.group(0)], escaped)


def _aware(dt: datetime) -> datetime:
    return dt if dt.tzinfo is not None else dt.replace(tzinfo=timezone.utc)


def to_rfc1123z(dt: datetime) -> str:
    return format_datetime(_aware(dt))


def parse_with_layout(value: str, layout: str) -> datetime | None:
    try:
        return _aware(datetime.strptime(value.strip(), go_layout_to_strptime(layout)))
    except ValueError:
        return None


def parse_relative(value: str) -> datetime | None:
    """Parse ``2 hours ago``, ``1 day, 3 hours``, ``just now``, ``yesterday``."""
    text = value.strip().lower()
    now = _now()
    if text in ("now", "just now", "today"):
        return now
    if text == "yesterday":
        return now - timedelta(days=1)
    matches = _RELATIVE_RE.findall(text)
    if not matches:
        return None
    seconds = 0.0
    for amount, unit in matches:
        unit = unit.lower()
        key = unit if unit in _UNIT_SECONDS else unit.rstrip("s")
        seconds += float(amount) * _UNIT_SECONDS.get(key, 0)
    return now - timedelta(seconds=seconds)


def parse_fuzzy(value: str) -> datetime | None:
    """Parse ``Today 12:30``/``Yesterday 08:00`` and fall back to ``parse_any``."""
    text = value.strip()
    lowered = text.lower()
    for word, days in (("today", 0), ("yesterday", 1)):
        if lowered.startswith(word):
            day = _now() - timedelta(days=days)
            clock = _CLOCK_RE.search(lowered)
            if not clock:
                return day.replace(hour=0, minute=0, second=0, microsecond=0)
            hour, minute = int(clock.group(1)), int(clock.group(2))
            second = int(clock.group(3) or 0)
            if clock.group(4) == "pm" and hour < 12:
                hour += 12
            elif clock.group(4) == "am" and hour == 12:
                hour = 0
            return day.replace(hour=hour, minute=minute, second=second, microsecond=0)
    return parse_any(text)


def parse_any(value: str) -> datetime | None:
    """Best-effort parse of whatever a site (or a date filter) produced."""
    text = value.strip()
    if not text:
        return None
    if text.isdigit():
        try:
            return datetime.fromtimestamp(int(text), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None
    try:
        return _aware(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError):
        pass
    try:
        return _aware(datetime.fromisoformat(text))
    except ValueError:
        pass
    for fmt in _COMMON_FORMATS:
        try:
            return _aware(datetime.strptime(text, fmt))
        except ValueError:
            continue
    if "ago" in text.lower():
        return parse_relative(text)
    return None
