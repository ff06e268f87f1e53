"""Closed registry of value filters applied after extraction.

Each filter maps a string to a string, or to ``NO_MATCH`` when the input
does not fit (a ``regexp`` without a match, an unparseable date, ...).
Filter names and argument shapes are checked when a definition loads,
so an unknown filter never reaches a search.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs, quote_plus, unquote_plus, urlsplit

import structlog

from indexarr.infrastructure.scraping import dates

log = structlog.get_logger(__name__)


class NoMatch:
    """Sentinel for a selector or filter that produced nothing."""

    _instance: NoMatch | None = None

    def __new__(cls) -> NoMatch:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_MATCH"

    def __bool__(self) -> bool:
        return False


NO_MATCH = NoMatch()

FilterResult = str | NoMatch


# --- argument validators ---


def _no_args(args: Any) -> None:
    if args not in (None, "", [], ()):
        raise ValueError("takes no arguments")


def _string_arg(args: Any) -> None:
    if not isinstance(args, (str, int, float)) or str(args) == "":
        raise ValueError("expects a single non-empty string argument")


def _optional_string_arg(args: Any) -> None:
    if args is not None and not isinstance(args, str):
        raise ValueError("expects an optional string argument")


def _pair_arg(args: Any) -> None:
    if not isinstance(args, (list, tuple)) or len(args) != 2:
        raise ValueError("expects a list of two arguments")


def _regex_arg(args: Any) -> None:
    _string_arg(args)
    try:
        re.compile(str(args))
    except re.error as e:
        raise ValueError(f"invalid pattern: {e}") from e


def _re_replace_args(args: Any) -> None:
    _pair_arg(args)
    _regex_arg(args[0])


def _split_args(args: Any) -> None:
    _pair_arg(args)
    try:
        int(args[1])
    except (TypeError, ValueError) as e:
        raise ValueError("split index must be an integer") from e


# --- filter implementations ---


def _querystring(value: str, args: Any) -> FilterResult:
    query = urlsplit(value).query if "?" in value or "://" in value else value
    values = parse_qs(query.lstrip("?"), keep_blank_values=True).get(str(args))
    if not values:
        return NO_MATCH
    return values[0]


def _dateparse(value: str, args: Any) -> FilterResult:
    parsed = dates.parse_with_layout(value, str(args))
    if parsed is None:
        return NO_MATCH
    return dates.to_rfc1123z(parsed)


def _regexp(value: str, args: Any) -> FilterResult:
    match = re.search(str(args), value)
    if match is None:
        return NO_MATCH
    if match.re.groups:
        return match.group(1) or ""
    return match.group(0)


def _re_replace(value: str, args: Any) -> FilterResult:
    pattern, repl = str(args[0]), str(args[1])
    repl = re.sub(r"\$(\d+)", r"\\g<\1>", repl)
    return re.sub(pattern, repl, value)


def _split(value: str, args: Any) -> FilterResult:
    parts = value.split(str(args[0]))
    index = int(args[1])
    try:
        return parts[index]
    except IndexError:
        return NO_MATCH


def _replace(value: str, args: Any) -> FilterResult:
    return value.replace(str(args[0]), str(args[1]))


def _trim(value: str, args: Any) -> FilterResult:
    return value.strip(args) if args else value.strip()


def _append(value: str, args: Any) -> FilterResult:
    return value + str(args)


def _prepend(value: str, args: Any) -> FilterResult:
    return str(args) + value


def _timeago(value: str, args: Any) -> FilterResult:
    parsed = dates.parse_relative(value)
    if parsed is None:
        return NO_MATCH
    return dates.to_rfc1123z(parsed)


def _fuzzytime(value: str, args: Any) -> FilterResult:
    parsed = dates.parse_fuzzy(value)
    if parsed is None:
        return NO_MATCH
    return dates.to_rfc1123z(parsed)


def _dump(value: str, args: Any) -> FilterResult:
    log.debug("filter_dump", value=value, hex=value.encode("utf-8").hex())
    return value


@dataclass(frozen=True)
class FilterSpec:
    apply: Callable[[str, Any], FilterResult]
    validate: Callable[[Any], None]


FILTERS: dict[str, FilterSpec] = {
    "querystring": FilterSpec(_querystring, _string_arg),
    "dateparse": FilterSpec(_dateparse, _string_arg),
    "timeparse": FilterSpec(_dateparse, _string_arg),
    "regexp": FilterSpec(_regexp, _regex_arg),
    "re_replace": FilterSpec(_re_replace, _re_replace_args),
    "split": FilterSpec(_split, _split_args),
    "replace": FilterSpec(_replace, _pair_arg),
    "trim": FilterSpec(_trim, _optional_string_arg),
    "append": FilterSpec(_append, _string_arg),
    "prepend": FilterSpec(_prepend, _string_arg),
    "tolower": FilterSpec(lambda v, _: v.lower(), _no_args),
    "toupper": FilterSpec(lambda v, _: v.upper(), _no_args),
    "urldecode": FilterSpec(lambda v, _: unquote_plus(v), _no_args),
    "urlencode": FilterSpec(lambda v, _: quote_plus(v), _no_args),
    "timeago": FilterSpec(_timeago, _no_args),
    "reltime": FilterSpec(_timeago, _no_args),
    "fuzzytime": FilterSpec(_fuzzytime, _no_args),
    "hexdump": FilterSpec(_dump, _no_args),
    "strdump": FilterSpec(_dump, _no_args),
}


def validate_filter(name: str, args: Any) -> None:
    """Raise ``ValueError`` for an unknown filter or malformed arguments."""
    spec = FILTERS.get(name)
    if spec is None:
        raise ValueError(f"unknown filter '{name}'")
    try:
        spec.validate(args)
    except ValueError as e:
        raise ValueError(f"filter '{name}' {e}") from e


def apply_filter(name: str, args: Any, value: str) -> FilterResult:
    return FILTERS[name].apply(value, args)
