"""Tests for the value filter registry and the date helpers behind it."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest

from indexarr.infrastructure.scraping import dates
from indexarr.infrastructure.scraping.filters import (
    NO_MATCH,
    NoMatch,
    apply_filter,
    validate_filter,
)

_FIXED_NOW = datetime(2024, 5, 10, 15, 30, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# validate_filter
# ---------------------------------------------------------------------------


class TestValidateFilter:
    def test_unknown_filter(self) -> None:
        with pytest.raises(ValueError, match="unknown filter 'shout'"):
            validate_filter("shout", None)

    @pytest.mark.parametrize(
        ("name", "args"),
        [
            ("querystring", "id"),
            ("regexp", r"(\d+)"),
            ("re_replace", [r"\s+", "."]),
            ("split", ["/", 1]),
            ("replace", ["---", "0"]),
            ("trim", None),
            ("trim", "-"),
            ("append", " GB"),
            ("tolower", None),
            ("timeago", None),
            ("dateparse", "2006-01-02"),
        ],
    )
    def test_accepts_valid_arguments(self, name: str, args: object) -> None:
        validate_filter(name, args)

    @pytest.mark.parametrize(
        ("name", "args"),
        [
            ("querystring", None),
            ("querystring", ""),
            ("regexp", "(unclosed"),
            ("re_replace", "only-one"),
            ("split", ["/", "x"]),
            ("replace", ["just-one"]),
            ("tolower", "unexpected"),
        ],
    )
    def test_rejects_invalid_arguments(self, name: str, args: object) -> None:
        with pytest.raises(ValueError, match=f"filter '{name}'"):
            validate_filter(name, args)


# ---------------------------------------------------------------------------
# apply_filter
# ---------------------------------------------------------------------------


class TestStringFilters:
    def test_querystring_from_relative_url(self) -> None:
        assert apply_filter("querystring", "id", "download.php?id=42&f=x") == "42"

    def test_querystring_from_absolute_url(self) -> None:
        url = "https://tracker.test/index.php?page=torrents&category=9"
        assert apply_filter("querystring", "category", url) == "9"

    def test_querystring_missing_is_no_match(self) -> None:
        assert apply_filter("querystring", "id", "details.php?tid=1") is NO_MATCH

    def test_regexp_returns_first_group(self) -> None:
        assert apply_filter("regexp", r"Seeds: (\d+)", "Seeds: 17 / 3") == "17"

    def test_regexp_without_group_returns_match(self) -> None:
        assert apply_filter("regexp", r"\d+", "abc 123 def") == "123"

    def test_regexp_no_match(self) -> None:
        assert apply_filter("regexp", r"\d+", "none") is NO_MATCH

    def test_re_replace_translates_dollar_groups(self) -> None:
        out = apply_filter("re_replace", [r"(\d+)x(\d+)", "S$1E$2"], "Show 2x05")
        assert out == "Show S2E05"

    def test_split(self) -> None:
        assert apply_filter("split", ["/", 1], "12/34") == "34"

    def test_split_out_of_range(self) -> None:
        assert apply_filter("split", ["/", 5], "12/34") is NO_MATCH

    def test_replace_trim_append_prepend(self) -> None:
        assert apply_filter("replace", ["---", "0"], "---") == "0"
        assert apply_filter("trim", None, "  x  ") == "x"
        assert apply_filter("trim", "-", "--x--") == "x"
        assert apply_filter("append", " GB", "4.5") == "4.5 GB"
        assert apply_filter("prepend", "tt", "0133093") == "tt0133093"

    def test_case_and_url_coding(self) -> None:
        assert apply_filter("tolower", None, "ABC") == "abc"
        assert apply_filter("toupper", None, "abc") == "ABC"
        assert apply_filter("urldecode", None, "a%20b+c") == "a b c"
        assert apply_filter("urlencode", None, "a b&c") == "a+b%26c"

    def test_dump_is_identity(self) -> None:
        assert apply_filter("strdump", None, "value") == "value"


class TestDateFilters:
    def test_dateparse_go_layout(self) -> None:
        out = apply_filter("dateparse", "02/01/2006", "25/04/2024")
        assert out == "Thu, 25 Apr 2024 00:00:00 +0000"

    def test_dateparse_with_time(self) -> None:
        out = apply_filter("dateparse", "2006-01-02 15:04", "2024-04-25 18:07")
        assert out == "Thu, 25 Apr 2024 18:07:00 +0000"

    def test_dateparse_mismatch(self) -> None:
        assert apply_filter("dateparse", "2006-01-02", "yesterday") is NO_MATCH

    def test_timeago(self) -> None:
        with patch.object(dates, "_now", return_value=_FIXED_NOW):
            out = apply_filter("timeago", None, "2 hours ago")
        assert out == "Fri, 10 May 2024 13:30:00 +0000"

    def test_fuzzytime_yesterday_with_clock(self) -> None:
        with patch.object(dates, "_now", return_value=_FIXED_NOW):
            out = apply_filter("fuzzytime", None, "Yesterday 08:15 pm")
        assert out == "Thu, 09 May 2024 20:15:00 +0000"

    def test_timeago_garbage(self) -> None:
        assert apply_filter("timeago", None, "soon") is NO_MATCH


# ---------------------------------------------------------------------------
# dates helpers
# ---------------------------------------------------------------------------


class TestDates:
    @pytest.mark.parametrize(
        ("layout", "expected"),
        [
            ("2006-01-02", "%Y-%m-%d"),
            ("02.01.2006 15:04:05", "%d.%m.%Y %H:%M:%S"),
            ("Jan 2, 2006", "%b %d, %Y"),
            ("Monday, 02-Jan-06 15:04", "%A, %d-%b-%y %H:%M"),
        ],
    )
    def test_go_layout_to_strptime(self, layout: str, expected: str) -> None:
        assert dates.go_layout_to_strptime(layout) == expected

    def test_parse_relative_compound(self) -> None:
        with patch.object(dates, "_now", return_value=_FIXED_NOW):
            parsed = dates.parse_relative("1 day, 3 hours ago")
        assert parsed == _FIXED_NOW - timedelta(days=1, hours=3)

    def test_parse_any_formats(self) -> None:
        expected = datetime(2024, 4, 25, 18, 7, tzinfo=timezone.utc)
        assert dates.parse_any("Thu, 25 Apr 2024 18:07:00 +0000") == expected
        assert dates.parse_any("2024-04-25T18:07:00+00:00") == expected
        assert dates.parse_any("2024-04-25 18:07") == expected
        assert dates.parse_any("1714068420") == expected

    def test_parse_any_empty(self) -> None:
        assert dates.parse_any("  ") is None


def test_no_match_is_falsy_singleton() -> None:
    assert NoMatch() is NO_MATCH
    assert not NO_MATCH
