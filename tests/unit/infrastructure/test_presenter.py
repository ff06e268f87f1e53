"""Tests for Torznab XML / RSS / JSON presenter."""

from __future__ import annotations

import json
from dataclasses import replace
from xml.etree import ElementTree as ET

import pytest

from indexarr.domain.entities import ResultItem, TorznabCaps, category_by_id
from indexarr.infrastructure.torznab import (
    FeedChannel,
    render_caps_xml,
    render_error_xml,
    render_feed,
)

_TORZNAB_NS = "http://torznab.com/schemas/2015/feed"
_CHANNEL = FeedChannel(title="indexarr (testtracker)", link="http://localhost/api")


def _attrs(item: ET.Element) -> dict[str, str]:
    return {
        a.get("name", ""): a.get("value", "")
        for a in item.findall(f"{{{_TORZNAB_NS}}}attr")
    }


class TestRenderCapsXml:
    def test_returns_xml_bytes(self) -> None:
        caps = TorznabCaps(server_title="indexarr (test)", server_version="0.1.0")
        rendered = render_caps_xml(caps)
        assert isinstance(rendered.payload, bytes)
        assert rendered.media_type == "application/xml"

    def test_xml_contains_server_element(self) -> None:
        caps = TorznabCaps(server_title="indexarr (test)", server_version="0.1.0")
        root = ET.fromstring(render_caps_xml(caps).payload)
        server = root.find("server")
        assert server is not None
        assert server.get("title") == "indexarr (test)"
        assert server.get("version") == "0.1.0"

    def test_xml_contains_limits(self) -> None:
        caps = TorznabCaps(
            server_title="t", server_version="1.0", limits_max=100, limits_default=50
        )
        limits = ET.fromstring(render_caps_xml(caps).payload).find("limits")
        assert limits is not None
        assert limits.get("max") == "100"
        assert limits.get("default") == "50"

    def test_search_modes(self) -> None:
        caps = TorznabCaps(
            server_title="t",
            server_version="1.0",
            modes={"search": ["q"], "tv-search": ["q", "season", "ep"]},
        )
        searching = ET.fromstring(render_caps_xml(caps).payload).find("searching")
        assert searching is not None
        tv = searching.find("tv-search")
        movie = searching.find("movie-search")
        assert tv is not None and movie is not None
        assert tv.get("available") == "yes"
        assert tv.get("supportedParams") == "q,season,ep"
        assert movie.get("available") == "no"

    def test_subcategories_nest_under_parent(self) -> None:
        categories = [category_by_id(i) for i in (4020, 4010, 8000)]
        caps = TorznabCaps(
            server_title="t",
            server_version="1.0",
            categories=[c for c in categories if c is not None],
        )
        root = ET.fromstring(render_caps_xml(caps).payload)
        parents = root.findall("categories/category")
        assert [p.get("id") for p in parents] == ["4000", "8000"]
        assert [s.get("id") for s in parents[0].findall("subcat")] == ["4010", "4020"]
        assert parents[0].get("name") == "PC"
        assert parents[1].findall("subcat") == []


class TestRenderTorznabFeed:
    def test_empty_items(self) -> None:
        rendered = render_feed([], "xml", _CHANNEL)
        root = ET.fromstring(rendered.payload)
        channel = root.find("channel")
        assert channel is not None
        assert channel.findtext("title") == "indexarr (testtracker)"
        assert channel.findall("item") == []

    def test_item_fields(self, result_item: ResultItem) -> None:
        root = ET.fromstring(render_feed([result_item], "xml", _CHANNEL).payload)
        item = root.find("channel/item")
        assert item is not None
        assert item.findtext("title") == "Ubuntu 24.04 Desktop"
        assert item.findtext("guid") == result_item.guid
        assert item.findtext("link") == result_item.link
        assert item.findtext("comments") == result_item.details
        assert item.findtext("pubDate") == "Thu, 25 Apr 2024 12:00:00 +0000"
        assert item.findtext("size") == "6000000000"
        assert [c.text for c in item.findall("category")] == ["4020", "4000"]
        enclosure = item.find("enclosure")
        assert enclosure is not None
        assert enclosure.get("type") == "application/x-bittorrent"
        assert enclosure.get("length") == "6000000000"

    def test_torznab_attributes(self, result_item: ResultItem) -> None:
        item_el = ET.fromstring(
            render_feed([result_item], "xml", _CHANNEL).payload
        ).find("channel/item")
        assert item_el is not None
        attrs = _attrs(item_el)
        assert attrs["seeders"] == "120"
        assert attrs["peers"] == "124"
        assert attrs["grabs"] == "900"
        assert attrs["size"] == "6000000000"
        assert attrs["downloadvolumefactor"] == "1.0"
        assert attrs["uploadvolumefactor"] == "1.0"
        assert "magneturl" not in attrs

    def test_magnet_and_imdb_attributes(self, result_item: ResultItem) -> None:
        item = replace(
            result_item, magnet="magnet:?xt=urn:btih:abc", imdb="tt0133093"
        )
        item_el = ET.fromstring(render_feed([item], "xml", _CHANNEL).payload).find(
            "channel/item"
        )
        assert item_el is not None
        attrs = _attrs(item_el)
        assert attrs["magneturl"] == "magnet:?xt=urn:btih:abc"
        assert attrs["imdb"] == "0133093"

    def test_link_for_rewrites_link_and_enclosure(
        self, result_item: ResultItem
    ) -> None:
        rendered = render_feed(
            [result_item], "xml", _CHANNEL, link_for=lambda it: "http://proxy/dl"
        )
        item = ET.fromstring(rendered.payload).find("channel/item")
        assert item is not None
        assert item.findtext("link") == "http://proxy/dl"
        enclosure = item.find("enclosure")
        assert enclosure is not None
        assert enclosure.get("url") == "http://proxy/dl"

    def test_special_characters_are_escaped(self, result_item: ResultItem) -> None:
        item = replace(result_item, title="A & B <C>")
        root = ET.fromstring(render_feed([item], "xml", _CHANNEL).payload)
        assert root.findtext("channel/item/title") == "A & B <C>"


class TestOtherFormats:
    def test_plain_rss_has_no_torznab_attrs(self, result_item: ResultItem) -> None:
        rendered = render_feed([result_item], "rss", _CHANNEL)
        assert rendered.media_type == "application/rss+xml"
        item = ET.fromstring(rendered.payload).find("channel/item")
        assert item is not None
        assert _attrs(item) == {}

    def test_json(self, result_item: ResultItem) -> None:
        rendered = render_feed([result_item], "json", _CHANNEL)
        assert rendered.media_type == "application/json"
        document = json.loads(rendered.payload)
        assert document["channel"]["title"] == "indexarr (testtracker)"
        [item] = document["items"]
        assert item["title"] == "Ubuntu 24.04 Desktop"
        assert item["categories"] == [4020, 4000]
        assert item["peers"] == 124
        assert item["publish_date"] == "2024-04-25T12:00:00+00:00"

    def test_unknown_format(self) -> None:
        with pytest.raises(ValueError):
            render_feed([], "csv", _CHANNEL)  # type: ignore[arg-type]


def test_render_error_xml() -> None:
    rendered = render_error_xml(201, "Incorrect parameter")
    root = ET.fromstring(rendered.payload)
    assert root.tag == "error"
    assert root.get("code") == "201"
    assert root.get("description") == "Incorrect parameter"
