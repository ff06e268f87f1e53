"""Torznab XML / RSS / JSON presenter.

Renders Torznab-compliant documents according to:
- Torznab specification: http://torznab.com/schemas/2015/feed
- RSS 2.0 specification

Every format is a pure projection of the same ``ResultItem`` list.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass
from email.utils import format_datetime
from typing import Any, Literal
from xml.etree import ElementTree as ET

from indexarr.domain.entities import (
    ResultItem,
    TorznabCaps,
    TorznabCategory,
    parent_of,
)

_TORZNAB_NS = "http://torznab.com/schemas/2015/feed"
_ATOM_NS = "http://www.w3.org/2005/Atom"

ET.register_namespace("torznab", _TORZNAB_NS)
ET.register_namespace("atom", _ATOM_NS)

FeedFormat = Literal["xml", "rss", "json"]
FEED_FORMATS: tuple[str, ...] = ("xml", "rss", "json")

_MODES = ("search", "tv-search", "movie-search")


@dataclass(frozen=True)
class TorznabRendered:
    """Rendered Torznab response."""

    payload: bytes
    media_type: str = "application/xml"


@dataclass(frozen=True)
class FeedChannel:
    title: str
    link: str
    description: str | None = None
    language: str = "en-us"


def _xml(root: ET.Element) -> bytes:
    return ET.tostring(root, encoding="utf-8", xml_declaration=True)


# --- caps ---


def render_caps_xml(caps: TorznabCaps) -> TorznabRendered:
    """Render Torznab capabilities XML.

    Categories are grouped by parent: a mapped subcategory (5040) is
    rendered as ``<subcat>`` of its parent (5000).
    """
    root = ET.Element("caps")

    server = ET.SubElement(root, "server")
    server.set("title", caps.server_title)
    server.set("version", caps.server_version)

    limits = ET.SubElement(root, "limits")
    limits.set("max", str(caps.limits_max))
    limits.set("default", str(caps.limits_default))

    searching = ET.SubElement(root, "searching")
    for mode in _MODES:
        element = ET.SubElement(searching, mode)
        if mode in caps.modes:
            element.set("available", "yes")
            element.set("supportedParams", ",".join(caps.modes[mode]) or "q")
        else:
            element.set("available", "no")
            element.set("supportedParams", "")

    tree: dict[int, tuple[TorznabCategory, list[TorznabCategory]]] = {}
    for category in sorted(caps.categories, key=lambda c: c.id):
        parent = category if category.is_parent else parent_of(category.id)
        if parent is None:
            continue
        _, children = tree.setdefault(parent.id, (parent, []))
        if not category.is_parent:
            children.append(category)

    categories = ET.SubElement(root, "categories")
    for _, (parent, children) in sorted(tree.items()):
        element = ET.SubElement(categories, "category")
        element.set("id", str(parent.id))
        element.set("name", parent.name)
        for child in children:
            sub = ET.SubElement(element, "subcat")
            sub.set("id", str(child.id))
            sub.set("name", child.name)

    return TorznabRendered(_xml(root))


# --- feeds ---


def _add_torznab_attr(parent: ET.Element, name: str, value: Any) -> None:
    attr = ET.SubElement(parent, f"{{{_TORZNAB_NS}}}attr")
    attr.set("name", name)
    attr.set("value", str(value))


def _item_categories(item: ResultItem) -> list[int]:
    if item.category is None:
        return []
    parent = parent_of(item.category)
    ids = [item.category]
    if parent is not None and parent.id != item.category:
        ids.append(parent.id)
    return ids


def _channel(rss: ET.Element, channel: FeedChannel) -> ET.Element:
    element = ET.SubElement(rss, "channel")
    ET.SubElement(element, "title").text = channel.title
    ET.SubElement(element, "description").text = channel.description or channel.title
    ET.SubElement(element, "link").text = channel.link
    ET.SubElement(element, "language").text = channel.language
    return element


def _render_rss(
    items: list[ResultItem],
    channel: FeedChannel,
    link_for: Callable[[ResultItem], str],
    *,
    torznab: bool,
) -> bytes:
    rss = ET.Element("rss", attrib={"version": "2.0"})
    channel_el = _channel(rss, channel)
    if torznab:
        atom = ET.SubElement(channel_el, f"{{{_ATOM_NS}}}link")
        atom.set("href", channel.link)
        atom.set("rel", "self")
        atom.set("type", "application/rss+xml")

    for it in items:
        link = link_for(it)
        item = ET.SubElement(channel_el, "item")
        ET.SubElement(item, "title").text = it.title
        ET.SubElement(item, "guid", isPermaLink="false").text = it.guid
        ET.SubElement(item, "link").text = link
        if it.details:
            ET.SubElement(item, "comments").text = it.comments or it.details
        if it.publish_date is not None:
            ET.SubElement(item, "pubDate").text = format_datetime(it.publish_date)
        if it.size is not None:
            ET.SubElement(item, "size").text = str(it.size)
        ET.SubElement(item, "description").text = it.description or it.title
        for category in _item_categories(it):
            ET.SubElement(item, "category").text = str(category)

        enclosure = ET.SubElement(item, "enclosure")
        enclosure.set("url", link)
        enclosure.set("length", str(it.size or 0))
        enclosure.set("type", "application/x-bittorrent")

        if not torznab:
            continue

        for category in _item_categories(it):
            _add_torznab_attr(item, "category", category)
        if it.size is not None:
            _add_torznab_attr(item, "size", it.size)
        if it.files is not None:
            _add_torznab_attr(item, "files", it.files)
        if it.grabs is not None:
            _add_torznab_attr(item, "grabs", it.grabs)
        if it.seeders is not None:
            _add_torznab_attr(item, "seeders", it.seeders)
        if it.peers is not None:
            _add_torznab_attr(item, "peers", it.peers)
        if it.imdb:
            _add_torznab_attr(item, "imdb", it.imdb.removeprefix("tt"))
        if it.magnet:
            _add_torznab_attr(item, "magneturl", it.magnet)
        if it.banner:
            _add_torznab_attr(item, "coverurl", it.banner)
        _add_torznab_attr(item, "downloadvolumefactor", it.download_volume_factor)
        _add_torznab_attr(item, "uploadvolumefactor", it.upload_volume_factor)
        if it.minimum_ratio is not None:
            _add_torznab_attr(item, "minimumratio", it.minimum_ratio)
        if it.minimum_seed_time is not None:
            _add_torznab_attr(item, "minimumseedtime", it.minimum_seed_time)

    return _xml(rss)


def _item_json(it: ResultItem, link: str) -> dict[str, Any]:
    return {
        "title": it.title,
        "guid": it.guid,
        "link": link,
        "details": it.details,
        "comments": it.comments,
        "magnet": it.magnet,
        "publish_date": it.publish_date.isoformat() if it.publish_date else None,
        "size": it.size,
        "files": it.files,
        "grabs": it.grabs,
        "seeders": it.seeders,
        "leechers": it.leechers,
        "peers": it.peers,
        "category": it.category,
        "categories": _item_categories(it),
        "imdb": it.imdb,
        "description": it.description,
        "banner": it.banner,
        "download_volume_factor": it.download_volume_factor,
        "upload_volume_factor": it.upload_volume_factor,
        "minimum_ratio": it.minimum_ratio,
        "minimum_seed_time": it.minimum_seed_time,
    }


def render_feed(
    items: list[ResultItem],
    fmt: FeedFormat,
    channel: FeedChannel,
    *,
    link_for: Callable[[ResultItem], str] | None = None,
) -> TorznabRendered:
    """Render *items* as Torznab XML (``xml``), plain RSS (``rss``) or JSON.

    *link_for* maps an item to the link exposed in the feed (e.g. a signed
    proxy URL); by default the upstream link is used.
    """
    resolve = link_for or (lambda it: it.link)
    if fmt == "xml":
        return TorznabRendered(_render_rss(items, channel, resolve, torznab=True))
    if fmt == "rss":
        return TorznabRendered(
            _render_rss(items, channel, resolve, torznab=False),
            media_type="application/rss+xml",
        )
    if fmt == "json":
        document = {
            "channel": {
                "title": channel.title,
                "link": channel.link,
                "description": channel.description or channel.title,
                "language": channel.language,
            },
            "items": [_item_json(it, resolve(it)) for it in items],
        }
        return TorznabRendered(
            json.dumps(document, ensure_ascii=False).encode("utf-8"),
            media_type="application/json",
        )
    raise ValueError(f"unknown feed format {fmt!r}")


def render_error_xml(code: int, description: str) -> TorznabRendered:
    """Torznab ``<error code=".." description=".."/>`` document."""
    root = ET.Element("error")
    root.set("code", str(code))
    root.set("description", description)
    return TorznabRendered(_xml(root))
