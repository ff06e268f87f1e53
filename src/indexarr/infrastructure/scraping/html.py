"""BeautifulSoup helpers shared by the pipeline and the login strategies."""

from __future__ import annotations

import copy
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag


def parse_html(html: str | bytes) -> BeautifulSoup:
    """Parse an HTML document into a BeautifulSoup tree (``lxml`` parser)."""
    return BeautifulSoup(html, "lxml")


def node_text(element: Tag) -> str:
    """Text content with runs of whitespace collapsed."""
    return " ".join(element.get_text(" ").split())


def select_first(root: BeautifulSoup | Tag, selector: str) -> Tag | None:
    """First element matching *selector*, or the root itself for ``""``."""
    if not selector:
        return root
    return root.select_one(selector)


def matches(element: Tag, selector: str) -> bool:
    """True if *element* itself or one of its descendants matches."""
    if element.css.match(selector):
        return True
    return element.select_one(selector) is not None


def without(element: Tag, selector: str) -> Tag:
    """Copy of *element* with every descendant matching *selector* removed."""
    clone = copy.copy(element)
    for node in clone.select(selector):
        node.decompose()
    return clone


def absolute_url(base_url: str, href: str) -> str:
    """Resolve *href* against *base_url*; magnet/data links pass through."""
    href = href.strip()
    if href.startswith(("magnet:", "data:")):
        return href
    return urljoin(base_url if base_url.endswith("/") else base_url + "/", href)
