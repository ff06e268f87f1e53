"""Torznab protocol adapter - query parsing, rendering and download tokens."""

from __future__ import annotations

from .presenter import (
    FEED_FORMATS,
    FeedChannel,
    FeedFormat,
    TorznabRendered,
    render_caps_xml,
    render_error_xml,
    render_feed,
)
from .query import parse_query
from .tokens import DownloadTokenSigner, InvalidDownloadToken

__all__ = [
    "FEED_FORMATS",
    "DownloadTokenSigner",
    "FeedChannel",
    "FeedFormat",
    "InvalidDownloadToken",
    "TorznabRendered",
    "parse_query",
    "render_caps_xml",
    "render_error_xml",
    "render_feed",
]
