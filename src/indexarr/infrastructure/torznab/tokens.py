"""HMAC-signed download tokens for proxied feed links.

Feed items point at ``/download/{key}/{token}/{filename}`` instead of the
upstream site; the token embeds the upstream link and is only accepted for
the definition it was issued for.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
import re
from urllib.parse import quote

from indexarr.domain.entities import ResultItem, TorznabBadRequest

_UNSAFE = re.compile(r"[^\w.\- ]+")


class InvalidDownloadToken(TorznabBadRequest):
    """Token is malformed or was not signed by this server."""


def _b64encode(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).decode("ascii").rstrip("=")


def _b64decode(text: str) -> bytes:
    return base64.urlsafe_b64decode(text + "=" * (-len(text) % 4))


class DownloadTokenSigner:
    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("download token secret must not be empty")
        self._secret = secret.encode("utf-8")

    def _signature(self, key: str, link: str) -> str:
        digest = hmac.new(
            self._secret, f"{key}\n{link}".encode(), hashlib.sha256
        ).digest()
        return _b64encode(digest[:18])

    def sign(self, key: str, link: str) -> str:
        return f"{_b64encode(link.encode('utf-8'))}.{self._signature(key, link)}"

    def verify(self, key: str, token: str) -> str:
        """Return the upstream link embedded in *token*.

        Raises:
            InvalidDownloadToken: bad format or signature mismatch.
        """
        payload, sep, signature = token.partition(".")
        if not sep or not payload or not signature:
            raise InvalidDownloadToken("malformed download token")
        try:
            link = _b64decode(payload).decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise InvalidDownloadToken("malformed download token") from e
        if not hmac.compare_digest(signature, self._signature(key, link)):
            raise InvalidDownloadToken("download token signature mismatch")
        return link

    def feed_link(self, base_url: str, key: str, item: ResultItem) -> str:
        """Proxied link for *item*; magnet links are returned untouched."""
        if item.is_magnet:
            return item.link
        filename = _UNSAFE.sub("_", item.title).strip() or "download"
        return (
            f"{base_url.rstrip('/')}/download/{quote(key)}/"
            f"{self.sign(key, item.link)}/{quote(filename)}.torrent"
        )
