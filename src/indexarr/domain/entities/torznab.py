from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from .categories import TorznabCategory

TorznabAction = Literal["caps", "search", "tvsearch", "movie"]

# Torznab function name -> definition caps mode
MODE_BY_ACTION: dict[str, str] = {
    "search": "search",
    "tvsearch": "tv-search",
    "tv-search": "tv-search",
    "movie": "movie-search",
    "movie-search": "movie-search",
}


@dataclass(frozen=True)
class TorznabQuery:
    """Normalized search request."""

    action: str = "search"  # "search", "tvsearch", "movie", "caps"
    q: str = ""

    categories: list[int] = field(default_factory=list)

    # TV / movie identifiers
    season: int | None = None
    ep: int | None = None
    imdbid: str | None = None
    tvdbid: str | None = None

    # Paging
    limit: int | None = None
    offset: int = 0

    # Prowlarr "extended" flag
    extended: int | None = None

    @property
    def mode(self) -> str:
        return MODE_BY_ACTION.get(self.action, "search")

    @property
    def keywords(self) -> str:
        """Free text plus SxxEyy for TV searches."""
        parts: list[str] = [self.q.strip()] if self.q.strip() else []
        if self.mode == "tv-search" and self.season is not None:
            episode = f"S{self.season:02d}"
            if self.ep is not None:
                episode += f"E{self.ep:02d}"
            parts.append(episode)
        return " ".join(parts)

    def template_vars(
        self, local_categories: list[str], *, page: int = 0, page_offset: int = 0
    ) -> dict[str, Any]:
        """Variables exposed to templates as ``.Query``."""
        return {
            "Type": self.action,
            "Q": self.q,
            "Keywords": self.keywords,
            "Series": self.q,
            "Season": "" if self.season is None else str(self.season),
            "Ep": "" if self.ep is None else str(self.ep),
            "IMDBID": self.imdbid or "",
            "IMDBIDShort": (self.imdbid or "").removeprefix("tt"),
            "TVDBID": self.tvdbid or "",
            "Categories": list(local_categories),
            "Limit": "" if self.limit is None else str(self.limit),
            "Offset": str(page_offset),
            "Page": str(page),
        }


@dataclass
class ResultItem:
    """Normalized, protocol-agnostic search hit."""

    site: str
    title: str
    link: str
    guid: str

    details: str | None = None
    comments: str | None = None
    magnet: str | None = None
    description: str | None = None
    banner: str | None = None
    imdb: str | None = None

    publish_date: datetime | None = None
    size: int | None = None
    files: int | None = None
    grabs: int | None = None
    seeders: int | None = None
    leechers: int | None = None

    # Torznab category id (mapped) and the raw site-local id
    category: int | None = None
    local_category: str | None = None

    download_volume_factor: float = 1.0
    upload_volume_factor: float = 1.0
    minimum_ratio: float | None = None
    minimum_seed_time: int | None = None

    @property
    def peers(self) -> int | None:
        if self.seeders is None and self.leechers is None:
            return None
        return (self.seeders or 0) + (self.leechers or 0)

    @property
    def is_magnet(self) -> bool:
        return self.link.startswith("magnet:")


@dataclass(frozen=True)
class TorznabCaps:
    server_title: str
    server_version: str
    limits_max: int = 100
    limits_default: int = 50
    modes: dict[str, list[str]] = field(default_factory=lambda: {"search": ["q"]})
    categories: list[TorznabCategory] = field(default_factory=list)


@dataclass(frozen=True)
class TorznabIndexInfo:
    key: str
    name: str
    language: str
    link: str
    configured: bool


class TorznabError(Exception):
    """Base error for Torznab domain/usecases."""


class TorznabBadRequest(TorznabError):
    pass


class InvalidQuery(TorznabBadRequest):
    """Unparseable or contradictory search parameters."""


class TorznabUnsupportedAction(TorznabError):
    pass


class TorznabIndexerNotFound(TorznabError):
    pass


class TorznabExternalError(TorznabError):
    """Network / login / parsing errors of the upstream site."""
