"""Parse Torznab request parameters into a ``TorznabQuery``."""

from __future__ import annotations

from collections.abc import Mapping

from indexarr.domain.entities import (
    InvalidQuery,
    TorznabQuery,
    TorznabUnsupportedAction,
)

ACTIONS = frozenset(
    {"caps", "search", "tvsearch", "tv-search", "movie", "movie-search"}
)

_ID_PARAMS = ("season", "ep", "imdbid", "tvdbid")


def _int(params: Mapping[str, str], name: str) -> int | None:
    raw = (params.get(name) or "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError as e:
        raise InvalidQuery(f"parameter '{name}' must be an integer, got {raw!r}") from e


def _categories(raw: str | None) -> list[int]:
    out: list[int] = []
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            out.append(int(part))
        except ValueError as e:
            raise InvalidQuery(f"category {part!r} is not an integer") from e
    return out


def _imdbid(raw: str | None) -> str | None:
    value = (raw or "").strip()
    if not value:
        return None
    digits = value[2:] if value.lower().startswith("tt") else value
    if not digits.isdigit():
        raise InvalidQuery(f"imdbid {raw!r} is not a valid IMDb id")
    return f"tt{int(digits):07d}"


def parse_query(params: Mapping[str, str]) -> TorznabQuery:
    """Validate Torznab parameters (``t``, ``q``, ``cat``, ``season``, ...).

    Raises:
        TorznabUnsupportedAction: unknown ``t``.
        InvalidQuery: non-integer numbers, ``ep`` without ``season``, or
            TV/movie id parameters with the plain ``search`` function.
    """
    action = (params.get("t") or "").strip().lower()
    if not action:
        raise InvalidQuery("missing parameter 't'")
    if action not in ACTIONS:
        raise TorznabUnsupportedAction(f"Unsupported action t={action!r}")

    season = _int(params, "season")
    ep = _int(params, "ep")
    limit = _int(params, "limit")
    offset = _int(params, "offset") or 0
    extended = _int(params, "extended")

    if ep is not None and season is None:
        raise InvalidQuery("parameter 'ep' requires 'season'")
    if limit is not None and limit < 0:
        raise InvalidQuery("parameter 'limit' must not be negative")
    if offset < 0:
        raise InvalidQuery("parameter 'offset' must not be negative")

    if action == "search":
        used = [name for name in _ID_PARAMS if (params.get(name) or "").strip()]
        if used:
            raise InvalidQuery(
                f"parameters {', '.join(used)} are not valid for t=search"
            )

    tvdbid = (params.get("tvdbid") or "").strip() or None
    if tvdbid is not None and not tvdbid.isdigit():
        raise InvalidQuery(f"tvdbid {tvdbid!r} is not an integer")

    return TorznabQuery(
        action=action,
        q=(params.get("q") or "").strip(),
        categories=_categories(params.get("cat")),
        season=season,
        ep=ep,
        imdbid=_imdbid(params.get("imdbid")),
        tvdbid=tvdbid,
        limit=limit,
        offset=offset,
        extended=extended,
    )
