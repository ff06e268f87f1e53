from __future__ import annotations

import hmac
from typing import cast

import structlog
from fastapi import APIRouter, Request, Response

from indexarr import __version__
from indexarr.application.use_cases import TorznabCapsUseCase, TorznabSearchUseCase
from indexarr.domain.entities import (
    ResultItem,
    TorznabBadRequest,
    TorznabExternalError,
    TorznabIndexerNotFound,
    TorznabUnsupportedAction,
)
from indexarr.infrastructure.torznab import (
    FEED_FORMATS,
    FeedChannel,
    FeedFormat,
    parse_query,
    render_caps_xml,
    render_error_xml,
    render_feed,
)
from indexarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["torznab"])

# Torznab error codes
_ERR_CREDENTIALS = 100
_ERR_BAD_PARAMETER = 201
_ERR_NO_FUNCTION = 202
_ERR_NO_ITEM = 300
_ERR_UNKNOWN = 900


def _is_prod(state: AppState) -> bool:
    return state.config.environment == "prod"


def _error(code: int, description: str, *, status_code: int) -> Response:
    rendered = render_error_xml(code, description)
    return Response(
        content=rendered.payload,
        media_type=rendered.media_type,
        status_code=status_code,
    )


def _channel(state: AppState, request: Request, key: str) -> FeedChannel:
    return FeedChannel(
        title=f"{state.config.app_name} ({key})",
        link=str(request.url.remove_query_params("apikey")),
    )


def _feed(
    state: AppState,
    request: Request,
    key: str,
    items: list[ResultItem],
    fmt: str,
) -> Response:
    base_url = str(request.base_url)

    def link_for(item: ResultItem) -> str:
        return state.signer.feed_link(base_url, key, item)

    rendered = render_feed(
        items, cast(FeedFormat, fmt), _channel(state, request, key), link_for=link_for
    )
    return Response(content=rendered.payload, media_type=rendered.media_type)


def _api_key_ok(state: AppState, request: Request) -> bool:
    expected = state.config.api_key
    if not expected:
        return True
    given = request.query_params.get("apikey", "")
    return hmac.compare_digest(given.encode(), expected.encode())


@router.get("/torznab/{key}/api")
@router.get("/api/v1/torznab/{key}")
async def torznab_api(request: Request, key: str) -> Response:
    """Torznab endpoint: ``t=caps`` or a search function (search/tvsearch/movie).

    Extra parameter ``format`` (or ``o``) selects ``xml`` (default), ``rss``
    or ``json`` output for searches.
    """
    state = cast(AppState, request.app.state)
    params = request.query_params

    if not _api_key_ok(state, request):
        log.warning("torznab_api_key_rejected", definition=key)
        return _error(_ERR_CREDENTIALS, "Incorrect user credentials", status_code=401)

    fmt = (params.get("format") or params.get("o") or "xml").lower()
    t = params.get("t")

    try:
        if fmt not in FEED_FORMATS:
            raise TorznabBadRequest(f"unknown format {fmt!r}")

        query = parse_query(params)

        if query.action == "caps":
            caps_uc = TorznabCapsUseCase(
                registry=state.registry,
                app_name=state.config.app_name,
                server_version=__version__,
            )
            rendered = render_caps_xml(caps_uc.execute(key))
            return Response(content=rendered.payload, media_type=rendered.media_type)

        search_uc = TorznabSearchUseCase(
            state.runners,
            cache=state.cache,
            search_ttl=state.config.search_ttl_seconds,
        )
        response = await search_uc.execute(key, query)
        return _feed(state, request, key, response.items, fmt)

    except TorznabBadRequest as e:
        return _error(_ERR_BAD_PARAMETER, str(e), status_code=400)

    except TorznabIndexerNotFound:
        return _error(_ERR_NO_ITEM, f"unknown indexer '{key}'", status_code=404)

    except TorznabUnsupportedAction as e:
        return _error(_ERR_NO_FUNCTION, str(e), status_code=422)

    except TorznabExternalError as e:
        # prod: stable for *arr clients -> empty feed (200)
        if _is_prod(state):
            return _feed(state, request, key, [], fmt)
        return _error(_ERR_UNKNOWN, str(e), status_code=502)

    except Exception:
        log.exception("torznab_unhandled_error", definition=key, t=t)
        if _is_prod(state):
            return _feed(state, request, key, [], fmt)
        return _error(_ERR_UNKNOWN, "internal error", status_code=500)
