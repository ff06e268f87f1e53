"""Proxied .torrent downloads for feed links."""

from __future__ import annotations

from typing import cast
from urllib.parse import quote

import structlog
from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from indexarr.application.use_cases import DownloadUseCase
from indexarr.domain.entities import TorznabExternalError, TorznabIndexerNotFound
from indexarr.domain.indexer import DownloadFailed
from indexarr.infrastructure.torznab import InvalidDownloadToken
from indexarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["download"])


@router.get("/download/{key}/{token}/{filename}")
async def download(
    key: str, token: str, filename: str, request: Request
) -> StreamingResponse:
    """Stream the upstream file behind a signed feed link.

    The upstream response is closed once the body has been sent.

    Raises:
        HTTPException(400): token invalid or issued for another indexer.
        HTTPException(404): unknown indexer.
        HTTPException(502): upstream failure (upstream 404 is passed through).
    """
    state = cast(AppState, request.app.state)

    try:
        link = state.signer.verify(key, token)
    except InvalidDownloadToken as e:
        log.warning("download_token_rejected", definition=key, reason=str(e))
        raise HTTPException(status_code=400, detail=str(e)) from e

    uc = DownloadUseCase(state.runners)
    try:
        upstream = await uc.execute(key, link)
    except TorznabIndexerNotFound as e:
        raise HTTPException(status_code=404, detail=f"unknown indexer '{key}'") from e
    except DownloadFailed as e:
        status = 404 if e.status_code == 404 else 502
        raise HTTPException(status_code=status, detail=str(e)) from e
    except TorznabExternalError as e:
        raise HTTPException(status_code=502, detail=str(e)) from e

    name = upstream.filename or filename
    return StreamingResponse(
        upstream.aiter_bytes(),
        media_type=upstream.content_type,
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(name)}"
        },
        background=BackgroundTask(upstream.aclose),
    )
