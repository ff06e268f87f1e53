from __future__ import annotations

from dataclasses import asdict
from typing import cast

from fastapi import APIRouter, Request

from indexarr.application.use_cases import TorznabIndexersUseCase
from indexarr.interfaces.app_state import AppState

router = APIRouter(tags=["indexers"])


@router.get("/api/v1/indexers")
async def list_indexers(request: Request) -> dict:
    """Discovery/automation listing (JSON, not part of Torznab)."""
    state = cast(AppState, request.app.state)
    uc = TorznabIndexersUseCase(
        registry=state.registry, config_store=state.config_store
    )
    base_url = str(request.base_url).rstrip("/")
    return {
        "indexers": [
            {**asdict(info), "torznab_url": f"{base_url}/torznab/{info.key}/api"}
            for info in uc.execute()
        ]
    }
