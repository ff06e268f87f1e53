from __future__ import annotations

import time

import structlog
from fastapi import FastAPI, Request

from indexarr import __version__
from indexarr.infrastructure.config import AppConfig
from indexarr.interfaces.app_state import AppState
from indexarr.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def build_app(config: AppConfig) -> FastAPI:
    """Build the FastAPI app: configuration and routes only.

    Resources (registry, runners, cache) are created in lifespan().
    """
    app = FastAPI(
        title="Indexarr",
        description="Torznab proxy for declarative tracker definitions",
        version=__version__,
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    from indexarr.interfaces.api.download.router import router as download_router
    from indexarr.interfaces.api.indexers.router import router as indexers_router
    from indexarr.interfaces.api.torznab.router import router as torznab_router

    app.include_router(torznab_router)
    app.include_router(download_router)
    app.include_router(indexers_router)

    @app.get("/healthz")
    async def healthz() -> dict[str, str]:
        return {"status": "ok"}

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status_code=status_code,
                duration_ms=round((time.perf_counter() - start) * 1000.0, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app
