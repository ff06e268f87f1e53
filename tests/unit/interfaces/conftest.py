"""Fixtures for router tests: a FastAPI app with hand-wired state."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from indexarr.infrastructure.config import AppConfig
from indexarr.infrastructure.config_store import MemoryConfigStore
from indexarr.infrastructure.definitions import DefinitionRegistry
from indexarr.infrastructure.torznab import DownloadTokenSigner
from indexarr.interfaces.api.download.router import router as download_router
from indexarr.interfaces.api.indexers.router import router as indexers_router
from indexarr.interfaces.api.torznab.router import router as torznab_router
from indexarr.interfaces.app_state import AppState


@pytest.fixture()
def runner() -> MagicMock:
    """Runner double; tests set ``search`` / ``download`` results."""
    runner = MagicMock()
    runner.key = "testtracker"
    runner.search = AsyncMock(return_value=[])
    runner.download = AsyncMock()
    return runner


@pytest.fixture()
def signer() -> DownloadTokenSigner:
    return DownloadTokenSigner("router-secret")


@pytest.fixture()
def app(
    definitions_dir: Path,
    config_store: MemoryConfigStore,
    runner: MagicMock,
    signer: DownloadTokenSigner,
) -> FastAPI:
    """App with all routers and state set directly (no lifespan)."""
    app = FastAPI()
    app.include_router(torznab_router)
    app.include_router(download_router)
    app.include_router(indexers_router)

    pool = AsyncMock()
    pool.get.return_value = runner

    app.state = AppState()
    app.state.config = AppConfig(environment="dev")
    app.state.registry = DefinitionRegistry([definitions_dir])
    app.state.config_store = config_store
    app.state.runners = pool
    app.state.signer = signer
    app.state.cache = None
    return app


@pytest.fixture()
def client(app: FastAPI) -> TestClient:
    return TestClient(app, raise_server_exceptions=False)
