"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.datastructures import State

from indexarr.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from indexarr.domain.ports import (
        CachePort,
        ConfigStorePort,
        DefinitionRegistryPort,
        IndexerPoolPort,
    )
    from indexarr.infrastructure.torznab import DownloadTokenSigner


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Definitions and per-definition settings
    registry: DefinitionRegistryPort
    config_store: ConfigStorePort

    # One Runner (login session) per definition
    runners: IndexerPoolPort

    # Feed link signing for /download
    signer: DownloadTokenSigner

    # Search result cache (None when cache.search_ttl_seconds == 0)
    cache: CachePort | None
