"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

import secrets
from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import structlog
from fastapi import FastAPI

from indexarr.infrastructure.cache import DiskcacheAdapter
from indexarr.infrastructure.config import AppConfig
from indexarr.infrastructure.config_store import JsonFileConfigStore
from indexarr.infrastructure.definitions import DefinitionRegistry, default_search_path
from indexarr.infrastructure.indexer import RunnerPool, RunnerSettings
from indexarr.infrastructure.indexer.session import DEFAULT_USER_AGENT
from indexarr.infrastructure.torznab import DownloadTokenSigner
from indexarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


def runner_settings(config: AppConfig) -> RunnerSettings:
    """Runner knobs from the validated app config."""
    return RunnerSettings(
        timeout_seconds=config.http_timeout_seconds,
        user_agent=config.http_user_agent or DEFAULT_USER_AGENT,
        follow_redirects=config.http_follow_redirects,
        rate_limit_rps=config.http_rate_limit_rps,
        max_retries=config.http_max_retries,
        relogin_retries=config.relogin_retries,
        max_pages=config.max_pages,
    )


def build_registry(config: AppConfig) -> DefinitionRegistry:
    registry = DefinitionRegistry(default_search_path(config.definitions_dir))
    registry.discover()
    return registry


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create and tear down all resources.

    Order:
        1. Definition registry + config store
        2. Runner pool (owns the per-definition HTTP clients)
        3. Download token signer
        4. Search cache (optional)
    """
    state = cast(AppState, app.state)
    config = state.config

    state.registry = build_registry(config)
    state.config_store = JsonFileConfigStore(config.config_store_path)

    pool = RunnerPool(
        state.registry, state.config_store, settings=runner_settings(config)
    )
    state.runners = pool

    if config.download_secret is None:
        log.warning("download_secret_generated", hint="feed links expire on restart")
    state.signer = DownloadTokenSigner(
        config.download_secret or secrets.token_urlsafe(32)
    )

    cache: DiskcacheAdapter | None = None
    if config.search_ttl_seconds > 0:
        cache = DiskcacheAdapter(
            directory=config.cache_dir, ttl_seconds=config.search_ttl_seconds
        )
        await cache.__aenter__()
    state.cache = cache

    log.info(
        "app_startup_complete",
        definitions=len(state.registry.list_keys()),
        search_cache=cache is not None,
    )

    try:
        yield
    finally:
        await pool.aclose()
        log.info("runner_pool_closed")

        if cache is not None:
            await cache.aclose()
            log.info("cache_closed")

        log.info("app_shutdown_complete")
