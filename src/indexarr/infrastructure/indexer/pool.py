"""Server-side cache of one Runner per definition key."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

import httpx
import structlog

from indexarr.domain.ports import ConfigStorePort, DefinitionRegistryPort
from indexarr.infrastructure.indexer.runner import Runner
from indexarr.infrastructure.indexer.session import RunnerSettings

log = structlog.get_logger(__name__)


class RunnerPool:
    """
    Lazily creates Runners and keeps them for the process lifetime, so the
    login session of a definition is shared by all requests.
    """

    def __init__(
        self,
        registry: DefinitionRegistryPort,
        config_store: ConfigStorePort,
        *,
        settings: RunnerSettings | None = None,
        client_factory: Callable[[], httpx.AsyncClient] | None = None,
    ) -> None:
        self._registry = registry
        self._config_store = config_store
        self._settings = settings or RunnerSettings()
        self._client_factory = client_factory
        self._runners: dict[str, Runner] = {}
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._runners)

    async def get(self, key: str) -> Runner:
        """Runner for *key*; raises ``DefinitionNotFound`` for unknown keys."""
        runner = self._runners.get(key)
        if runner is not None:
            return runner

        async with self._lock:
            runner = self._runners.get(key)
            if runner is not None:
                return runner

            definition = self._registry.get(key)
            client = self._client_factory() if self._client_factory else None
            runner = Runner(
                definition,
                self._config_store,
                http_client=client,
                settings=self._settings,
            )
            self._runners[key] = runner
            log.info("runner_created", definition=key)
            return runner

    async def aclose(self) -> None:
        async with self._lock:
            runners, self._runners = list(self._runners.values()), {}
        for runner in runners:
            await runner.aclose()
            if self._client_factory is not None:
                await runner.session.client.aclose()
        log.info("runner_pool_closed", count=len(runners))
