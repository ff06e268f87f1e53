"""Torznab search use case with an optional result cache."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass

import structlog

from indexarr.domain.definitions import DefinitionNotFound, MalformedDefinition
from indexarr.domain.entities import (
    ResultItem,
    TorznabExternalError,
    TorznabIndexerNotFound,
    TorznabQuery,
)
from indexarr.domain.indexer import IndexerError
from indexarr.domain.ports import CachePort, IndexerPoolPort

log = structlog.get_logger(__name__)


def search_cache_key(key: str, query: TorznabQuery) -> str:
    """Deterministic cache key for (definition, query)."""
    fingerprint = json.dumps(
        {
            "key": key,
            "t": query.action,
            "q": query.q.strip().lower(),
            "cat": sorted(query.categories),
            "season": query.season,
            "ep": query.ep,
            "imdbid": query.imdbid,
            "tvdbid": query.tvdbid,
            "limit": query.limit,
            "offset": query.offset,
        },
        sort_keys=True,
    )
    return f"search:{hashlib.sha256(fingerprint.encode()).hexdigest()[:24]}"


@dataclass(frozen=True)
class SearchResponse:
    """Use case response carrying items + cache metadata."""

    items: list[ResultItem]
    cache_hit: bool = False


class TorznabSearchUseCase:
    """Runs a Torznab query through the definition's Runner.

    Raises:
        TorznabIndexerNotFound: no definition for *key*.
        InvalidQuery: the definition does not support the requested mode.
        TorznabExternalError: login, transport or extraction failure upstream.
    """

    def __init__(
        self,
        pool: IndexerPoolPort,
        cache: CachePort | None = None,
        search_ttl: int = 0,
    ) -> None:
        self._pool = pool
        self._cache = cache
        self._search_ttl = search_ttl

    async def execute(self, key: str, query: TorznabQuery) -> SearchResponse:
        try:
            runner = await self._pool.get(key)
        except DefinitionNotFound as e:
            raise TorznabIndexerNotFound(key) from e
        except MalformedDefinition as e:
            raise TorznabExternalError(f"definition '{key}' is invalid: {e}") from e

        cache_key = search_cache_key(key, query)
        cached = await self._cache_read(cache_key, key)
        if cached is not None:
            return SearchResponse(items=cached, cache_hit=True)

        try:
            items = await runner.search(query)
        except IndexerError as e:
            log.warning(
                "torznab_search_failed",
                definition=key,
                stage=e.stage,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise TorznabExternalError(str(e)) from e

        if items:
            await self._cache_write(cache_key, key, items)
        return SearchResponse(items=items)

    async def _cache_read(self, cache_key: str, key: str) -> list[ResultItem] | None:
        """Cached items; cache failures are logged and treated as a miss."""
        if self._cache is None or self._search_ttl <= 0:
            return None
        try:
            cached = await self._cache.get(cache_key)
        except Exception:
            log.warning("search_cache_read_error", cache_key=cache_key, exc_info=True)
            return None
        if cached is not None:
            log.info(
                "search_cache_hit",
                definition=key,
                cache_key=cache_key,
                result_count=len(cached),
            )
        return cached

    async def _cache_write(
        self, cache_key: str, key: str, items: list[ResultItem]
    ) -> None:
        if self._cache is None or self._search_ttl <= 0:
            return
        try:
            await self._cache.set(cache_key, items, ttl=self._search_ttl)
        except Exception:
            log.warning("search_cache_store_error", cache_key=cache_key, exc_info=True)
            return
        log.debug(
            "search_cache_stored",
            definition=key,
            cache_key=cache_key,
            ttl=self._search_ttl,
            result_count=len(items),
        )
