"""Tests for TorznabSearchUseCase."""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from indexarr.application.use_cases.torznab_search import (
    SearchResponse,
    TorznabSearchUseCase,
    search_cache_key,
)
from indexarr.domain.definitions import DefinitionNotFound, MalformedDefinition
from indexarr.domain.entities import (
    InvalidQuery,
    ResultItem,
    TorznabExternalError,
    TorznabIndexerNotFound,
    TorznabQuery,
)
from indexarr.domain.indexer import AuthenticationFailed, SessionUnstable


def _pool(runner: MagicMock | None = None) -> AsyncMock:
    pool = AsyncMock()
    pool.get.return_value = runner
    return pool


def _runner(items: list[ResultItem] | Exception) -> MagicMock:
    runner = MagicMock()
    runner.key = "testtracker"
    if isinstance(items, Exception):
        runner.search = AsyncMock(side_effect=items)
    else:
        runner.search = AsyncMock(return_value=items)
    return runner


def _cache(hit: list[ResultItem] | None = None) -> AsyncMock:
    cache = AsyncMock()
    cache.get.return_value = hit
    return cache


# ---------------------------------------------------------------------------
# Lookup & error mapping
# ---------------------------------------------------------------------------


class TestErrorMapping:
    async def test_unknown_definition(self, torznab_query: TorznabQuery) -> None:
        pool = AsyncMock()
        pool.get.side_effect = DefinitionNotFound("nope")
        uc = TorznabSearchUseCase(pool)
        with pytest.raises(TorznabIndexerNotFound):
            await uc.execute("nope", torznab_query)

    async def test_malformed_definition(self, torznab_query: TorznabQuery) -> None:
        pool = AsyncMock()
        pool.get.side_effect = MalformedDefinition("search.rows", "field required")
        uc = TorznabSearchUseCase(pool)
        with pytest.raises(TorznabExternalError, match="invalid"):
            await uc.execute("broken", torznab_query)

    async def test_login_failure_is_external(
        self, torznab_query: TorznabQuery
    ) -> None:
        runner = _runner(AuthenticationFailed("login failed", reason="Banned"))
        uc = TorznabSearchUseCase(_pool(runner))
        with pytest.raises(TorznabExternalError, match="Banned"):
            await uc.execute("testtracker", torznab_query)

    async def test_unstable_session_is_external(
        self, torznab_query: TorznabQuery
    ) -> None:
        uc = TorznabSearchUseCase(_pool(_runner(SessionUnstable("expired again"))))
        with pytest.raises(TorznabExternalError):
            await uc.execute("testtracker", torznab_query)

    async def test_invalid_query_passes_through(self) -> None:
        uc = TorznabSearchUseCase(_pool(_runner(InvalidQuery("no movie-search"))))
        with pytest.raises(InvalidQuery):
            await uc.execute("testtracker", TorznabQuery(action="movie"))


# ---------------------------------------------------------------------------
# Search & cache
# ---------------------------------------------------------------------------


class TestSearch:
    async def test_returns_runner_items(
        self, torznab_query: TorznabQuery, result_item: ResultItem
    ) -> None:
        runner = _runner([result_item])
        uc = TorznabSearchUseCase(_pool(runner))

        response = await uc.execute("testtracker", torznab_query)

        assert response == SearchResponse(items=[result_item], cache_hit=False)
        runner.search.assert_awaited_once_with(torznab_query)

    async def test_cache_hit_skips_runner(
        self, torznab_query: TorznabQuery, result_item: ResultItem
    ) -> None:
        runner = _runner([])
        cache = _cache(hit=[result_item])
        uc = TorznabSearchUseCase(_pool(runner), cache=cache, search_ttl=60)

        response = await uc.execute("testtracker", torznab_query)

        assert response.cache_hit
        assert response.items == [result_item]
        runner.search.assert_not_awaited()
        cache.get.assert_awaited_once_with(
            search_cache_key("testtracker", torznab_query)
        )

    async def test_cache_miss_stores_results(
        self, torznab_query: TorznabQuery, result_item: ResultItem
    ) -> None:
        cache = _cache()
        uc = TorznabSearchUseCase(_pool(_runner([result_item])), cache, search_ttl=60)

        response = await uc.execute("testtracker", torznab_query)

        assert not response.cache_hit
        cache.set.assert_awaited_once_with(
            search_cache_key("testtracker", torznab_query), [result_item], ttl=60
        )

    async def test_empty_results_are_not_cached(
        self, torznab_query: TorznabQuery
    ) -> None:
        cache = _cache()
        uc = TorznabSearchUseCase(_pool(_runner([])), cache, search_ttl=60)
        await uc.execute("testtracker", torznab_query)
        cache.set.assert_not_awaited()

    async def test_zero_ttl_disables_cache(
        self, torznab_query: TorznabQuery, result_item: ResultItem
    ) -> None:
        cache = _cache(hit=[result_item])
        uc = TorznabSearchUseCase(_pool(_runner([])), cache, search_ttl=0)

        response = await uc.execute("testtracker", torznab_query)

        assert response.items == []
        cache.get.assert_not_awaited()
        cache.set.assert_not_awaited()

    async def test_cache_errors_are_treated_as_miss(
        self, torznab_query: TorznabQuery, result_item: ResultItem
    ) -> None:
        cache = _cache()
        cache.get.side_effect = OSError("disk full")
        cache.set.side_effect = OSError("disk full")
        uc = TorznabSearchUseCase(_pool(_runner([result_item])), cache, search_ttl=60)

        response = await uc.execute("testtracker", torznab_query)

        assert response.items == [result_item]


class TestSearchCacheKey:
    def test_stable_and_normalised(self) -> None:
        a = TorznabQuery(q="Ubuntu ", categories=[4020, 4000])
        b = TorznabQuery(q="ubuntu", categories=[4000, 4020])
        assert search_cache_key("x", a) == search_cache_key("x", b)

    def test_differs_per_definition_and_paging(self) -> None:
        query = TorznabQuery(q="ubuntu")
        assert search_cache_key("x", query) != search_cache_key("y", query)
        assert search_cache_key("x", query) != search_cache_key(
            "x", TorznabQuery(q="ubuntu", offset=50)
        )
