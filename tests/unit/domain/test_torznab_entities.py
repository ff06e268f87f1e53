"""Tests for Torznab domain entities and the category table."""

from __future__ import annotations

import dataclasses

import pytest

from indexarr.domain.entities import (
    ALL_CATEGORIES,
    InvalidQuery,
    ResultItem,
    TorznabBadRequest,
    TorznabCaps,
    TorznabError,
    TorznabExternalError,
    TorznabIndexerNotFound,
    TorznabQuery,
    TorznabUnsupportedAction,
    category_by_id,
    category_by_name,
    parent_of,
)


class TestCategories:
    def test_table_ids_are_unique(self) -> None:
        ids = [c.id for c in ALL_CATEGORIES]
        assert len(ids) == len(set(ids))

    def test_every_subcategory_has_a_parent(self) -> None:
        for category in ALL_CATEGORIES:
            assert parent_of(category.id) is not None

    def test_lookup_by_id(self) -> None:
        category = category_by_id(5040)
        assert category is not None
        assert category.name == "TV/HD"
        assert category.parent_id == 5000
        assert not category.is_parent

    def test_unknown_id(self) -> None:
        assert category_by_id(9999) is None

    def test_lookup_by_name_is_case_insensitive(self) -> None:
        category = category_by_name("  movies/hd ")
        assert category is not None
        assert category.id == 2040

    def test_legacy_alias(self) -> None:
        category = category_by_name("PC/Phone-Android")
        assert category is not None
        assert category.id == 4070

    def test_parent_of_parent_is_itself(self) -> None:
        parent = parent_of(2000)
        assert parent is not None
        assert parent.id == 2000


class TestTorznabQuery:
    def test_defaults(self) -> None:
        q = TorznabQuery()
        assert q.action == "search"
        assert q.categories == []
        assert q.offset == 0
        assert q.limit is None
        assert q.mode == "search"

    def test_frozen_immutability(self) -> None:
        q = TorznabQuery(q="ubuntu")
        with pytest.raises(dataclasses.FrozenInstanceError):
            q.q = "debian"  # type: ignore[misc]

    @pytest.mark.parametrize(
        ("action", "mode"),
        [("search", "search"), ("tvsearch", "tv-search"), ("movie", "movie-search")],
    )
    def test_mode_by_action(self, action: str, mode: str) -> None:
        assert TorznabQuery(action=action).mode == mode

    def test_keywords_only_append_episode_for_tv(self) -> None:
        assert TorznabQuery(action="tvsearch", q="Show", season=3).keywords == "Show S03"
        assert TorznabQuery(action="search", q="Show", season=3).keywords == "Show"

    def test_keywords_without_text(self) -> None:
        query = TorznabQuery(action="tvsearch", season=1, ep=10)
        assert query.keywords == "S01E10"


class TestResultItem:
    def test_peers_sums_seeders_and_leechers(self, result_item: ResultItem) -> None:
        assert result_item.peers == 124

    def test_peers_unknown(self, result_item: ResultItem) -> None:
        item = dataclasses.replace(result_item, seeders=None, leechers=None)
        assert item.peers is None

    def test_peers_with_one_side_missing(self, result_item: ResultItem) -> None:
        assert dataclasses.replace(result_item, leechers=None).peers == 120

    def test_is_magnet(self, result_item: ResultItem) -> None:
        assert not result_item.is_magnet
        assert dataclasses.replace(result_item, link="magnet:?xt=x").is_magnet


class TestTorznabCaps:
    def test_defaults(self) -> None:
        caps = TorznabCaps(server_title="t", server_version="1")
        assert caps.limits_max == 100
        assert caps.limits_default == 50
        assert caps.modes == {"search": ["q"]}
        assert caps.categories == []


class TestExceptionHierarchy:
    @pytest.mark.parametrize(
        "exc",
        [
            TorznabBadRequest,
            InvalidQuery,
            TorznabUnsupportedAction,
            TorznabIndexerNotFound,
            TorznabExternalError,
        ],
    )
    def test_all_are_torznab_errors(self, exc: type[Exception]) -> None:
        assert issubclass(exc, TorznabError)

    def test_invalid_query_is_bad_request(self) -> None:
        assert issubclass(InvalidQuery, TorznabBadRequest)
