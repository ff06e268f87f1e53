"""Tests for the definition domain model and runtime errors."""

from __future__ import annotations

import httpx
import pytest

from indexarr.domain.definitions import (
    Capabilities,
    CategoryMapping,
    Definition,
    DefinitionNotFound,
    FilterBlock,
    MalformedDefinition,
    SearchPath,
    SelectorBlock,
)
from indexarr.domain.indexer import (
    AuthenticationFailed,
    DownloadFailed,
    ExtractionFailure,
    IndexerError,
    IndexerTransportError,
    SessionUnstable,
    TemplateVariableMissing,
)


def _caps() -> Capabilities:
    return Capabilities(
        categories=[
            CategoryMapping("1", 2040, "Movies/HD"),
            CategoryMapping("2", 5040, "TV/HD"),
            CategoryMapping("3", 5030, "TV/SD"),
            CategoryMapping("4", 5040, "TV/HD", description="TV HD x265"),
        ],
        modes={"search": ["q"], "tv-search": ["q", "season", "ep"]},
    )


class TestCapabilities:
    def test_local_ids_exact(self) -> None:
        assert _caps().local_ids([2040]) == ["1"]

    def test_parent_selects_all_subcategories(self) -> None:
        assert _caps().local_ids([5000]) == ["2", "3", "4"]

    def test_one_torznab_id_may_map_to_several_local_ids(self) -> None:
        assert _caps().local_ids([5040]) == ["2", "4"]

    def test_unmapped_request_yields_nothing(self) -> None:
        assert _caps().local_ids([7000, 7020]) == []

    def test_no_duplicates(self) -> None:
        assert _caps().local_ids([5000, 5040]) == ["2", "3", "4"]

    def test_torznab_id(self) -> None:
        caps = _caps()
        assert caps.torznab_id("3") == 5030
        assert caps.torznab_id("99") is None

    def test_modes(self) -> None:
        caps = _caps()
        assert caps.has_mode("tv-search")
        assert not caps.has_mode("movie-search")
        assert caps.supported_params("tv-search") == ["q", "season", "ep"]
        assert caps.supported_params("movie-search") == []


class TestSearchPath:
    def test_unrestricted_path_applies(self) -> None:
        assert SearchPath("browse.php").applies_to("search", ["1"])

    def test_mode_restriction(self) -> None:
        path = SearchPath("tv.php", modes=["tv-search"])
        assert path.applies_to("tv-search", [])
        assert not path.applies_to("search", [])

    def test_category_restriction(self) -> None:
        path = SearchPath("movies.php", categories=["1"])
        assert path.applies_to("search", ["1", "2"])
        assert not path.applies_to("search", ["2"])
        assert path.applies_to("search", [])


class TestDefinition:
    def test_key_base_url_and_login(self, tracker_definition: Definition) -> None:
        assert tracker_definition.key == "testtracker"
        assert tracker_definition.base_url == "https://tracker.test/"
        assert tracker_definition.requires_login

    def test_public_definition(self, public_definition: Definition) -> None:
        assert not public_definition.requires_login
        assert public_definition.setting_defaults() == {}

    def test_containers_are_read_only(self, tracker_definition: Definition) -> None:
        assert isinstance(tracker_definition.links, tuple)
        assert isinstance(tracker_definition.search.paths, tuple)
        assert isinstance(tracker_definition.search.fields["title"].filters, tuple)
        with pytest.raises(TypeError):
            tracker_definition.search.inputs["q"] = "{{ .Query.IMDBID }}"
        with pytest.raises(TypeError):
            tracker_definition.search.fields["extra"] = SelectorBlock(selector="b")
        with pytest.raises(TypeError):
            tracker_definition.login.inputs["username"] = "mallory"

    def test_constructor_lists_are_copied(self) -> None:
        modes = {"search": ["q"]}
        caps = Capabilities(categories=[], modes=modes)
        modes["search"].append("imdbid")
        assert caps.modes["search"] == ("q",)
        with pytest.raises(TypeError):
            caps.modes["tv-search"] = ("q",)

    def test_filter_args_list_becomes_tuple(self) -> None:
        block = FilterBlock("replace", ["a", "b"])
        assert block.args == ("a", "b")


class TestErrors:
    def test_malformed_definition_message(self) -> None:
        err = MalformedDefinition("search.rows", "field required", site="x")
        assert str(err) == "x: search.rows: field required"
        assert err.field == "search.rows"

    def test_malformed_definition_without_site(self) -> None:
        assert str(MalformedDefinition("site", "bad")) == "site: bad"

    def test_definition_not_found(self) -> None:
        err = DefinitionNotFound("nope")
        assert err.key == "nope"
        assert "nope" in str(err)

    def test_stages(self) -> None:
        assert TemplateVariableMissing(".Config.x").stage == "template"
        assert AuthenticationFailed("login failed").stage == "login"
        assert SessionUnstable("again").stage == "search"
        assert ExtractionFailure("title", row=2).stage == "extract"
        assert DownloadFailed("gone", status_code=404).stage == "download"

    def test_stage_override(self) -> None:
        assert IndexerError("x", stage="ratio").stage == "ratio"

    def test_authentication_reason(self) -> None:
        err = AuthenticationFailed("login failed", reason="Invalid password")
        assert str(err) == "login failed: Invalid password"
        assert err.reason == "Invalid password"

    def test_transport_error(self) -> None:
        cause = httpx.ConnectError("refused")
        err = IndexerTransportError("search", "https://tracker.test/", cause)
        assert err.stage == "search"
        assert err.error is cause
        assert "ConnectError" in str(err)
