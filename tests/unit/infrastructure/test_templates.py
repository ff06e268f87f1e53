"""Tests for the Go-template expander used by definitions."""

from __future__ import annotations

from urllib.parse import quote_plus

import pytest

from indexarr.domain.indexer import TemplateVariableMissing
from indexarr.infrastructure.scraping.templates import (
    TemplateSyntaxError,
    expand,
    expand_url,
    validate_template,
)


@pytest.fixture()
def namespace() -> dict:
    return {
        "Config": {"username": "alice", "sort": ""},
        "Query": {"Keywords": "ubuntu 24.04", "IMDBID": "", "Season": "2"},
        "Keywords": "ubuntu 24.04",
        "Categories": ["7", "9"],
        "True": True,
        "False": False,
    }


class TestFieldsAndText:
    def test_plain_text_passes_through(self, namespace: dict) -> None:
        assert expand("index.php?page=torrents", namespace) == "index.php?page=torrents"

    def test_nested_field(self, namespace: dict) -> None:
        assert expand("{{ .Config.username }}", namespace) == "alice"

    def test_root_field_inside_range(self, namespace: dict) -> None:
        tpl = "{{ range .Categories }}{{ $.Config.username }}{{ end }}"
        assert expand(tpl, namespace) == "alicealice"

    def test_missing_variable_raises(self, namespace: dict) -> None:
        with pytest.raises(TemplateVariableMissing) as exc_info:
            expand("{{ .Config.password }}", namespace)
        assert exc_info.value.name == ".Config.password"
        assert exc_info.value.template == "{{ .Config.password }}"

    def test_missing_top_level_variable_raises(self, namespace: dict) -> None:
        with pytest.raises(TemplateVariableMissing):
            expand("{{ .Nope }}", namespace)

    def test_empty_string_is_not_missing(self, namespace: dict) -> None:
        assert expand("[{{ .Config.sort }}]", namespace) == "[]"

    def test_bool_renders_lowercase(self, namespace: dict) -> None:
        assert expand("{{ .True }}/{{ .False }}", namespace) == "true/false"

    def test_list_renders_space_joined(self, namespace: dict) -> None:
        assert expand("{{ .Categories }}", namespace) == "7 9"

    def test_escape_applies_to_actions_only(self, namespace: dict) -> None:
        out = expand("search?q={{ .Keywords }}&x=a b", namespace, escape=quote_plus)
        assert out == "search?q=ubuntu+24.04&x=a b"

    def test_url_values_escaped_for_path_and_query(self) -> None:
        ns = {"Config": {"passkey": "a&b c#x", "dir": "new releases"}}
        tpl = "{{ .Config.dir }}/login.php?passkey={{ .Config.passkey }}"
        out = expand_url(tpl, ns)
        assert out == "new%20releases/login.php?passkey=a%26b+c%23x"

    def test_trim_markers(self, namespace: dict) -> None:
        assert expand("a   {{- .Config.username -}}   b", namespace) == "aaliceb"

    def test_comment_renders_nothing(self, namespace: dict) -> None:
        assert expand("x{{/* note */}}y", namespace) == "xy"


class TestConditionals:
    def test_if_else(self, namespace: dict) -> None:
        tpl = "{{ if .Query.IMDBID }}{{ .Query.IMDBID }}{{ else }}{{ .Keywords }}{{ end }}"
        assert expand(tpl, namespace) == "ubuntu 24.04"

    def test_else_if_chain(self, namespace: dict) -> None:
        tpl = (
            "{{ if .Query.IMDBID }}imdb"
            "{{ else if .Query.Season }}S{{ .Query.Season }}"
            "{{ else }}none{{ end }}"
        )
        assert expand(tpl, namespace) == "S2"

    def test_eq_is_variadic(self, namespace: dict) -> None:
        tpl = '{{ if eq .Config.username "bob" "alice" }}yes{{ else }}no{{ end }}'
        assert expand(tpl, namespace) == "yes"

    def test_and_or_not(self, namespace: dict) -> None:
        assert expand("{{ and .True .Config.username }}", namespace) == "alice"
        assert expand("{{ or .Config.sort .Keywords }}", namespace) == "ubuntu 24.04"
        assert expand("{{ not .Config.sort }}", namespace) == "true"

    def test_parenthesised_argument(self, namespace: dict) -> None:
        tpl = '{{ if and .True (ne .Config.username "bob") }}ok{{ end }}'
        assert expand(tpl, namespace) == "ok"


class TestRange:
    def test_range_over_list(self, namespace: dict) -> None:
        tpl = "{{ range .Categories }}cat[{{ . }}]=1&{{ end }}"
        assert expand(tpl, namespace) == "cat[7]=1&cat[9]=1&"

    def test_empty_range_renders_else(self, namespace: dict) -> None:
        namespace["Categories"] = []
        tpl = "{{ range .Categories }}{{ . }}{{ else }}all{{ end }}"
        assert expand(tpl, namespace) == "all"

    def test_range_over_mapping_iterates_values(self) -> None:
        ns = {"Map": {"a": "1", "b": "2"}}
        assert expand("{{ range .Map }}{{ . }}{{ end }}", ns) == "12"


class TestFunctions:
    def test_join(self, namespace: dict) -> None:
        assert expand('{{ join .Categories "," }}', namespace) == "7,9"

    def test_join_empty_list(self) -> None:
        assert expand('{{ join .Categories "," }}', {"Categories": []}) == ""

    def test_re_replace_go_groups(self, namespace: dict) -> None:
        tpl = '{{ re_replace .Keywords "(\\\\w+) (.*)" "$2-$1" }}'
        assert expand(tpl, namespace) == "24.04-ubuntu"

    def test_pipeline_passes_value_as_last_argument(self, namespace: dict) -> None:
        assert expand("{{ .Categories | len }}", namespace) == "2"
        assert expand('{{ "alice" | eq .Config.username }}', namespace) == "true"

    def test_len(self, namespace: dict) -> None:
        assert expand("{{ len .Categories }}", namespace) == "2"

    def test_unknown_function_raises(self, namespace: dict) -> None:
        with pytest.raises(TemplateSyntaxError, match="not defined"):
            expand("{{ shout .Keywords }}", namespace)

    @pytest.mark.parametrize(
        "source",
        [
            "{{ lower .Keywords }}",
            "{{ .Keywords | lower }}",
            "{{ if (shout .Keywords) }}x{{ end }}",
            "{{ range lower .Categories }}x{{ end }}",
        ],
    )
    def test_unknown_function_rejected_by_validation(self, source: str) -> None:
        with pytest.raises(TemplateSyntaxError, match="not defined"):
            validate_template(source)


class TestValidateTemplate:
    @pytest.mark.parametrize(
        "source",
        [
            "{{ if .Keywords }}open",
            "{{ range .Categories }}",
            "{{ end }}",
            "{{ .Keywords ",
            "{{ if }}x{{ end }}",
            "{{ .Keywords & }}",
        ],
    )
    def test_rejects_broken_templates(self, source: str) -> None:
        with pytest.raises(TemplateSyntaxError):
            validate_template(source)

    def test_accepts_plain_text(self) -> None:
        validate_template("no actions here")

    def test_does_not_resolve_variables(self) -> None:
        validate_template("{{ .Anything.At.All }}")
