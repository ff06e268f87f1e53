"""Tests for the command line entrypoint."""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
import respx

from indexarr.infrastructure.indexer import StageResult, TestReport
from indexarr.interfaces.cli.cli import _build_parser, query_params, start


@pytest.fixture(autouse=True)
def _isolated(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep the config store inside tmp_path and leave global logging alone."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr(
        "indexarr.interfaces.cli.cli.configure_logging", lambda config, **kw: {}
    )
    for name in ("INDEXARR_DEFINITIONS_DIR", "INDEXARR_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


class TestQueryParams:
    def test_bare_words_form_q(self) -> None:
        assert query_params(["ubuntu", "desktop"]) == {
            "q": "ubuntu desktop",
            "t": "search",
        }

    def test_named_params(self) -> None:
        params = query_params(["t=tvsearch", "season=1", "Show"])
        assert params == {"t": "tvsearch", "season": "1", "q": "Show"}

    def test_value_may_contain_equals(self) -> None:
        assert query_params(["q=a=b"])["q"] == "a=b"


class TestParser:
    def test_query_alias(self) -> None:
        args = _build_parser().parse_args(["q", "-f", "xml", "linuxtracker", "x"])
        assert args.command == "q"
        assert args.format == "xml"
        assert args.key == "linuxtracker"
        assert args.args == ["x"]

    def test_command_is_required(self) -> None:
        with pytest.raises(SystemExit):
            _build_parser().parse_args([])

    def test_test_definition_flags(self) -> None:
        args = _build_parser().parse_args(["test", "def.yml", "--no-download"])
        assert args.command == "test"
        assert args.no_download


class TestCommands:
    def test_indexers(
        self, definitions_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        assert start(["--definitions-dir", str(definitions_dir), "indexers"]) == 0

        out = capsys.readouterr().out
        assert "publictracker" in out
        assert "testtracker" in out
        assert "needs config" in out

    def test_query_prints_json(
        self, definitions_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        page = '<ul><li class="result"><a href="/t/1.torrent">Debian</a></li></ul>'
        with respx.mock(assert_all_called=False) as router:
            router.get(url__startswith="https://public.test/search").mock(
                return_value=httpx.Response(200, text=page)
            )
            code = start(
                [
                    "--definitions-dir",
                    str(definitions_dir),
                    "query",
                    "publictracker",
                    "debian",
                ]
            )

        assert code == 0
        document = json.loads(capsys.readouterr().out)
        assert document["items"][0]["title"] == "Debian"
        assert document["items"][0]["link"] == "https://public.test/t/1.torrent"

    def test_unknown_key_fails(
        self, definitions_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        code = start(["--definitions-dir", str(definitions_dir), "query", "nope", "x"])
        assert code == 1
        assert "error:" in capsys.readouterr().err

    def test_test_definition(
        self, definitions_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        report = TestReport(
            definition="publictracker",
            stages=[
                StageResult("login", True, "no login required"),
                StageResult("search", True, "1 results"),
            ],
        )
        tester = MagicMock()
        tester.return_value.run = AsyncMock(return_value=report)

        with patch("indexarr.interfaces.cli.cli.Tester", tester):
            code = start(["test", str(definitions_dir / "publictracker.yml")])

        assert code == 0
        out = capsys.readouterr().out
        assert "Definition file parsing OK" in out
        assert "Indexer test returned OK" in out
        assert tester.call_args.kwargs == {"download": True}

    def test_test_definition_failure(
        self, definitions_dir: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        report = TestReport(
            definition="publictracker",
            stages=[StageResult("search", False, "0 results")],
        )
        tester = MagicMock()
        tester.return_value.run = AsyncMock(return_value=report)

        with patch("indexarr.interfaces.cli.cli.Tester", tester):
            code = start(
                ["test", "--no-download", str(definitions_dir / "publictracker.yml")]
            )

        assert code == 1
        assert "Indexer test failed" in capsys.readouterr().err
