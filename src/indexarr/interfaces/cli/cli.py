from __future__ import annotations

import argparse
import asyncio
import json
import os
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from indexarr import __version__
from indexarr.application.use_cases import TorznabIndexersUseCase
from indexarr.domain.definitions import DefinitionError
from indexarr.domain.entities import TorznabError
from indexarr.domain.indexer import IndexerError
from indexarr.infrastructure.config import AppConfig, load_config
from indexarr.infrastructure.config_store import JsonFileConfigStore
from indexarr.infrastructure.definitions import default_search_path, load_definition
from indexarr.infrastructure.definitions.loader import load_definition_path
from indexarr.infrastructure.indexer import Runner, Tester
from indexarr.infrastructure.logging.setup import configure_logging
from indexarr.infrastructure.torznab import (
    FEED_FORMATS,
    FeedChannel,
    parse_query,
    render_feed,
)
from indexarr.interfaces.composition import build_registry, runner_settings
from indexarr.interfaces.main import build_app

log = structlog.get_logger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="indexarr",
        description="Torznab proxy for declarative tracker definitions.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )

    # Config wiring flags (no business logic)
    parser.add_argument("--config", default=None, help="Path to YAML config file.")
    parser.add_argument("--dotenv", default=None, help="Path to .env file.")
    parser.add_argument(
        "--definitions-dir",
        default=None,
        help="Extra definitions directory (searched before the bundled one).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Override log level.",
    )
    parser.add_argument(
        "--log-format",
        default=None,
        choices=["json", "console"],
        help="Override log format.",
    )
    parser.add_argument(
        "--debug", action="store_true", help="Shortcut for --log-level DEBUG."
    )

    commands = parser.add_subparsers(dest="command", required=True)

    server = commands.add_parser("server", help="Run the Torznab proxy server.")
    server.add_argument("--host", default=None, help="Bind host (overrides HOST env).")
    server.add_argument(
        "--port", default=None, type=int, help="Bind port (overrides PORT env)."
    )

    query = commands.add_parser(
        "query", aliases=["q"], help="Query an indexer using Torznab parameters."
    )
    query.add_argument(
        "-f",
        "--format",
        default="json",
        choices=list(FEED_FORMATS),
        help="Output format.",
    )
    query.add_argument("key", help="The indexer key.")
    query.add_argument(
        "args",
        nargs="*",
        help="Torznab parameters as name=value; a bare word is the search text (q).",
    )

    download = commands.add_parser(
        "download", help="Download a torrent from the tracker."
    )
    download.add_argument("key", help="The indexer key.")
    download.add_argument("url", help="The url of the file to download.")
    download.add_argument("file", help="The filename to download to.")

    test = commands.add_parser(
        "test-definition", aliases=["test"], help="Test a YAML definition file."
    )
    test.add_argument("file", help="The definition YAML file.")
    test.add_argument(
        "--no-download", action="store_true", help="Skip the download stage."
    )

    commands.add_parser("indexers", help="List available definitions.")
    return parser


def _load_config(args: argparse.Namespace) -> AppConfig:
    cli_overrides: dict[str, Any] = {}
    if args.definitions_dir:
        cli_overrides["definitions_dir"] = args.definitions_dir
    if args.log_level:
        cli_overrides["log_level"] = args.log_level
    if args.debug:
        cli_overrides["log_level"] = "DEBUG"
    if args.log_format:
        cli_overrides["log_format"] = args.log_format

    return load_config(
        config_path=Path(args.config) if args.config else None,
        dotenv_path=Path(args.dotenv) if args.dotenv else None,
        cli_overrides=cli_overrides,
    )


def query_params(args: Iterable[str]) -> dict[str, str]:
    """``name=value`` tokens to Torznab params; bare words form ``q``."""
    params: dict[str, str] = {}
    words: list[str] = []
    for arg in args:
        name, sep, value = arg.partition("=")
        if sep:
            params[name] = value
        else:
            words.append(arg)
    if words:
        params["q"] = " ".join(words)
    params.setdefault("t", "search")
    return params


def _runner(config: AppConfig, key: str) -> Runner:
    definition = load_definition(key, default_search_path(config.definitions_dir))
    return Runner(
        definition,
        JsonFileConfigStore(config.config_store_path),
        settings=runner_settings(config),
    )


# --- commands ---


def _serve(config: AppConfig, args: argparse.Namespace) -> int:
    host = args.host or os.getenv("HOST", "0.0.0.0")
    port = int(args.port or os.getenv("PORT", "5060"))
    log_config = configure_logging(config)
    uvicorn.run(build_app(config), host=host, port=port, log_config=log_config)
    return 0


async def _query(config: AppConfig, args: argparse.Namespace) -> int:
    query = parse_query(query_params(args.args))
    runner = _runner(config, args.key)
    try:
        items = await runner.search(query)
    finally:
        await runner.aclose()

    rendered = render_feed(
        items,
        args.format,
        FeedChannel(title=runner.definition.name, link=runner.definition.base_url),
    )
    if args.format == "json":
        print(json.dumps(json.loads(rendered.payload), indent=2, ensure_ascii=False))
    else:
        sys.stdout.write(rendered.payload.decode("utf-8") + "\n")
    return 0


async def _download(config: AppConfig, args: argparse.Namespace) -> int:
    runner = _runner(config, args.key)
    try:
        upstream = await runner.download(args.url)
        written = 0
        try:
            with open(args.file, "wb") as fh:
                async for chunk in upstream.aiter_bytes():
                    fh.write(chunk)
                    written += len(chunk)
        finally:
            await upstream.aclose()
    finally:
        await runner.aclose()

    log.info("download_written", file=args.file, bytes=written)
    return 0


async def _test_definition(config: AppConfig, args: argparse.Namespace) -> int:
    definition = load_definition_path(Path(args.file))
    print("Definition file parsing OK")

    runner = Runner(
        definition,
        JsonFileConfigStore(config.config_store_path),
        settings=runner_settings(config),
    )
    try:
        report = await Tester(runner, download=not args.no_download).run()
    finally:
        await runner.aclose()

    for stage in report.stages:
        status = "ok" if stage.passed else "FAILED"
        print(f"  {stage.stage:<9} {status:<7} {stage.detail}")
    if not report.ok:
        print("Indexer test failed", file=sys.stderr)
        return 1
    print("Indexer test returned OK")
    return 0


def _indexers(config: AppConfig) -> int:
    uc = TorznabIndexersUseCase(
        registry=build_registry(config),
        config_store=JsonFileConfigStore(config.config_store_path),
    )
    for info in uc.execute():
        marker = "configured" if info.configured else "needs config"
        print(f"{info.key:<24} {info.name:<32} {info.language:<7} {marker}")
    return 0


def start(argv: Iterable[str] | None = None) -> int:
    """
    Process entrypoint.

    Loads the config exactly once, then dispatches to the sub-command.
    """
    if argv is None:
        argv = sys.argv[1:]

    args = _build_parser().parse_args(list(argv))
    config = _load_config(args)

    if args.command == "server":
        return _serve(config, args)

    configure_logging(config, split_streams=False)
    try:
        if args.command in ("query", "q"):
            return asyncio.run(_query(config, args))
        if args.command == "download":
            return asyncio.run(_download(config, args))
        if args.command in ("test-definition", "test"):
            return asyncio.run(_test_definition(config, args))
        return _indexers(config)
    except (DefinitionError, IndexerError, TorznabError, OSError) as e:
        log.error("command_failed", command=args.command, error_type=type(e).__name__)
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(start())
