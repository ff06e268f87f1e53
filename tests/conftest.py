"""Shared test fixtures for the indexarr test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest
import respx

from indexarr.domain.definitions import Definition
from indexarr.domain.entities import ResultItem, TorznabQuery
from indexarr.infrastructure.config_store import MemoryConfigStore
from indexarr.infrastructure.definitions import parse_definition_file

# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------

TRACKER_YAML = """\
---
site: testtracker
name: Test Tracker
description: "Private tracker used by the test suite"
language: en-us
links:
  - https://tracker.test/

settings:
  - {name: username, type: text, label: Username}
  - {name: password, type: password, label: Password}
  - {name: info_note, type: info, label: "Use your site credentials"}

caps:
  categorymappings:
    - {id: "1", cat: Movies, desc: "Movies"}
    - {id: "2", cat: TV/HD, desc: "TV HD"}
    - {id: "3", cat: Other, desc: "Misc"}
  modes:
    search: [q]
    tv-search: [q, season, ep]

login:
  method: post
  path: login.php
  inputs:
    username: "{{ .Config.username }}"
    password: "{{ .Config.password }}"
  error:
    - selector: div.error
      message:
        selector: div.error
  test:
    selector: a[href="logout.php"]
  expired:
    selector: form#login

search:
  paths:
    - path: browse.php
  inputs:
    q: "{{ .Keywords }}"
    cat: "{{ join .Categories \\",\\" }}"
    page: "{{ .Query.Page }}"
  pagination:
    pagesize: 2
    maxpages: 3
  rows:
    selector: table.torrents tr.row
  fields:
    title:
      selector: a.title
    details:
      selector: a.title
      attribute: href
    download:
      selector: a.dl
      attribute: href
    category:
      selector: a.cat
      attribute: href
      filters:
        - name: querystring
          args: cat
    size:
      selector: td.size
    seeders:
      selector: td.seeders
    leechers:
      selector: td.leechers
"""

PUBLIC_YAML = """\
site: publictracker
name: Public Tracker
links:
  - https://public.test/
caps:
  categories:
    "5": PC
search:
  path: search
  inputs:
    q: "{{ .Keywords }}"
  rows:
    selector: li.result
  fields:
    title:
      selector: a
    download:
      selector: a
      attribute: href
"""


@pytest.fixture()
def tracker_definition() -> Definition:
    """Login-protected definition with pagination (pagesize 2, maxpages 3)."""
    return parse_definition_file(TRACKER_YAML)


@pytest.fixture()
def public_definition() -> Definition:
    """Definition without login or pagination."""
    return parse_definition_file(PUBLIC_YAML)


@pytest.fixture()
def definitions_dir(tmp_path: Path) -> Path:
    """Directory holding both test definitions as YAML files."""
    directory = tmp_path / "definitions"
    directory.mkdir()
    (directory / "testtracker.yml").write_text(TRACKER_YAML, encoding="utf-8")
    (directory / "publictracker.yml").write_text(PUBLIC_YAML, encoding="utf-8")
    return directory


# ---------------------------------------------------------------------------
# Stores & entities
# ---------------------------------------------------------------------------


@pytest.fixture()
def config_store() -> MemoryConfigStore:
    """Config store holding valid credentials for testtracker."""
    return MemoryConfigStore(
        {"testtracker": {"username": "alice", "password": "secret"}}
    )


@pytest.fixture()
def result_item() -> ResultItem:
    """Minimal valid ResultItem with Torznab attributes."""
    return ResultItem(
        site="testtracker",
        title="Ubuntu 24.04 Desktop",
        link="https://tracker.test/download.php?id=1",
        guid="https://tracker.test/details.php?id=1",
        details="https://tracker.test/details.php?id=1",
        publish_date=datetime(2024, 4, 25, 12, 0, tzinfo=timezone.utc),
        size=6_000_000_000,
        seeders=120,
        leechers=4,
        grabs=900,
        category=4020,
        local_category="9",
    )


@pytest.fixture()
def torznab_query() -> TorznabQuery:
    """Minimal valid TorznabQuery for search."""
    return TorznabQuery(action="search", q="ubuntu")


# ---------------------------------------------------------------------------
# HTTP mocking
# ---------------------------------------------------------------------------


@pytest.fixture()
def respx_mock() -> respx.MockRouter:
    """Explicit respx mock router for request interception."""
    with respx.mock(assert_all_called=False) as router:
        yield router
