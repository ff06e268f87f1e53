"""Shared fixtures for integration tests.

These tests use real infrastructure components (DiskcacheAdapter,
JsonFileConfigStore, RunnerPool) with mocked HTTP via respx.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from indexarr.infrastructure.cache.diskcache_adapter import DiskcacheAdapter


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Drop INDEXARR_* variables of the surrounding shell."""
    for name in list(os.environ):
        if name.startswith("INDEXARR_"):
            monkeypatch.delenv(name)


@pytest.fixture()
async def diskcache(tmp_path: Path) -> DiskcacheAdapter:
    """Real DiskcacheAdapter backed by tmp_path (auto-cleaned)."""
    adapter = DiskcacheAdapter(
        directory=tmp_path / "cache",
        ttl_seconds=3600,
        max_concurrent=5,
    )
    async with adapter:
        yield adapter
