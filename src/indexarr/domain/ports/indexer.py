"""Ports for executing definitions (search, download) against their sites."""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Protocol

from indexarr.domain.definitions import Definition
from indexarr.domain.entities import ResultItem, TorznabQuery


class DownloadStreamPort(Protocol):
    """An open upstream download; the consumer must close it."""

    filename: str
    content_type: str

    def aiter_bytes(self) -> AsyncIterator[bytes]: ...
    async def read(self) -> bytes: ...
    async def aclose(self) -> None: ...


class IndexerPort(Protocol):
    definition: Definition

    @property
    def key(self) -> str: ...

    async def search(self, query: TorznabQuery) -> list[ResultItem]: ...
    async def download(self, url: str) -> DownloadStreamPort: ...


class IndexerPoolPort(Protocol):
    async def get(self, key: str) -> IndexerPort:
        """Raises ``DefinitionNotFound`` / ``MalformedDefinition``."""
        ...
