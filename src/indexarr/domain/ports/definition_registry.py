"""Port for definition discovery and access."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from indexarr.domain.definitions import Definition


@runtime_checkable
class DefinitionRegistryPort(Protocol):
    """Synchronous interface for definition discovery, listing, and retrieval."""

    def discover(self) -> None: ...
    def list_keys(self) -> list[str]: ...
    def get(self, key: str) -> Definition: ...
