"""Port for per-definition settings and credential storage."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ConfigStorePort(Protocol):
    """Key/value store keyed by definition id.

    Holds credentials (``username``, ``password``, ``cookie``), options and
    persisted session cookies (``cookies``).  Implementations must be safe to
    call from concurrent tasks.
    """

    def get(self, section: str, key: str) -> str | None: ...
    def set(self, section: str, key: str, value: str) -> None: ...
    def section(self, section: str) -> dict[str, str]: ...
    def sections(self) -> list[str]: ...
