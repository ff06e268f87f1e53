"""Definition loading exceptions."""

from __future__ import annotations


class DefinitionError(Exception):
    """Base class for all definition-related errors."""


class MalformedDefinition(DefinitionError):
    """Raised when a definition document fails structural validation."""

    def __init__(self, field: str, message: str, *, site: str | None = None) -> None:
        self.field = field
        self.message = message
        self.site = site
        where = f"{site}: " if site else ""
        super().__init__(f"{where}{field}: {message}")


class DefinitionNotFound(DefinitionError):
    """Raised when no definition exists for a key."""

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Definition '{key}' not found")
