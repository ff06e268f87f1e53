"""Runtime errors raised while driving an indexer definition.

Every error carries the ``stage`` it happened in (``login``, ``search``,
``download``, ``ratio``, ...) so callers can tell a broken definition from a
broken site or a network outage.
"""

from __future__ import annotations


class IndexerError(Exception):
    """Base class for all runtime errors of a Runner."""

    stage: str = "runtime"

    def __init__(self, message: str, *, stage: str | None = None) -> None:
        if stage is not None:
            self.stage = stage
        super().__init__(message)


class TemplateVariableMissing(IndexerError):
    """A template referenced a variable that is not bound."""

    stage = "template"

    def __init__(self, name: str, *, template: str | None = None) -> None:
        self.name = name
        self.template = template
        super().__init__(f"template variable '{name}' is not defined")


class AuthenticationFailed(IndexerError):
    """The site rejected the login or the login rules did not match."""

    stage = "login"

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        self.reason = reason
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class SessionUnstable(IndexerError):
    """The session expired again right after a fresh login."""

    stage = "search"


class ExtractionFailure(IndexerError):
    """A required field could not be extracted from a result row."""

    stage = "extract"

    def __init__(self, field: str, *, row: int | None = None) -> None:
        self.field = field
        self.row = row
        super().__init__(f"required field '{field}' did not match (row {row})")


class DownloadFailed(IndexerError):
    """Fetching a content link failed."""

    stage = "download"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)


class IndexerTransportError(IndexerError):
    """Connection refused, timeout or other transport-level failure."""

    def __init__(self, stage: str, url: str, error: Exception) -> None:
        self.url = url
        self.error = error
        super().__init__(
            f"{stage} request to {url} failed: {type(error).__name__}: {error}",
            stage=stage,
        )
