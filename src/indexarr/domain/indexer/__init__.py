from .exceptions import (
    AuthenticationFailed,
    DownloadFailed,
    ExtractionFailure,
    IndexerError,
    IndexerTransportError,
    SessionUnstable,
    TemplateVariableMissing,
)
from .state import LoginState

__all__ = [
    "AuthenticationFailed",
    "DownloadFailed",
    "ExtractionFailure",
    "IndexerError",
    "IndexerTransportError",
    "LoginState",
    "SessionUnstable",
    "TemplateVariableMissing",
]
