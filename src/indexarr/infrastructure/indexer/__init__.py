"""Indexer runtime - sessions, login strategies and the search Runner."""

from __future__ import annotations

from .pool import RunnerPool
from .runner import DownloadResponse, Runner
from .session import RunnerSettings, Session, create_http_client
from .tester import StageResult, Tester, TestReport

__all__ = [
    "DownloadResponse",
    "Runner",
    "RunnerPool",
    "RunnerSettings",
    "Session",
    "StageResult",
    "TestReport",
    "Tester",
    "create_http_client",
]
