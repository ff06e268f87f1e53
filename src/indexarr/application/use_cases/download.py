from __future__ import annotations

import structlog

from indexarr.domain.definitions import DefinitionNotFound, MalformedDefinition
from indexarr.domain.entities import TorznabExternalError, TorznabIndexerNotFound
from indexarr.domain.indexer import DownloadFailed, IndexerError
from indexarr.domain.ports import DownloadStreamPort, IndexerPoolPort

log = structlog.get_logger(__name__)


class DownloadUseCase:
    """Fetch an upstream .torrent through the definition's authenticated session.

    ``DownloadFailed`` is passed through so callers can mirror the upstream
    status; every other indexer error becomes ``TorznabExternalError``.
    """

    def __init__(self, pool: IndexerPoolPort) -> None:
        self._pool = pool

    async def execute(self, key: str, link: str) -> DownloadStreamPort:
        try:
            runner = await self._pool.get(key)
        except DefinitionNotFound as e:
            raise TorznabIndexerNotFound(key) from e
        except MalformedDefinition as e:
            raise TorznabExternalError(f"definition '{key}' is invalid: {e}") from e

        try:
            download = await runner.download(link)
        except DownloadFailed:
            raise
        except IndexerError as e:
            log.warning(
                "download_upstream_error",
                definition=key,
                stage=e.stage,
                error_type=type(e).__name__,
                error=str(e),
            )
            raise TorznabExternalError(str(e)) from e

        log.info("download_started", definition=key, filename=download.filename)
        return download
