"""Diskcache adapter - SQLite-based cache without daemon process."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Optional

import structlog
from diskcache import Cache as DiskCache

log = structlog.get_logger(__name__)


class DiskcacheAdapter:
    """Async wrapper for diskcache.Cache (sync-only library).

    - Disk I/O runs in ``asyncio.to_thread``.
    - A semaphore bounds parallel disk operations (SQLite lock contention).
    - Use as ``async with cache:``; operations before opening raise.

    Args:
        directory: cache directory.
        ttl_seconds: default TTL for ``set()`` without explicit value.
        max_concurrent: max parallel disk operations.
    """

    def __init__(
        self,
        directory: str | Path = "./.cache/indexarr",
        ttl_seconds: int = 300,
        max_concurrent: int = 10,
    ) -> None:
        self.directory = Path(directory)
        self.default_ttl = ttl_seconds
        self._cache: DiskCache | None = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    async def __aenter__(self) -> DiskcacheAdapter:
        if self._cache is None:
            self._cache = await asyncio.to_thread(DiskCache, str(self.directory))
            log.info(
                "diskcache_opened",
                directory=str(self.directory),
                default_ttl=self.default_ttl,
            )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._cache is not None:
            await asyncio.to_thread(self._cache.close)
            self._cache = None
            log.info("diskcache_closed", directory=str(self.directory))

    def _require(self) -> DiskCache:
        if self._cache is None:
            raise RuntimeError(
                "Cache not initialized. Use 'async with cache:'"
                " or await cache.__aenter__()"
            )
        return self._cache

    # --- CachePort implementation ---

    async def get(self, key: str) -> Optional[Any]:
        cache = self._require()
        async with self._semaphore:
            value = await asyncio.to_thread(cache.get, key, default=None)
        log.debug("cache_get", key=key, hit=value is not None)
        return value

    async def set(self, key: str, value: Any, *, ttl: int | None = None) -> None:
        cache = self._require()
        expire = ttl if ttl is not None else self.default_ttl
        async with self._semaphore:
            await asyncio.to_thread(cache.set, key, value, expire=expire)
        log.debug("cache_set", key=key, ttl=expire)

    async def delete(self, key: str) -> bool:
        if self._cache is None:
            return False
        async with self._semaphore:
            deleted = await asyncio.to_thread(self._cache.delete, key)
        log.debug("cache_delete", key=key, deleted=deleted)
        return bool(deleted)

    async def clear(self) -> None:
        if self._cache is None:
            return
        async with self._semaphore:
            await asyncio.to_thread(self._cache.clear)
        log.warning("cache_cleared", directory=str(self.directory))
