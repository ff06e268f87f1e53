"""Per-host token-bucket rate limiter for outgoing indexer requests."""

from __future__ import annotations

import asyncio
import time
from urllib.parse import urlsplit

import structlog

log = structlog.get_logger(__name__)


class TokenBucket:
    """Token bucket refilled at *rate* tokens per second up to *burst*.

    ``slow_down()`` halves the rate after the site signalled throttling; the
    rate recovers by 10% per ``speed_up()`` until it reaches the configured
    value again.
    """

    def __init__(self, rate: float, burst: int = 5, *, min_rate: float = 0.2) -> None:
        self._configured = rate
        self._rate = rate
        self._burst = burst
        self._min_rate = min_rate
        self._tokens = float(burst)
        self._last_refill = time.monotonic()
        self._lock = asyncio.Lock()

    @property
    def rate(self) -> float:
        return self._rate

    async def acquire(self) -> None:
        """Wait until a token is available, then consume it."""
        if self._rate <= 0:
            return

        async with self._lock:
            self._refill()
            while self._tokens < 1.0:
                await asyncio.sleep((1.0 - self._tokens) / self._rate)
                self._refill()
            self._tokens -= 1.0

    def _refill(self) -> None:
        now = time.monotonic()
        earned = (now - self._last_refill) * self._rate
        self._tokens = min(self._burst, self._tokens + earned)
        self._last_refill = now

    def slow_down(self) -> None:
        if self._rate <= 0:
            return
        old = self._rate
        self._rate = max(self._min_rate, self._rate * 0.5)
        log.debug(
            "rate_limit_slow_down", old_rps=round(old, 2), new_rps=round(self._rate, 2)
        )

    def speed_up(self) -> None:
        if self._rate <= 0:
            return
        self._rate = min(self._configured, self._rate * 1.1)


class HostRateLimiter:
    """One ``TokenBucket`` per target host.

    Args:
        rps: Requests per second per host. 0 disables limiting.
        burst: Maximum burst size per host.
    """

    def __init__(self, rps: float = 2.0, burst: int = 5) -> None:
        self._rps = rps
        self._burst = burst
        self._buckets: dict[str, TokenBucket] = {}

    @staticmethod
    def _host(url: str) -> str:
        return (urlsplit(url).hostname or "").lower()

    def bucket(self, url: str) -> TokenBucket | None:
        host = self._host(url)
        if self._rps <= 0 or not host:
            return None
        if host not in self._buckets:
            self._buckets[host] = TokenBucket(self._rps, self._burst)
        return self._buckets[host]

    async def acquire(self, url: str) -> None:
        bucket = self.bucket(url)
        if bucket is not None:
            await bucket.acquire()

    def record_success(self, url: str) -> None:
        bucket = self.bucket(url)
        if bucket is not None:
            bucket.speed_up()

    def record_throttle(self, url: str) -> None:
        bucket = self.bucket(url)
        if bucket is not None:
            bucket.slow_down()
