"""httpx transport with per-host rate limiting and 429/503 retry."""

from __future__ import annotations

import asyncio
import random

import httpx
import structlog

from indexarr.infrastructure.common.rate_limiter import HostRateLimiter

log = structlog.get_logger(__name__)

_RETRYABLE = frozenset({429, 503})


def _retry_after(headers: httpx.Headers) -> float | None:
    """``Retry-After`` in seconds; the HTTP-date form is ignored."""
    raw = headers.get("retry-after")
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None


class RetryTransport(httpx.AsyncBaseTransport):
    """Wraps an httpx transport with rate limiting and bounded retries.

    Every request first waits for a token of its host's bucket. Responses
    with a retryable status (429, 503) are retried up to *max_retries*
    times with exponential backoff, honouring ``Retry-After`` when sent.
    The last response is returned as-is once retries are exhausted.
    """

    def __init__(
        self,
        wrapped: httpx.AsyncBaseTransport,
        rate_limiter: HostRateLimiter,
        *,
        max_retries: int = 2,
        backoff_base: float = 1.0,
        max_backoff: float = 30.0,
    ) -> None:
        self._wrapped = wrapped
        self._rate_limiter = rate_limiter
        self._max_retries = max_retries
        self._backoff_base = backoff_base
        self._max_backoff = max_backoff

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        attempt = 0
        while True:
            await self._rate_limiter.acquire(url)
            response = await self._wrapped.handle_async_request(request)

            if response.status_code not in _RETRYABLE:
                self._rate_limiter.record_success(url)
                return response

            self._rate_limiter.record_throttle(url)
            if attempt >= self._max_retries:
                return response

            await response.aread()
            await response.aclose()

            delay = self._delay(response, attempt)
            log.info(
                "http_retry",
                url=url,
                status=response.status_code,
                attempt=attempt + 1,
                delay=round(delay, 2),
            )
            await asyncio.sleep(delay)
            attempt += 1

    def _delay(self, response: httpx.Response, attempt: int) -> float:
        retry_after = _retry_after(response.headers)
        if retry_after is not None:
            return min(retry_after, self._max_backoff)
        jitter = random.uniform(0, self._backoff_base)  # noqa: S311
        return min(self._backoff_base * (2**attempt) + jitter, self._max_backoff)

    async def aclose(self) -> None:
        await self._wrapped.aclose()
