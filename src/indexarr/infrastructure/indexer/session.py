"""Per-definition HTTP session: client, cookie jar and login state."""

from __future__ import annotations

import asyncio
import json
import time
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any
from urllib.parse import urljoin, urlsplit

import httpx
import structlog

from indexarr.domain.definitions import Definition
from indexarr.domain.entities import TorznabQuery
from indexarr.domain.indexer import IndexerTransportError, LoginState
from indexarr.domain.ports import ConfigStorePort
from indexarr.infrastructure.common.rate_limiter import HostRateLimiter
from indexarr.infrastructure.common.retry_transport import RetryTransport
from indexarr.infrastructure.scraping.templates import expand_url

log = structlog.get_logger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/131.0.0.0 Safari/537.36"
)

COOKIES_KEY = "cookies"


@dataclass(frozen=True)
class RunnerSettings:
    """Knobs shared by every Runner of a process (from ``AppConfig``)."""

    timeout_seconds: float = 20.0
    user_agent: str = DEFAULT_USER_AGENT
    follow_redirects: bool = True
    rate_limit_rps: float = 2.0
    max_retries: int = 2
    relogin_retries: int = 1
    max_pages: int = 5


def create_http_client(settings: RunnerSettings) -> httpx.AsyncClient:
    """httpx client with per-host rate limiting and 429/503 retries."""
    transport = RetryTransport(
        httpx.AsyncHTTPTransport(),
        HostRateLimiter(settings.rate_limit_rps),
        max_retries=settings.max_retries,
    )
    return httpx.AsyncClient(
        transport=transport,
        timeout=settings.timeout_seconds,
        follow_redirects=settings.follow_redirects,
        headers={"User-Agent": settings.user_agent},
    )


class Session:
    """
    Mutable login/session state of one Runner.

    ``generation`` increases on every successful login so an expiry observed
    by a request issued under an older login never tears down a newer one.
    """

    def __init__(
        self,
        definition: Definition,
        client: httpx.AsyncClient,
        config_store: ConfigStorePort,
    ) -> None:
        self.definition = definition
        self.client = client
        self.config_store = config_store
        self.base_url = definition.base_url
        self.state = LoginState.UNAUTHENTICATED
        self.lock = asyncio.Lock()
        self.generation = 0
        self.last_login_at: datetime | None = None
        self.captures: dict[str, str] = {}

    @property
    def key(self) -> str:
        return self.definition.key

    @property
    def host(self) -> str:
        return urlsplit(self.base_url).hostname or ""

    # --- URLs & templates ---

    def url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        base = self.base_url if self.base_url.endswith("/") else self.base_url + "/"
        return urljoin(base, path)

    def url_for(self, template: str, namespace: dict[str, Any] | None = None) -> str:
        """Absolute URL for a templated path; substituted values are escaped."""
        if namespace is None:
            namespace = self.namespace()
        return self.url(expand_url(template, namespace))

    def config(self) -> dict[str, str]:
        """Stored values merged over the definition's declared defaults."""
        stored = self.config_store.section(self.key)
        return {**self.definition.setting_defaults(), **stored}

    def namespace(
        self,
        query: TorznabQuery | None = None,
        local_categories: Iterable[str] = (),
        *,
        page: int = 0,
        offset: int = 0,
    ) -> dict[str, Any]:
        """Template namespace (``.Config``, ``.Query``, ``.Keywords``, ...)."""
        query = query or TorznabQuery()
        categories = list(local_categories)
        return {
            "Config": self.config(),
            "Query": query.template_vars(categories, page=page, page_offset=offset),
            "Keywords": query.keywords,
            "Categories": categories,
            "Captures": dict(self.captures),
            "True": True,
            "False": False,
            "Today": {"Year": str(datetime.now(timezone.utc).year)},
        }

    # --- state transitions ---

    def mark_authenticating(self) -> None:
        self.state = LoginState.AUTHENTICATING

    def mark_authenticated(self) -> None:
        self.state = LoginState.AUTHENTICATED
        self.generation += 1
        self.last_login_at = datetime.now(timezone.utc)

    def mark_unauthenticated(self) -> None:
        self.state = LoginState.UNAUTHENTICATED

    def mark_expired(self, generation: int) -> bool:
        """Drop the login observed at *generation*; False if already replaced."""
        if generation != self.generation or self.state != LoginState.AUTHENTICATED:
            return False
        self.state = LoginState.UNAUTHENTICATED
        self.client.cookies.clear()
        return True

    # --- cookies ---

    def load_cookie_header(self, header: str) -> None:
        """Inject a browser ``Cookie:`` header value (``a=1; b=2``)."""
        for part in header.split(";"):
            name, sep, value = part.strip().partition("=")
            if sep and name:
                self.client.cookies.set(name, value, domain=self.host)

    def persist_cookies(self) -> None:
        cookies = [
            {"name": c.name, "value": c.value, "domain": c.domain, "path": c.path}
            for c in self.client.cookies.jar
        ]
        self.config_store.set(self.key, COOKIES_KEY, json.dumps(cookies))

    def restore_cookies(self) -> bool:
        raw = self.config_store.get(self.key, COOKIES_KEY)
        if not raw:
            return False
        try:
            cookies = json.loads(raw)
        except ValueError:
            log.warning("stored_cookies_invalid", definition=self.key)
            return False
        for cookie in cookies:
            self.client.cookies.set(
                cookie["name"],
                cookie["value"],
                domain=cookie.get("domain") or self.host,
                path=cookie.get("path") or "/",
            )
        return bool(cookies)

    def forget_cookies(self) -> None:
        self.client.cookies.clear()
        self.config_store.set(self.key, COOKIES_KEY, "")

    # --- I/O ---

    async def request(
        self, stage: str, method: str, url: str, **kwargs: Any
    ) -> httpx.Response:
        """Issue a request; transport failures become ``IndexerTransportError``."""
        started = time.perf_counter()
        try:
            response = await self.client.request(method.upper(), url, **kwargs)
        except httpx.HTTPError as e:
            log.warning(
                "indexer_request_failed",
                definition=self.key,
                stage=stage,
                url=url,
                error=str(e),
            )
            raise IndexerTransportError(stage, url, e) from e
        log.debug(
            "indexer_request",
            definition=self.key,
            stage=stage,
            method=method.upper(),
            url=str(response.url),
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 1),
        )
        return response

    async def stream(self, stage: str, url: str) -> httpx.Response:
        """GET *url* without reading the body; caller closes the response."""
        request = self.client.build_request("GET", url)
        try:
            return await self.client.send(request, stream=True)
        except httpx.HTTPError as e:
            raise IndexerTransportError(stage, url, e) from e
