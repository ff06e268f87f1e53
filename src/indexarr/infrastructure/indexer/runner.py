"""
Runner: executes one definition against its site.

    runner = Runner(definition, config_store, settings=RunnerSettings())
    items = await runner.search(TorznabQuery(q="ubuntu"))
    await runner.aclose()

Login happens lazily before the first request and at most once at a time
(``Session.lock``). A response that shows the session has expired triggers
one re-login and a retry of that request; expiring again right after a
fresh login raises ``SessionUnstable``.
"""

from __future__ import annotations

import re
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote_plus, unquote, urlsplit

import httpx
import structlog

from indexarr.domain.definitions import Definition, SearchPath
from indexarr.domain.entities import InvalidQuery, ResultItem, TorznabQuery
from indexarr.domain.indexer import (
    AuthenticationFailed,
    DownloadFailed,
    LoginState,
    SessionUnstable,
)
from indexarr.domain.ports import ConfigStorePort
from indexarr.infrastructure.indexer import login as login_rules
from indexarr.infrastructure.indexer.session import (
    RunnerSettings,
    Session,
    create_http_client,
)
from indexarr.infrastructure.scraping.html import parse_html
from indexarr.infrastructure.scraping.pipeline import (
    ExtractionContext,
    compile_block,
    compile_fields,
    extract_items,
)
from indexarr.infrastructure.scraping.templates import expand

log = structlog.get_logger(__name__)

_FILENAME_RE = re.compile(r"filename\*?=(?:UTF-8'')?\"?([^\";]+)\"?", re.I)


@dataclass
class DownloadResponse:
    """Streamed upstream download; close it when done."""

    response: httpx.Response
    filename: str
    content_type: str

    def aiter_bytes(self) -> AsyncIterator[bytes]:
        return self.response.aiter_bytes()

    async def read(self) -> bytes:
        try:
            return await self.response.aread()
        finally:
            await self.aclose()

    async def aclose(self) -> None:
        await self.response.aclose()


def _filename(response: httpx.Response, url: str) -> str:
    disposition = response.headers.get("content-disposition", "")
    match = _FILENAME_RE.search(disposition)
    if match:
        return unquote(match.group(1).strip())
    name = unquote(urlsplit(url).path.rsplit("/", 1)[-1])
    return name or "download.torrent"


class Runner:
    def __init__(
        self,
        definition: Definition,
        config_store: ConfigStorePort,
        *,
        http_client: httpx.AsyncClient | None = None,
        settings: RunnerSettings | None = None,
    ) -> None:
        self.definition = definition
        self.settings = settings or RunnerSettings()
        self._owns_client = http_client is None
        client = http_client or create_http_client(self.settings)
        self.session = Session(definition, client, config_store)
        self._fields = compile_fields(definition.search)

    @property
    def key(self) -> str:
        return self.definition.key

    @property
    def state(self) -> LoginState:
        return self.session.state

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    async def ensure_login(self) -> None:
        """Log in unless already authenticated; concurrent callers share one login."""
        if not self.definition.requires_login:
            return
        if self.session.state == LoginState.AUTHENTICATED:
            return
        async with self.session.lock:
            if self.session.state == LoginState.AUTHENTICATED:
                return
            await self._login_locked()

    async def _login_locked(self) -> None:
        session = self.session
        block = self.definition.login
        if block is None:
            return

        session.mark_authenticating()
        try:
            if block.test is not None and session.restore_cookies():
                if await login_rules.verify_session(session, block):
                    session.mark_authenticated()
                    log.info("login_restored", definition=self.key)
                    return
                log.info("stored_cookies_rejected", definition=self.key)
                session.forget_cookies()

            response = await login_rules.strategy_for(block).login(session, block)
            await login_rules.check_login(session, block, response)
            session.mark_authenticated()
        except AuthenticationFailed as e:
            log.warning("login_failed", definition=self.key, reason=str(e))
            raise
        finally:
            if session.state == LoginState.AUTHENTICATING:
                session.mark_unauthenticated()

        session.persist_cookies()
        log.info(
            "login_succeeded",
            definition=self.key,
            method=block.method,
            generation=session.generation,
        )

    # ------------------------------------------------------------------
    # Requests with expiry handling
    # ------------------------------------------------------------------

    async def _fetch(
        self, stage: str, method: str, url: str, **kwargs: Any
    ) -> httpx.Response:
        """Request *url*; on session expiry re-login and retry (bounded)."""
        retries = 0
        while True:
            await self.ensure_login()
            generation = self.session.generation
            response = await self.session.request(stage, method, url, **kwargs)
            login = self.definition.login
            if not login_rules.is_expired(response, self.session, login):
                return response

            self.session.mark_expired(generation)
            if retries >= self.settings.relogin_retries:
                log.warning(
                    "session_unstable",
                    definition=self.key,
                    stage=stage,
                    url=url,
                    retries=retries,
                )
                raise SessionUnstable(
                    f"session for '{self.key}' expired again after re-login",
                    stage=stage,
                )
            retries += 1
            log.warning(
                "session_expired",
                definition=self.key,
                stage=stage,
                url=url,
                attempt=retries,
            )

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    async def search(self, query: TorznabQuery) -> list[ResultItem]:
        """Run *query* over every applicable search path and page.

        Items are deduplicated by GUID in page order and truncated to
        ``query.limit``.

        Raises:
            InvalidQuery: the definition does not support the search mode.
            AuthenticationFailed, SessionUnstable, IndexerTransportError
        """
        caps = self.definition.caps
        if not caps.has_mode(query.mode):
            raise InvalidQuery(f"'{self.key}' does not support {query.mode}")

        await self.ensure_login()

        local_categories = caps.local_ids(query.categories)
        paths = [
            p for p in self.definition.search.paths
            if p.applies_to(query.mode, local_categories)
        ]

        results: dict[str, ResultItem] = {}
        for search_path in paths:
            await self._search_path(search_path, query, local_categories, results)
            if query.limit and len(results) >= query.limit:
                break

        items = list(results.values())
        if query.limit:
            items = items[: query.limit]
        log.info(
            "search_completed",
            definition=self.key,
            mode=query.mode,
            keywords=query.keywords,
            results=len(items),
        )
        return items

    async def _search_path(
        self,
        search_path: SearchPath,
        query: TorznabQuery,
        local_categories: list[str],
        results: dict[str, ResultItem],
    ) -> None:
        pagination = self.definition.search.pagination
        max_pages = 1
        if pagination is not None:
            max_pages = max(1, min(pagination.maxpages, self.settings.max_pages))

        for page in range(max_pages):
            if pagination is not None:
                namespace = self.session.namespace(
                    query,
                    local_categories,
                    page=pagination.start + page,
                    offset=query.offset + page * pagination.pagesize,
                )
            else:
                namespace = self.session.namespace(
                    query, local_categories, offset=query.offset
                )

            response = await self._request_page(search_path, namespace)
            items, rows = extract_items(
                parse_html(response.content), self.definition, namespace, self._fields
            )

            new = 0
            for item in items:
                if item.guid not in results:
                    results[item.guid] = item
                    new += 1

            log.debug(
                "search_page",
                definition=self.key,
                path=search_path.path,
                page=page,
                rows=rows,
                new=new,
            )
            if pagination is None or rows < pagination.pagesize or new == 0:
                return
            if query.limit and len(results) >= query.limit:
                return

    async def _request_page(
        self, search_path: SearchPath, namespace: dict[str, Any]
    ) -> httpx.Response:
        url = self.session.url_for(search_path.path, namespace)

        inputs: dict[str, str] = {}
        raw = ""
        merged = {**self.definition.search.inputs, **search_path.inputs}
        for name, template in merged.items():
            if name == "$raw":
                raw = expand(template, namespace, escape=quote_plus)
                continue
            inputs[name] = expand(template, namespace)

        if raw:
            url += ("&" if "?" in url else "?") + raw.lstrip("&?")

        if search_path.method == "post":
            return await self._fetch("search", "POST", url, data=inputs)
        return await self._fetch("search", "GET", url, params=inputs or None)

    # ------------------------------------------------------------------
    # Download / ratio
    # ------------------------------------------------------------------

    async def download(self, url: str) -> DownloadResponse:
        """Stream *url* using the authenticated session.

        Raises:
            DownloadFailed: non-2xx upstream response.
            SessionUnstable: the session expired again after re-login.
        """
        url = self.session.url(url)
        retries = 0
        while True:
            await self.ensure_login()
            generation = self.session.generation
            response = await self.session.stream("download", url)

            expired = response.status_code == 401 or (
                self.definition.login is not None
                and login_rules.is_login_redirect(
                    response, self.session, self.definition.login
                )
            )
            if expired and self.definition.requires_login:
                await response.aclose()
                self.session.mark_expired(generation)
                if retries >= self.settings.relogin_retries:
                    raise SessionUnstable(
                        f"session for '{self.key}' expired again after re-login",
                        stage="download",
                    )
                retries += 1
                log.warning("session_expired", definition=self.key, stage="download")
                continue

            if not response.is_success:
                await response.aclose()
                log.warning(
                    "download_failed",
                    definition=self.key,
                    url=url,
                    status=response.status_code,
                )
                raise DownloadFailed(
                    f"download from '{self.key}' failed"
                    f" with HTTP {response.status_code}",
                    status_code=response.status_code,
                )

            return DownloadResponse(
                response=response,
                filename=_filename(response, url),
                content_type=response.headers.get(
                    "content-type", "application/x-bittorrent"
                ),
            )

    async def ratio(self) -> str | None:
        """Current account ratio, ``None`` if the definition has no ratio block."""
        block = self.definition.ratio
        if block is None:
            return None
        url = self.session.url_for(block.path or "")
        response = await self._fetch("ratio", "GET", url)
        document = parse_html(response.content)
        ctx = ExtractionContext(document, namespace=self.session.namespace())
        value = compile_block(block.block).run(ctx)
        return value or None

    async def aclose(self) -> None:
        if self._owns_client:
            await self.session.client.aclose()
