"""
Login strategies and login/expiry rule evaluation.

A strategy performs the login round trip(s) for one ``login.method`` tag
and returns the final response. Whether that response means success is
decided by ``check_login``:

  1. any ``login.error`` rule matching -> failure (wins over success)
  2. ``login.test`` present -> its selector must match (on ``test.path``
     when given, otherwise on the login response)
  3. otherwise the login response must be 2xx
"""

from __future__ import annotations

from typing import Protocol
from urllib.parse import urljoin, urlsplit

import httpx
from bs4 import BeautifulSoup, Tag

from indexarr.domain.definitions import LoginBlock, MatchRule
from indexarr.domain.indexer import AuthenticationFailed
from indexarr.infrastructure.indexer.session import Session
from indexarr.infrastructure.scraping.html import node_text, parse_html
from indexarr.infrastructure.scraping.pipeline import ExtractionContext, compile_block
from indexarr.infrastructure.scraping.templates import expand


class LoginStrategy(Protocol):
    async def login(self, session: Session, block: LoginBlock) -> httpx.Response | None:
        """Perform the login; ``None`` when no round trip was made."""
        ...


def _inputs(session: Session, block: LoginBlock) -> dict[str, str]:
    namespace = session.namespace()
    return {name: expand(value, namespace) for name, value in block.inputs.items()}


def _path(session: Session, block: LoginBlock) -> str:
    return session.url_for(block.path or "")


class NoLogin:
    async def login(self, session: Session, block: LoginBlock) -> httpx.Response | None:
        return None


class CookieLogin:
    """Inject the ``cookie`` setting; no round trip."""

    async def login(self, session: Session, block: LoginBlock) -> httpx.Response | None:
        cookie = session.config().get("cookie", "").strip()
        if not cookie:
            raise AuthenticationFailed("cookie login", reason="no cookie configured")
        session.load_cookie_header(cookie)
        return None


class PostLogin:
    async def login(self, session: Session, block: LoginBlock) -> httpx.Response | None:
        return await session.request(
            "login", "POST", _path(session, block), data=_inputs(session, block)
        )


class GetLogin:
    async def login(self, session: Session, block: LoginBlock) -> httpx.Response | None:
        return await session.request(
            "login", "GET", _path(session, block), params=_inputs(session, block)
        )


class OneUrlLogin:
    async def login(self, session: Session, block: LoginBlock) -> httpx.Response | None:
        return await session.request("login", "GET", _path(session, block))


class FormLogin:
    """Fetch the login page, fill the form and submit it to its action."""

    async def login(self, session: Session, block: LoginBlock) -> httpx.Response | None:
        page_url = _path(session, block)
        page = await session.request("login", "GET", page_url)
        document = parse_html(page.content)

        form = document.select_one(block.form or "form")
        if form is None:
            raise AuthenticationFailed(
                "login form not found", reason=block.form or "form"
            )

        data: dict[str, str] = {}
        for field in form.select("input[name]"):
            if field.get("type", "").lower() in ("submit", "checkbox", "radio"):
                continue
            data[str(field["name"])] = str(field.get("value", ""))

        session.captures = {}
        for name, selector_block in block.selectorinputs.items():
            ctx = ExtractionContext(document, namespace=session.namespace())
            value = compile_block(selector_block).run(ctx)
            if not value:
                raise AuthenticationFailed("selector input did not match", reason=name)
            session.captures[name] = value
            data[name] = value

        data.update(_inputs(session, block))

        if block.submitpath:
            action = session.url_for(block.submitpath)
        else:
            action = urljoin(str(page.url), str(form.get("action") or ""))
        method = str(form.get("method") or "post").upper()
        if method == "GET":
            return await session.request("login", "GET", action, params=data)
        return await session.request("login", "POST", action, data=data)


STRATEGIES: dict[str, LoginStrategy] = {
    "none": NoLogin(),
    "cookie": CookieLogin(),
    "post": PostLogin(),
    "get": GetLogin(),
    "form": FormLogin(),
    "oneurl": OneUrlLogin(),
}


def strategy_for(block: LoginBlock | None) -> LoginStrategy:
    if block is None:
        return STRATEGIES["none"]
    return STRATEGIES[block.method]


# --- rule evaluation ---


def _same_path(response: httpx.Response, session: Session, path: str) -> bool:
    wanted = urlsplit(session.url_for(path)).path
    return response.url.path.rstrip("/") == wanted.rstrip("/")


def rule_matches(
    rule: MatchRule,
    response: httpx.Response,
    session: Session,
    document: BeautifulSoup | None = None,
) -> bool:
    """Every criterion given by *rule* (status, path, selector) must hold."""
    if rule.status and response.status_code not in rule.status:
        return False
    if rule.path and not _same_path(response, session, rule.path):
        return False
    if rule.selector:
        document = document if document is not None else parse_html(response.content)
        if document.select_one(rule.selector) is None:
            return False
    return True


def _rule_message(rule: MatchRule, document: BeautifulSoup | Tag) -> str | None:
    if rule.message is None:
        return None
    if rule.message.text:
        return rule.message.text
    if rule.message.selector:
        node = document.select_one(rule.message.selector)
        if node is not None:
            return node_text(node)
    return None


async def check_login(
    session: Session, block: LoginBlock, response: httpx.Response | None
) -> None:
    """Raise ``AuthenticationFailed`` unless *response* is a successful login."""
    document = parse_html(response.content) if response is not None else None

    if response is not None and document is not None:
        for rule in block.error:
            if rule_matches(rule, response, session, document):
                reason = _rule_message(rule, document) or rule.selector
                raise AuthenticationFailed("login rejected", reason=reason)

    if block.test is not None:
        if block.test.path or response is None:
            if await verify_session(session, block):
                return
            raise AuthenticationFailed("login test failed", reason=block.test.selector)
        selector = block.test.selector
        if not selector or (
            document is not None and document.select_one(selector) is not None
        ):
            return
        raise AuthenticationFailed("login test failed", reason=block.test.selector)

    if response is not None and not response.is_success:
        raise AuthenticationFailed(
            "login request failed", reason=f"HTTP {response.status_code}"
        )


async def verify_session(session: Session, block: LoginBlock) -> bool:
    """Fetch ``test.path`` and check the session looks logged in."""
    test = block.test
    if test is None:
        return False
    response = await session.request(
        "login", "GET", session.url_for(test.path or "")
    )
    if not response.is_success or is_login_redirect(response, session, block):
        return False
    if test.selector and parse_html(response.content).select_one(test.selector) is None:
        return False
    return True


def is_login_redirect(
    response: httpx.Response, session: Session, block: LoginBlock
) -> bool:
    """True when a redirect chain ended on the login page."""
    if not response.history or not block.path:
        return False
    return _same_path(response, session, block.path)


def is_expired(
    response: httpx.Response, session: Session, block: LoginBlock | None
) -> bool:
    """401, a redirect onto the login page, or the ``expired`` rule matching."""
    if block is None or block.method == "none":
        return False
    if response.status_code == 401:
        return True
    if is_login_redirect(response, session, block):
        return True
    if block.expired is not None:
        return rule_matches(block.expired, response, session)
    return False
