"""Pure domain models for indexer definitions (framework-free).

A definition is parsed and validated once (see
``indexarr.infrastructure.definitions``) and then shared read-only by every
Runner created for the same site key.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Literal

LoginMethod = Literal["none", "cookie", "post", "form", "get", "oneurl"]
HttpMethod = Literal["get", "post"]
SearchMode = Literal["search", "tv-search", "movie-search"]

REQUIRED_FIELDS: tuple[str, ...] = ("title", "download")


def _freeze(obj: Any, *names: str) -> None:
    # lists become tuples, dicts read-only views; shared by every Runner
    for name in names:
        value = getattr(obj, name)
        if isinstance(value, Mapping):
            frozen: Any = MappingProxyType(dict(value))
        else:
            frozen = tuple(value)
        object.__setattr__(obj, name, frozen)


@dataclass(frozen=True)
class FilterBlock:
    """One named filter step with its (raw) arguments."""

    name: str
    args: Any = None

    def __post_init__(self) -> None:
        if isinstance(self.args, list):
            object.__setattr__(self, "args", tuple(self.args))


@dataclass(frozen=True)
class SelectorBlock:
    """
    Extraction rule: selector + attribute + filter chain.

    Exactly the vocabulary used by community definitions:

      selector: "td:nth-child(2) a"
      attribute: href
      remove: "span.tag"
      filters:
        - name: querystring
          args: id
    """

    selector: str | None = None
    attribute: str | None = None
    remove: str | None = None
    text: str | None = None
    case: Mapping[str, str] = field(default_factory=dict)
    filters: tuple[FilterBlock, ...] = field(default_factory=tuple)
    optional: bool = False

    def __post_init__(self) -> None:
        _freeze(self, "case", "filters")


@dataclass(frozen=True)
class FieldBlock:
    """Named output field of a search row."""

    name: str
    block: SelectorBlock


@dataclass(frozen=True)
class CategoryMapping:
    """Site-local category id mapped onto a Torznab category."""

    local_id: str
    torznab_id: int
    torznab_name: str
    description: str | None = None


@dataclass(frozen=True)
class Capabilities:
    categories: tuple[CategoryMapping, ...] = field(default_factory=tuple)
    modes: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        _freeze(self, "categories")
        object.__setattr__(
            self,
            "modes",
            MappingProxyType({m: tuple(p) for m, p in self.modes.items()}),
        )

    def has_mode(self, mode: str) -> bool:
        return mode in self.modes

    def supported_params(self, mode: str) -> list[str]:
        return list(self.modes.get(mode, []))

    def torznab_id(self, local_id: str) -> int | None:
        """Map a site-local category id to its Torznab category id."""
        for mapping in self.categories:
            if mapping.local_id == local_id:
                return mapping.torznab_id
        return None

    def local_ids(self, torznab_ids: list[int]) -> list[str]:
        """
        Map requested Torznab ids to site-local ids.

        A requested parent category (e.g. 5000) also selects every local
        category mapped to one of its subcategories (5030, 5040, ...).
        """
        out: list[str] = []
        for mapping in self.categories:
            parent = mapping.torznab_id - mapping.torznab_id % 1000
            for wanted in torznab_ids:
                by_parent = wanted % 1000 == 0 and parent == wanted
                if mapping.torznab_id == wanted or by_parent:
                    if mapping.local_id not in out:
                        out.append(mapping.local_id)
                    break
        return out


@dataclass(frozen=True)
class SettingField:
    """Per-definition configurable value (credentials, options)."""

    name: str
    type: str = "text"
    label: str | None = None
    default: str | None = None


@dataclass(frozen=True)
class MessageBlock:
    selector: str | None = None
    text: str | None = None


@dataclass(frozen=True)
class MatchRule:
    """
    Selector- or status-based rule evaluated against a response.

    Used for login failure rules (``login.error``), the session-expiry rule
    (``login.expired``) and page tests (``login.test``).
    """

    path: str | None = None
    selector: str | None = None
    status: tuple[int, ...] = field(default_factory=tuple)
    message: MessageBlock | None = None

    def __post_init__(self) -> None:
        _freeze(self, "status")


@dataclass(frozen=True)
class LoginBlock:
    method: LoginMethod = "post"
    path: str | None = None
    form: str | None = None
    submitpath: str | None = None
    inputs: Mapping[str, str] = field(default_factory=dict)
    selectorinputs: Mapping[str, SelectorBlock] = field(default_factory=dict)
    error: tuple[MatchRule, ...] = field(default_factory=tuple)
    test: MatchRule | None = None
    expired: MatchRule | None = None

    def __post_init__(self) -> None:
        _freeze(self, "inputs", "selectorinputs", "error")


@dataclass(frozen=True)
class RatioBlock:
    path: str | None
    block: SelectorBlock


@dataclass(frozen=True)
class PaginationBlock:
    """Offset/page based pagination for search requests."""

    pagesize: int
    maxpages: int = 5
    start: int = 0


@dataclass(frozen=True)
class RowsBlock:
    selector: str
    after: int = 0
    remove: str | None = None


@dataclass(frozen=True)
class SearchPath:
    """One request template of a search block."""

    path: str
    method: HttpMethod = "get"
    inputs: Mapping[str, str] = field(default_factory=dict)
    categories: tuple[str, ...] = field(default_factory=tuple)
    modes: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        _freeze(self, "inputs", "categories", "modes")

    def applies_to(self, mode: str, local_categories: list[str]) -> bool:
        if self.modes and mode not in self.modes:
            return False
        if self.categories and local_categories:
            return any(cat in self.categories for cat in local_categories)
        return True


@dataclass(frozen=True)
class SearchBlock:
    paths: tuple[SearchPath, ...]
    rows: RowsBlock
    fields: tuple[FieldBlock, ...]
    inputs: Mapping[str, str] = field(default_factory=dict)
    pagination: PaginationBlock | None = None

    def __post_init__(self) -> None:
        _freeze(self, "paths", "fields", "inputs")

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


@dataclass(frozen=True)
class Definition:
    """
    Declarative indexer definition (domain model - no validation).

    All site info lives in one YAML document: identity, caps, login,
    search and field mapping.
    """

    site: str
    name: str
    links: tuple[str, ...]
    caps: Capabilities
    search: SearchBlock
    description: str | None = None
    language: str = "en-us"
    settings: tuple[SettingField, ...] = field(default_factory=tuple)
    login: LoginBlock | None = None
    ratio: RatioBlock | None = None

    def __post_init__(self) -> None:
        _freeze(self, "links", "settings")

    @property
    def key(self) -> str:
        return self.site

    @property
    def base_url(self) -> str:
        return self.links[0]

    @property
    def requires_login(self) -> bool:
        return self.login is not None and self.login.method != "none"

    def setting_defaults(self) -> dict[str, str]:
        return {s.name: s.default for s in self.settings if s.default is not None}
