"""Pydantic validation models for indexer definition YAML files."""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from indexarr.domain.entities import category_by_id, category_by_name
from indexarr.infrastructure.scraping.filters import validate_filter
from indexarr.infrastructure.scraping.templates import (
    TemplateSyntaxError,
    validate_template,
)

SITE_KEY_RE = r"^[a-z0-9][a-z0-9._-]*$"


def _check_template(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    try:
        validate_template(value)
    except TemplateSyntaxError as e:
        raise ValueError(f"template does not compile: {e}") from e
    return value


def _as_str(value: Any) -> Any:
    # YAML turns `1`, `true` or `1.5` into non-strings; definitions mean text
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


def _coerce_inputs(value: Any) -> Any:
    if isinstance(value, dict):
        return {str(k): "" if v is None else _as_str(v) for k, v in value.items()}
    return value


class _Block(BaseModel):
    # Community definitions carry keys we do not use (encoding, followredirect, ...)
    model_config = ConfigDict(extra="ignore")


class FilterModel(_Block):
    name: str
    args: Any = None

    @model_validator(mode="after")
    def _validate_filter(self) -> "FilterModel":
        validate_filter(self.name, self.args)
        return self


class SelectorModel(_Block):
    selector: Optional[str] = None
    attribute: Optional[str] = None
    remove: Optional[str] = None
    text: Optional[str] = None
    case: Dict[str, str] = Field(default_factory=dict)
    filters: List[FilterModel] = Field(default_factory=list)
    optional: bool = False

    @field_validator("text", mode="before")
    @classmethod
    def _coerce_text(cls, v: Any) -> Any:
        return _as_str(v)

    @field_validator("case", mode="before")
    @classmethod
    def _coerce_case(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(k): _as_str(val) for k, val in v.items()}
        return v

    @field_validator("text")
    @classmethod
    def _validate_text(cls, v: Optional[str]) -> Optional[str]:
        return _check_template(v)

    @field_validator("case")
    @classmethod
    def _validate_case(cls, v: Dict[str, str]) -> Dict[str, str]:
        for value in v.values():
            _check_template(value)
        return v

    @model_validator(mode="after")
    def _validate_source(self) -> "SelectorModel":
        if self.text is None and self.selector is None and not self.case:
            # A bare block selects the row itself; only filters make sense then.
            self.selector = ""
        return self


class SettingModel(_Block):
    name: str
    type: str = "text"
    label: Optional[str] = None
    default: Optional[str] = None

    @field_validator("default", mode="before")
    @classmethod
    def _coerce_default(cls, v: Any) -> Any:
        return _as_str(v)


class CategoryMappingModel(_Block):
    id: str
    cat: Union[int, str]
    desc: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, v: Any) -> Any:
        return _as_str(v)

    @field_validator("cat")
    @classmethod
    def _validate_cat(cls, v: Union[int, str]) -> Union[int, str]:
        if isinstance(v, int) or (isinstance(v, str) and v.isdigit()):
            if category_by_id(int(v)) is None:
                raise ValueError(f"unknown torznab category id {v}")
            return int(v)
        if category_by_name(v) is None:
            raise ValueError(f"unknown torznab category '{v}'")
        return v


class CapsModel(_Block):
    categories: Dict[str, str] = Field(default_factory=dict)
    categorymappings: List[CategoryMappingModel] = Field(default_factory=list)
    modes: Dict[str, List[str]] = Field(default_factory=lambda: {"search": ["q"]})

    @field_validator("categories", mode="before")
    @classmethod
    def _coerce_keys(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {str(k): val for k, val in v.items()}
        return v

    @field_validator("categories")
    @classmethod
    def _validate_categories(cls, v: Dict[str, str]) -> Dict[str, str]:
        for name in v.values():
            if category_by_name(name) is None:
                raise ValueError(f"unknown torznab category '{name}'")
        return v

    @field_validator("modes", mode="before")
    @classmethod
    def _coerce_modes(cls, v: Any) -> Any:
        if isinstance(v, dict):
            return {k: list(val or []) for k, val in v.items()}
        return v

    @field_validator("modes")
    @classmethod
    def _validate_modes(cls, v: Dict[str, List[str]]) -> Dict[str, List[str]]:
        unknown = set(v) - {"search", "tv-search", "movie-search"}
        if unknown:
            raise ValueError(f"unknown search modes: {', '.join(sorted(unknown))}")
        if "search" not in v:
            raise ValueError("caps must declare the 'search' mode")
        return v


class MessageModel(_Block):
    selector: Optional[str] = None
    text: Optional[str] = None


class MatchRuleModel(_Block):
    path: Optional[str] = None
    selector: Optional[str] = None
    status: List[int] = Field(default_factory=list)
    message: Optional[MessageModel] = None

    @field_validator("path")
    @classmethod
    def _validate_path(cls, v: Optional[str]) -> Optional[str]:
        return _check_template(v)

    @model_validator(mode="after")
    def _validate_rule(self) -> "MatchRuleModel":
        if not self.selector and not self.status and not self.path:
            raise ValueError("rule requires 'selector', 'status' or 'path'")
        return self


class LoginModel(_Block):
    method: Literal["none", "cookie", "post", "form", "get", "oneurl"] = "post"
    path: Optional[str] = None
    form: Optional[str] = None
    submitpath: Optional[str] = None
    inputs: Dict[str, str] = Field(default_factory=dict)
    selectorinputs: Dict[str, SelectorModel] = Field(default_factory=dict)
    error: List[MatchRuleModel] = Field(default_factory=list)
    test: Optional[MatchRuleModel] = None
    expired: Optional[MatchRuleModel] = None

    @field_validator("inputs", mode="before")
    @classmethod
    def _coerce_inputs(cls, v: Any) -> Any:
        return _coerce_inputs(v)

    @field_validator("inputs")
    @classmethod
    def _validate_inputs(cls, v: Dict[str, str]) -> Dict[str, str]:
        for value in v.values():
            _check_template(value)
        return v

    @field_validator("path", "submitpath")
    @classmethod
    def _validate_paths(cls, v: Optional[str]) -> Optional[str]:
        return _check_template(v)

    @model_validator(mode="after")
    def _validate_method(self) -> "LoginModel":
        if self.method in ("post", "form", "get", "oneurl") and not self.path:
            raise ValueError(f"login method '{self.method}' requires 'path'")
        return self


class RatioModel(SelectorModel):
    path: Optional[str] = None

    @field_validator("path")
    @classmethod
    def _validate_path(cls, v: Optional[str]) -> Optional[str]:
        return _check_template(v)


class PaginationModel(_Block):
    pagesize: int = Field(ge=1)
    maxpages: int = Field(default=5, ge=1)
    start: int = Field(default=0, ge=0)


class RowsModel(_Block):
    selector: str
    after: int = Field(default=0, ge=0)
    remove: Optional[str] = None


class SearchPathModel(_Block):
    path: str
    method: Literal["get", "post"] = "get"
    inputs: Dict[str, str] = Field(default_factory=dict)
    categories: List[str] = Field(default_factory=list)
    modes: List[str] = Field(default_factory=list)

    @field_validator("method", mode="before")
    @classmethod
    def _lower_method(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    @field_validator("categories", mode="before")
    @classmethod
    def _coerce_categories(cls, v: Any) -> Any:
        if isinstance(v, list):
            return [str(c) for c in v]
        return v

    @field_validator("inputs", mode="before")
    @classmethod
    def _coerce_inputs(cls, v: Any) -> Any:
        return _coerce_inputs(v)

    @field_validator("path")
    @classmethod
    def _validate_path(cls, v: str) -> str:
        return _check_template(v) or v

    @field_validator("inputs")
    @classmethod
    def _validate_inputs(cls, v: Dict[str, str]) -> Dict[str, str]:
        for value in v.values():
            _check_template(value)
        return v


class SearchModel(_Block):
    path: Optional[str] = None
    paths: List[SearchPathModel] = Field(default_factory=list)
    method: Literal["get", "post"] = "get"
    inputs: Dict[str, str] = Field(default_factory=dict)
    pagination: Optional[PaginationModel] = None
    rows: RowsModel
    fields: Dict[str, SelectorModel]

    @field_validator("method", mode="before")
    @classmethod
    def _lower_method(cls, v: Any) -> Any:
        return v.lower() if isinstance(v, str) else v

    @field_validator("inputs", mode="before")
    @classmethod
    def _coerce_inputs(cls, v: Any) -> Any:
        return _coerce_inputs(v)

    @field_validator("inputs")
    @classmethod
    def _validate_inputs(cls, v: Dict[str, str]) -> Dict[str, str]:
        for value in v.values():
            _check_template(value)
        return v

    @field_validator("path")
    @classmethod
    def _validate_path(cls, v: Optional[str]) -> Optional[str]:
        return _check_template(v)

    @model_validator(mode="after")
    def _validate_search(self) -> "SearchModel":
        if not self.path and not self.paths:
            raise ValueError("search requires 'path' or 'paths'")
        if "title" not in self.fields:
            raise ValueError("fields.title is required")
        if not {"download", "magnet", "infohash"} & set(self.fields):
            raise ValueError("fields.download is required")
        return self


class DefinitionModel(_Block):
    """
    Pydantic validation model for definition files.

    After validation, this is converted to domain.definitions.Definition.
    """

    site: str = Field(pattern=SITE_KEY_RE)
    name: str
    description: Optional[str] = None
    language: str = "en-us"
    links: List[str] = Field(min_length=1)
    settings: List[SettingModel] = Field(default_factory=list)
    caps: CapsModel = Field(default_factory=CapsModel)
    login: Optional[LoginModel] = None
    ratio: Optional[RatioModel] = None
    search: SearchModel

    @field_validator("name")
    @classmethod
    def _validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("name must not be empty")
        return v.strip()

    @field_validator("links")
    @classmethod
    def _validate_links(cls, v: List[str]) -> List[str]:
        for link in v:
            if not link.startswith(("http://", "https://")):
                raise ValueError(f"link '{link}' must be an http(s) URL")
        return v
