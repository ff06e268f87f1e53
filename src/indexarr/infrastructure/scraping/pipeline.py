"""
Selector/filter pipeline: turns a search response into ``ResultItem``s.

A definition field block compiles once into a tuple of steps. Each step maps
a value (an HTML node or a string) to a new value or ``NO_MATCH``; the first
``NO_MATCH`` short-circuits the rest of the chain.

    rows:   split_rows(document, rows_block)       -> [ExtractionContext, ...]
    fields: compile_fields(search_block)           -> [CompiledField, ...]
    item:   extract_row(ctx, fields, definition)   -> ResultItem
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import quote

import structlog
from bs4 import BeautifulSoup, Tag

from indexarr.domain.definitions import (
    Definition,
    RowsBlock,
    SearchBlock,
    SelectorBlock,
)
from indexarr.domain.entities import ResultItem
from indexarr.domain.indexer import ExtractionFailure
from indexarr.infrastructure.common import parse_size_to_bytes, to_float, to_int
from indexarr.infrastructure.scraping import dates
from indexarr.infrastructure.scraping.filters import NO_MATCH, NoMatch, apply_filter
from indexarr.infrastructure.scraping.html import (
    absolute_url,
    matches,
    node_text,
    select_first,
    without,
)
from indexarr.infrastructure.scraping.templates import expand

log = structlog.get_logger(__name__)

Value = Tag | str | NoMatch


@dataclass
class ExtractionContext:
    """One result row plus the template namespace used while extracting it."""

    element: Tag
    index: int = 0
    namespace: dict[str, Any] = field(default_factory=dict)


# --- steps ---


@dataclass(frozen=True)
class SelectStep:
    selector: str

    def apply(self, value: Value, ctx: ExtractionContext) -> Value:
        if not isinstance(value, Tag):
            return NO_MATCH
        found = select_first(value, self.selector)
        return NO_MATCH if found is None else found


@dataclass(frozen=True)
class RemoveStep:
    selector: str

    def apply(self, value: Value, ctx: ExtractionContext) -> Value:
        if not isinstance(value, Tag):
            return value
        return without(value, self.selector)


@dataclass(frozen=True)
class AttributeStep:
    name: str

    def apply(self, value: Value, ctx: ExtractionContext) -> Value:
        if not isinstance(value, Tag):
            return NO_MATCH
        attr = value.get(self.name)
        if attr is None:
            return NO_MATCH
        if isinstance(attr, list):
            return " ".join(attr)
        return str(attr).strip()


@dataclass(frozen=True)
class TextStep:
    def apply(self, value: Value, ctx: ExtractionContext) -> Value:
        if isinstance(value, Tag):
            return node_text(value)
        return value


@dataclass(frozen=True)
class StaticTextStep:
    """Literal (possibly templated) text; ignores the incoming value."""

    template: str

    def apply(self, value: Value, ctx: ExtractionContext) -> Value:
        return expand(self.template, ctx.namespace)


@dataclass(frozen=True)
class CaseStep:
    """Pick the value of the first selector matching the node; ``*`` is the default."""

    cases: tuple[tuple[str, str], ...]

    def apply(self, value: Value, ctx: ExtractionContext) -> Value:
        if not isinstance(value, Tag):
            return NO_MATCH
        default: str | None = None
        for selector, result in self.cases:
            if selector == "*":
                default = result
            elif matches(value, selector):
                return expand(result, ctx.namespace)
        if default is None:
            return NO_MATCH
        return expand(default, ctx.namespace)


@dataclass(frozen=True)
class FilterStep:
    name: str
    args: Any = None

    def apply(self, value: Value, ctx: ExtractionContext) -> Value:
        if isinstance(value, NoMatch):
            return value
        if isinstance(value, Tag):
            value = node_text(value)
        return apply_filter(self.name, self.args, value)


Step = (
    SelectStep
    | RemoveStep
    | AttributeStep
    | TextStep
    | StaticTextStep
    | CaseStep
    | FilterStep
)


@dataclass(frozen=True)
class Pipeline:
    steps: tuple[Step, ...]

    def run(self, ctx: ExtractionContext, root: Tag | None = None) -> str | NoMatch:
        value: Value = ctx.element if root is None else root
        for step in self.steps:
            value = step.apply(value, ctx)
            if isinstance(value, NoMatch):
                return NO_MATCH
        if isinstance(value, Tag):
            return node_text(value)
        return value


def compile_block(block: SelectorBlock) -> Pipeline:
    """Compile a field/selector block into its step chain."""
    steps: list[Step] = []
    if block.text is not None:
        steps.append(StaticTextStep(block.text))
    else:
        if block.selector:
            steps.append(SelectStep(block.selector))
        if block.remove:
            steps.append(RemoveStep(block.remove))
        if block.case:
            steps.append(CaseStep(tuple(block.case.items())))
        elif block.attribute:
            steps.append(AttributeStep(block.attribute))
        else:
            steps.append(TextStep())
    steps.extend(FilterStep(f.name, f.args) for f in block.filters)
    return Pipeline(tuple(steps))


@dataclass(frozen=True)
class CompiledField:
    name: str
    pipeline: Pipeline
    optional: bool = False


def compile_fields(search: SearchBlock) -> list[CompiledField]:
    return [
        CompiledField(f.name, compile_block(f.block), f.block.optional)
        for f in search.fields
    ]


# --- rows ---


def split_rows(
    document: BeautifulSoup | Tag,
    rows: RowsBlock,
    namespace: dict[str, Any] | None = None,
) -> list[ExtractionContext]:
    """Select result rows; ``after`` merges following sibling rows into one."""
    if rows.remove:
        document = without(document, rows.remove)

    elements = document.select(rows.selector)
    stride = rows.after + 1
    contexts: list[ExtractionContext] = []
    for index, start in enumerate(range(0, len(elements), stride)):
        row = elements[start]
        if rows.after:
            row = copy.copy(row)
            for extra in elements[start + 1 : start + stride]:
                for child in list(copy.copy(extra).children):
                    row.append(child)
        contexts.append(ExtractionContext(row, index, dict(namespace or {})))
    return contexts


def extract_fields(
    ctx: ExtractionContext, fields: list[CompiledField]
) -> dict[str, str]:
    """Run every field pipeline; values are visible to later ``.Result`` templates.

    Raises:
        ExtractionFailure: a field not marked ``optional`` did not match.
    """
    values: dict[str, str] = {}
    result: dict[str, str] = {}
    ctx.namespace["Result"] = result
    for compiled in fields:
        value = compiled.pipeline.run(ctx)
        if isinstance(value, NoMatch):
            if not compiled.optional:
                raise ExtractionFailure(compiled.name, row=ctx.index)
            result[compiled.name] = ""
            continue
        values[compiled.name] = value
        result[compiled.name] = value
    return values


def _imdb(raw: str | None) -> str | None:
    digits = "".join(ch for ch in raw or "" if ch.isdigit())
    if not digits:
        return None
    return f"tt{int(digits):07d}"


def build_item(
    values: dict[str, str], definition: Definition, row: int = 0
) -> ResultItem:
    """Coerce raw field strings into a ``ResultItem``.

    Raises:
        ExtractionFailure: ``title`` is empty or neither ``download``,
            ``magnet`` nor ``infohash`` produced a link.
    """
    base = definition.base_url
    title = values.get("title", "").strip()
    if not title:
        raise ExtractionFailure("title", row=row)

    magnet = values.get("magnet", "").strip() or None
    download = values.get("download", "").strip()
    link = absolute_url(base, download) if download else ""
    if link.startswith("magnet:"):
        magnet = magnet or link
    if not link and values.get("infohash"):
        magnet = magnet or (
            f"magnet:?xt=urn:btih:{values['infohash'].strip()}&dn={quote(title)}"
        )
    link = link or magnet or ""
    if not link:
        raise ExtractionFailure("download", row=row)

    details_raw = values.get("details")
    details = absolute_url(base, details_raw) if details_raw else None
    comments_raw = values.get("comments")
    comments = absolute_url(base, comments_raw) if comments_raw else None
    banner_raw = values.get("banner") or values.get("poster")
    banner = absolute_url(base, banner_raw) if banner_raw else None

    local_category = values.get("category", "").strip() or None
    category = None
    if local_category is not None:
        category = definition.caps.torznab_id(local_category)
    elif values.get("categorydesc"):
        wanted = values["categorydesc"].strip().lower()
        for mapping in definition.caps.categories:
            if (mapping.description or "").lower() == wanted:
                local_category, category = mapping.local_id, mapping.torznab_id
                break
    if local_category is not None and category is None:
        log.debug(
            "category_unmapped", definition=definition.key, category=local_category
        )

    item = ResultItem(
        site=definition.key,
        title=title,
        link=link,
        guid=values.get("guid") or details or link,
        details=details,
        comments=comments,
        magnet=magnet,
        description=values.get("description") or None,
        banner=banner,
        imdb=_imdb(values.get("imdb") or values.get("imdbid")),
        publish_date=dates.parse_any(values["date"]) if values.get("date") else None,
        size=parse_size_to_bytes(values.get("size")),
        files=to_int(values.get("files")),
        grabs=to_int(values.get("grabs")),
        seeders=to_int(values.get("seeders")),
        leechers=to_int(values.get("leechers")),
        category=category,
        local_category=local_category,
        minimum_ratio=to_float(values.get("minimumratio")),
        minimum_seed_time=to_int(values.get("minimumseedtime")),
    )
    dvf = to_float(values.get("downloadvolumefactor"))
    uvf = to_float(values.get("uploadvolumefactor"))
    if dvf is not None:
        item.download_volume_factor = dvf
    if uvf is not None:
        item.upload_volume_factor = uvf
    return item


def extract_row(
    ctx: ExtractionContext, fields: list[CompiledField], definition: Definition
) -> ResultItem:
    return build_item(extract_fields(ctx, fields), definition, ctx.index)


def extract_items(
    document: BeautifulSoup | Tag,
    definition: Definition,
    namespace: dict[str, Any],
    fields: list[CompiledField] | None = None,
) -> tuple[list[ResultItem], int]:
    """Extract every row of *document*.

    Returns the items and the number of rows seen; rows whose required
    fields fail are logged and dropped.
    """
    compiled = fields if fields is not None else compile_fields(definition.search)
    contexts = split_rows(document, definition.search.rows, namespace)
    items: list[ResultItem] = []
    for ctx in contexts:
        try:
            items.append(extract_row(ctx, compiled, definition))
        except ExtractionFailure as e:
            log.warning(
                "row_dropped",
                definition=definition.key,
                row=e.row,
                field=e.field,
            )
    return items, len(contexts)
