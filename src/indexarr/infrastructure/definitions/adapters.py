"""Adapters to convert Pydantic validation models to domain models."""

from __future__ import annotations

from indexarr.domain import definitions as domain
from indexarr.domain.entities import category_by_id, category_by_name
from indexarr.infrastructure.definitions import validation_schema as infra


def to_domain_selector(pydantic: infra.SelectorModel) -> domain.SelectorBlock:
    return domain.SelectorBlock(
        selector=pydantic.selector,
        attribute=pydantic.attribute,
        remove=pydantic.remove,
        text=pydantic.text,
        case=dict(pydantic.case),
        filters=[domain.FilterBlock(f.name, f.args) for f in pydantic.filters],
        optional=pydantic.optional,
    )


def to_domain_match_rule(
    pydantic: infra.MatchRuleModel | None,
) -> domain.MatchRule | None:
    if pydantic is None:
        return None
    message = None
    if pydantic.message is not None:
        message = domain.MessageBlock(
            selector=pydantic.message.selector, text=pydantic.message.text
        )
    return domain.MatchRule(
        path=pydantic.path,
        selector=pydantic.selector,
        status=list(pydantic.status),
        message=message,
    )


def to_domain_caps(pydantic: infra.CapsModel) -> domain.Capabilities:
    """Merge ``categories`` and ``categorymappings`` into one mapping list."""
    mappings: list[domain.CategoryMapping] = []
    for local_id, name in pydantic.categories.items():
        category = category_by_name(name)
        if category is None:
            raise domain.MalformedDefinition(
                "caps.categories", f"unknown category '{name}'"
            )
        mappings.append(domain.CategoryMapping(local_id, category.id, category.name))
    for entry in pydantic.categorymappings:
        category = (
            category_by_id(entry.cat)
            if isinstance(entry.cat, int)
            else category_by_name(entry.cat)
        )
        if category is None:
            raise domain.MalformedDefinition(
                "caps.categorymappings", f"unknown category '{entry.cat}'"
            )
        mappings.append(
            domain.CategoryMapping(entry.id, category.id, category.name, entry.desc)
        )
    return domain.Capabilities(categories=mappings, modes=dict(pydantic.modes))


def to_domain_login(pydantic: infra.LoginModel | None) -> domain.LoginBlock | None:
    if pydantic is None:
        return None
    return domain.LoginBlock(
        method=pydantic.method,
        path=pydantic.path,
        form=pydantic.form,
        submitpath=pydantic.submitpath,
        inputs=dict(pydantic.inputs),
        selectorinputs={
            name: to_domain_selector(block)
            for name, block in pydantic.selectorinputs.items()
        },
        error=[r for r in map(to_domain_match_rule, pydantic.error) if r is not None],
        test=to_domain_match_rule(pydantic.test),
        expired=to_domain_match_rule(pydantic.expired),
    )


def to_domain_search(pydantic: infra.SearchModel) -> domain.SearchBlock:
    paths = [
        domain.SearchPath(
            path=p.path,
            method=p.method,
            inputs=dict(p.inputs),
            categories=list(p.categories),
            modes=list(p.modes),
        )
        for p in pydantic.paths
    ]
    if pydantic.path:
        paths.insert(0, domain.SearchPath(path=pydantic.path, method=pydantic.method))

    pagination = None
    if pydantic.pagination is not None:
        pagination = domain.PaginationBlock(
            pagesize=pydantic.pagination.pagesize,
            maxpages=pydantic.pagination.maxpages,
            start=pydantic.pagination.start,
        )

    return domain.SearchBlock(
        paths=paths,
        rows=domain.RowsBlock(
            selector=pydantic.rows.selector,
            after=pydantic.rows.after,
            remove=pydantic.rows.remove,
        ),
        fields=[
            domain.FieldBlock(name, to_domain_selector(block))
            for name, block in pydantic.fields.items()
        ],
        inputs=dict(pydantic.inputs),
        pagination=pagination,
    )


def to_domain_definition(pydantic: infra.DefinitionModel) -> domain.Definition:
    """Convert a validated ``DefinitionModel`` to the domain ``Definition``."""
    ratio = None
    if pydantic.ratio is not None:
        ratio = domain.RatioBlock(
            path=pydantic.ratio.path, block=to_domain_selector(pydantic.ratio)
        )

    return domain.Definition(
        site=pydantic.site,
        name=pydantic.name,
        links=list(pydantic.links),
        caps=to_domain_caps(pydantic.caps),
        search=to_domain_search(pydantic.search),
        description=pydantic.description,
        language=pydantic.language,
        settings=[
            domain.SettingField(s.name, s.type, s.label, s.default)
            for s in pydantic.settings
        ],
        login=to_domain_login(pydantic.login),
        ratio=ratio,
    )
