from __future__ import annotations

from indexarr.domain.definitions import (
    Definition,
    DefinitionNotFound,
    MalformedDefinition,
)
from indexarr.domain.entities import (
    TorznabCaps,
    TorznabCategory,
    TorznabExternalError,
    TorznabIndexerNotFound,
    category_by_id,
)
from indexarr.domain.ports import DefinitionRegistryPort


def caps_for(
    definition: Definition, *, app_name: str, server_version: str
) -> TorznabCaps:
    """Torznab caps from a definition's modes and category mapping."""
    seen: set[int] = set()
    categories: list[TorznabCategory] = []
    for mapping in definition.caps.categories:
        category = category_by_id(mapping.torznab_id)
        if category is not None and category.id not in seen:
            seen.add(category.id)
            categories.append(category)
    return TorznabCaps(
        server_title=f"{app_name} ({definition.name})",
        server_version=server_version,
        modes={mode: list(params) for mode, params in definition.caps.modes.items()},
        categories=categories,
    )


class TorznabCapsUseCase:
    def __init__(
        self,
        *,
        registry: DefinitionRegistryPort,
        app_name: str,
        server_version: str,
    ) -> None:
        self._registry = registry
        self._app_name = app_name
        self._server_version = server_version

    def execute(self, key: str) -> TorznabCaps:
        try:
            definition = self._registry.get(key)
        except DefinitionNotFound as e:
            raise TorznabIndexerNotFound(key) from e
        except MalformedDefinition as e:
            raise TorznabExternalError(f"definition '{key}' is invalid: {e}") from e
        return caps_for(
            definition, app_name=self._app_name, server_version=self._server_version
        )
