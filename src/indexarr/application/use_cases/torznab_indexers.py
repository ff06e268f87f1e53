"""Use case for listing all available definitions."""

from __future__ import annotations

import structlog

from indexarr.domain.definitions import Definition, MalformedDefinition
from indexarr.domain.entities import TorznabIndexInfo
from indexarr.domain.ports import ConfigStorePort, DefinitionRegistryPort

log = structlog.get_logger(__name__)

# Setting types that carry no user value.
_DISPLAY_ONLY = {"info", "checkbox"}


def is_configured(definition: Definition, config_store: ConfigStorePort) -> bool:
    """True when every value-less setting of a login definition has been stored."""
    if not definition.requires_login:
        return True
    stored = config_store.section(definition.key)
    for setting in definition.settings:
        if setting.type in _DISPLAY_ONLY or setting.default is not None:
            continue
        if not stored.get(setting.name, "").strip():
            return False
    return True


class TorznabIndexersUseCase:
    """Collects metadata of all discovered definitions; invalid ones are skipped."""

    def __init__(
        self, *, registry: DefinitionRegistryPort, config_store: ConfigStorePort
    ) -> None:
        self._registry = registry
        self._config_store = config_store

    def execute(self) -> list[TorznabIndexInfo]:
        out: list[TorznabIndexInfo] = []
        for key in self._registry.list_keys():
            try:
                definition = self._registry.get(key)
            except MalformedDefinition as e:
                log.warning("indexer_definition_invalid", definition=key, error=str(e))
                continue
            out.append(
                TorznabIndexInfo(
                    key=key,
                    name=definition.name,
                    language=definition.language,
                    link=definition.base_url,
                    configured=is_configured(definition, self._config_store),
                )
            )
        return out
