"""Definition registry with lazy discovery and in-memory caching."""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import structlog

from indexarr.domain.definitions import (
    Definition,
    DefinitionNotFound,
    MalformedDefinition,
)

from .loader import load_definition_path

log = structlog.get_logger(__name__)


class DefinitionRegistry:
    """
    Lazy-loading definition registry.

    discover():
      - indexes ``*.yml``/``*.yaml`` files only (no YAML parsing); the
        file stem is the definition key, earlier directories win

    get()/load_all():
      - parse on demand and cache results
    """

    def __init__(self, search_paths: Iterable[Path]) -> None:
        self._search_paths = list(search_paths)
        self._discovered = False
        self._files: dict[str, Path] = {}
        self._cache: dict[str, Definition] = {}

    @property
    def search_paths(self) -> list[Path]:
        return list(self._search_paths)

    def discover(self) -> None:
        if self._discovered:
            return

        self._discovered = True
        self._files = {}

        for directory in self._search_paths:
            if not directory.is_dir():
                log.debug("definition_directory_missing", directory=str(directory))
                continue
            for path in sorted(directory.iterdir(), key=lambda p: p.name):
                if path.suffix.lower() not in {".yml", ".yaml"} or not path.is_file():
                    continue
                self._files.setdefault(path.stem, path)

        log.info(
            "definitions_discovered",
            count=len(self._files),
            directories=[str(d) for d in self._search_paths],
        )
        if not self._files:
            log.warning("no_definitions_found")

    def list_keys(self) -> list[str]:
        self.discover()
        return sorted(self._files)

    def get(self, key: str) -> Definition:
        self.discover()

        cached = self._cache.get(key)
        if cached is not None:
            return cached

        path = self._files.get(key)
        if path is None:
            raise DefinitionNotFound(key)

        definition = load_definition_path(path)
        if definition.key != key:
            log.warning(
                "definition_key_mismatch",
                definition_file=str(path),
                site=definition.key,
            )
        self._cache[key] = definition
        log.info("definition_loaded", definition=key)
        return definition

    def load_all(self) -> list[Definition]:
        """Load every discovered definition; malformed ones are logged and skipped."""
        loaded: list[Definition] = []
        for key in self.list_keys():
            try:
                loaded.append(self.get(key))
            except MalformedDefinition as e:
                log.warning("definition_skipped", definition=key, error=str(e))
        return loaded
