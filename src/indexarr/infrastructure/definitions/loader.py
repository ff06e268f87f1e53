from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path
from typing import IO

import structlog
import yaml
from pydantic import ValidationError

from indexarr.domain.definitions import (
    Definition,
    DefinitionNotFound,
    MalformedDefinition,
)
from indexarr.infrastructure.definitions.adapters import to_domain_definition
from indexarr.infrastructure.definitions.validation_schema import DefinitionModel

log = structlog.get_logger(__name__)

BUNDLED_DEFINITIONS_DIR = Path(__file__).resolve().parents[2] / "definitions"

DefinitionSource = str | bytes | IO[str] | IO[bytes]


def _site_of(data: object) -> str | None:
    if isinstance(data, dict) and isinstance(data.get("site"), str):
        return data["site"]
    return None


def _first_error(e: ValidationError) -> tuple[str, str]:
    error = e.errors()[0]
    location = ".".join(str(part) for part in error["loc"]) or "<root>"
    message = error["msg"].removeprefix("Value error, ")
    return location, message


def parse_definition_file(stream: DefinitionSource) -> Definition:
    """Parse and validate a definition document, returning the domain model.

    Raises:
        MalformedDefinition: the YAML does not parse or fails validation;
            ``field`` holds the dotted path of the offending entry.
    """
    raw = stream if isinstance(stream, (str, bytes)) else stream.read()
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise MalformedDefinition("<root>", f"invalid YAML: {e}") from e

    if data is None:
        raise MalformedDefinition("<root>", "document is empty")
    if not isinstance(data, dict):
        raise MalformedDefinition("<root>", "document root must be a mapping")

    try:
        model = DefinitionModel.model_validate(data)
    except ValidationError as e:
        field, message = _first_error(e)
        raise MalformedDefinition(field, message, site=_site_of(data)) from e
    return to_domain_definition(model)


def default_search_path(definitions_dir: Path | None = None) -> list[Path]:
    """Configured directory first, then the definitions shipped with the package."""
    paths = [definitions_dir] if definitions_dir is not None else []
    paths.append(BUNDLED_DEFINITIONS_DIR)
    return paths


def find_definition_file(key: str, search_path: Iterable[Path]) -> Path:
    for directory in search_path:
        for suffix in (".yml", ".yaml"):
            candidate = directory / f"{key}{suffix}"
            if candidate.is_file():
                return candidate
    raise DefinitionNotFound(key)


def load_definition_path(path: Path) -> Definition:
    """Load a definition file; unreadable or invalid files are logged and re-raised."""
    try:
        with path.open("rb") as fh:
            return parse_definition_file(fh)
    except OSError as e:
        log.error(
            "definition_load_failed",
            definition_file=str(path),
            error_type=type(e).__name__,
            error_message=str(e),
        )
        raise MalformedDefinition("<root>", str(e)) from e
    except MalformedDefinition as e:
        log.error(
            "definition_validation_failed",
            definition_file=str(path),
            field=e.field,
            error_message=e.message,
        )
        raise


def load_definition(key: str, search_path: Iterable[Path] | None = None) -> Definition:
    """Resolve ``<key>.yml`` in *search_path* and load it.

    Raises:
        DefinitionNotFound: no file for *key* in any directory.
        MalformedDefinition: the file exists but is invalid.
    """
    paths = list(search_path) if search_path is not None else default_search_path()
    return load_definition_path(find_definition_file(key, paths))
