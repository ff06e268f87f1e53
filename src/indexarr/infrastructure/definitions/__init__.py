from .loader import (
    BUNDLED_DEFINITIONS_DIR,
    default_search_path,
    load_definition,
    parse_definition_file,
)
from .registry import DefinitionRegistry

__all__ = [
    "BUNDLED_DEFINITIONS_DIR",
    "DefinitionRegistry",
    "default_search_path",
    "load_definition",
    "parse_definition_file",
]
