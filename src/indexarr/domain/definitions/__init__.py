from .exceptions import DefinitionError, DefinitionNotFound, MalformedDefinition
from .model import (
    REQUIRED_FIELDS,
    Capabilities,
    CategoryMapping,
    Definition,
    FieldBlock,
    FilterBlock,
    LoginBlock,
    MatchRule,
    MessageBlock,
    PaginationBlock,
    RatioBlock,
    RowsBlock,
    SearchBlock,
    SearchPath,
    SelectorBlock,
    SettingField,
)

__all__ = [
    "REQUIRED_FIELDS",
    "Capabilities",
    "CategoryMapping",
    "Definition",
    "DefinitionError",
    "DefinitionNotFound",
    "FieldBlock",
    "FilterBlock",
    "LoginBlock",
    "MalformedDefinition",
    "MatchRule",
    "MessageBlock",
    "PaginationBlock",
    "RatioBlock",
    "RowsBlock",
    "SearchBlock",
    "SearchPath",
    "SelectorBlock",
    "SettingField",
]
