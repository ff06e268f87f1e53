from .categories import (
    ALL_CATEGORIES,
    TorznabCategory,
    category_by_id,
    category_by_name,
    parent_of,
)
from .torznab import (
    MODE_BY_ACTION,
    InvalidQuery,
    ResultItem,
    TorznabAction,
    TorznabBadRequest,
    TorznabCaps,
    TorznabError,
    TorznabExternalError,
    TorznabIndexerNotFound,
    TorznabIndexInfo,
    TorznabQuery,
    TorznabUnsupportedAction,
)

__all__ = [
    "ALL_CATEGORIES",
    "MODE_BY_ACTION",
    "InvalidQuery",
    "ResultItem",
    "TorznabAction",
    "TorznabBadRequest",
    "TorznabCaps",
    "TorznabCategory",
    "TorznabError",
    "TorznabExternalError",
    "TorznabIndexInfo",
    "TorznabIndexerNotFound",
    "TorznabQuery",
    "TorznabUnsupportedAction",
    "category_by_id",
    "category_by_name",
    "parent_of",
]
