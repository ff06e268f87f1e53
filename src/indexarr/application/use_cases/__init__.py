from .download import DownloadUseCase
from .torznab_caps import TorznabCapsUseCase
from .torznab_indexers import TorznabIndexersUseCase
from .torznab_search import SearchResponse, TorznabSearchUseCase

__all__ = [
    "DownloadUseCase",
    "SearchResponse",
    "TorznabCapsUseCase",
    "TorznabIndexersUseCase",
    "TorznabSearchUseCase",
]
