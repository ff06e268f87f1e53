from .cache import CachePort
from .config_store import ConfigStorePort
from .definition_registry import DefinitionRegistryPort
from .indexer import DownloadStreamPort, IndexerPoolPort, IndexerPort

__all__ = [
    "CachePort",
    "ConfigStorePort",
    "DefinitionRegistryPort",
    "DownloadStreamPort",
    "IndexerPoolPort",
    "IndexerPort",
]
