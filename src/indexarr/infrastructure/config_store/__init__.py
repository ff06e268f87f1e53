from .json_store import JsonFileConfigStore
from .memory import MemoryConfigStore

__all__ = ["JsonFileConfigStore", "MemoryConfigStore"]
