"""In-memory config store (tests, one-off CLI runs)."""

from __future__ import annotations

import threading
from collections.abc import Mapping


class MemoryConfigStore:
    def __init__(self, initial: Mapping[str, Mapping[str, str]] | None = None) -> None:
        self._data: dict[str, dict[str, str]] = {
            section: dict(values) for section, values in (initial or {}).items()
        }
        self._lock = threading.Lock()

    def get(self, section: str, key: str) -> str | None:
        with self._lock:
            return self._data.get(section, {}).get(key)

    def set(self, section: str, key: str, value: str) -> None:
        with self._lock:
            self._data.setdefault(section, {})[key] = value

    def section(self, section: str) -> dict[str, str]:
        with self._lock:
            return dict(self._data.get(section, {}))

    def sections(self) -> list[str]:
        with self._lock:
            return sorted(self._data)
