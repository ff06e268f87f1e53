"""Config store persisted as one JSON document.

    {
      "mytracker": {"username": "alice", "password": "...", "cookies": "[...]"}
    }

Every ``set`` rewrites the file atomically (temp file + rename). The file
is read once, lazily; it is created on first write.
"""

from __future__ import annotations

import json
import os
import tempfile
import threading
from pathlib import Path

import structlog

log = structlog.get_logger(__name__)


class JsonFileConfigStore:
    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._data: dict[str, dict[str, str]] | None = None
        self._lock = threading.Lock()

    def _load(self) -> dict[str, dict[str, str]]:
        if self._data is not None:
            return self._data
        if not self.path.exists():
            self._data = {}
            return self._data

        raw = json.loads(self.path.read_text(encoding="utf-8") or "{}")
        if not isinstance(raw, dict):
            raise ValueError(f"config store {self.path} must hold a JSON object")
        self._data = {
            str(section): {str(k): str(v) for k, v in values.items()}
            for section, values in raw.items()
            if isinstance(values, dict)
        }
        log.debug("config_store_loaded", path=str(self.path), sections=len(self._data))
        return self._data

    def _write(self, data: dict[str, dict[str, str]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=".indexers-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, sort_keys=True)
            os.replace(tmp, self.path)
        except OSError:
            Path(tmp).unlink(missing_ok=True)
            raise

    # --- ConfigStorePort ---

    def get(self, section: str, key: str) -> str | None:
        with self._lock:
            return self._load().get(section, {}).get(key)

    def set(self, section: str, key: str, value: str) -> None:
        with self._lock:
            data = self._load()
            if data.get(section, {}).get(key) == value:
                return
            data.setdefault(section, {})[key] = value
            self._write(data)
        log.debug("config_store_updated", section=section, key=key)

    def section(self, section: str) -> dict[str, str]:
        with self._lock:
            return dict(self._load().get(section, {}))

    def sections(self) -> list[str]:
        with self._lock:
            return sorted(self._load())
