"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "indexarr",
    "environment": "dev",
    "api_key": None,
    "definitions": {
        "dir": None,  # bundled definitions are always searched last
    },
    "config_store": {
        "path": "./.config/indexarr/indexers.json",
    },
    "http": {
        "timeout_seconds": 20.0,
        "follow_redirects": True,
        "user_agent": None,  # None -> browser-like default in session.py
        "rate_limit_rps": 2.0,
        "max_retries": 2,
    },
    "indexer": {
        "relogin_retries": 1,
        "max_pages": 5,
    },
    "download": {
        "secret": None,  # None -> random per process
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "dir": "./.cache/indexarr",
        "search_ttl_seconds": 0,
    },
}
