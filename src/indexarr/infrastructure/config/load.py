from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_SECTION_KEYS: set[str] = {
    "definitions",
    "config_store",
    "http",
    "indexer",
    "download",
    "logging",
    "cache",
}

_GENERAL_KEYS: tuple[str, ...] = ("app_name", "environment", "api_key")

# flat key -> (section, key in section)
_FLAT_MAP: dict[str, tuple[str, str]] = {
    "definitions_dir": ("definitions", "dir"),
    "config_store_path": ("config_store", "path"),
    "http_timeout_seconds": ("http", "timeout_seconds"),
    "http_follow_redirects": ("http", "follow_redirects"),
    "http_user_agent": ("http", "user_agent"),
    "http_rate_limit_rps": ("http", "rate_limit_rps"),
    "http_max_retries": ("http", "max_retries"),
    "relogin_retries": ("indexer", "relogin_retries"),
    "max_pages": ("indexer", "max_pages"),
    "download_secret": ("download", "secret"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "cache_dir": ("cache", "dir"),
    "search_ttl_seconds": ("cache", "search_ttl_seconds"),
}


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """Recursively merge `override` into `base` and return `base`."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, Mapping):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _normalize_layer(data: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize a layer (defaults/YAML/ENV/CLI) into the sectioned shape."""
    out: dict[str, Any] = {}

    for section in _SECTION_KEYS:
        if section in data and isinstance(data[section], Mapping):
            out[section] = dict(data[section])

    for key in _GENERAL_KEYS:
        if key in data:
            out[key] = data[key]

    for flat_key, (section, section_key) in _FLAT_MAP.items():
        if flat_key in data:
            out.setdefault(section, {})
            out[section][section_key] = data[flat_key]

    return out


def _read_yaml_config(config_path: Path) -> dict[str, Any]:
    parsed = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(f"Config YAML must be a mapping, got: {type(parsed)!r}")
    return parsed


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """
    Load configuration with strict precedence:
    defaults < YAML file < env vars < cli overrides

    No filesystem side-effects: nothing is created here.
    """
    cli_overrides = cli_overrides or {}

    # .env participates as part of the env layer.
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    merged = _normalize_layer(deepcopy(DEFAULT_CONFIG))

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(config_path)
        _deep_merge(merged, _normalize_layer(_read_yaml_config(config_path)))

    _deep_merge(merged, _normalize_layer(EnvOverrides().to_update_dict()))
    _deep_merge(merged, _normalize_layer(cli_overrides))

    return AppConfig.model_validate(merged)
