"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


def _normalize_path(value: Any) -> Path:
    """
    Normalize a path-like value without causing filesystem side-effects.

    This function MUST NOT create directories or files.
    """
    if isinstance(value, Path):
        return value.expanduser()
    if isinstance(value, str):
        return Path(value).expanduser()
    raise TypeError(f"Expected path-like value, got: {type(value)!r}")


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is sectioned (definitions/config_store/http/indexer/download/
      logging/cache); flat keys are accepted too.
    - Environment variables are read by EnvOverrides(BaseSettings) so that
      load.py controls precedence (defaults < YAML < ENV < CLI).
    """

    # General
    app_name: str = Field(default="indexarr", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )
    api_key: Optional[str] = Field(
        default=None,
        description="If set, Torznab requests must carry a matching 'apikey'.",
    )

    # Definitions (YAML section: definitions.dir)
    definitions_dir: Optional[Path] = Field(
        default=None,
        validation_alias=AliasChoices(
            "definitions_dir",
            AliasPath("definitions", "dir"),
        ),
        description="Extra definitions directory, searched before the bundled one.",
    )

    # Per-definition settings (YAML section: config_store.path)
    config_store_path: Path = Field(
        default=Path("./.config/indexarr/indexers.json"),
        validation_alias=AliasChoices(
            "config_store_path",
            AliasPath("config_store", "path"),
        ),
        description="JSON file holding credentials and session cookies.",
    )

    # HTTP (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=20.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Timeout in seconds for requests to indexer sites.",
    )
    http_follow_redirects: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "http_follow_redirects",
            AliasPath("http", "follow_redirects"),
        ),
    )
    http_user_agent: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing requests (browser-like if unset).",
    )
    http_rate_limit_rps: float = Field(
        default=2.0,
        validation_alias=AliasChoices(
            "http_rate_limit_rps",
            AliasPath("http", "rate_limit_rps"),
        ),
        description="Per-host request rate.",
    )
    http_max_retries: int = Field(
        default=2,
        validation_alias=AliasChoices(
            "http_max_retries",
            AliasPath("http", "max_retries"),
        ),
        description="Retries on HTTP 429/503.",
    )

    # Indexer behaviour (YAML section: indexer.*)
    relogin_retries: int = Field(
        default=1,
        validation_alias=AliasChoices(
            "relogin_retries",
            AliasPath("indexer", "relogin_retries"),
        ),
        description="Re-logins allowed per request after session expiry.",
    )
    max_pages: int = Field(
        default=5,
        validation_alias=AliasChoices(
            "max_pages",
            AliasPath("indexer", "max_pages"),
        ),
        description="Upper bound on pages fetched per search path.",
    )

    # Download proxy (YAML section: download.secret)
    download_secret: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "download_secret",
            AliasPath("download", "secret"),
        ),
        description="HMAC key for download tokens; random per process if unset.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description="console/json; derived from environment when unset.",
    )

    # Cache (YAML section: cache.*)
    cache_dir: Path = Field(
        default=Path("./.cache/indexarr"),
        validation_alias=AliasChoices(
            "cache_dir",
            AliasPath("cache", "dir"),
        ),
    )
    search_ttl_seconds: int = Field(
        default=0,
        validation_alias=AliasChoices(
            "search_ttl_seconds",
            AliasPath("cache", "search_ttl_seconds"),
        ),
        description="Search result cache TTL; 0 disables the cache.",
    )

    @field_validator("config_store_path", "cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("definitions_dir", mode="before")
    @classmethod
    def _validate_optional_path(cls, v: Any) -> Optional[Path]:
        if v is None or v == "":
            return None
        return _normalize_path(v)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @field_validator("http_rate_limit_rps")
    @classmethod
    def _validate_rate_limit(cls, v: float) -> float:
        if v < 0:
            raise ValueError("http_rate_limit_rps must be >= 0 (0 disables limiting)")
        return v

    @field_validator("http_max_retries", "relogin_retries", "search_ttl_seconds")
    @classmethod
    def _validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v

    @field_validator("max_pages")
    @classmethod
    def _validate_max_pages(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_pages must be >= 1")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """Dump configuration in the sectioned shape used by config.yaml."""
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "api_key": self.api_key,
            "definitions": {
                "dir": str(self.definitions_dir) if self.definitions_dir else None
            },
            "config_store": {"path": str(self.config_store_path)},
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "follow_redirects": self.http_follow_redirects,
                "user_agent": self.http_user_agent,
                "rate_limit_rps": self.http_rate_limit_rps,
                "max_retries": self.http_max_retries,
            },
            "indexer": {
                "relogin_retries": self.relogin_retries,
                "max_pages": self.max_pages,
            },
            "download": {"secret": self.download_secret},
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": {
                "dir": str(self.cache_dir),
                "search_ttl_seconds": self.search_ttl_seconds,
            },
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    load.py creates EnvOverrides() to read INDEXARR_* variables and merges
    the values that were set over YAML/defaults before validating AppConfig.

    Examples:
    - INDEXARR_DEFINITIONS_DIR
    - INDEXARR_HTTP_TIMEOUT_SECONDS
    - INDEXARR_MAX_PAGES
    - INDEXARR_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="INDEXARR_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None
    api_key: Optional[str] = None

    definitions_dir: Optional[Path] = None
    config_store_path: Optional[Path] = None

    http_timeout_seconds: Optional[float] = None
    http_follow_redirects: Optional[bool] = None
    http_user_agent: Optional[str] = None
    http_rate_limit_rps: Optional[float] = None
    http_max_retries: Optional[int] = None

    relogin_retries: Optional[int] = None
    max_pages: Optional[int] = None

    download_secret: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    cache_dir: Optional[Path] = None
    search_ttl_seconds: Optional[int] = None

    @field_validator("definitions_dir", "config_store_path", "cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """Return only values that were actually provided (non-None)."""
        return self.model_dump(exclude_none=True)
