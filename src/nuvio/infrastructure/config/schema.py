"""Pydantic configuration models with validation."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from nuvio.domain.entities.stremio import Provider, ProviderSettings

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


class CacheConfig(BaseModel):
    """Cache configuration: stream cache tiers and the TMDB metadata cache.

    Unknown keys are rejected so a misspelled option fails loudly.
    """

    model_config = ConfigDict(extra="forbid")

    directory: Path = Field(
        default=Path("./.cache/nuvio"),
        alias="dir",
        description="Diskcache directory for TMDB lookups.",
    )
    metadata_ttl_seconds: int = Field(
        default=86400,
        description="TTL for cached TMDB lookups (seconds).",
    )
    max_concurrent: int = Field(
        default=10,
        description="Max parallel local cache ops (semaphore limit).",
    )

    use_redis: bool = Field(
        default=False,
        description="Use Redis as the first stream cache tier.",
    )
    redis_url: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL (only when use_redis=true).",
    )

    stream_cache_enabled: bool = Field(
        default=True,
        description="Cache provider results between requests.",
    )
    stream_cache_dir: Path = Field(
        default=Path("./.streams_cache"),
        description="Directory for the JSON file tier of the stream cache.",
    )
    stream_ttl_seconds: int = Field(
        default=1800,
        description="Lifetime of a stream cache entry (seconds).",
    )

    @field_validator("directory", "stream_cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Path:
        return _normalize_path(v)

    @field_validator("stream_ttl_seconds", "metadata_ttl_seconds")
    @classmethod
    def _validate_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("cache TTLs must be > 0")
        return v


class ProviderConfig(BaseModel):
    """One upstream stream provider."""

    enabled: bool = Field(default=True, description="Invoke this provider.")
    base_url: Optional[str] = Field(
        default=None,
        description="Scraper service base URL; unset disables the provider.",
    )
    timeout_seconds: Optional[float] = Field(
        default=None,
        description="Per-fetch timeout. Unset = bounded only by the deadline.",
    )

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip().rstrip("/")
        return v or None

    @property
    def is_active(self) -> bool:
        return self.enabled and self.base_url is not None


def _default_providers() -> dict[str, ProviderConfig]:
    return {p.value: ProviderConfig() for p in Provider}


class StremioConfig(BaseModel):
    """Stremio addon identity and stream aggregation timing."""

    addon_id: str = Field(default="com.nuvio.streams")
    addon_name: str = Field(default="Nuvio Streams")
    addon_version: str = Field(default="0.1.0")
    addon_description: str = Field(
        default="Aggregated movie and series streams from MoviesDrive and 4KHDHub.",
    )

    provider_timeout_seconds: float = Field(
        default=45.0,
        description="Shared deadline for all provider fetches of one request.",
    )
    settle_grace_ms: int = Field(
        default=100,
        description="Extra wait after the deadline before results are collected.",
    )

    @field_validator("provider_timeout_seconds")
    @classmethod
    def _validate_deadline(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("provider_timeout_seconds must be > 0")
        return v

    @field_validator("settle_grace_ms")
    @classmethod
    def _validate_grace(cls, v: int) -> int:
        if v < 0:
            raise ValueError("settle_grace_ms must be >= 0")
        return v


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (http/logging/cache/providers/stremio).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow
      strict precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="nuvio", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP client (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=30.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Timeout for outgoing HTTP requests (TMDB, providers).",
    )
    http_follow_redirects: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "http_follow_redirects",
            AliasPath("http", "follow_redirects"),
        ),
    )
    http_user_agent: str = Field(
        default="Nuvio/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
    )
    http_max_retries: int = Field(
        default=2,
        validation_alias=AliasChoices(
            "http_max_retries",
            AliasPath("http", "max_retries"),
        ),
        description="Retries for 429/5xx responses and connect errors.",
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
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    shutdown_timeout_seconds: float = Field(
        default=10.0,
        description="Max wait for in-flight requests and background fetches.",
    )

    # TMDB API key (required for IMDb id resolution)
    tmdb_api_key: Optional[str] = Field(
        default=None,
        description="TMDB API key for id conversion and title lookup.",
    )

    cache: CacheConfig = Field(default_factory=CacheConfig)
    providers: dict[str, ProviderConfig] = Field(default_factory=_default_providers)
    stremio: StremioConfig = Field(default_factory=StremioConfig)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @field_validator("providers")
    @classmethod
    def _validate_providers(
        cls, v: dict[str, ProviderConfig]
    ) -> dict[str, ProviderConfig]:
        known = {p.value for p in Provider}
        unknown = sorted(set(v) - known)
        if unknown:
            raise ValueError(f"Unknown providers: {unknown}. Known: {sorted(known)}")
        merged = _default_providers()
        merged.update(v)
        return merged

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def provider_config(self, provider: Provider) -> ProviderConfig:
        return self.providers[provider.value]

    def provider_settings(self) -> ProviderSettings:
        """Freeze the provider policy for the stream use case."""
        timeouts = {
            p: cfg.timeout_seconds
            for p in Provider
            if (cfg := self.provider_config(p)).timeout_seconds is not None
        }
        return ProviderSettings(
            enabled=frozenset(p for p in Provider if self.provider_config(p).is_active),
            deadline_seconds=self.stremio.provider_timeout_seconds,
            grace_seconds=self.stremio.settle_grace_ms / 1000,
            fetch_timeouts=timeouts,
        )

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "follow_redirects": self.http_follow_redirects,
                "user_agent": self.http_user_agent,
                "max_retries": self.http_max_retries,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": self.cache.model_dump(mode="json", by_alias=True),
            "providers": {
                name: cfg.model_dump(mode="json")
                for name, cfg in self.providers.items()
            },
            "stremio": self.stremio.model_dump(mode="json"),
            "shutdown_timeout_seconds": self.shutdown_timeout_seconds,
            "tmdb_api_key": "***" if self.tmdb_api_key else None,
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read NUVIO_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - NUVIO_LOG_LEVEL
    - NUVIO_USE_REDIS, NUVIO_REDIS_URL (or REDIS_URL)
    - NUVIO_ENABLE_MOVIESDRIVE, NUVIO_MOVIESDRIVE_URL
    - NUVIO_PROVIDER_TIMEOUT_SECONDS
    - NUVIO_TMDB_API_KEY (or TMDB_API_KEY)
    """

    model_config = SettingsConfigDict(
        env_prefix="NUVIO_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_user_agent: Optional[str] = None
    http_max_retries: Optional[int] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    shutdown_timeout_seconds: Optional[float] = None

    cache_dir: Optional[Path] = None
    use_redis: Optional[bool] = None
    redis_url: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("NUVIO_REDIS_URL", "REDIS_URL"),
    )
    stream_cache_enabled: Optional[bool] = None
    stream_cache_dir: Optional[Path] = None
    stream_ttl_seconds: Optional[int] = None

    enable_moviesdrive: Optional[bool] = None
    moviesdrive_url: Optional[str] = None
    enable_4khdhub: Optional[bool] = None
    fourkhdhub_url: Optional[str] = None

    provider_timeout_seconds: Optional[float] = None
    settle_grace_ms: Optional[int] = None

    tmdb_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("NUVIO_TMDB_API_KEY", "TMDB_API_KEY"),
    )

    @field_validator("cache_dir", "stream_cache_dir", mode="before")
    @classmethod
    def _validate_paths(cls, v: Any) -> Any:
        if v is None:
            return None
        return _normalize_path(v)

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
