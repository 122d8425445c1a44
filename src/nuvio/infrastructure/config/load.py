from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from nuvio.domain.exceptions import ConfigurationError

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_SECTION_KEYS: set[str] = {"http", "logging", "cache", "providers", "stremio"}

# Flat key (env/CLI) -> path inside the sectioned config.
_FLAT_MAP: dict[str, tuple[str, ...]] = {
    "http_timeout_seconds": ("http", "timeout_seconds"),
    "http_follow_redirects": ("http", "follow_redirects"),
    "http_user_agent": ("http", "user_agent"),
    "http_max_retries": ("http", "max_retries"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "cache_dir": ("cache", "dir"),
    "use_redis": ("cache", "use_redis"),
    "redis_url": ("cache", "redis_url"),
    "stream_cache_enabled": ("cache", "stream_cache_enabled"),
    "stream_cache_dir": ("cache", "stream_cache_dir"),
    "stream_ttl_seconds": ("cache", "stream_ttl_seconds"),
    "enable_moviesdrive": ("providers", "moviesdrive", "enabled"),
    "moviesdrive_url": ("providers", "moviesdrive", "base_url"),
    "enable_4khdhub": ("providers", "4khdhub", "enabled"),
    "fourkhdhub_url": ("providers", "4khdhub", "base_url"),
    "provider_timeout_seconds": ("stremio", "provider_timeout_seconds"),
    "settle_grace_ms": ("stremio", "settle_grace_ms"),
}

_TOP_LEVEL_KEYS: tuple[str, ...] = (
    "app_name",
    "environment",
    "tmdb_api_key",
    "shutdown_timeout_seconds",
)


def _deep_merge(base: dict[str, Any], override: Mapping[str, Any]) -> dict[str, Any]:
    """
    Recursively merge `override` into `base` and return `base`.

    Rules:
    - dict + dict => deep merge
    - otherwise => override wins
    """
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, Mapping):
            _deep_merge(base[key], value)
        else:
            base[key] = value
    return base


def _set_path(target: dict[str, Any], path: tuple[str, ...], value: Any) -> None:
    node = target
    for part in path[:-1]:
        node = node.setdefault(part, {})
    node[path[-1]] = value


def _normalize_layer(data: Mapping[str, Any]) -> dict[str, Any]:
    """
    Normalize a layer (defaults/YAML/ENV/CLI) into the canonical *sectioned* shape.

    Sectioned blocks pass through (deep-copied); flat keys are moved to
    their section according to ``_FLAT_MAP``; unknown keys are dropped.
    """
    out: dict[str, Any] = {}

    for section in _SECTION_KEYS:
        if section in data and isinstance(data[section], Mapping):
            out[section] = deepcopy(dict(data[section]))

    for key in _TOP_LEVEL_KEYS:
        if key in data:
            out[key] = data[key]

    for flat_key, path in _FLAT_MAP.items():
        if flat_key in data:
            _set_path(out, path, data[flat_key])

    return out


def _read_yaml_config(config_path: Path) -> dict[str, Any]:
    raw = config_path.read_text(encoding="utf-8")
    parsed = yaml.safe_load(raw)
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ConfigurationError(
            f"Config YAML must be a mapping, got: {type(parsed)!r}"
        )
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

    This function MUST NOT create files or directories (no filesystem side-effects).
    """
    cli_overrides = cli_overrides or {}

    # Load .env first so it participates as "env vars" layer.
    if dotenv_path is not None:
        if not dotenv_path.exists():
            raise FileNotFoundError(dotenv_path)
        load_dotenv(dotenv_path, override=False)

    base = _normalize_layer(DEFAULT_CONFIG)

    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(config_path)
        _deep_merge(base, _normalize_layer(_read_yaml_config(config_path)))

    _deep_merge(base, _normalize_layer(EnvOverrides().to_update_dict()))
    _deep_merge(base, _normalize_layer(cli_overrides))

    # Validate final merged config (single source of truth).
    return AppConfig.model_validate(base)
