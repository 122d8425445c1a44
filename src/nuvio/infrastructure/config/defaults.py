"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "nuvio",
    "environment": "dev",
    "http": {
        "timeout_seconds": 30.0,
        "follow_redirects": True,
        "user_agent": "Nuvio/0.1.0",
        "max_retries": 2,
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "dir": "./.cache/nuvio",
        "metadata_ttl_seconds": 86400,
        "use_redis": False,
        "redis_url": "redis://localhost:6379/0",
        "stream_cache_enabled": True,
        "stream_cache_dir": "./.streams_cache",
        "stream_ttl_seconds": 1800,
    },
    "providers": {
        "moviesdrive": {"enabled": True, "base_url": None},
        "4khdhub": {"enabled": True, "base_url": None},
    },
    "stremio": {
        "provider_timeout_seconds": 45.0,
        "settle_grace_ms": 100,
    },
}
