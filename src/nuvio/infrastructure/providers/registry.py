"""Build provider adapters from configuration."""

from __future__ import annotations

import httpx
import structlog

from nuvio.domain.entities.stremio import Provider
from nuvio.domain.ports.stream_provider import StreamProviderPort
from nuvio.infrastructure.config.schema import AppConfig
from nuvio.infrastructure.providers.http_provider import HttpxStreamProvider

log = structlog.get_logger(__name__)


def build_providers(
    config: AppConfig, http_client: httpx.AsyncClient
) -> dict[Provider, StreamProviderPort]:
    """One adapter per enabled provider that has a base URL."""
    providers: dict[Provider, StreamProviderPort] = {}
    for provider in Provider:
        cfg = config.provider_config(provider)
        if not cfg.enabled:
            log.info("provider_disabled", provider=provider.value)
            continue
        if cfg.base_url is None:
            log.warning("provider_not_configured", provider=provider.value)
            continue
        providers[provider] = HttpxStreamProvider(
            provider,
            base_url=cfg.base_url,
            http_client=http_client,
            timeout_seconds=cfg.timeout_seconds,
        )
        log.info("provider_enabled", provider=provider.value, base_url=cfg.base_url)
    return providers
