"""Tests for AppConfig validation and derived provider settings."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from nuvio.domain.entities.stremio import Provider
from nuvio.infrastructure.config import AppConfig


class TestDefaults:
    def test_defaults(self) -> None:
        config = AppConfig()
        assert config.stremio.provider_timeout_seconds == 45.0
        assert config.stremio.settle_grace_ms == 100
        assert config.cache.stream_ttl_seconds == 1800
        assert config.cache.stream_cache_enabled is True
        assert config.cache.use_redis is False
        assert config.log_format == "console"

    def test_prod_defaults_to_json_logs(self) -> None:
        assert AppConfig(environment="prod").log_format == "json"

    def test_every_provider_has_a_section(self) -> None:
        config = AppConfig()
        assert set(config.providers) == {"moviesdrive", "4khdhub"}


class TestProviders:
    def test_unknown_provider_rejected(self) -> None:
        with pytest.raises(ValidationError, match="Unknown providers"):
            AppConfig(providers={"showbox": {"base_url": "http://x"}})

    def test_partial_providers_merged_with_defaults(self) -> None:
        config = AppConfig(providers={"4khdhub": {"base_url": "http://hub/"}})
        assert config.provider_config(Provider.FOURKHDHUB).base_url == "http://hub"
        assert config.provider_config(Provider.MOVIESDRIVE).base_url is None

    def test_blank_base_url_is_unset(self) -> None:
        config = AppConfig(providers={"moviesdrive": {"base_url": "  "}})
        assert config.provider_config(Provider.MOVIESDRIVE).is_active is False


class TestProviderSettings:
    def test_only_active_providers_enabled(self) -> None:
        config = AppConfig(
            providers={
                "moviesdrive": {"base_url": "http://md", "timeout_seconds": 20},
                "4khdhub": {"base_url": "http://hub", "enabled": False},
            },
            stremio={"provider_timeout_seconds": 30, "settle_grace_ms": 250},
        )
        settings = config.provider_settings()
        assert settings.enabled == frozenset({Provider.MOVIESDRIVE})
        assert settings.deadline_seconds == 30
        assert settings.grace_seconds == 0.25
        assert settings.fetch_timeouts == {Provider.MOVIESDRIVE: 20}

    def test_unconfigured_providers_disabled(self) -> None:
        assert AppConfig().provider_settings().enabled == frozenset()


class TestValidation:
    @pytest.mark.parametrize("value", [0, -1])
    def test_deadline_must_be_positive(self, value: float) -> None:
        with pytest.raises(ValidationError):
            AppConfig(stremio={"provider_timeout_seconds": value})

    def test_grace_must_not_be_negative(self) -> None:
        with pytest.raises(ValidationError):
            AppConfig(stremio={"settle_grace_ms": -1})

    def test_stream_ttl_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            AppConfig(cache={"stream_ttl_seconds": 0})

    def test_sectioned_http_alias(self) -> None:
        config = AppConfig.model_validate({"http": {"timeout_seconds": 5}})
        assert config.http_timeout_seconds == 5


class TestSectionedDict:
    def test_api_key_masked(self) -> None:
        data = AppConfig(tmdb_api_key="secret").to_sectioned_dict()
        assert data["tmdb_api_key"] == "***"
        assert data["providers"]["4khdhub"]["enabled"] is True
