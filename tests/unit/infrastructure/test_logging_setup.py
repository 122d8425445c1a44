"""Tests for logging configuration and credential masking."""

from __future__ import annotations

import logging

import pytest
import structlog

from nuvio.infrastructure.config.schema import AppConfig
from nuvio.infrastructure.logging import setup
from nuvio.infrastructure.logging.setup import (
    MASK,
    build_logging_config,
    configure_logging,
    mask_sensitive,
)


class TestMaskSensitive:
    def test_masks_credentials(self) -> None:
        event = {
            "event": "x",
            "cookie": "ui=secret",
            "tmdb_api_key": "k",
            "provider": "4khdhub",
        }
        out = mask_sensitive(None, None, event)
        assert out["cookie"] == MASK
        assert out["tmdb_api_key"] == MASK
        assert out["provider"] == "4khdhub"

    def test_empty_values_untouched(self) -> None:
        out = mask_sensitive(None, None, {"cookies": [], "scraper_api_key": None})
        assert out == {"cookies": [], "scraper_api_key": None}


class TestBuildLoggingConfig:
    def test_level_applied_everywhere(self) -> None:
        cfg = build_logging_config(AppConfig(log_level="WARNING"))
        assert cfg["root"]["level"] == "WARNING"
        assert all(v["level"] == "WARNING" for v in cfg["loggers"].values())
        assert cfg["handlers"]["default"]["formatter"] == "structlog"

    def test_does_not_mutate_base(self) -> None:
        build_logging_config(AppConfig(log_level="DEBUG"))
        assert setup.BASE_LOGGING_CONFIG["loggers"]["uvicorn"]["level"] == "INFO"


class TestConfigureLogging:
    @pytest.fixture(autouse=True)
    def _restore_root(self):
        root = logging.getLogger()
        handlers, level = list(root.handlers), root.level
        yield
        setup._stop_async_listener()
        structlog.reset_defaults()
        root.handlers[:] = handlers
        root.setLevel(level)

    def test_routes_root_through_queue(self) -> None:
        cfg = configure_logging(AppConfig(log_format="json"))
        root = logging.getLogger()
        assert cfg["root"]["level"] == "INFO"
        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0], setup._StructlogPreservingQueueHandler)
        assert setup._QUEUE_LISTENER is not None
