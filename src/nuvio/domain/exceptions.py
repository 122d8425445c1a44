"""Addon-wide exceptions."""

from __future__ import annotations


class NuvioError(Exception):
    """Base class for all addon errors."""


class ProviderError(NuvioError):
    """Raised when a provider fetch fails (network, HTTP status, upstream error)."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class ProviderResponseError(ProviderError):
    """Raised when a provider answers with a payload that cannot be decoded."""


class ConfigurationError(NuvioError, ValueError):
    """Raised when the addon configuration cannot be loaded."""
