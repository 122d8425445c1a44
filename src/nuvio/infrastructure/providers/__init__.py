from .http_provider import HttpxStreamProvider
from .registry import build_providers

__all__ = ["HttpxStreamProvider", "build_providers"]
