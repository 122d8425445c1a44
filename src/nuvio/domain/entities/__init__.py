from .stremio import (
    PROVIDER_ORDER,
    CacheEntry,
    CacheStatus,
    ContentDetails,
    Provider,
    ProviderSettings,
    RawStream,
    RequestContext,
    ResolvedContent,
    StreamQuality,
    StreamRequestOptions,
    StremioStream,
    StremioStreamRequest,
)

__all__ = [
    "PROVIDER_ORDER",
    "CacheEntry",
    "CacheStatus",
    "ContentDetails",
    "Provider",
    "ProviderSettings",
    "RawStream",
    "RequestContext",
    "ResolvedContent",
    "StreamQuality",
    "StreamRequestOptions",
    "StremioStream",
    "StremioStreamRequest",
]
