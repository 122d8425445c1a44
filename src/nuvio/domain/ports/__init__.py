from .cache import CachePort
from .metrics import MetricsRecorderPort
from .stream_provider import StreamProviderPort
from .tmdb import TmdbClientPort

__all__ = [
    "CachePort",
    "MetricsRecorderPort",
    "StreamProviderPort",
    "TmdbClientPort",
]
