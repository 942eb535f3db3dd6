"""核心服务模块"""

from .cache import (
    CacheBackend,
    CacheLookup,
    CacheStatus,
    CacheStore,
    MemoryCacheBackend,
    RedisCacheBackend,
    SqlCacheBackend,
    create_cache_store,
)
from .config import AppSettings, CacheSettings, SourceSettings, get_config
from .errors import (
    CacheUnavailableError,
    DataVizError,
    DiseaseFetchError,
    FeedParseError,
    SourceUnreachableError,
)
from .logging import get_logger, setup_logging

__all__ = [
    "AppSettings",
    "CacheSettings",
    "SourceSettings",
    "get_config",
    "setup_logging",
    "get_logger",
    "CacheBackend",
    "CacheLookup",
    "CacheStatus",
    "CacheStore",
    "MemoryCacheBackend",
    "RedisCacheBackend",
    "SqlCacheBackend",
    "create_cache_store",
    "DataVizError",
    "SourceUnreachableError",
    "FeedParseError",
    "CacheUnavailableError",
    "DiseaseFetchError",
]
