"""缓存客户端封装。"""

from src.core.infrastructure.cache.backends import (
    CacheBackendError,
    RedisCacheBackend,
    RemoteCacheBackend,
    UpstashRestBackend,
)
from src.core.infrastructure.cache.client import CacheClient
from src.core.infrastructure.cache.entry import CacheEntry
from src.core.infrastructure.cache.keys import CacheKeys

__all__ = [
    "CacheBackendError",
    "CacheClient",
    "CacheEntry",
    "CacheKeys",
    "RedisCacheBackend",
    "RemoteCacheBackend",
    "UpstashRestBackend",
]
