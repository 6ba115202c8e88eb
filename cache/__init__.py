from .base import CacheStore, glob_to_regex
from .memory_cache import MemoryCache
from .redis_cache import RedisCache
from .factory import create_cache_store, connect_redis

__all__ = [
    'CacheStore',
    'glob_to_regex',
    'MemoryCache',
    'RedisCache',
    'create_cache_store',
    'connect_redis'
]
