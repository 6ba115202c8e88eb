import logging
from typing import Any, Callable, Dict, Optional

import redis
from tenacity import Retrying, stop_after_attempt, wait_exponential, retry_if_exception_type

from .base import CacheStore
from .memory_cache import MemoryCache
from .redis_cache import RedisCache

CONNECT_ATTEMPTS = 3


def connect_redis(store: RedisCache, attempts: int = CONNECT_ATTEMPTS, wait=None) -> None:
    """Ping the server, retrying with exponential backoff. Re-raises the last error."""
    retrying = Retrying(
        stop=stop_after_attempt(attempts),
        wait=wait if wait is not None else wait_exponential(multiplier=0.5, min=1, max=4),
        retry=retry_if_exception_type((redis.exceptions.RedisError, OSError)),
        before_sleep=lambda retry_state: logging.warning(
            f"Redis connection attempt {retry_state.attempt_number}/{attempts} failed: "
            f"{retry_state.outcome.exception()}"
        ),
        reraise=True,
    )
    retrying(store.ping)


def create_cache_store(
    redis_settings: Dict[str, Any],
    redis_factory: Optional[Callable[..., RedisCache]] = None,
    wait=None,
) -> CacheStore:
    """
    Pick the cache backend for this process.

    Redis is used when enabled and reachable at startup; otherwise the
    in-memory cache is returned and kept for the process lifetime.
    """
    ttl = redis_settings.get('ttl')

    if not redis_settings.get('enabled', True):
        logging.info("Redis disabled, using memory cache")
        return MemoryCache(default_ttl=ttl)

    redis_factory = redis_factory or RedisCache.from_url
    url = redis_settings.get('url', 'redis://localhost:6379')
    try:
        store = redis_factory(
            url,
            username=redis_settings.get('username', ''),
            password=redis_settings.get('password', ''),
            timeout=redis_settings.get('timeout', 3),
            default_ttl=ttl,
        )
        connect_redis(store, wait=wait)
    except (redis.exceptions.RedisError, OSError, ValueError) as e:
        logging.error(f"Could not connect to Redis at {url} after {CONNECT_ATTEMPTS} attempts: {str(e)}")
        logging.warning("Falling back to memory cache")
        return MemoryCache(default_ttl=ttl)

    logging.info(f"Connected to Redis at {url}")
    return store
