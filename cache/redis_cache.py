import json
import logging
from typing import Any, List, Optional, Tuple

import redis

from .base import CacheStore


class RedisCache(CacheStore):
    """Cache backed by a Redis server. Values are stored as JSON strings."""

    name = 'redis'

    def __init__(self, client: redis.Redis, default_ttl: Optional[int] = None):
        self.client = client
        self.default_ttl = default_ttl

    @classmethod
    def from_url(cls, url: str, username: str = '', password: str = '', timeout: float = 3,
                 default_ttl: Optional[int] = None) -> 'RedisCache':
        client = redis.Redis.from_url(
            url,
            username=username or None,
            password=password or None,
            decode_responses=True,
            socket_timeout=timeout,
            socket_connect_timeout=timeout,
        )
        return cls(client, default_ttl=default_ttl)

    def ping(self) -> bool:
        """Round trip to the server. Unlike the other methods this raises on failure."""
        return self.client.ping()

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        ttl = ttl if ttl is not None else self.default_ttl
        try:
            serialized = json.dumps(value)
            if ttl:
                self.client.set(key, serialized, ex=int(ttl))
            else:
                self.client.set(key, serialized)
            logging.debug(f"Cache SET: {key} (TTL: {ttl}s)")
            return True
        except (redis.exceptions.RedisError, TypeError, ValueError) as e:
            logging.error(f"Error setting key {key} in Redis: {str(e)}")
            return False

    def get(self, key: str) -> Optional[Any]:
        try:
            value = self.client.get(key)
            if value is None:
                return None
            return json.loads(value)
        except (redis.exceptions.RedisError, ValueError) as e:
            logging.error(f"Error getting key {key} from Redis: {str(e)}")
            return None

    def delete(self, key: str) -> bool:
        try:
            self.client.delete(key)
            return True
        except redis.exceptions.RedisError as e:
            logging.error(f"Error deleting key {key} from Redis: {str(e)}")
            return False

    def exists(self, key: str) -> bool:
        try:
            return self.client.exists(key) > 0
        except redis.exceptions.RedisError as e:
            logging.error(f"Error checking key {key} in Redis: {str(e)}")
            return False

    def keys(self, pattern: str) -> List[str]:
        try:
            return list(self.client.keys(pattern))
        except redis.exceptions.RedisError as e:
            logging.error(f"Error listing keys for pattern {pattern} in Redis: {str(e)}")
            return []

    def scan_keys(self, pattern: str, cursor: int = 0, count: int = 10) -> Tuple[int, List[str]]:
        try:
            next_cursor, keys = self.client.scan(cursor=int(cursor), match=pattern, count=int(count))
            return int(next_cursor), list(keys)
        except redis.exceptions.RedisError as e:
            logging.error(f"Error scanning keys for pattern {pattern} in Redis: {str(e)}")
            return 0, []

    def close(self) -> None:
        try:
            self.client.close()
            logging.info("Redis connection closed")
        except redis.exceptions.RedisError as e:
            logging.error(f"Error closing Redis connection: {str(e)}")
