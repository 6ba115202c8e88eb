import json
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from .base import CacheStore, glob_to_regex


class MemoryCache(CacheStore):
    """
    In-process cache used when Redis is disabled or unreachable.

    Values are stored JSON-encoded so both backends hand back equal copies
    rather than shared objects. Expired entries are removed lazily when
    they are read. Scans page through the sorted key list, the cursor being
    an offset into it, so a scan with an unchanged key set visits every key
    exactly once.
    """

    name = 'memory'

    def __init__(self, default_ttl: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        self.default_ttl = default_ttl
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[str, Optional[float]]] = {}

    def _expired(self, expires_at: Optional[float]) -> bool:
        return expires_at is not None and expires_at <= self._clock()

    def _live_entry(self, key: str) -> Optional[str]:
        # Caller holds the lock
        entry = self._entries.get(key)
        if entry is None:
            return None
        serialized, expires_at = entry
        if self._expired(expires_at):
            del self._entries[key]
            return None
        return serialized

    def _live_keys(self) -> List[str]:
        # Caller holds the lock
        expired = [key for key, (_, expires_at) in self._entries.items() if self._expired(expires_at)]
        for key in expired:
            del self._entries[key]
        return sorted(self._entries)

    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError) as e:
            logging.error(f"Error setting key {key} in memory cache: {str(e)}")
            return False

        ttl = ttl if ttl is not None else self.default_ttl
        expires_at = self._clock() + ttl if ttl else None
        with self._lock:
            self._entries[key] = (serialized, expires_at)
        return True

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            serialized = self._live_entry(key)
        if serialized is None:
            return None
        try:
            return json.loads(serialized)
        except ValueError as e:
            logging.error(f"Error getting key {key} from memory cache: {str(e)}")
            return None

    def delete(self, key: str) -> bool:
        with self._lock:
            self._entries.pop(key, None)
        return True

    def exists(self, key: str) -> bool:
        with self._lock:
            return self._live_entry(key) is not None

    def keys(self, pattern: str) -> List[str]:
        regex = glob_to_regex(pattern)
        with self._lock:
            return [key for key in self._live_keys() if regex.match(key)]

    def scan_keys(self, pattern: str, cursor: int = 0, count: int = 10) -> Tuple[int, List[str]]:
        matching = self.keys(pattern)
        start = max(int(cursor), 0)
        end = start + max(int(count), 1)
        page = matching[start:end]
        next_cursor = end if end < len(matching) else 0
        return next_cursor, page

    def close(self) -> None:
        with self._lock:
            self._entries.clear()
