"""Common interface of the package cache backends.

The cache is best-effort: every backend catches its own failures, logs
them and answers with the "absent" value (None, False, [] or cursor 0).
Callers never need a try/except around a cache call.
"""

from abc import ABC, abstractmethod
import logging
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple


def glob_to_regex(pattern: str):
    """Translate a Redis-style glob (`*` any run, `?` one character) to an anchored regex."""
    parts = []
    for char in pattern:
        if char == '*':
            parts.append('.*')
        elif char == '?':
            parts.append('.')
        else:
            parts.append(re.escape(char))
    return re.compile('^' + ''.join(parts) + '$', re.DOTALL)


class CacheStore(ABC):
    """Key/value store with optional per-key TTL (seconds) and cursor-based key scans."""

    name = ''

    @abstractmethod
    def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Store a JSON-serialisable value. Returns False if it could not be stored."""
        pass

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Return the stored value, or None when missing or expired."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key. Deleting a missing key is not an error."""
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        pass

    @abstractmethod
    def keys(self, pattern: str) -> List[str]:
        pass

    @abstractmethod
    def scan_keys(self, pattern: str, cursor: int = 0, count: int = 10) -> Tuple[int, List[str]]:
        """
        One page of keys matching `pattern`.

        Start with cursor 0 and pass back the returned cursor; a returned
        cursor of 0 means the scan is complete. `count` is a hint, a page
        may hold fewer keys.
        """
        pass

    def get_multiple(self, keys: Iterable[str]) -> Dict[str, Optional[Any]]:
        values = {}
        for key in keys:
            try:
                values[key] = self.get(key)
            except Exception as e:
                logging.error(f"Failed to get '{key}' from {self.name} cache: {str(e)}")
                values[key] = None
        return values

    def set_multiple(self, entries: Dict[str, Any], ttl: Optional[int] = None) -> Dict[str, bool]:
        stored = {}
        for key, value in entries.items():
            try:
                stored[key] = self.set(key, value, ttl)
            except Exception as e:
                logging.error(f"Failed to set '{key}' in {self.name} cache: {str(e)}")
                stored[key] = False
            if not stored[key]:
                logging.warning(f"Skipped '{key}' while storing multiple values in {self.name} cache")
        return stored

    def close(self) -> None:
        """Release backend resources."""
        pass
