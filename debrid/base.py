from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple, Any
import logging

class DebridProviderError(Exception):
    """Base exception class for all debrid provider errors"""
    pass

class ProviderUnavailableError(DebridProviderError):
    """Exception raised when the debrid service is unavailable or times out"""
    pass

class RateLimitError(DebridProviderError):
    """Exception raised when the debrid service rate limit is exceeded"""
    pass

class UnsupportedHostError(DebridProviderError):
    """Exception raised when the debrid service does not support the link's hoster"""
    pass

class DebridProvider(ABC):
    """Abstract base class that defines the interface for debrid providers"""

    name = ''

    def __init__(self, api_key: str = None, timeout: float = 30):
        self._api_key = api_key
        self.timeout = timeout
        logging.debug(f"[{self.__class__.__name__}] initialized (timeout={timeout}s)")

    @property
    def api_key(self) -> str:
        """Get the API key, loading it lazily if not set"""
        if not self._api_key:
            self._api_key = self._load_api_key()
        return self._api_key

    @abstractmethod
    def _load_api_key(self) -> str:
        """Load API key when none was passed in"""
        pass

    @abstractmethod
    def unrestrict_link(self, link: str) -> Dict[str, Any]:
        """
        Convert a hoster link into a direct download link.

        Returns:
            dict with 'download', 'filename' and 'filesize'

        Raises:
            DebridProviderError (or a subclass) when the link cannot be unrestricted
        """
        pass

    @abstractmethod
    def check_connectivity(self) -> Tuple[bool, Optional[Dict[str, Any]]]:
        """Check provider connectivity and return a tuple of (ok, error_detail)."""
        pass
