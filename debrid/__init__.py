from typing import Dict, Type
from .base import (
    DebridProvider,
    DebridProviderError,
    ProviderUnavailableError,
    RateLimitError,
    UnsupportedHostError
)
from .real_debrid import RealDebridProvider
from .resolver import LinkResolver
from .batch_processor import BatchProcessor, NoLinksToProcessError

DEFAULT_PROVIDER = 'realdebrid'

PROVIDERS: Dict[str, Type[DebridProvider]] = {
    'realdebrid': RealDebridProvider,
}

def create_providers(api_key: str, timeout: float = 30, api=None) -> Dict[str, DebridProvider]:
    """
    Build one instance of every known provider, keyed by name.
    New backends only need an entry in PROVIDERS.
    """
    return {
        name: provider_class(api_key=api_key, timeout=timeout, api=api)
        for name, provider_class in PROVIDERS.items()
    }

__all__ = [
    'DEFAULT_PROVIDER',
    'PROVIDERS',
    'create_providers',
    'DebridProvider',
    'DebridProviderError',
    'ProviderUnavailableError',
    'RateLimitError',
    'UnsupportedHostError',
    'RealDebridProvider',
    'LinkResolver',
    'BatchProcessor',
    'NoLinksToProcessError'
]
