import logging
from typing import Any, Dict, Mapping

from .base import DebridProvider, DebridProviderError


class LinkResolver:
    """Routes a single link to the named debrid provider. Performs no retries."""

    def __init__(self, providers: Mapping[str, DebridProvider], default_provider: str = 'realdebrid'):
        if default_provider not in providers:
            raise ValueError(f"Default debrid provider '{default_provider}' is not registered")
        self.providers = dict(providers)
        self.default_provider = default_provider

    def get_provider(self, debrid_service: str) -> DebridProvider:
        name = (debrid_service or '').lower()
        provider = self.providers.get(name)
        if provider is None:
            logging.error(f"Invalid debrid service specified: {debrid_service!r}")
            logging.warning(f"Falling back to {self.default_provider}")
            provider = self.providers[self.default_provider]
        return provider

    def resolve(self, link: str, debrid_service: str) -> Dict[str, Any]:
        """
        Unrestrict one link.

        Returns:
            dict with 'download', 'filename' and 'filesize'

        Raises:
            DebridProviderError: on any backend failure (network, auth, unsupported host, bad response)
        """
        provider = self.get_provider(debrid_service)
        try:
            result = provider.unrestrict_link(link)
        except DebridProviderError:
            raise
        except Exception as e:
            logging.error(f"Unexpected error from {provider.name} while unrestricting {link}: {str(e)}", exc_info=True)
            raise DebridProviderError(f"Unexpected error: {str(e)}") from e

        return {
            'download': result['download'],
            'filename': result.get('filename'),
            'filesize': result.get('filesize'),
        }
