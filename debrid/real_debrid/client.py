import logging
from typing import Dict, Optional, Tuple, Any

from ..base import DebridProvider, ProviderUnavailableError
from .api import make_request
from .exceptions import RealDebridAuthError, RealDebridAPIError
from api_tracker import APITracker


class RealDebridProvider(DebridProvider):
    """Real-Debrid implementation of the DebridProvider interface"""

    name = 'realdebrid'

    def __init__(self, api_key: str = None, timeout: float = 30, api: Optional[APITracker] = None):
        super().__init__(api_key=api_key, timeout=timeout)
        self.api = api or APITracker()

    def _load_api_key(self) -> str:
        raise RealDebridAuthError("No API key found in settings. Set CND_REALDEBRID_APITOKEN.")

    def _request(self, method: str, endpoint: str, data: Optional[Dict] = None) -> Any:
        return make_request(method, endpoint, self.api_key, data=data, api=self.api, timeout=self.timeout)

    def check_connectivity(self) -> Tuple[bool, Optional[Dict[str, Any]]]:
        """Check provider connectivity and return a tuple of (ok, error_detail)."""
        try:
            user = self._request('GET', '/user')
            logging.info(f"Real-Debrid account '{user.get('username', 'unknown')}' ({user.get('type', 'unknown')}) reachable")
            return True, None
        except RealDebridAuthError as e:
            return False, {
                "service": "Debrid Provider API",
                "type": "AUTH_ERROR",
                "message": str(e)
            }
        except (ProviderUnavailableError, RealDebridAPIError) as e:
            return False, {
                "service": "Debrid Provider API",
                "type": "CONNECTION_ERROR",
                "message": str(e)
            }

    def unrestrict_link(self, link: str) -> Dict[str, Any]:
        logging.debug(f"Attempting to unrestrict link {link}")
        unrestrict = self._request('POST', '/unrestrict/link', data={'link': link})

        if not isinstance(unrestrict, dict) or not unrestrict.get('download'):
            raise RealDebridAPIError("No download link in response")

        logging.debug(f"Unrestricted {link} -> {unrestrict['download']} ({unrestrict.get('filename')}, {unrestrict.get('filesize')} bytes)")
        return {
            'download': unrestrict['download'],
            'filename': unrestrict.get('filename'),
            'filesize': unrestrict.get('filesize'),
        }
