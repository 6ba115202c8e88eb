"""Real-Debrid API client implementation"""

import logging
import time
import threading
from typing import Optional, Dict, Any
from ..base import ProviderUnavailableError, RateLimitError, UnsupportedHostError
from .exceptions import RealDebridAPIError, RealDebridAuthError
from api_tracker import APITracker

API_BASE_URL = "https://api.real-debrid.com/rest/1.0"

# error_code 16: hoster_unsupported
UNSUPPORTED_HOST_ERROR_CODES = {16}

# Global rate limiter for Real-Debrid API calls
_api_rate_limiter = {
    'last_request_time': 0,
    'min_interval': 0.5,  # Minimum 500ms between API calls
    'lock': threading.Lock()
}

def _wait_for_rate_limit():
    """Wait if necessary to respect rate limits"""
    with _api_rate_limiter['lock']:
        current_time = time.time()
        time_since_last = current_time - _api_rate_limiter['last_request_time']
        min_interval = _api_rate_limiter['min_interval']

        if time_since_last < min_interval:
            sleep_time = min_interval - time_since_last
            time.sleep(sleep_time)

        _api_rate_limiter['last_request_time'] = time.time()

def _decrease_rate_limit_on_success():
    """Gradually decrease rate limiting interval on successful requests"""
    with _api_rate_limiter['lock']:
        if _api_rate_limiter['min_interval'] > 0.5:  # Don't go below 500ms
            _api_rate_limiter['min_interval'] = max(0.5, _api_rate_limiter['min_interval'] * 0.95)

def _increase_rate_limit():
    with _api_rate_limiter['lock']:
        _api_rate_limiter['min_interval'] = min(5.0, _api_rate_limiter['min_interval'] * 2)
        logging.warning(f"Increased API rate limit interval to {_api_rate_limiter['min_interval']}s due to 429 error")

def _error_details(response) -> Dict[str, Any]:
    try:
        data = response.json()
        if isinstance(data, dict):
            return data
    except ValueError:
        pass
    return {}

def make_request(
    method: str,
    endpoint: str,
    api_key: str,
    data: Optional[Dict] = None,
    api: Optional[APITracker] = None,
    timeout: float = 30,
    **kwargs
) -> Any:
    """
    Make a request to the Real-Debrid API. No retries happen here.

    Args:
        method: HTTP method (GET or POST)
        endpoint: API endpoint (e.g. /unrestrict/link)
        api_key: Real-Debrid API key
        data: Optional form data for POST requests
        api: APITracker used for the HTTP call
        timeout: Request timeout in seconds
        **kwargs: Additional arguments for requests

    Returns:
        Parsed JSON response

    Raises:
        RealDebridAPIError: If the API returns an error
        RealDebridAuthError: If authentication fails
        UnsupportedHostError: If the hoster is not supported
        ProviderUnavailableError: If the service is unavailable or the request times out
        RateLimitError: If rate limit is exceeded
    """
    if not api_key:
        raise RealDebridAuthError("No API key configured")

    api = api or APITracker()
    url = f"{API_BASE_URL}{endpoint}"
    headers = {'Authorization': f'Bearer {api_key}'}
    kwargs['headers'] = headers
    kwargs['timeout'] = timeout

    _wait_for_rate_limit()

    try:
        if method.upper() == 'GET':
            response = api.get(url, raise_for_status=False, **kwargs)
        elif method.upper() == 'POST':
            response = api.post(url, data=data, raise_for_status=False, **kwargs)
        else:
            raise ValueError(f"Unsupported HTTP method: {method}")
    except api.exceptions.Timeout:
        raise ProviderUnavailableError(f"Request timed out after {timeout}s")
    except api.exceptions.RequestException as e:
        raise ProviderUnavailableError(f"Request failed: {str(e)}")

    if response.status_code >= 400:
        details = _error_details(response)
        error = details.get('error', 'unknown_error')
        error_code = details.get('error_code')
        message = f"Real-Debrid API error: {error} ({error_code if error_code is not None else 'unknown code'})"

        if response.status_code == 401:
            raise RealDebridAuthError("Invalid API key")
        elif response.status_code == 403:
            raise RealDebridAuthError(f"Access denied: {error}")
        elif response.status_code == 429:
            _increase_rate_limit()
            raise RateLimitError("Rate limit exceeded")
        elif response.status_code in [502, 503, 504]:
            raise ProviderUnavailableError(f"Service temporarily unavailable (HTTP {response.status_code})")
        elif error_code in UNSUPPORTED_HOST_ERROR_CODES or error == 'hoster_unsupported':
            raise UnsupportedHostError(message)
        raise RealDebridAPIError(message, status_code=response.status_code, error_code=error_code)

    if response.status_code == 204:
        _decrease_rate_limit_on_success()
        return {}

    try:
        result = response.json()
    except ValueError:
        raise RealDebridAPIError(f"Invalid JSON in response from {endpoint}", status_code=response.status_code)
    _decrease_rate_limit_on_success()
    return result
