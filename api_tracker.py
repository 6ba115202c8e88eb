import requests
import logging
from functools import wraps
from urllib.parse import urlparse
from collections import defaultdict
import threading
from requests.exceptions import RequestException

api_logger = logging.getLogger('api_calls')

def log_api_call(func):
    @wraps(func)
    def wrapper(self, *args, **kwargs):
        url = args[0] if args else kwargs.get('url')
        if isinstance(url, str):
            method = func.__name__.upper()
            parsed = urlparse(url)
            # Only log domain and path, skip query parameters and credentials
            domain = parsed.hostname or parsed.netloc
            api_logger.info(f"{method} {domain}{parsed.path}")
            self.record_call(domain)
        return func(self, *args, **kwargs)
    return wrapper

class APITracker:
    """Shared requests.Session for outbound calls, with per-domain call accounting."""

    def __init__(self, session=None, user_agent='clickndebrid'):
        self.session = session or requests.Session()
        self.session.headers.setdefault('User-Agent', user_agent)
        self.exceptions = requests.exceptions
        self._lock = threading.Lock()
        self.call_counts = defaultdict(int)

    def record_call(self, domain):
        with self._lock:
            self.call_counts[domain] += 1

    def get_call_counts(self):
        with self._lock:
            return dict(self.call_counts)

    def _send(self, method, url, raise_for_status=True, **kwargs):
        domain = urlparse(url).hostname
        try:
            response = self.session.request(method, url, **kwargs)
            if raise_for_status:
                response.raise_for_status()
            return response
        except RequestException as e:
            api_logger.error(f"Error: {domain} - {str(e)}")
            raise

    @log_api_call
    def get(self, url, **kwargs):
        return self._send('GET', url, **kwargs)

    @log_api_call
    def post(self, url, **kwargs):
        return self._send('POST', url, **kwargs)

    def close(self):
        self.session.close()
