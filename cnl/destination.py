"""Forward re-encrypted packages to the downstream CNL-compatible download manager."""

import logging
from typing import Dict, Optional

from api_tracker import APITracker
from .exceptions import SubmissionError

ADDCRYPTED2_PATH = '/flash/addcrypted2'


class DestinationClient:
    def __init__(self, base_url: str, timeout: float = 30, api: Optional[APITracker] = None):
        self.base_url = (base_url or '').rstrip('/')
        self.timeout = timeout
        self.api = api or APITracker()

    @property
    def submit_url(self) -> str:
        return f"{self.base_url}{ADDCRYPTED2_PATH}"

    def submit(self, form_fields: Dict[str, str]) -> int:
        """POST the five addcrypted2 fields. Returns the HTTP status, raises SubmissionError on failure."""
        if not self.base_url:
            raise SubmissionError("No destination URL configured")

        package_name = form_fields.get('package', '')
        try:
            response = self.api.post(
                self.submit_url,
                data=form_fields,
                timeout=self.timeout,
                raise_for_status=False,
            )
        except self.api.exceptions.Timeout as e:
            logging.error(f"Timed out submitting package '{package_name}' to {self.base_url}")
            raise SubmissionError(f"Destination timed out after {self.timeout}s") from e
        except self.api.exceptions.RequestException as e:
            logging.error(f"Failed to submit package '{package_name}' to {self.base_url}: {str(e)}")
            raise SubmissionError(f"Destination unreachable: {str(e)}") from e

        if not response.ok:
            logging.error(f"Destination rejected package '{package_name}' with HTTP {response.status_code}")
            raise SubmissionError(f"HTTP error! status: {response.status_code}", status_code=response.status_code)

        logging.info(f"Successfully submitted package '{package_name}' to destination service {self.base_url}")
        return response.status_code
