"""
Orchestrates a Click'n'Load submission and the stored package snapshots.

A submission moves through decrypt -> resolve -> cache -> re-encrypt ->
submit. The snapshot is cached before submission, so resolved links
survive a failing download manager and can be resubmitted later.
"""

import logging
import math
import re
from typing import Any, Dict, List, Optional, Tuple

from cache.base import CacheStore
from cnl.codec import CnlCodec
from cnl.destination import DestinationClient
from cnl.exceptions import CnlError, SubmissionError
from cnl.models import CnlPackage, utc_timestamp
from debrid.base import DebridProviderError
from debrid.batch_processor import BatchProcessor, NoLinksToProcessError

package_logger = logging.getLogger('package_tracker')

PACKAGE_KEY_PREFIX = 'package:'
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 50
SCAN_BATCH_SIZE = 100
# Fields that carry the CNL secret or the unencrypted links
SECRET_FIELDS = ('crypted', 'decrypted', 'jk')
# Package names may contain ':' themselves, only the trailing timestamp is split off
PACKAGE_ID_PATTERN = re.compile(r'^(?P<name>.*):(?P<timestamp>\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}(?:\.\d+)?Z)$', re.DOTALL)


class PackageNotFoundError(Exception):
    def __init__(self, package_id):
        self.package_id = package_id
        super().__init__("Package not found")


class EmptyPackageError(Exception):
    def __init__(self, package_id):
        self.package_id = package_id
        super().__init__("Package was empty")


class PaginationError(ValueError):
    pass


class ProcessingError(Exception):
    """A CNL submission could not be completed. The message is safe to show to the client."""
    def __init__(self, message="Error processing encrypted request"):
        super().__init__(message)


def package_key(package_id: str) -> str:
    return f"{PACKAGE_KEY_PREFIX}{package_id}"


def package_id_from_key(key: str) -> str:
    return key[len(PACKAGE_KEY_PREFIX):] if key.startswith(PACKAGE_KEY_PREFIX) else key


def split_package_id(package_id: str) -> Tuple[str, str]:
    """(name, timestamp) of a package id; the timestamp is empty when the id carries none."""
    match = PACKAGE_ID_PATTERN.match(package_id)
    if not match:
        return package_id, ''
    return match.group('name'), match.group('timestamp')


def base_package_name(package_id: str) -> str:
    return split_package_id(package_id)[0]


def parse_pagination(page: Any, page_size: Any) -> Tuple[int, int]:
    """
    Validate raw page/pageSize query values.

    Raises:
        PaginationError: if either value is not a positive integer or page_size exceeds MAX_PAGE_SIZE
    """
    try:
        page = int(page if page not in (None, '') else 1)
    except (TypeError, ValueError):
        raise PaginationError("Invalid page parameter")
    if page < 1:
        raise PaginationError("Invalid page parameter")

    try:
        page_size = int(page_size if page_size not in (None, '') else DEFAULT_PAGE_SIZE)
    except (TypeError, ValueError):
        raise PaginationError(f"Invalid pageSize parameter (must be between 1 and {MAX_PAGE_SIZE})")
    if page_size < 1 or page_size > MAX_PAGE_SIZE:
        raise PaginationError(f"Invalid pageSize parameter (must be between 1 and {MAX_PAGE_SIZE})")

    return page, page_size


def track(event: str, package: str, **details):
    package_logger.info({'event': event, 'package': package, **details})


class PackageManager:
    def __init__(
        self,
        codec: CnlCodec,
        batch_processor: BatchProcessor,
        cache: CacheStore,
        destination: DestinationClient,
        debrid_service: str = 'realdebrid',
        cache_ttl: Optional[int] = None,
    ):
        self.codec = codec
        self.batch_processor = batch_processor
        self.cache = cache
        self.destination = destination
        self.debrid_service = debrid_service.lower()
        self.cache_ttl = cache_ttl

    def _store_snapshot(self, cnl_package: CnlPackage, base_name: str) -> Optional[str]:
        package_id = f"{base_name}:{utc_timestamp()}"
        if self.cache.set(package_key(package_id), cnl_package.to_dict(), self.cache_ttl):
            logging.info(f"Cached package {package_id}")
            track('cached', package_id, links=len(cnl_package.files.results) if cnl_package.files else 0)
            return package_id
        logging.error(f"Cache request failed for package {package_id}")
        return None

    def _load(self, package_id: str) -> Tuple[CnlPackage, Dict[str, Any]]:
        data = self.cache.get(package_key(package_id))
        if not data:
            raise PackageNotFoundError(package_id)
        return CnlPackage.from_dict(data), data

    def _submit(self, cnl_package: CnlPackage) -> CnlPackage:
        encrypted = self.codec.encrypt(cnl_package)
        self.destination.submit(encrypted.form_fields())
        return encrypted

    def handle_submission(self, form) -> Dict[str, str]:
        """
        Process one addcrypted2 request.

        Returns the five-field response with `crypted` holding the re-encrypted
        processed links.

        Raises:
            ProcessingError: on any decrypt, resolve or submission failure
        """
        package_name = form.get('package', '') or ''
        try:
            cnl_package = CnlPackage.from_form(form)
            logging.info(f"Received CNL package '{package_name}' from '{cnl_package.source}'")
            track('received', package_name, source=cnl_package.source)

            cnl_package = self.codec.decrypt(cnl_package)
            files = self.batch_processor.process(cnl_package.decrypted, self.debrid_service)
            cnl_package = cnl_package.evolve(files=files)

            if files.results and package_name:
                self._store_snapshot(cnl_package, package_name)

            encrypted = self._submit(cnl_package)
        except (CnlError, DebridProviderError, NoLinksToProcessError) as e:
            logging.error(f"Error processing encrypted request for package '{package_name}': {str(e)}")
            track('failed', package_name, error=str(e), stage=e.__class__.__name__)
            raise ProcessingError() from e
        except Exception as e:
            logging.error(f"Unexpected error processing package '{package_name}': {str(e)}", exc_info=True)
            track('failed', package_name, error=str(e), stage=e.__class__.__name__)
            raise ProcessingError() from e

        track('submitted', package_name, links=len(files.results), successCount=files.stats.success_count)
        return {
            'jk': encrypted.jk,
            'crypted': encrypted.crypted,
            'passwords': encrypted.passwords,
            'source': encrypted.source,
            'package': encrypted.package,
        }

    def _package_keys(self, pattern: str) -> List[str]:
        # Scan cursors are backend specific (a hash table position for Redis), never a page offset
        found = set()
        cursor = 0
        while True:
            cursor, keys = self.cache.scan_keys(pattern, cursor=cursor, count=SCAN_BATCH_SIZE)
            found.update(keys)
            if not cursor:
                break
        return sorted(found, key=lambda key: (split_package_id(package_id_from_key(key))[1], key))

    def list_packages(self, page=1, page_size=DEFAULT_PAGE_SIZE) -> Dict[str, Any]:
        """One page of cached packages with the secret fields removed."""
        page, page_size = parse_pagination(page, page_size)
        pattern = f"{PACKAGE_KEY_PREFIX}*"

        all_keys = self._package_keys(pattern)
        total_items = len(all_keys)
        start = (page - 1) * page_size
        keys = all_keys[start:start + page_size]

        packages: List[Dict[str, Any]] = []
        for key, data in self.cache.get_multiple(keys).items():
            if not data:
                continue
            item = {name: value for name, value in data.items() if name not in SECRET_FIELDS}
            item['package'] = package_id_from_key(key)
            packages.append(item)

        return {
            'data': packages,
            'pagination': {
                'page': page,
                'pageSize': page_size,
                'totalItems': total_items,
                'totalPages': math.ceil(total_items / page_size),
                'hasMore': start + page_size < total_items,
            },
        }

    def get_package(self, package_id: str) -> Dict[str, Any]:
        _, data = self._load(package_id)
        return data

    def delete_package(self, package_id: str) -> None:
        key = package_key(package_id)
        if not self.cache.exists(key):
            raise PackageNotFoundError(package_id)
        self.cache.delete(key)
        logging.info(f"Deleted package {package_id}")
        track('deleted', package_id)

    def get_file_list(self, package_id: str) -> Tuple[str, str]:
        """
        Successfully processed links of a package, one per line.

        Returns:
            (content, filename)
        """
        cnl_package, _ = self._load(package_id)
        if cnl_package.files is None:
            raise EmptyPackageError(package_id)
        content = '\n'.join(link.processed for link in cnl_package.files.successful_links)
        return content, f"{package_id}-filelist.txt"

    def resubmit_package(self, package_id: str) -> str:
        """
        Encrypt the cached processed links again and send them to the destination.
        The cached snapshot is left untouched.

        Returns:
            the ciphertext that was submitted

        Raises:
            PackageNotFoundError: no such snapshot
            SubmissionError: the package could not be encrypted or the destination failed
        """
        cnl_package, _ = self._load(package_id)
        try:
            encrypted = self._submit(cnl_package)
        except SubmissionError as e:
            track('failed', package_id, error=str(e), stage='resubmit')
            raise
        except CnlError as e:
            track('failed', package_id, error=str(e), stage='resubmit')
            raise SubmissionError(f"Could not encrypt package: {str(e)}") from e

        logging.info(f"Resubmitted package {package_id}")
        track('resubmitted', package_id)
        return encrypted.crypted

    def reprocess_package(self, package_id: str) -> Dict[str, Any]:
        """
        Run the cached links through the debrid service again and store the
        result as a new snapshot. The previous snapshot is kept.

        Returns:
            {'package': <new snapshot>, 'version': <new package id>}
        """
        cnl_package, _ = self._load(package_id)
        files = self.batch_processor.process(cnl_package.decrypted, self.debrid_service)
        updated = cnl_package.evolve(files=files)

        base_name = base_package_name(package_id)
        version = self._store_snapshot(updated, base_name)
        if version is None:
            # Cache is best-effort, report the id the snapshot would have had
            version = f"{base_name}:{files.stats.processed_at}"

        track('reprocessed', version, previous=package_id, successCount=files.stats.success_count)
        return {'package': updated.to_dict(), 'version': version}
