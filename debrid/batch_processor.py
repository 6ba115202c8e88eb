"""Resolve every link of a decrypted CNL payload, in input order.

Links are resolved one after another: the codec joins the processed links
back together in the same order, so results must never be reordered.
"""

import logging
import time
from typing import List, Optional

from cnl.models import ProcessedLink, ProcessingResult, ProcessingStats, utc_timestamp
from .base import DebridProviderError
from .resolver import LinkResolver

# Characters that make a line look non-empty without carrying a link
INVISIBLE_CHARACTERS = '\u200b\u200c\u200d\u2060\ufeff'


class NoLinksToProcessError(Exception):
    """Exception raised when a decrypted payload contains no links at all"""
    def __init__(self, message="No links to process"):
        super().__init__(message)


def split_links(decrypted: Optional[str]) -> List[str]:
    if decrypted is None:
        return []
    return decrypted.split('\n')


def clean_link(line: str) -> str:
    return line.strip().strip(INVISIBLE_CHARACTERS).strip()


class BatchProcessor:
    def __init__(self, resolver: LinkResolver, stop_on_error: bool = False):
        self.resolver = resolver
        self.stop_on_error = stop_on_error

    def process(self, decrypted: Optional[str], debrid_service: str) -> ProcessingResult:
        """
        Resolve each non-empty line of `decrypted` through `debrid_service`.

        Under the default continue policy a failing link is kept as-is with
        success=False. With stop_on_error the first failure is re-raised and
        no result is returned.

        Raises:
            NoLinksToProcessError: if there is not a single non-empty line
            DebridProviderError: on the first failing link when stop_on_error is set
        """
        start_time = time.monotonic()
        lines = split_links(decrypted)
        valid_links = [link for link in (clean_link(line) for line in lines) if link]
        skipped_links = len(lines) - len(valid_links)

        if not valid_links:
            logging.error(f"No links to process ({len(lines)} lines, all empty)")
            raise NoLinksToProcessError()

        logging.info(f"Starting link processing: {len(valid_links)} valid, {skipped_links} skipped, service {debrid_service}")

        results: List[ProcessedLink] = []
        success_count = 0
        failure_count = 0

        for link in valid_links:
            logging.debug(f"Processing link {link}")
            processed_at = utc_timestamp()

            try:
                debrid_result = self.resolver.resolve(link, debrid_service)
            except DebridProviderError as e:
                failure_count += 1
                error_message = str(e) or e.__class__.__name__

                if self.stop_on_error:
                    remaining_links = len(valid_links) - (success_count + failure_count)
                    logging.error(
                        f"Error processing link {link}, stopping due to CND_ERROR_ON_API_ERROR=true: {error_message} "
                        f"(success={success_count}, failed={failure_count}, remaining={remaining_links})"
                    )
                    raise

                logging.warning(f"Error processing link {link}, using original link: {error_message}")
                results.append(ProcessedLink(
                    original=link,
                    processed=link,
                    success=False,
                    processed_at=processed_at,
                    error=error_message,
                ))
                continue

            success_count += 1
            results.append(ProcessedLink(
                original=link,
                processed=debrid_result['download'],
                success=True,
                processed_at=processed_at,
                filename=debrid_result.get('filename'),
                filesize=debrid_result.get('filesize'),
            ))

        processing_time_ms = int((time.monotonic() - start_time) * 1000)
        success_rate = (success_count / len(valid_links)) * 100 if valid_links else 0

        stats = ProcessingStats(
            processed_at=utc_timestamp(),
            debrid_service=debrid_service,
            total_links=len(lines),
            valid_links=len(valid_links),
            skipped_links=skipped_links,
            success_count=success_count,
            failure_count=failure_count,
            success_rate=success_rate,
            processing_time_ms=processing_time_ms,
        )

        logging.info(
            f"Completed link processing: {success_count}/{len(valid_links)} succeeded "
            f"({success_rate:.1f}%) in {processing_time_ms}ms"
        )
        return ProcessingResult(results=results, stats=stats)
