"""Concurrent fetcher for calendar feeds."""
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import List

import requests

from processor.models import FeedFailure, FetchResult, RawCalendarEntry
from scraper.ics_parser import parse_ics
from scraper.rss_parser import parse_rss

logger = logging.getLogger(__name__)


class FeedFetchError(Exception):
    """A single feed could not be fetched or parsed."""

    def __init__(self, url: str, message: str):
        super().__init__(f"{url}: {message}")
        self.url = url


def is_ics(content: bytes) -> bool:
    """Check whether a payload is iCalendar rather than RSS."""
    head = content[:512].lstrip(b"\xef\xbb\xbf \t\r\n")
    return head.upper().startswith(b"BEGIN:VCALENDAR")


class FeedFetcher:
    """Fetches ICS and RSS feeds in parallel."""

    USER_AGENT = "municipal-events-board/1.0"

    def __init__(self, timeout: int = 30, max_retries: int = 3, base_delay: float = 1.0):
        """
        Initialize the feed fetcher.

        Args:
            timeout: HTTP request timeout in seconds (default: 30)
            max_retries: Attempts per feed before giving up (default: 3)
            base_delay: First backoff delay in seconds, doubled per attempt
        """
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.base_delay = base_delay

    def fetch_all(self, urls: List[str]) -> FetchResult:
        """
        Fetch and parse every feed concurrently.

        A failing feed is logged and contributes no entries; the other
        feeds are unaffected.

        Args:
            urls: Feed URLs, ICS or RSS

        Returns:
            FetchResult with the merged entries in URL order
        """
        result = FetchResult()
        if not urls:
            return result

        logger.info(f"Fetching {len(urls)} feeds")
        with ThreadPoolExecutor(max_workers=len(urls)) as executor:
            outcomes = list(executor.map(self._fetch_safely, urls))

        for url, entries, failure in outcomes:
            if failure:
                result.failures.append(failure)
                continue
            result.succeeded.append(url)
            result.entries.extend(entries)

        logger.info(
            f"Fetched {len(result.entries)} entries from "
            f"{len(result.succeeded)}/{len(urls)} feeds"
        )
        return result

    def _fetch_safely(self, url: str):
        try:
            return url, self.fetch_feed(url), None
        except FeedFetchError as e:
            error_type = type(e.__cause__ or e).__name__
            logger.error(
                f"Feed failed, skipping it: {e}",
                extra={'feed_url': url, 'error_type': error_type},
                exc_info=True
            )
            return url, [], FeedFailure(url=url, error=str(e), error_type=error_type)

    def fetch_feed(self, url: str) -> List[RawCalendarEntry]:
        """
        Fetch and parse a single feed.

        Raises:
            FeedFetchError: If the feed cannot be downloaded or parsed
        """
        try:
            content = self._fetch_content(url)
        except requests.RequestException as e:
            raise FeedFetchError(url, f"fetch failed: {e}") from e

        try:
            if is_ics(content):
                return parse_ics(content, source_url=url)
            return parse_rss(content, source_url=url)
        except ValueError as e:
            raise FeedFetchError(url, f"parse failed: {e}") from e

    def _fetch_content(self, url: str) -> bytes:
        """
        Download a feed with retry logic.

        Raises:
            requests.RequestException: If all retry attempts fail
        """
        for attempt in range(self.max_retries):
            try:
                logger.info(f"Fetching {url} (attempt {attempt + 1}/{self.max_retries})")
                response = requests.get(
                    url,
                    headers={'User-Agent': self.USER_AGENT},
                    timeout=self.timeout
                )
                response.raise_for_status()
                return response.content

            except requests.RequestException as e:
                if attempt < self.max_retries - 1:
                    delay = self.base_delay * (2 ** attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries}): {e}. "
                        f"Retrying in {delay} seconds..."
                    )
                    time.sleep(delay)
                else:
                    logger.error(
                        f"All {self.max_retries} attempts failed for {url}. Last error: {e}"
                    )
                    raise
