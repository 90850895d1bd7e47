"""
Distributor Feed Client

Downloads the distributor's full inventory CSV over HTTPS with basic auth.
Gateway errors and connection failures are retried; anything else (bad
credentials, missing resource) fails immediately.
"""

import logging
import time
from typing import Callable, Optional

import requests

from catalog_sync.clients.http import send
from catalog_sync.errors import FeedUnavailable
from catalog_sync.execution.retry import RetryExhausted, RetryPolicy, call_with_retry

logger = logging.getLogger(__name__)

# The distributor rejects requests that do not look like a browser
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/csv,text/plain;q=0.9,*/*;q=0.8",
    "Connection": "keep-alive",
}


class FeedClient:
    """HTTP client for the distributor inventory feed."""

    def __init__(
        self,
        url: str,
        username: str,
        password: str,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep
    ):
        """
        Initialize the feed client.

        Args:
            url: Full inventory CSV URL
            username: Basic-auth user
            password: Basic-auth password
            retry_policy: Retry policy (3 attempts, 2s/4s backoff)
            timeout: Request timeout in seconds
            session: requests session to use
            sleep: Sleep used for retry backoff
        """
        self.url = url
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.auth = (username, password)
        self.session.headers.update(BROWSER_HEADERS)
        self.sleep = sleep

    def fetch_feed(self) -> str:
        """
        Download the raw feed.

        Returns:
            CSV text

        Raises:
            FeedUnavailable: When the feed cannot be fetched
        """
        logger.info("Fetching full inventory and price data from distributor feed...")

        try:
            text = call_with_retry(
                self._get,
                self.retry_policy,
                description="Distributor feed request",
                sleep=self.sleep,
            )
        except RetryExhausted as e:
            raise FeedUnavailable(
                f"Distributor feed unavailable after {e.attempts} attempt(s): {e.error}"
            ) from e.error

        logger.info(f"Downloaded distributor feed ({len(text)} characters)")
        return text

    def _get(self) -> str:
        response = send(self.session, "GET", self.url, "Distributor feed request", timeout=self.timeout)
        return response.text
