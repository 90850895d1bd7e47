"""
E-mail Notifier

Sends run summaries and failure alerts through the Resend e-mail API.
"""

import logging
from typing import List, Optional

import requests

from catalog_sync.clients.http import send
from catalog_sync.errors import NotificationError, TransportError

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"


class ResendNotifier:
    """Resend API client for sync notifications."""

    def __init__(
        self,
        api_key: str,
        email_to: str,
        email_from: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        api_url: str = RESEND_API_URL
    ):
        """
        Initialize the notifier.

        Args:
            api_key: Resend API key
            email_to: Recipient address(es), comma separated
            email_from: Sender address
            timeout: Request timeout in seconds
            session: requests session to use
            api_url: Resend e-mail endpoint
        """
        self.recipients = self.parse_recipients(email_to)
        self.email_from = email_from
        self.timeout = timeout
        self.api_url = api_url
        self.session = session or requests.Session()
        self.session.headers.update({
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        })
        logger.debug(f"Initialized ResendNotifier for {len(self.recipients)} recipient(s)")

    @staticmethod
    def parse_recipients(email_to: str) -> List[str]:
        return [address.strip() for address in (email_to or "").split(",") if address.strip()]

    def send_summary(self, subject: str, html: str) -> None:
        """Send the run summary e-mail."""
        self._send(subject, html)
        logger.info("Summary email sent successfully")

    def send_failure(self, subject: str, html: str) -> None:
        """Send the fatal-failure e-mail."""
        self._send(subject, html)
        logger.info("Failure notification email sent")

    def _send(self, subject: str, html: str) -> None:
        """
        Raises:
            NotificationError: If there are no recipients or Resend rejects the message
        """
        if not self.recipients:
            raise NotificationError("No notification recipients configured")

        payload = {
            "from": self.email_from,
            "to": self.recipients,
            "subject": subject,
            "html": html,
        }
        try:
            send(self.session, "POST", self.api_url, "Resend email request", json=payload, timeout=self.timeout)
        except TransportError as e:
            raise NotificationError(f"Failed to send email {subject!r}: {e}") from e
