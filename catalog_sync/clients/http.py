"""
Shared HTTP helpers for collaborator clients.

Maps requests failures onto the transport error classes the retry policy
understands.
"""

from typing import Any

import requests

from catalog_sync.errors import (
    PermanentTransportError,
    TransientTransportError,
    TransportUnreachable,
)

RETRYABLE_STATUSES = frozenset({502, 503, 504})


def raise_for_transport_status(response: requests.Response, what: str) -> None:
    """
    Translate an HTTP error status into a TransportError.

    Raises:
        TransientTransportError: For 502, 503 and 504
        PermanentTransportError: For every other 4xx/5xx status
    """
    if response.ok:
        return

    message = f"{what} failed: {response.status_code} {response.reason or ''}".strip()
    if response.status_code in RETRYABLE_STATUSES:
        raise TransientTransportError(message, status_code=response.status_code)
    raise PermanentTransportError(message, status_code=response.status_code)


def send(session: requests.Session, method: str, url: str, what: str, **kwargs: Any) -> requests.Response:
    """
    Issue one request and classify its failure, if any.

    Returns:
        The successful response

    Raises:
        TransportUnreachable: On connection errors and timeouts
        TransientTransportError: On 502/503/504
        PermanentTransportError: On any other error status
    """
    try:
        response = session.request(method, url, **kwargs)
    except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
        raise TransportUnreachable(f"{what} connection error: {e}") from e

    raise_for_transport_status(response, what)
    return response
