"""
Error Taxonomy for Catalog Sync

Fatal errors abort a run before (or instead of) writing and trigger the
failure notification. Transport errors describe a single remote call and are
classified as retryable or not. Per-intent write failures never propagate past
the executor.
"""

from typing import Optional


class SyncError(Exception):
    """Base class for all catalog sync errors."""


class ConfigurationError(SyncError):
    """Required settings are missing or invalid."""


class TransportError(SyncError):
    """
    A single remote call failed.

    Attributes:
        status_code: HTTP status of the failed response, None when no
            response was received
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class TransientTransportError(TransportError):
    """Upstream unavailable or gateway timeout; safe to retry."""


class TransportUnreachable(TransientTransportError):
    """No response at all (connection refused, DNS failure, timeout)."""


class PermanentTransportError(TransportError):
    """Authentication, not-found and every other non-retryable status."""

    @property
    def is_auth(self) -> bool:
        return self.status_code in (401, 403)

    @property
    def is_not_found(self) -> bool:
        return self.status_code == 404


class SyncFatalError(SyncError):
    """Setup-phase failure that prevents reconciliation from proceeding."""


class FeedUnavailable(SyncFatalError):
    """Distributor feed could not be fetched or is not the expected CSV."""


class CatalogFetchFailure(SyncFatalError):
    """Paginated storefront read did not complete."""


class InvalidCredentials(SyncFatalError):
    """A collaborator rejected our credentials during setup."""


class WriteApiUnreachable(SyncFatalError):
    """The storefront write API could not be reached at all."""

    def __init__(self, message: str, outcomes: Optional[list] = None):
        super().__init__(message)
        self.outcomes = outcomes or []


class IntentWriteFailure(SyncError):
    """
    Writes for one intent failed after retries.

    Raised and caught inside the executor only; recorded as an
    ``ErrorDetail`` on the intent's outcome.
    """

    def __init__(self, message: str, cause: TransportError, attempts: int):
        super().__init__(message)
        self.cause = cause
        self.attempts = attempts


class NotificationError(SyncError):
    """Sending a notification e-mail failed."""
