"""
Run Correlation IDs for Catalog Sync

Every sync invocation gets a correlation ID so that its log lines, metrics push
and notification e-mails can be tied together.
"""

import uuid
import contextvars
from typing import Optional
import logging

logger = logging.getLogger(__name__)

# Context variable for the current run's correlation ID
_correlation_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    'correlation_id',
    default=None
)


def generate_correlation_id() -> str:
    """
    Generate a new correlation ID using UUID4.

    Returns:
        String representation of a UUID4
    """
    return str(uuid.uuid4())


def get_correlation_id() -> Optional[str]:
    """Get the current correlation ID, or None if not set."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set the correlation ID in the current context.

    Args:
        correlation_id: Correlation ID to set

    Raises:
        ValueError: If correlation_id is empty or not a string
    """
    if not correlation_id or not isinstance(correlation_id, str):
        raise ValueError("Correlation ID must be a non-empty string")

    _correlation_id.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation ID from context."""
    _correlation_id.set(None)


class CorrelationContext:
    """
    Context manager binding a correlation ID for the duration of a run.

    Restores whatever ID was bound before on exit.
    """

    def __init__(self, correlation_id: Optional[str] = None):
        """
        Initialize correlation context.

        Args:
            correlation_id: ID to bind. A new one is generated if omitted.
        """
        self.correlation_id = correlation_id
        self.previous_id = None

    def __enter__(self) -> str:
        self.previous_id = get_correlation_id()

        if not self.correlation_id:
            self.correlation_id = generate_correlation_id()
        set_correlation_id(self.correlation_id)

        logger.debug(f"Entered correlation context: {self.correlation_id}")
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.previous_id:
            set_correlation_id(self.previous_id)
        else:
            clear_correlation_id()


def correlation_id_filter(record: logging.LogRecord) -> bool:
    """
    Logging filter adding ``correlation_id`` to every record.

    Returns:
        True (always allow record)
    """
    record.correlation_id = get_correlation_id() or "N/A"
    return True
