"""
Logging setup for Catalog Sync

Human-readable console output by default, one JSON object per record when
JSON_LOGGING is enabled, and a collector that captures a run's log lines for
the failure notification.
"""

import json
import logging
from datetime import datetime, timezone
from typing import List, Optional

from catalog_sync.utils.correlation import correlation_id_filter

PACKAGE_LOGGER = "catalog_sync"
CONSOLE_FORMAT = '[%(asctime)s] %(levelname)s - %(message)s'
DATE_FORMAT = '%Y-%m-%d %H:%M:%S'


class StructuredJSONFormatter(logging.Formatter):
    """JSON formatter with correlation ID support."""

    def format(self, record):
        log_data = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
            'correlation_id': getattr(record, 'correlation_id', None),
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno,
        }

        # Extra fields passed via logger.info(..., extra={...})
        if hasattr(record, 'state'):
            log_data['state'] = record.state
        if hasattr(record, 'duration'):
            log_data['duration_seconds'] = record.duration
        if hasattr(record, 'summary'):
            log_data['summary'] = record.summary

        if record.exc_info:
            log_data['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def configure_logging(level: int = logging.INFO, json_logging: bool = False) -> logging.Logger:
    """
    Configure the package logger.

    Safe to call more than once; handlers are replaced, not stacked.

    Args:
        level: Log level for the package logger
        json_logging: Emit structured JSON instead of plain text

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, '_catalog_sync_console', False):
            logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if json_logging:
        handler.setFormatter(StructuredJSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(correlation_id_filter)
    handler._catalog_sync_console = True

    logger.addHandler(handler)
    logger.propagate = False
    return logger


class RunLogCollector(logging.Handler):
    """
    Captures formatted log lines for the duration of a run.

    Usage:
        with RunLogCollector() as collector:
            ...
        collector.lines
    """

    def __init__(self, logger_name: str = PACKAGE_LOGGER, level: int = logging.INFO):
        super().__init__(level)
        self.logger_name = logger_name
        self.lines: List[str] = []
        self.setFormatter(logging.Formatter('%(asctime)s %(levelname)s %(message)s', datefmt=DATE_FORMAT))
        self._logger: Optional[logging.Logger] = None
        self._previous_level: Optional[int] = None

    def emit(self, record):
        self.lines.append(self.format(record))

    def __enter__(self) -> "RunLogCollector":
        self._logger = logging.getLogger(self.logger_name)
        self._logger.addHandler(self)
        if self._logger.getEffectiveLevel() > self.level:
            self._previous_level = self._logger.level
            self._logger.setLevel(self.level)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._logger.removeHandler(self)
        if self._previous_level is not None:
            self._logger.setLevel(self._previous_level)
