"""
Prometheus Metrics for Catalog Sync

Gauges and counters describing the most recent sync run. A sync run is a
short-lived job, so metrics live in per-instance registries and are pushed to
a Pushgateway at the end of the run instead of being scraped.

Every push replaces the previous run's values, so nothing here accumulates
across runs. The last-success timestamp sits in its own registry and is only
pushed by successful runs; a failed run leaves the previous value in place.
"""

import logging
import time
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, pushadd_to_gateway

from catalog_sync.models import Outcome

logger = logging.getLogger(__name__)

DEFAULT_JOB_NAME = "catalog_sync"


class SyncMetrics:
    """Prometheus metrics for sync runs."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize sync metrics.

        Args:
            registry: Registry for the per-run metrics (a fresh one by default)
        """
        self.registry = registry or CollectorRegistry()
        self.success_registry = CollectorRegistry()
        self.succeeded = False

        # Outcome of the last run
        self.last_run_failed = Gauge(
            'catalog_sync_last_run_failed',
            '1 if the last sync run aborted with a fatal error, else 0',
            registry=self.registry
        )

        self.last_run_timestamp_seconds = Gauge(
            'catalog_sync_last_run_timestamp_seconds',
            'Unix time the last sync run finished',
            registry=self.registry
        )

        self.last_run_duration_seconds = Gauge(
            'catalog_sync_last_run_duration_seconds',
            'Duration of the last sync run in seconds',
            registry=self.registry
        )

        # Intent outcomes
        self.intents_total = Counter(
            'catalog_sync_intents_total',
            'Change intents executed in the last run by kind and result',
            ['kind', 'result'],
            registry=self.registry
        )

        # Retries
        self.write_retries_total = Counter(
            'catalog_sync_write_retries_total',
            'Retried storefront write calls in the last run by operation',
            ['operation'],
            registry=self.registry
        )

        # Input sizes of the last run
        self.feed_records = Gauge(
            'catalog_sync_feed_records',
            'Distributor feed records in the last run',
            registry=self.registry
        )

        self.catalog_items = Gauge(
            'catalog_sync_catalog_items',
            'Sync-eligible storefront variants in the last run',
            registry=self.registry
        )

        self.last_success_timestamp_seconds = Gauge(
            'catalog_sync_last_success_timestamp_seconds',
            'Unix time of the last successful sync run',
            registry=self.success_registry
        )

        logger.debug("SyncMetrics initialized")

    def record_outcome(self, outcome: Outcome) -> None:
        """Count one executed intent."""
        self.intents_total.labels(
            kind=outcome.intent.kind.value,
            result=outcome.result.value
        ).inc()

    def record_retry(self, operation: str) -> None:
        """Count one retried write call (e.g. "pricing")."""
        self.write_retries_total.labels(operation=operation).inc()

    def record_inputs(self, feed_records: int, catalog_items: int) -> None:
        self.feed_records.set(feed_records)
        self.catalog_items.set(catalog_items)

    def record_run(self, status: str, duration_seconds: float) -> None:
        """
        Record a finished run.

        Args:
            status: "success" or "failure"
            duration_seconds: Wall time of the run
        """
        now = time.time()
        self.succeeded = status == "success"

        self.last_run_failed.set(0 if self.succeeded else 1)
        self.last_run_timestamp_seconds.set(now)
        self.last_run_duration_seconds.set(duration_seconds)

        if self.succeeded:
            self.last_success_timestamp_seconds.set(now)

        logger.debug(f"Recorded sync run: status={status}, duration={duration_seconds:.2f}s")

    def push(self, gateway_url: str, job: str = DEFAULT_JOB_NAME) -> bool:
        """
        Push the run metrics to a Prometheus Pushgateway.

        Uses POST semantics so only the pushed metric families are replaced.
        The last-success timestamp is pushed only after a successful run.
        Push failures are logged and never raised.

        Returns:
            True if the push succeeded
        """
        try:
            pushadd_to_gateway(gateway_url, job=job, registry=self.registry)
            if self.succeeded:
                pushadd_to_gateway(gateway_url, job=job, registry=self.success_registry)
            logger.info(f"Pushed sync metrics to {gateway_url}")
            return True
        except OSError as e:
            logger.warning(f"Failed to push metrics to {gateway_url}: {e}")
            return False
