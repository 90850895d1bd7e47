"""
Sync Runner

Drives one sync run through its states:

    STARTED -> FETCHING_FEED -> FETCHING_CATALOG -> RECONCILING
            -> EXECUTING -> REPORTING -> DONE

Any fatal error (or unexpected exception) moves the run to FAILED_FATAL,
sends the failure notification and yields an HTTP 500 result. Per-intent
write failures are reported in the summary and still yield HTTP 200.
"""

import logging
import threading
import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from catalog_sync.clients.feed import FeedClient
from catalog_sync.clients.notifier import ResendNotifier
from catalog_sync.clients.storefront import StorefrontClient
from catalog_sync.config import SyncConfig
from catalog_sync.errors import NotificationError, SyncFatalError, WriteApiUnreachable
from catalog_sync.execution.executor import UpdateExecutor
from catalog_sync.execution.pacer import Pacer
from catalog_sync.execution.retry import RetryPolicy
from catalog_sync.models import CatalogItem, ChangeIntent, Outcome
from catalog_sync.monitoring.metrics import SyncMetrics
from catalog_sync.reconciliation.normalizer import FeedNormalizer
from catalog_sync.reconciliation.reconciler import Reconciler
from catalog_sync.reporting.render import (
    failure_subject,
    render_failure,
    render_summary,
    summary_subject,
)
from catalog_sync.reporting.summary import RunSummary, summarize
from catalog_sync.utils.correlation import CorrelationContext
from catalog_sync.utils.logging_config import RunLogCollector

logger = logging.getLogger(__name__)

ALREADY_RUNNING_MESSAGE = "Sync already in progress."

# One run at a time per process
_RUN_LOCK = threading.Lock()


class RunState(str, Enum):
    STARTED = "STARTED"
    FETCHING_FEED = "FETCHING_FEED"
    FETCHING_CATALOG = "FETCHING_CATALOG"
    RECONCILING = "RECONCILING"
    EXECUTING = "EXECUTING"
    REPORTING = "REPORTING"
    DONE = "DONE"
    FAILED_FATAL = "FAILED_FATAL"


@dataclass
class RunResult:
    """
    Result of one invocation.

    Attributes:
        status_code: 200 (completed), 500 (fatal) or 409 (already running)
        message: Plain-text response body
        state: Final state; None when the run was rejected
        summary: Outcome summary, when the run reached REPORTING
        intents: Intents computed by the reconciler
        outcomes: Outcomes recorded by the executor
        transitions: States entered, in order
        correlation_id: Correlation ID of the run's log records
        dry_run: Whether writes were skipped
    """

    status_code: int
    message: str
    state: Optional[RunState] = None
    summary: Optional[RunSummary] = None
    intents: List[ChangeIntent] = field(default_factory=list)
    outcomes: List[Outcome] = field(default_factory=list)
    transitions: List[RunState] = field(default_factory=list)
    correlation_id: Optional[str] = None
    dry_run: bool = False

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    def to_dict(self) -> Dict[str, object]:
        return {
            "status_code": self.status_code,
            "message": self.message,
            "state": self.state.value if self.state else None,
            "correlation_id": self.correlation_id,
            "dry_run": self.dry_run,
            "transitions": [state.value for state in self.transitions],
            "summary": self.summary.to_dict() if self.summary else None,
            "intents": [intent.to_dict() for intent in self.intents],
            "outcomes": [outcome.to_dict() for outcome in self.outcomes],
        }


def completion_message(processed: int, summary: RunSummary, dry_run: bool = False, planned: int = 0) -> str:
    if dry_run:
        return f"Dry run complete. Processed {processed} variants. {planned} changes planned."
    message = f"Sync complete. Processed {processed} variants. {summary.applied_count} changes made."
    if summary.failed_count:
        message += f" {summary.failed_count} changes failed."
    return message


class SyncRunner:
    """
    Orchestrates a sync run.

    Usage:
        runner = SyncRunner.from_config(SyncConfig.load())
        result = runner.run()
    """

    def __init__(
        self,
        config: SyncConfig,
        feed_client: FeedClient,
        storefront_client: StorefrontClient,
        notifier: Optional[ResendNotifier] = None,
        normalizer: Optional[FeedNormalizer] = None,
        reconciler: Optional[Reconciler] = None,
        executor: Optional[UpdateExecutor] = None,
        metrics: Optional[SyncMetrics] = None,
        run_lock: Optional[threading.Lock] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the runner.

        Args:
            config: Sync settings
            feed_client: Distributor feed client
            storefront_client: Storefront read/write client
            notifier: E-mail notifier; notifications are skipped without one
            normalizer: Feed normalizer
            reconciler: Reconciler
            executor: Update executor (writes through ``storefront_client``
                by default)
            metrics: Metrics to record and push
            run_lock: Lock guarding against overlapping runs (process-wide
                by default)
            clock: Monotonic clock for run duration
        """
        self.config = config
        self.feed_client = feed_client
        self.storefront_client = storefront_client
        self.notifier = notifier
        self.normalizer = normalizer or FeedNormalizer()
        self.reconciler = reconciler or Reconciler()
        self.metrics = metrics or SyncMetrics()
        self.executor = executor or UpdateExecutor(
            storefront_client,
            retry_policy=RetryPolicy(config.max_attempts, config.backoff_seconds),
            pacer=Pacer(interval_seconds=config.write_delay_seconds),
            metrics=self.metrics,
        )
        self.run_lock = run_lock or _RUN_LOCK
        self.clock = clock
        self._transitions: List[RunState] = []
        logger.debug("Initialized SyncRunner")

    @classmethod
    def from_config(cls, config: SyncConfig) -> "SyncRunner":
        """Build a runner with real collaborators for ``config``."""
        retry_policy = RetryPolicy(max_attempts=config.max_attempts, backoff_seconds=config.backoff_seconds)

        feed_client = FeedClient(
            config.feed_url,
            config.feed_username,
            config.feed_password,
            retry_policy=retry_policy,
            timeout=config.request_timeout_seconds,
        )
        storefront_client = StorefrontClient(
            config.store_domain,
            config.admin_api_token,
            api_version=config.api_version,
            page_size=config.page_size,
            retry_policy=retry_policy,
            timeout=config.request_timeout_seconds,
            namespace=config.metafield_namespace,
            part_number_key=config.part_number_key,
            out_of_stock_key=config.out_of_stock_key,
            markup_key=config.markup_key,
            exclude_key=config.exclude_key,
        )

        notifier = None
        if config.notifications_enabled:
            notifier = ResendNotifier(
                config.resend_api_key,
                config.report_email_to,
                config.report_email_from,
                timeout=config.request_timeout_seconds,
            )
        else:
            logger.warning("RESEND_API_KEY or REPORT_EMAIL_TO not set; email notifications disabled")

        return cls(config, feed_client, storefront_client, notifier=notifier)

    def run(self, dry_run: Optional[bool] = None) -> RunResult:
        """
        Execute one sync run.

        Args:
            dry_run: Skip writes (defaults to ``config.dry_run``)

        Returns:
            RunResult; never raises
        """
        if dry_run is None:
            dry_run = self.config.dry_run

        if not self.run_lock.acquire(blocking=False):
            logger.warning("Sync requested while another run is in progress; rejecting")
            return RunResult(status_code=409, message=ALREADY_RUNNING_MESSAGE, dry_run=dry_run)

        try:
            with CorrelationContext() as correlation_id, RunLogCollector() as collector:
                result = self._run(dry_run, collector)
                result.correlation_id = correlation_id
                return result
        finally:
            self.run_lock.release()

    def plan(self) -> List[ChangeIntent]:
        """Fetch both sources and reconcile without writing."""
        result = self.run(dry_run=True)
        if not result.ok:
            raise RuntimeError(result.message)
        return result.intents

    def _enter(self, state: RunState) -> None:
        self._transitions.append(state)
        logger.debug(f"Sync state -> {state.value}", extra={"state": state.value})

    def _run(self, dry_run: bool, collector: RunLogCollector) -> RunResult:
        self._transitions = []
        started_at = self.clock()
        items: List[CatalogItem] = []
        intents: List[ChangeIntent] = []
        outcomes: List[Outcome] = []

        self._enter(RunState.STARTED)
        logger.info(f"Starting {'dry run' if dry_run else 'sync run'}")

        try:
            self.config.require_complete()

            self._enter(RunState.FETCHING_FEED)
            feed = self.normalizer.parse_csv(self.feed_client.fetch_feed())

            self._enter(RunState.FETCHING_CATALOG)
            items = self.storefront_client.fetch_all_sync_eligible_items()
            self.metrics.record_inputs(len(feed), len(items))

            self._enter(RunState.RECONCILING)
            intents = self.reconciler.reconcile(feed, items)

            if dry_run:
                logger.info(f"Dry run: {len(intents)} intents planned, no writes issued")
            else:
                self._enter(RunState.EXECUTING)
                outcomes = self.executor.execute(intents)

        except Exception as e:
            if isinstance(e, WriteApiUnreachable):
                outcomes = list(e.outcomes)
            if isinstance(e, SyncFatalError):
                logger.error(f"FATAL ERROR during sync process: {e}")
            else:
                logger.exception(f"Unexpected error during sync process: {e}")
            traceback_text = traceback.format_exc()

            self._enter(RunState.FAILED_FATAL)
            message = str(e) or type(e).__name__
            self._notify_failure(message, traceback_text, collector.lines)
            self._finish("failure", started_at)

            return RunResult(
                status_code=500,
                message=f"Sync failed: {message}",
                state=RunState.FAILED_FATAL,
                intents=intents,
                outcomes=outcomes,
                transitions=list(self._transitions),
                dry_run=dry_run,
            )

        self._enter(RunState.REPORTING)
        summary = summarize(outcomes)
        if dry_run:
            logger.info("Dry run: notifications skipped")
        elif summary.needs_notification:
            self._notify_summary(summary)
        else:
            logger.info("No changes were made. No email will be sent.")

        self._enter(RunState.DONE)
        message = completion_message(len(items), summary, dry_run=dry_run, planned=len(intents))
        logger.info(message, extra={"summary": summary.to_dict()})
        self._finish("success", started_at)

        return RunResult(
            status_code=200,
            message=message,
            state=RunState.DONE,
            summary=summary,
            intents=intents,
            outcomes=outcomes,
            transitions=list(self._transitions),
            dry_run=dry_run,
        )

    def _notify_summary(self, summary: RunSummary) -> None:
        if self.notifier is None:
            logger.info("Notifier not configured; skipping summary email")
            return
        prefix = self.config.subject_prefix
        try:
            self.notifier.send_summary(summary_subject(summary, prefix), render_summary(summary, prefix))
        except NotificationError as e:
            logger.error(f"Failed to send summary email: {e}")

    def _notify_failure(self, message: str, traceback_text: str, log_lines: List[str]) -> None:
        if self.notifier is None:
            logger.info("Notifier not configured; skipping failure email")
            return
        prefix = self.config.subject_prefix
        try:
            self.notifier.send_failure(
                failure_subject(message, prefix),
                render_failure(prefix, message, traceback_text, list(log_lines)),
            )
        except NotificationError as e:
            logger.error(f"Could not send failure notification email: {e}")

    def _finish(self, status: str, started_at: float) -> None:
        duration = self.clock() - started_at
        self.metrics.record_run(status, duration)
        logger.info(f"Sync run finished: status={status}", extra={"duration": round(duration, 3)})

        if self.config.pushgateway_url:
            self.metrics.push(self.config.pushgateway_url)
