"""
Update Executor for Catalog Sync

Applies ChangeIntents against the storefront write API one at a time, in
order, pacing intents and retrying transient failures. Every intent yields
exactly one Outcome; a failed intent never stops the run.
"""

import logging
import time
from typing import Callable, List, Optional, Protocol, Sequence

from catalog_sync.errors import (
    IntentWriteFailure,
    TransportUnreachable,
    WriteApiUnreachable,
)
from catalog_sync.execution.pacer import Pacer
from catalog_sync.execution.retry import RetryExhausted, RetryPolicy, RetryState, call_with_retry
from catalog_sync.models import (
    ChangeIntent,
    ErrorDetail,
    IntentKind,
    Outcome,
    OutcomeResult,
    PricingChange,
    SellabilityChange,
    SellabilityPolicy,
)

logger = logging.getLogger(__name__)


class StorefrontWriter(Protocol):
    """Write side of the storefront collaborator."""

    def write_sellability(self, item_id: str, policy: SellabilityPolicy) -> None: ...

    def write_pricing(self, item_id: str, price, compare_at_price) -> None: ...

    def write_cost(self, inventory_item_id: str, cost) -> None: ...


class UpdateExecutor:
    """
    Sequential, paced executor for change intents.

    Pricing intents may issue two write calls (variant price fields, then the
    inventory item cost); pacing still applies once per intent.
    """

    def __init__(
        self,
        writer: StorefrontWriter,
        retry_policy: Optional[RetryPolicy] = None,
        pacer: Optional[Pacer] = None,
        sleep: Callable[[float], None] = time.sleep,
        unreachable_threshold: int = 3,
        metrics=None
    ):
        """
        Initialize the executor.

        Args:
            writer: Storefront write client
            retry_policy: Per-call retry policy (3 attempts, 2s/4s backoff)
            pacer: Inter-intent pacer (550ms spacing)
            sleep: Sleep used for retry backoff
            unreachable_threshold: Consecutive connection-level failures,
                before anything was applied, that make the run fatal
            metrics: Optional SyncMetrics for retry and outcome counters
        """
        self.writer = writer
        self.retry_policy = retry_policy or RetryPolicy()
        self.pacer = pacer or Pacer(sleep=sleep)
        self.sleep = sleep
        self.unreachable_threshold = unreachable_threshold
        self.metrics = metrics
        logger.debug("Initialized UpdateExecutor")

    def execute(self, intents: Sequence[ChangeIntent]) -> List[Outcome]:
        """
        Apply intents in order.

        Args:
            intents: Intents from the reconciler

        Returns:
            One outcome per intent, in input order

        Raises:
            WriteApiUnreachable: If the first intents all fail to reach the
                write API and nothing has been applied
        """
        outcomes: List[Outcome] = []
        applied = 0
        unreachable_streak = 0
        total = len(intents)

        logger.info(f"Executing {total} intents sequentially to respect API rate limits...")

        for position, intent in enumerate(intents, start=1):
            self.pacer.acquire()
            try:
                outcome = self.apply(intent)
            finally:
                self.pacer.release()

            outcomes.append(outcome)
            if self.metrics is not None:
                self.metrics.record_outcome(outcome)

            if outcome.applied:
                applied += 1
                unreachable_streak = 0
                logger.debug(f"[{position}/{total}] {intent.kind.value} applied to {intent.label or intent.target_id}")
                continue

            logger.warning(
                f"[{position}/{total}] {intent.kind.value} failed for "
                f"{intent.label or intent.target_id}: {outcome.error.message}"
            )

            if outcome.error.error_type == TransportUnreachable.__name__:
                unreachable_streak += 1
            else:
                unreachable_streak = 0

            if applied == 0 and unreachable_streak >= self.unreachable_threshold:
                raise WriteApiUnreachable(
                    f"Storefront write API unreachable: {unreachable_streak} consecutive "
                    f"intents failed to connect ({outcome.error.message})",
                    outcomes=outcomes,
                )

        failed = len(outcomes) - applied
        logger.info(f"All intents processed. {applied} applied, {failed} failed.")
        return outcomes

    def apply(self, intent: ChangeIntent) -> Outcome:
        """
        Apply one intent and record its outcome.

        Never raises for write failures; they become FAILED outcomes.
        """
        try:
            if intent.kind is IntentKind.SET_SELLABILITY:
                self._apply_sellability(intent)
            elif intent.kind is IntentKind.SET_PRICING:
                self._apply_pricing(intent)
            else:
                raise ValueError(f"Unknown intent kind: {intent.kind}")
        except IntentWriteFailure as e:
            return Outcome(
                intent=intent,
                result=OutcomeResult.FAILED,
                error=ErrorDetail(
                    error_type=type(e.cause).__name__,
                    message=str(e),
                    status_code=e.cause.status_code,
                    attempts=e.attempts,
                ),
            )

        return Outcome(intent=intent, result=OutcomeResult.APPLIED)

    def _apply_sellability(self, intent: ChangeIntent) -> None:
        payload: SellabilityChange = intent.payload
        self._call(
            lambda: self.writer.write_sellability(intent.target_id, payload.policy),
            operation="sellability",
            description=f"Set inventory policy {payload.policy.name} on {intent.target_id}",
        )

    def _apply_pricing(self, intent: ChangeIntent) -> None:
        payload: PricingChange = intent.payload
        self._call(
            lambda: self.writer.write_pricing(intent.target_id, payload.price, payload.compare_at_price),
            operation="pricing",
            description=f"Update price on {intent.target_id}",
        )

        if payload.cost is None or not payload.inventory_item_id:
            logger.debug(f"No inventory item for {intent.target_id}; skipping cost update")
            return

        self._call(
            lambda: self.writer.write_cost(payload.inventory_item_id, payload.cost),
            operation="cost",
            description=f"Update cost on {payload.inventory_item_id}",
        )

    def _call(self, call: Callable[[], None], operation: str, description: str) -> None:
        """
        Run one write call under the retry policy.

        Raises:
            IntentWriteFailure: If the call failed for good
        """
        def on_retry(state: RetryState) -> None:
            if self.metrics is not None:
                self.metrics.record_retry(operation)

        try:
            call_with_retry(
                call,
                self.retry_policy,
                description=description,
                sleep=self.sleep,
                on_retry=on_retry,
            )
        except RetryExhausted as e:
            raise IntentWriteFailure(
                f"{description} failed after {e.attempts} attempt(s): {e.error}",
                cause=e.error,
                attempts=e.attempts,
            ) from e.error
