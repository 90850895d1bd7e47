"""
Run Report Builder

Aggregates executor outcomes into a RunSummary used to decide whether a
notification is warranted and to render it.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from catalog_sync.models import ErrorDetail, IntentKind, Outcome

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FailureLine:
    target_id: str
    label: str
    kind: IntentKind
    error: ErrorDetail


@dataclass(frozen=True)
class RunSummary:
    """
    Aggregated result of the executing phase.

    Attributes:
        applied_count: Intents applied
        failed_count: Intents attempted but failed
        applied_by_kind: Applied outcomes grouped by intent kind
        failures: One line per failed intent, in execution order
    """

    applied_count: int = 0
    failed_count: int = 0
    applied_by_kind: Dict[IntentKind, List[Outcome]] = field(default_factory=dict)
    failures: List[FailureLine] = field(default_factory=list)

    @property
    def total_changes(self) -> int:
        return self.applied_count + self.failed_count

    @property
    def needs_notification(self) -> bool:
        return self.total_changes > 0

    def applied(self, kind: IntentKind) -> List[Outcome]:
        return self.applied_by_kind.get(kind, [])

    def to_dict(self) -> dict:
        return {
            "applied_count": self.applied_count,
            "failed_count": self.failed_count,
            "applied_by_kind": {
                kind.value: len(outcomes) for kind, outcomes in self.applied_by_kind.items()
            },
            "failures": [
                {
                    "target_id": line.target_id,
                    "label": line.label,
                    "kind": line.kind.value,
                    "error": line.error.message,
                }
                for line in self.failures
            ],
        }


def summarize(outcomes: Sequence[Outcome]) -> RunSummary:
    """
    Build a RunSummary from an outcome log.

    Args:
        outcomes: Outcomes in execution order

    Returns:
        RunSummary
    """
    applied_by_kind: Dict[IntentKind, List[Outcome]] = {}
    failures: List[FailureLine] = []

    for outcome in outcomes:
        if outcome.applied:
            applied_by_kind.setdefault(outcome.intent.kind, []).append(outcome)
        else:
            failures.append(FailureLine(
                target_id=outcome.intent.target_id,
                label=outcome.intent.label,
                kind=outcome.intent.kind,
                error=outcome.error,
            ))

    applied_count = sum(len(group) for group in applied_by_kind.values())

    summary = RunSummary(
        applied_count=applied_count,
        failed_count=len(failures),
        applied_by_kind=applied_by_kind,
        failures=failures,
    )
    logger.debug(f"Run summary: {summary.to_dict()}")
    return summary
