"""
HTML rendering for sync notification e-mails.
"""

import html
from datetime import datetime, timezone
from decimal import Decimal
from typing import Iterable, Optional

from catalog_sync.models import IntentKind, PricingChange
from catalog_sync.reporting.summary import RunSummary

CELL = 'style="padding:8px; border:1px solid #ddd;"'
CHANGED_CELL = 'style="padding:8px; border:1px solid #ddd; background-color:#fff8e1;"'


def _money(value: Optional[Decimal]) -> str:
    return f"${value:.2f}" if value is not None else "N/A"


def _cell(old: Optional[Decimal], new: Optional[Decimal]) -> str:
    style = CHANGED_CELL if _money(old) != _money(new) else CELL
    return f"<td {style}>{_money(old)} &rarr; {_money(new)}</td>"


def summary_subject(summary: RunSummary, prefix: str) -> str:
    subject = f"{prefix} Sync Report: {summary.applied_count} Updates Made"
    if summary.failed_count:
        subject += f", {summary.failed_count} Failed"
    return subject


def failure_subject(message: str, prefix: str) -> str:
    return f"{prefix} Sync Failure: {message}"


def render_summary(summary: RunSummary, prefix: str) -> str:
    """Render the summary e-mail body."""
    parts = [f"<h1>{html.escape(prefix)} Inventory &amp; Price Sync Report</h1>"]

    availability = summary.applied(IntentKind.SET_SELLABILITY)
    if availability:
        items = "".join(
            f"<li><b>{html.escape(o.intent.label)}</b>: {o.intent.payload.action}</li>"
            for o in availability
        )
        parts.append(f"<h2>Availability Updates ({len(availability)})</h2><ul>{items}</ul>")

    pricing = summary.applied(IntentKind.SET_PRICING)
    if pricing:
        rows = []
        for outcome in pricing:
            change: PricingChange = outcome.intent.payload
            rows.append(
                "<tr>"
                f"<td {CELL}><b>{html.escape(outcome.intent.label)}</b></td>"
                f"{_cell(change.previous_price, change.price)}"
                f"{_cell(change.previous_compare_at_price, change.compare_at_price)}"
                f"{_cell(change.previous_cost, change.cost)}"
                "</tr>"
            )
        header = "".join(
            f"<th {CELL}>{name}</th>" for name in ("Product", "Price", "Compare At", "Cost")
        )
        parts.append(
            f"<h2>Pricing Updates ({len(pricing)})</h2>"
            '<table style="width:100%; border-collapse: collapse;">'
            f'<thead><tr style="text-align:left; background-color:#f4f4f4;">{header}</tr></thead>'
            f"<tbody>{''.join(rows)}</tbody></table>"
        )

    if summary.failures:
        items = "".join(
            f"<li><b>{html.escape(line.label or line.target_id)}</b> "
            f"({line.kind.value}): {html.escape(line.error.message)}</li>"
            for line in summary.failures
        )
        parts.append(f"<h2>Failed Updates ({len(summary.failures)})</h2><ul>{items}</ul>")

    return "".join(parts)


def render_failure(
    prefix: str,
    message: str,
    traceback_text: str,
    log_lines: Iterable[str],
    timestamp: Optional[datetime] = None
) -> str:
    """Render the fatal-failure e-mail body."""
    timestamp = timestamp or datetime.now(timezone.utc)
    log_text = "\n".join(log_lines)
    return (
        f"<h1>{html.escape(prefix)} Sync Failed</h1>"
        "<p>The sync process encountered a critical error and was aborted.</p>"
        f"<p><b>Time:</b> {timestamp.isoformat()}</p>"
        f"<p><b>Error:</b> {html.escape(message)}</p>"
        f"<pre>{html.escape(log_text)}\n\n--- TRACEBACK ---\n{html.escape(traceback_text)}</pre>"
    )
