"""
Monitoring Module for Catalog Sync

This module provides observability components for sync runs, including:
- Prometheus metrics pushed to a Pushgateway
- Alert rule definitions

Usage:
    from catalog_sync.monitoring import SyncMetrics, AlertRuleGenerator

    # Record and push run metrics
    metrics = SyncMetrics()
    metrics.record_run(status="success", duration_seconds=42.0)
    metrics.push("http://pushgateway:9091")

    # Generate alert rules
    alerts = AlertRuleGenerator()
    rules = alerts.generate_alert_rules()
"""

from catalog_sync.monitoring.metrics import SyncMetrics
from catalog_sync.monitoring.alerts import AlertRuleGenerator

__all__ = [
    "SyncMetrics",
    "AlertRuleGenerator",
]
