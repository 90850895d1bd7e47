"""
Alert Rule Generator for Prometheus AlertManager

Generates alert rule definitions for catalog sync monitoring.
Rules read the last-run values pushed by SyncMetrics: run failures, stale
syncs, write failures and empty inputs.
"""

import logging
from typing import Any, Dict

import yaml

logger = logging.getLogger(__name__)


class AlertRuleGenerator:
    """Generates Prometheus AlertManager alert rules."""

    def __init__(self, stale_after_hours: int = 26):
        """
        Initialize alert rule generator.

        Args:
            stale_after_hours: Hours without a successful run before alerting
                (daily schedule plus slack)
        """
        self.stale_after_hours = stale_after_hours
        logger.debug("AlertRuleGenerator initialized")

    def generate_alert_rules(self) -> Dict[str, Any]:
        """
        Generate complete alert rule configuration.

        Returns:
            Dict with alert rule groups in Prometheus format
        """
        groups = [
            self._generate_run_alerts(),
            self._generate_write_alerts(),
            self._generate_input_alerts(),
        ]

        config = {
            "groups": groups
        }

        logger.info(f"Generated {len(groups)} alert rule groups")
        return config

    def _generate_run_alerts(self) -> Dict[str, Any]:
        """Generate run-level alerts."""
        stale_seconds = self.stale_after_hours * 3600
        return {
            "name": "catalog_sync_runs",
            "interval": "5m",
            "rules": [
                {
                    "alert": "CatalogSyncRunFailed",
                    "expr": "catalog_sync_last_run_failed == 1",
                    "for": "0m",
                    "labels": {
                        "severity": "critical",
                        "component": "sync"
                    },
                    "annotations": {
                        "summary": "Catalog sync run failed",
                        "description": "A catalog sync run aborted with a fatal error. Check the failure e-mail and run logs."
                    }
                },
                {
                    "alert": "CatalogSyncStale",
                    "expr": f"time() - catalog_sync_last_success_timestamp_seconds > {stale_seconds}",
                    "for": "15m",
                    "labels": {
                        "severity": "warning",
                        "component": "sync"
                    },
                    "annotations": {
                        "summary": "Catalog sync has not succeeded recently",
                        "description": f"No successful catalog sync in the last {self.stale_after_hours} hours"
                    }
                },
                {
                    "alert": "CatalogSyncSlowRun",
                    "expr": "catalog_sync_last_run_duration_seconds > 1800",
                    "for": "0m",
                    "labels": {
                        "severity": "info",
                        "component": "sync"
                    },
                    "annotations": {
                        "summary": "Catalog sync run was slow",
                        "description": "The last run took {{ $value }}s (threshold: 1800s)"
                    }
                }
            ]
        }

    def _generate_write_alerts(self) -> Dict[str, Any]:
        """Generate storefront write alerts."""
        return {
            "name": "catalog_sync_writes",
            "interval": "5m",
            "rules": [
                {
                    "alert": "CatalogSyncIntentFailures",
                    "expr": "sum by (kind) (catalog_sync_intents_total{result=\"FAILED\"}) > 10",
                    "for": "0m",
                    "labels": {
                        "severity": "warning",
                        "component": "executor"
                    },
                    "annotations": {
                        "summary": "Storefront updates failing",
                        "description": "{{ $value }} {{ $labels.kind }} updates failed in the last run"
                    }
                },
                {
                    "alert": "CatalogSyncHighRetryRate",
                    "expr": "sum by (operation) (catalog_sync_write_retries_total) > 50",
                    "for": "0m",
                    "labels": {
                        "severity": "info",
                        "component": "executor"
                    },
                    "annotations": {
                        "summary": "Frequent storefront write retries",
                        "description": "{{ $value }} retried {{ $labels.operation }} writes in the last run"
                    }
                }
            ]
        }

    def _generate_input_alerts(self) -> Dict[str, Any]:
        """Generate alerts on feed and catalog sizes."""
        return {
            "name": "catalog_sync_inputs",
            "interval": "5m",
            "rules": [
                {
                    "alert": "CatalogSyncEmptyFeed",
                    "expr": "catalog_sync_feed_records == 0 and on(job) catalog_sync_last_run_failed == 0",
                    "for": "5m",
                    "labels": {
                        "severity": "warning",
                        "component": "feed"
                    },
                    "annotations": {
                        "summary": "Distributor feed was empty",
                        "description": "The last run decoded no records from the distributor feed"
                    }
                },
                {
                    "alert": "CatalogSyncNoEligibleItems",
                    "expr": "catalog_sync_catalog_items == 0 and on(job) catalog_sync_last_run_failed == 0",
                    "for": "5m",
                    "labels": {
                        "severity": "warning",
                        "component": "catalog"
                    },
                    "annotations": {
                        "summary": "No sync-eligible storefront variants",
                        "description": "The last run found no variants carrying a distributor part number"
                    }
                }
            ]
        }

    def export_to_yaml(self, output_file: str) -> None:
        """
        Export alert rules to YAML file.

        Args:
            output_file: Path to output YAML file
        """
        rules = self.generate_alert_rules()

        with open(output_file, 'w') as f:
            yaml.dump(rules, f, default_flow_style=False, sort_keys=False)

        logger.info(f"Alert rules exported to {output_file}")

    def get_alert_summary(self) -> Dict[str, int]:
        """
        Get summary of alert rules.

        Returns:
            Dict with counts by severity
        """
        rules = self.generate_alert_rules()

        summary = {
            "total_groups": len(rules["groups"]),
            "total_alerts": 0,
            "critical": 0,
            "warning": 0,
            "info": 0
        }

        for group in rules["groups"]:
            for rule in group["rules"]:
                summary["total_alerts"] += 1
                severity = rule["labels"].get("severity", "unknown")
                if severity in summary:
                    summary[severity] += 1

        return summary
