#!/usr/bin/env python3
"""
Catalog Sync Tool

Reconciles storefront availability and pricing against the distributor's
inventory feed, with support for:
- Full sync runs (the same run the HTTP trigger performs)
- Dry runs and plans that compute intents without writing
- Prometheus alert rule export

Usage:
    ./scripts/sync.py run
    ./scripts/sync.py run --dry-run
    ./scripts/sync.py plan
    ./scripts/sync.py alerts --output alerts/catalog_sync.yml
"""

import sys
import argparse
import json
import logging
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from catalog_sync.config import SyncConfig
from catalog_sync.monitoring.alerts import AlertRuleGenerator
from catalog_sync.runner import SyncRunner
from catalog_sync.utils.logging_config import configure_logging

logger = logging.getLogger("catalog_sync.cli")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Distributor feed to storefront catalog sync",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    # Run command
    run_parser = subparsers.add_parser("run", help="Run a full sync")
    run_parser.add_argument("--dry-run", action="store_true", help="Compute changes without writing")

    # Plan command
    subparsers.add_parser("plan", help="Print the changes a sync would make")

    # Alerts command
    alerts_parser = subparsers.add_parser("alerts", help="Export Prometheus alert rules")
    alerts_parser.add_argument("--output", required=True, help="Output YAML file")

    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    return parser


def main(argv=None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    try:
        if args.command == "alerts":
            configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)
            generator = AlertRuleGenerator()
            generator.export_to_yaml(args.output)
            print(json.dumps(generator.get_alert_summary(), indent=2))
            return 0

        config = SyncConfig.load()
        configure_logging(
            level=logging.DEBUG if args.verbose else logging.INFO,
            json_logging=config.json_logging
        )
        runner = SyncRunner.from_config(config)

        if args.command == "run":
            result = runner.run(dry_run=True if args.dry_run else None)
            print(json.dumps(result.to_dict(), indent=2))
            return 0 if result.ok else 1

        elif args.command == "plan":
            intents = runner.plan()
            print(json.dumps([intent.to_dict() for intent in intents], indent=2))
            return 0

        return 1

    except Exception as e:
        logger.error(f"Error: {e}", exc_info=args.verbose)
        return 1


if __name__ == "__main__":
    sys.exit(main())
