"""
Reconciliation Module for Catalog Sync

This module turns the distributor feed and the storefront catalog into the
list of writes that bring the storefront in line with the feed.

Main components:
- normalizer: Feed CSV decoding into FeedRecords
- comparer: Cent-precision money rounding and comparison
- reconciler: Sellability and pricing decisions per catalog item

Usage:
    from catalog_sync.reconciliation import FeedNormalizer, Reconciler

    # Decode the feed
    normalizer = FeedNormalizer()
    feed = normalizer.parse_csv(csv_text)

    # Compute change intents
    reconciler = Reconciler()
    intents = reconciler.reconcile(feed, catalog_items)
"""

from catalog_sync.reconciliation.comparer import MoneyComparer
from catalog_sync.reconciliation.normalizer import FeedNormalizer
from catalog_sync.reconciliation.reconciler import Reconciler

__all__ = [
    "MoneyComparer",
    "FeedNormalizer",
    "Reconciler",
]
