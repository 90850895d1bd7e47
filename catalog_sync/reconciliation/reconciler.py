"""
Reconciler for Catalog Sync

Joins distributor FeedRecords to storefront CatalogItems by part key and emits
the ChangeIntents needed to bring each item's sellability and pricing in line
with the feed. Pure: no I/O, deterministic for a given input.
"""

import logging
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence

from catalog_sync.models import (
    CatalogItem,
    ChangeIntent,
    FeedRecord,
    IntentKind,
    OutOfStockHint,
    PricingChange,
    SellabilityChange,
    SellabilityPolicy,
)
from catalog_sync.reconciliation.comparer import MoneyComparer

logger = logging.getLogger(__name__)

DEFAULT_PRICE_FACTOR = Decimal("0.99")
HUNDRED = Decimal("100")


class Reconciler:
    """
    Decides, per catalog item, which writes are required.

    Sellability follows the item's out-of-stock hint, with storefront stock
    taking precedence over distributor stock. Pricing follows MSRP, either
    with a per-product markup or 1% under MSRP with MSRP as compare-at.
    """

    def __init__(self, comparer: Optional[MoneyComparer] = None):
        """
        Initialize the reconciler.

        Args:
            comparer: Money comparer (a cent-precision one by default)
        """
        self.comparer = comparer or MoneyComparer()
        self.unmatched_count = 0
        logger.debug("Initialized Reconciler")

    def reconcile(
        self,
        feed: Mapping[str, FeedRecord],
        items: Sequence[CatalogItem]
    ) -> List[ChangeIntent]:
        """
        Compute the intents for a run.

        Args:
            feed: Feed records keyed by part key
            items: Catalog items in fetch order

        Returns:
            Intents in item order; for one item the sellability intent
            precedes the pricing intent
        """
        intents: List[ChangeIntent] = []
        unmatched = 0

        for item in items:
            record = feed.get(item.part_key)
            if record is None:
                unmatched += 1
                logger.debug(f"No feed record for {item.part_key} ({item.display_name})")
                continue

            sellability = self.decide_sellability(item, record)
            if sellability is not None:
                intents.append(sellability)

            pricing = self.decide_pricing(item, record)
            if pricing is not None:
                intents.append(pricing)

        self.unmatched_count = unmatched

        sellability_count = sum(1 for i in intents if i.kind is IntentKind.SET_SELLABILITY)
        logger.info(
            f"Reconciled {len(items)} items against {len(feed)} feed records: "
            f"{len(intents)} intents ({sellability_count} sellability, "
            f"{len(intents) - sellability_count} pricing), {unmatched} unmatched"
        )
        return intents

    def decide_sellability(
        self,
        item: CatalogItem,
        record: FeedRecord
    ) -> Optional[ChangeIntent]:
        """
        Decide whether the item's inventory policy must change.

        Args:
            item: Catalog item
            record: Matching feed record

        Returns:
            SET_SELLABILITY intent, or None when the policy already matches
            or the item's hint is UNMANAGED
        """
        hint = item.out_of_stock_policy_hint
        if hint is OutOfStockHint.UNMANAGED:
            logger.debug(f"Inventory policy of {item.display_name} is managed by hand; leaving it")
            return None
        if hint is OutOfStockHint.DEFAULT:
            hint = OutOfStockHint.BLOCK

        if hint is OutOfStockHint.SPECIAL_ORDER:
            target = SellabilityPolicy.ALLOW_BACKORDER
        else:
            is_out_of_stock = item.local_stock <= 0 and record.available_qty <= 0
            if is_out_of_stock:
                target = SellabilityPolicy.BLOCK_WHEN_OOS
            else:
                target = SellabilityPolicy.ALLOW_BACKORDER

        if item.sellability_policy is target:
            return None

        return ChangeIntent(
            target_id=item.id,
            kind=IntentKind.SET_SELLABILITY,
            payload=SellabilityChange(policy=target, previous_policy=item.sellability_policy),
            label=item.display_name,
        )

    def decide_pricing(
        self,
        item: CatalogItem,
        record: FeedRecord
    ) -> Optional[ChangeIntent]:
        """
        Decide whether price, compare-at price or cost must change.

        Skipped for items excluded from price sync and for feed records
        without a positive MSRP and cost. Cost is only compared when the item
        has an inventory item to write it to.

        Args:
            item: Catalog item
            record: Matching feed record

        Returns:
            SET_PRICING intent, or None when nothing differs
        """
        if item.excluded_from_price_sync:
            return None
        if record.msrp <= 0 or record.unit_cost <= 0:
            return None

        targets = self.target_pricing(item, record)
        if not item.inventory_item_id:
            targets.pop("cost")
        current = {
            "price": item.current_price,
            "compare_at_price": item.current_compare_at_price,
            "cost": item.current_cost,
        }

        differences = self.comparer.compare_fields(current, targets)
        if not differences:
            return None

        logger.debug(f"Pricing differs for {item.display_name}: {differences}")

        return ChangeIntent(
            target_id=item.id,
            kind=IntentKind.SET_PRICING,
            payload=PricingChange(
                price=targets["price"],
                compare_at_price=targets["compare_at_price"],
                cost=targets.get("cost"),
                inventory_item_id=item.inventory_item_id,
                previous_price=self.comparer.round(item.current_price),
                previous_compare_at_price=self.comparer.round(item.current_compare_at_price),
                previous_cost=self.comparer.round(item.current_cost) if "cost" in targets else None,
            ),
            label=item.display_name,
        )

    def target_pricing(self, item: CatalogItem, record: FeedRecord) -> Dict[str, Decimal]:
        """
        Compute target price, compare-at price and cost for an item.

        Returns:
            Dictionary with price, compare_at_price and cost, each rounded
            half-up to cents
        """
        round_money = self.comparer.round

        if item.price_markup_percent is not None:
            factor = 1 + Decimal(item.price_markup_percent) / HUNDRED
            price = round_money(record.msrp * factor)
            compare_at = price
        else:
            price = round_money(record.msrp * DEFAULT_PRICE_FACTOR)
            compare_at = round_money(record.msrp)

        return {
            "price": price,
            "compare_at_price": compare_at,
            "cost": round_money(record.unit_cost),
        }
