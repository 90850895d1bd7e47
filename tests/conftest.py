"""
Pytest configuration and shared fixtures for unit tests.

Provides factories for catalog items and feed records, and a fake clock
that advances when slept on.
"""

from decimal import Decimal

import pytest

from catalog_sync.models import (
    CatalogItem,
    FeedRecord,
    OutOfStockHint,
    SellabilityPolicy,
)


class FakeClock:
    """Monotonic clock whose sleep advances time instead of blocking."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def make_item():
    """Factory for CatalogItem with sensible defaults."""
    def _make(**overrides):
        values = {
            "id": "gid://shopify/ProductVariant/1001",
            "parent_id": "gid://shopify/Product/2001",
            "part_key": "BTI-100",
            "local_stock": 0,
            "sellability_policy": SellabilityPolicy.BLOCK_WHEN_OOS,
            "current_price": Decimal("99.00"),
            "current_compare_at_price": Decimal("100.00"),
            "current_cost": Decimal("60.00"),
            "out_of_stock_policy_hint": OutOfStockHint.DEFAULT,
            "price_markup_percent": None,
            "excluded_from_price_sync": False,
            "inventory_item_id": "gid://shopify/InventoryItem/3001",
            "display_name": "Chain - 11 Speed",
        }
        values.update(overrides)
        return CatalogItem(**values)
    return _make


@pytest.fixture
def make_record():
    """Factory for FeedRecord with sensible defaults."""
    def _make(**overrides):
        values = {
            "part_key": "BTI-100",
            "available_qty": 0,
            "unit_cost": Decimal("60.00"),
            "msrp": Decimal("100.00"),
        }
        values.update(overrides)
        return FeedRecord(**values)
    return _make
