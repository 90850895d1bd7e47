"""
Data Model for Catalog Sync

Typed value objects shared by the normalizer, reconciler, executor and
report builder. Everything here is immutable once created.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Union


class SellabilityPolicy(str, Enum):
    """Whether a variant may be sold once its tracked stock is exhausted."""

    ALLOW_BACKORDER = "CONTINUE"
    BLOCK_WHEN_OOS = "DENY"


class OutOfStockHint(str, Enum):
    """
    Per-product out-of-stock behaviour configured by the merchant.

    UNMANAGED marks a value this sync does not recognise; the variant's
    inventory policy is then left as the merchant set it.
    """

    BLOCK = "BLOCK"
    SPECIAL_ORDER = "SPECIAL_ORDER"
    DEFAULT = "DEFAULT"
    UNMANAGED = "UNMANAGED"


class IntentKind(str, Enum):
    SET_SELLABILITY = "SET_SELLABILITY"
    SET_PRICING = "SET_PRICING"


class OutcomeResult(str, Enum):
    APPLIED = "APPLIED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class FeedRecord:
    """
    One distributor SKU as decoded from the feed.

    Attributes:
        part_key: Distributor part number
        available_qty: Quantity available at the distributor (>= 0)
        unit_cost: Our cost per unit (>= 0)
        msrp: Manufacturer suggested retail price (>= 0)
    """

    part_key: str
    available_qty: int
    unit_cost: Decimal
    msrp: Decimal


@dataclass(frozen=True)
class CatalogItem:
    """
    One sellable storefront variant linked to a distributor part.

    Attributes:
        id: Variant identifier (GraphQL global id)
        parent_id: Product identifier
        part_key: Distributor part number stored on the variant
        local_stock: Tracked storefront inventory quantity
        sellability_policy: Current inventory policy
        current_price: Current selling price
        current_compare_at_price: Current compare-at price, if any
        current_cost: Current unit cost, if any
        out_of_stock_policy_hint: Merchant out-of-stock behaviour
        price_markup_percent: Markup over MSRP, if configured
        excluded_from_price_sync: Whether pricing is managed manually
        inventory_item_id: Inventory item backing the cost field
        display_name: "Product - Variant" label used in reports
    """

    id: str
    parent_id: str
    part_key: str
    local_stock: int
    sellability_policy: SellabilityPolicy
    current_price: Decimal
    current_compare_at_price: Optional[Decimal] = None
    current_cost: Optional[Decimal] = None
    out_of_stock_policy_hint: OutOfStockHint = OutOfStockHint.DEFAULT
    price_markup_percent: Optional[int] = None
    excluded_from_price_sync: bool = False
    inventory_item_id: Optional[str] = None
    display_name: str = ""


@dataclass(frozen=True)
class SellabilityChange:
    policy: SellabilityPolicy
    previous_policy: SellabilityPolicy

    @property
    def action(self) -> str:
        if self.policy is SellabilityPolicy.ALLOW_BACKORDER:
            return "Made Available"
        return "Made Unavailable"


@dataclass(frozen=True)
class PricingChange:
    price: Decimal
    compare_at_price: Decimal
    cost: Optional[Decimal]
    inventory_item_id: Optional[str] = None
    previous_price: Optional[Decimal] = None
    previous_compare_at_price: Optional[Decimal] = None
    previous_cost: Optional[Decimal] = None


IntentPayload = Union[SellabilityChange, PricingChange]


@dataclass(frozen=True)
class ChangeIntent:
    """A proposed, not yet applied, write against one catalog item."""

    target_id: str
    kind: IntentKind
    payload: IntentPayload
    label: str = ""

    def to_dict(self) -> dict:
        if isinstance(self.payload, SellabilityChange):
            payload = {
                "policy": self.payload.policy.name,
                "previous_policy": self.payload.previous_policy.name,
            }
        else:
            payload = {
                key: (str(value) if value is not None else None)
                for key, value in vars(self.payload).items()
            }
        return {
            "target_id": self.target_id,
            "kind": self.kind.value,
            "label": self.label,
            "payload": payload,
        }


@dataclass(frozen=True)
class ErrorDetail:
    error_type: str
    message: str
    status_code: Optional[int] = None
    attempts: int = 1


@dataclass(frozen=True)
class Outcome:
    """Recorded result of attempting one intent."""

    intent: ChangeIntent
    result: OutcomeResult
    error: Optional[ErrorDetail] = None

    @property
    def applied(self) -> bool:
        return self.result is OutcomeResult.APPLIED

    def to_dict(self) -> dict:
        data = {"intent": self.intent.to_dict(), "result": self.result.value}
        if self.error is not None:
            data["error"] = dict(vars(self.error))
        return data


@dataclass(frozen=True)
class FeedStats:
    """Counters collected while normalizing a feed."""

    rows: int = 0
    records: int = 0
    skipped_rows: int = 0
    coerced_fields: int = 0
    duplicate_keys: tuple = field(default_factory=tuple)
