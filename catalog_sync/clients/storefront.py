"""
Storefront Client for Catalog Sync

Reads sync-eligible variants through the Shopify Admin GraphQL API (paged by
cursor) and writes inventory policy, price fields and unit cost through the
Admin REST API.
"""

import logging
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Optional

import requests

from catalog_sync.clients.http import send
from catalog_sync.errors import (
    CatalogFetchFailure,
    InvalidCredentials,
    PermanentTransportError,
)
from catalog_sync.execution.retry import RetryExhausted, RetryPolicy, call_with_retry
from catalog_sync.models import CatalogItem, OutOfStockHint, SellabilityPolicy

logger = logging.getLogger(__name__)

BLOCK_HINT_VALUE = "make unavailable (track inventory)"
SPECIAL_ORDER_MARKER = "special order"

VARIANTS_QUERY = """
query($cursor: String, $pageSize: Int!) {
  productVariants(first: $pageSize, after: $cursor) {
    edges {
      node {
        id
        title
        price
        compareAtPrice
        inventoryQuantity
        inventoryPolicy
        inventoryItem { id unitCost { amount } }
        partNumber: metafield(namespace: "%(namespace)s", key: "%(part_key)s") { value }
        product {
          id
          title
          outOfStockAction: metafield(namespace: "%(namespace)s", key: "%(oos_key)s") { value }
          priceAdjustmentPercentage: metafield(namespace: "%(namespace)s", key: "%(markup_key)s") { value }
          excludeFromPriceSync: metafield(namespace: "%(namespace)s", key: "%(exclude_key)s") { value }
        }
      }
    }
    pageInfo { hasNextPage endCursor }
  }
}
"""


def numeric_id(global_id: str) -> str:
    """'gid://shopify/ProductVariant/123' -> '123'."""
    return str(global_id).rstrip("/").split("/")[-1]


def _metafield_value(node: Optional[Dict[str, Any]], alias: str) -> Optional[str]:
    field = (node or {}).get(alias) or {}
    value = field.get("value")
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        return None


def parse_out_of_stock_hint(value: Optional[str], label: str = "") -> OutOfStockHint:
    """
    Map the out-of-stock metafield text to a hint.

    Values that are set but not recognised resolve to UNMANAGED, which leaves
    the variant's inventory policy untouched.
    """
    normalized = (value or "").strip().lower()
    if not normalized:
        return OutOfStockHint.DEFAULT

    if normalized == BLOCK_HINT_VALUE:
        return OutOfStockHint.BLOCK
    if SPECIAL_ORDER_MARKER in normalized:
        return OutOfStockHint.SPECIAL_ORDER

    logger.warning(
        f"Unrecognized out-of-stock action {value!r} on {label or 'item'}; leaving inventory policy unmanaged"
    )
    return OutOfStockHint.UNMANAGED


def parse_markup_percent(value: Optional[str], label: str = "") -> Optional[int]:
    """Integer markup percent, or None when unset or unparsable."""
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return int(Decimal(value))
    except (InvalidOperation, ValueError, OverflowError):
        logger.warning(f"Ignoring non-numeric price adjustment {value!r} on {label or 'item'}")
        return None


class StorefrontClient:
    """
    Shopify Admin API client.

    GraphQL for the paged catalog read, REST for writes.
    """

    def __init__(
        self,
        store_domain: str,
        access_token: str,
        api_version: str = "2024-04",
        page_size: int = 250,
        retry_policy: Optional[RetryPolicy] = None,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None,
        sleep: Callable[[float], None] = time.sleep,
        namespace: str = "custom",
        part_number_key: str = "bti_part_number",
        out_of_stock_key: str = "out_of_stock_action",
        markup_key: str = "price_adjustment_percentage",
        exclude_key: str = "exclude_from_price_sync"
    ):
        """
        Initialize the storefront client.

        Args:
            store_domain: Admin host, e.g. "shop.myshopify.com"
            access_token: Admin API access token
            api_version: Admin API version
            page_size: Variants per GraphQL page (max 250)
            retry_policy: Retry policy for catalog page reads
            timeout: Request timeout in seconds
            session: requests session to use
            sleep: Sleep used for retry backoff
            namespace: Metafield namespace
            part_number_key: Variant metafield with the distributor part number
            out_of_stock_key: Product metafield with the out-of-stock action
            markup_key: Product metafield with the markup percent
            exclude_key: Product metafield excluding the product from price sync
        """
        self.base_url = f"https://{store_domain}/admin/api/{api_version}"
        self.page_size = page_size
        self.retry_policy = retry_policy or RetryPolicy()
        self.timeout = timeout
        self.sleep = sleep
        self.session = session or requests.Session()
        self.session.headers.update({
            "X-Shopify-Access-Token": access_token,
            "Content-Type": "application/json",
            "Accept": "application/json",
        })
        self.query = VARIANTS_QUERY % {
            "namespace": namespace,
            "part_key": part_number_key,
            "oos_key": out_of_stock_key,
            "markup_key": markup_key,
            "exclude_key": exclude_key,
        }

    # ------------------------------------------------------------------ reads

    def fetch_all_sync_eligible_items(self) -> List[CatalogItem]:
        """
        Read every variant carrying a distributor part number.

        Returns:
            Catalog items in fetch order

        Raises:
            InvalidCredentials: If the access token is rejected
            CatalogFetchFailure: If any page cannot be read
        """
        logger.info("Fetching all storefront variants with a distributor part number...")

        items: List[CatalogItem] = []
        cursor: Optional[str] = None
        page = 0
        scanned = 0

        while True:
            page += 1
            data = self._fetch_page(cursor, page)

            connection = data.get("productVariants")
            if connection is None:
                raise CatalogFetchFailure(f"Catalog page {page} returned no productVariants")

            edges = connection.get("edges") or []
            scanned += len(edges)
            for edge in edges:
                item = self.to_catalog_item(edge.get("node") or {})
                if item is not None:
                    items.append(item)

            page_info = connection.get("pageInfo") or {}
            if not page_info.get("hasNextPage"):
                break
            cursor = page_info.get("endCursor")
            if not cursor:
                raise CatalogFetchFailure(f"Page {page} reported more pages but no cursor")

        logger.info(f"Found {len(items)} sync-eligible variants out of {scanned} scanned ({page} pages)")
        return items

    def _fetch_page(self, cursor: Optional[str], page: int) -> Dict[str, Any]:
        def request_page() -> Dict[str, Any]:
            response = send(
                self.session,
                "POST",
                f"{self.base_url}/graphql.json",
                f"Catalog page {page} request",
                json={"query": self.query, "variables": {"cursor": cursor, "pageSize": self.page_size}},
                timeout=self.timeout,
            )
            return response.json()

        try:
            body = call_with_retry(
                request_page,
                self.retry_policy,
                description=f"Catalog page {page} request",
                sleep=self.sleep,
            )
        except RetryExhausted as e:
            if isinstance(e.error, PermanentTransportError) and e.error.is_auth:
                raise InvalidCredentials(f"Storefront rejected the admin API token: {e.error}") from e.error
            raise CatalogFetchFailure(
                f"Catalog fetch failed on page {page} after {e.attempts} attempt(s): {e.error}"
            ) from e.error
        except ValueError as e:
            raise CatalogFetchFailure(f"Catalog page {page} returned invalid JSON: {e}") from e

        errors = body.get("errors")
        if errors:
            messages = "; ".join(
                str(err.get("message", err)) if isinstance(err, dict) else str(err) for err in errors
            )
            raise CatalogFetchFailure(f"Catalog page {page} returned GraphQL errors: {messages}")

        return body.get("data") or {}

    def to_catalog_item(self, node: Dict[str, Any]) -> Optional[CatalogItem]:
        """
        Map one GraphQL variant node to a CatalogItem.

        Returns:
            CatalogItem, or None if the variant has no part number
        """
        part_key = _metafield_value(node, "partNumber")
        if not part_key:
            return None

        product = node.get("product") or {}
        label = f"{product.get('title', '')} - {node.get('title', '')}"

        inventory_item = node.get("inventoryItem") or {}
        unit_cost = (inventory_item.get("unitCost") or {}).get("amount")

        try:
            policy = SellabilityPolicy(str(node.get("inventoryPolicy", "")).upper())
        except ValueError:
            logger.warning(f"Unknown inventory policy {node.get('inventoryPolicy')!r} on {label}; assuming DENY")
            policy = SellabilityPolicy.BLOCK_WHEN_OOS

        exclude_value = _metafield_value(product, "excludeFromPriceSync")

        return CatalogItem(
            id=node["id"],
            parent_id=product.get("id", ""),
            part_key=part_key,
            local_stock=int(node.get("inventoryQuantity") or 0),
            sellability_policy=policy,
            current_price=_to_decimal(node.get("price")) or Decimal("0"),
            current_compare_at_price=_to_decimal(node.get("compareAtPrice")),
            current_cost=_to_decimal(unit_cost),
            out_of_stock_policy_hint=parse_out_of_stock_hint(
                _metafield_value(product, "outOfStockAction"), label
            ),
            price_markup_percent=parse_markup_percent(
                _metafield_value(product, "priceAdjustmentPercentage"), label
            ),
            excluded_from_price_sync=(exclude_value or "").lower() == "true",
            inventory_item_id=inventory_item.get("id"),
            display_name=label,
        )

    # ----------------------------------------------------------------- writes

    def write_sellability(self, item_id: str, policy: SellabilityPolicy) -> None:
        """Set a variant's inventory policy ("continue" or "deny")."""
        variant_id = numeric_id(item_id)
        self._put(
            f"variants/{variant_id}.json",
            {"variant": {"id": variant_id, "inventory_policy": policy.value.lower()}},
            f"Inventory policy update for variant {variant_id}",
        )

    def write_pricing(self, item_id: str, price: Decimal, compare_at_price: Optional[Decimal]) -> None:
        """Set a variant's price and compare-at price."""
        variant_id = numeric_id(item_id)
        self._put(
            f"variants/{variant_id}.json",
            {
                "variant": {
                    "id": variant_id,
                    "price": f"{price:.2f}",
                    "compare_at_price": f"{compare_at_price:.2f}" if compare_at_price is not None else None,
                }
            },
            f"Price update for variant {variant_id}",
        )

    def write_cost(self, inventory_item_id: str, cost: Decimal) -> None:
        """Set the unit cost on a variant's inventory item."""
        item_id = numeric_id(inventory_item_id)
        self._put(
            f"inventory_items/{item_id}.json",
            {"inventory_item": {"id": item_id, "cost": f"{cost:.2f}"}},
            f"Cost update for inventory item {item_id}",
        )

    def _put(self, path: str, payload: Dict[str, Any], what: str) -> None:
        send(self.session, "PUT", f"{self.base_url}/{path}", what, json=payload, timeout=self.timeout)
        logger.debug(f"{what} succeeded")
