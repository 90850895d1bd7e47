"""
Unit tests for the storefront client.

Tests catalog pagination, node mapping, error mapping and REST writes.
"""

import pytest
from decimal import Decimal
from unittest.mock import Mock

from catalog_sync.clients.storefront import (
    StorefrontClient,
    numeric_id,
    parse_markup_percent,
    parse_out_of_stock_hint,
)
from catalog_sync.errors import (
    CatalogFetchFailure,
    InvalidCredentials,
    PermanentTransportError,
    TransientTransportError,
)
from catalog_sync.models import OutOfStockHint, SellabilityPolicy


def make_response(status_code=200, body=None, reason="OK"):
    response = Mock()
    response.status_code = status_code
    response.ok = status_code < 400
    response.reason = reason
    response.json.return_value = body if body is not None else {}
    return response


def variant_node(number, part_number="BTI-1", **overrides):
    node = {
        "id": f"gid://shopify/ProductVariant/{number}",
        "title": "Default Title",
        "price": "95.00",
        "compareAtPrice": None,
        "inventoryQuantity": 3,
        "inventoryPolicy": "DENY",
        "inventoryItem": {"id": f"gid://shopify/InventoryItem/{number}", "unitCost": {"amount": "60.0"}},
        "partNumber": {"value": part_number} if part_number is not None else None,
        "product": {
            "id": "gid://shopify/Product/77",
            "title": "Chain",
            "outOfStockAction": None,
            "priceAdjustmentPercentage": None,
            "excludeFromPriceSync": None,
        },
    }
    node.update(overrides)
    return node


def page(nodes, has_next=False, cursor=None):
    return {
        "data": {
            "productVariants": {
                "edges": [{"node": node} for node in nodes],
                "pageInfo": {"hasNextPage": has_next, "endCursor": cursor},
            }
        }
    }


class TestMetafieldParsing:
    """Test suite for metafield value mapping."""

    def test_out_of_stock_hint_values(self):
        """Test the known out-of-stock action values."""
        assert parse_out_of_stock_hint("Make Unavailable (Track Inventory)") is OutOfStockHint.BLOCK
        assert parse_out_of_stock_hint("Available for Special Order") is OutOfStockHint.SPECIAL_ORDER
        assert parse_out_of_stock_hint(None) is OutOfStockHint.DEFAULT

    def test_unknown_out_of_stock_hint_is_unmanaged(self, caplog):
        """Test that an unknown value leaves the policy to the merchant."""
        assert parse_out_of_stock_hint("Keep Selling (Manual)", "Chain") is OutOfStockHint.UNMANAGED
        assert "Unrecognized out-of-stock action" in caplog.text

    def test_blank_out_of_stock_hint_is_default(self):
        """Test that whitespace counts as unset."""
        assert parse_out_of_stock_hint("   ") is OutOfStockHint.DEFAULT

    def test_markup_parsing(self, caplog):
        """Test integer markup parsing."""
        assert parse_markup_percent("10") == 10
        assert parse_markup_percent("-5") == -5
        assert parse_markup_percent("12.5") == 12
        assert parse_markup_percent(None) is None
        assert parse_markup_percent("ten") is None
        assert "non-numeric price adjustment" in caplog.text

    def test_numeric_id(self):
        """Test extraction of the numeric id from a global id."""
        assert numeric_id("gid://shopify/ProductVariant/123") == "123"
        assert numeric_id("456") == "456"


class TestCatalogFetch:
    """Test suite for fetch_all_sync_eligible_items."""

    @pytest.fixture
    def session(self):
        session = Mock()
        session.headers = {}
        return session

    @pytest.fixture
    def sleep(self):
        return Mock()

    @pytest.fixture
    def client(self, session, sleep):
        return StorefrontClient("shop.myshopify.com", "shpat_token", session=session, sleep=sleep)

    def test_sets_access_token_header(self, client, session):
        """Test the admin API token header."""
        assert session.headers["X-Shopify-Access-Token"] == "shpat_token"

    def test_single_page(self, client, session):
        """Test a catalog that fits in one page."""
        session.request.return_value = make_response(body=page([variant_node(1)]))

        items = client.fetch_all_sync_eligible_items()

        assert len(items) == 1
        item = items[0]
        assert item.id == "gid://shopify/ProductVariant/1"
        assert item.parent_id == "gid://shopify/Product/77"
        assert item.part_key == "BTI-1"
        assert item.local_stock == 3
        assert item.sellability_policy is SellabilityPolicy.BLOCK_WHEN_OOS
        assert item.current_price == Decimal("95.00")
        assert item.current_compare_at_price is None
        assert item.current_cost == Decimal("60.0")
        assert item.inventory_item_id == "gid://shopify/InventoryItem/1"
        assert item.display_name == "Chain - Default Title"

        method, url = session.request.call_args.args
        assert method == "POST"
        assert url == "https://shop.myshopify.com/admin/api/2024-04/graphql.json"
        variables = session.request.call_args.kwargs["json"]["variables"]
        assert variables == {"cursor": None, "pageSize": 250}

    def test_follows_cursor(self, client, session):
        """Test pagination across pages."""
        session.request.side_effect = [
            make_response(body=page([variant_node(1)], has_next=True, cursor="abc")),
            make_response(body=page([variant_node(2, part_number="BTI-2")])),
        ]

        items = client.fetch_all_sync_eligible_items()

        assert [i.part_key for i in items] == ["BTI-1", "BTI-2"]
        second_variables = session.request.call_args_list[1].kwargs["json"]["variables"]
        assert second_variables["cursor"] == "abc"

    def test_filters_variants_without_part_number(self, client, session):
        """Test that variants without a part number are not sync-eligible."""
        session.request.return_value = make_response(body=page([
            variant_node(1, part_number=None),
            variant_node(2, part_number="   "),
            variant_node(3, part_number="BTI-3"),
        ]))

        items = client.fetch_all_sync_eligible_items()

        assert [i.part_key for i in items] == ["BTI-3"]

    def test_product_metafields_mapped(self, client, session):
        """Test mapping of product-level metafields."""
        node = variant_node(1, inventoryPolicy="CONTINUE")
        node["product"].update({
            "outOfStockAction": {"value": "Special Order"},
            "priceAdjustmentPercentage": {"value": "10"},
            "excludeFromPriceSync": {"value": "TRUE"},
        })
        session.request.return_value = make_response(body=page([node]))

        item = client.fetch_all_sync_eligible_items()[0]

        assert item.sellability_policy is SellabilityPolicy.ALLOW_BACKORDER
        assert item.out_of_stock_policy_hint is OutOfStockHint.SPECIAL_ORDER
        assert item.price_markup_percent == 10
        assert item.excluded_from_price_sync is True

    def test_retries_gateway_errors(self, client, session, sleep):
        """Test that a 502 page read is retried."""
        session.request.side_effect = [
            make_response(502, reason="Bad Gateway"),
            make_response(body=page([variant_node(1)])),
        ]

        assert len(client.fetch_all_sync_eligible_items()) == 1
        sleep.assert_called_once_with(2.0)

    def test_exhausted_retries_fail_fetch(self, client, session):
        """Test that an exhausted page read aborts the fetch."""
        session.request.return_value = make_response(503, reason="Service Unavailable")

        with pytest.raises(CatalogFetchFailure, match="page 1 after 3 attempt"):
            client.fetch_all_sync_eligible_items()

    def test_auth_error_is_invalid_credentials(self, client, session):
        """Test that a 401 is reported as invalid credentials."""
        session.request.return_value = make_response(401, reason="Unauthorized")

        with pytest.raises(InvalidCredentials):
            client.fetch_all_sync_eligible_items()

        assert session.request.call_count == 1

    def test_graphql_errors_fail_fetch(self, client, session):
        """Test that GraphQL errors abort the fetch."""
        session.request.return_value = make_response(body={"errors": [{"message": "Throttled"}]})

        with pytest.raises(CatalogFetchFailure, match="Throttled"):
            client.fetch_all_sync_eligible_items()

    def test_invalid_json_fails_fetch(self, client, session):
        """Test that a non-JSON body aborts the fetch."""
        response = make_response()
        response.json.side_effect = ValueError("Expecting value")
        session.request.return_value = response

        with pytest.raises(CatalogFetchFailure, match="invalid JSON"):
            client.fetch_all_sync_eligible_items()

    def test_missing_variants_on_later_page_fails_fetch(self, client, session):
        """Test that a later page without productVariants does not truncate the catalog."""
        session.request.side_effect = [
            make_response(body=page([variant_node(1)], has_next=True, cursor="abc")),
            make_response(body={"data": {}}),
        ]

        with pytest.raises(CatalogFetchFailure, match="page 2 returned no productVariants"):
            client.fetch_all_sync_eligible_items()

    def test_unrecognized_out_of_stock_action_is_unmanaged(self, client, session):
        """Test that a hand-managed product keeps an UNMANAGED hint."""
        node = variant_node(1, inventoryPolicy="CONTINUE")
        node["product"]["outOfStockAction"] = {"value": "Keep Selling (Manual)"}
        session.request.return_value = make_response(body=page([node]))

        item = client.fetch_all_sync_eligible_items()[0]

        assert item.out_of_stock_policy_hint is OutOfStockHint.UNMANAGED
        assert item.sellability_policy is SellabilityPolicy.ALLOW_BACKORDER

    def test_missing_cursor_fails_fetch(self, client, session):
        """Test that a next page without a cursor aborts the fetch."""
        session.request.return_value = make_response(body=page([variant_node(1)], has_next=True, cursor=None))

        with pytest.raises(CatalogFetchFailure, match="no cursor"):
            client.fetch_all_sync_eligible_items()


class TestStorefrontWrites:
    """Test suite for REST writes."""

    @pytest.fixture
    def session(self):
        session = Mock()
        session.headers = {}
        session.request.return_value = make_response()
        return session

    @pytest.fixture
    def client(self, session):
        return StorefrontClient("shop.myshopify.com", "shpat_token", session=session, sleep=Mock())

    def test_write_sellability(self, client, session):
        """Test the inventory policy update payload."""
        client.write_sellability("gid://shopify/ProductVariant/11", SellabilityPolicy.ALLOW_BACKORDER)

        session.request.assert_called_once_with(
            "PUT",
            "https://shop.myshopify.com/admin/api/2024-04/variants/11.json",
            json={"variant": {"id": "11", "inventory_policy": "continue"}},
            timeout=30.0,
        )

    def test_write_pricing(self, client, session):
        """Test the price update payload."""
        client.write_pricing("gid://shopify/ProductVariant/11", Decimal("110"), Decimal("110.5"))

        payload = session.request.call_args.kwargs["json"]
        assert payload == {"variant": {"id": "11", "price": "110.00", "compare_at_price": "110.50"}}

    def test_write_cost(self, client, session):
        """Test the inventory item cost payload."""
        client.write_cost("gid://shopify/InventoryItem/22", Decimal("60"))

        method, url = session.request.call_args.args
        assert method == "PUT"
        assert url.endswith("/inventory_items/22.json")
        assert session.request.call_args.kwargs["json"] == {"inventory_item": {"id": "22", "cost": "60.00"}}

    def test_write_raises_transport_errors(self, client, session):
        """Test that write failures surface as transport errors for the executor."""
        session.request.return_value = make_response(503, reason="Service Unavailable")
        with pytest.raises(TransientTransportError):
            client.write_sellability("gid://shopify/ProductVariant/11", SellabilityPolicy.BLOCK_WHEN_OOS)

        session.request.return_value = make_response(422, reason="Unprocessable Entity")
        with pytest.raises(PermanentTransportError):
            client.write_cost("gid://shopify/InventoryItem/22", Decimal("1"))
