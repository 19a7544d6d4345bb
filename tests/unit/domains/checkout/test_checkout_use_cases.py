"""
Unit tests for Checkout Use Cases.

Tests:
- CalculateCheckoutUseCase
- CreateOrderUseCase
"""

import logging
import re
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest

from storefront.core.domain import ValidationException
from storefront.domains.checkout.application.use_cases import (
    CalculateCheckoutRequest,
    CalculateCheckoutUseCase,
    CreateOrderRequest,
    CreateOrderUseCase,
    PricingDefaults,
)
from storefront.domains.checkout.domain.entities import TaxSettings
from storefront.domains.checkout.domain.value_objects import OrderStatus, PaymentStatus
from storefront.domains.checkout.infrastructure.services import RazorpayConnectionError
from tests.utils import NOW, make_campaign, make_item, make_settings, tamil_nadu_rules

# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def mock_campaign_repository():
    repository = AsyncMock()
    repository.get_active.return_value = [make_campaign()]
    return repository


@pytest.fixture
def mock_tax_settings_repository():
    repository = AsyncMock()
    repository.get_current.return_value = TaxSettings.default()
    return repository


@pytest.fixture
def mock_shipping_rule_repository():
    repository = AsyncMock()
    repository.get_enabled.return_value = tamil_nadu_rules()
    return repository


@pytest.fixture
def checkout_use_case(mock_campaign_repository, mock_tax_settings_repository, mock_shipping_rule_repository):
    return CalculateCheckoutUseCase(
        campaign_repository=mock_campaign_repository,
        tax_settings_repository=mock_tax_settings_repository,
        shipping_rule_repository=mock_shipping_rule_repository,
    )


@pytest.fixture
def mock_payment_gateway():
    gateway = AsyncMock()
    gateway.create_order.return_value = {"id": "order_RZP123", "amount": 546000, "currency": "INR"}
    return gateway


def quote_request(**overrides) -> CalculateCheckoutRequest:
    values = {
        "items": [make_item(quantity=5, unit_price="1000")],
        "customer_state": "Tamil Nadu",
        "postal_code": "638656",
    }
    values.update(overrides)
    return CalculateCheckoutRequest(**values)


def order_request(**overrides) -> CreateOrderRequest:
    values = {
        "items": [make_item(quantity=5, unit_price="1000")],
        "customer_state": "Tamil Nadu",
        "postal_code": "638656",
        "customer_name": "Priya",
        "customer_email": "priya@example.com",
    }
    values.update(overrides)
    return CreateOrderRequest(**values)


# ============================================================================
# CalculateCheckoutUseCase Tests
# ============================================================================


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_quote_composes_discount_tax_and_shipping(checkout_use_case, mock_shipping_rule_repository):
    # Act
    quote = await checkout_use_case.execute(quote_request(), now=NOW)

    # Assert
    assert quote.subtotal == Decimal("5000.00")
    assert quote.discount == Decimal("500.00")
    # GST is charged on undiscounted prices
    assert quote.tax.cgst == Decimal("450.00")
    assert quote.tax.sgst == Decimal("450.00")
    assert quote.shipping.amount == Decimal("60.00")
    assert quote.total == Decimal("5460.00")
    assert quote.total_paise == 546000

    mock_shipping_rule_repository.get_enabled.assert_awaited_once_with(["tamil_nadu", "all_india"])


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_quote_reports_nearest_campaign(checkout_use_case):
    quote = await checkout_use_case.execute(quote_request(items=[make_item(quantity=2, unit_price="1250")]), now=NOW)

    data = quote.to_dict()

    assert data["applied_campaign"] is None
    assert data["nearest_campaign"]["amount_needed"] == "500.00"
    assert data["discount"] == "0.00"
    assert data["total"] == "3010.00"


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_inter_state_quote(checkout_use_case, mock_shipping_rule_repository):
    quote = await checkout_use_case.execute(quote_request(customer_state="Karnataka", postal_code="560001"), now=NOW)

    assert quote.tax.igst == Decimal("900.00")
    assert quote.shipping.amount == Decimal("100.00")
    mock_shipping_rule_repository.get_enabled.assert_awaited_once_with(["all_india"])


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_inclusive_prices_add_no_tax_on_top(checkout_use_case, mock_tax_settings_repository):
    mock_tax_settings_repository.get_current.return_value = TaxSettings(price_includes_tax=True)

    quote = await checkout_use_case.execute(quote_request(), now=NOW)

    assert quote.tax.total_tax > 0
    assert quote.tax.payable_tax == Decimal("0.00")
    assert quote.total == Decimal("4560.00")


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_missing_tax_settings_fall_back_to_defaults(checkout_use_case, mock_tax_settings_repository, caplog):
    mock_tax_settings_repository.get_current.return_value = None

    with caplog.at_level(logging.WARNING):
        quote = await checkout_use_case.execute(quote_request(), now=NOW)

    assert quote.tax.gst_rate == Decimal("18")
    assert "No active tax settings" in caplog.text


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_defaults_from_settings(
    mock_campaign_repository, mock_tax_settings_repository, mock_shipping_rule_repository
):
    mock_tax_settings_repository.get_current.return_value = None
    mock_shipping_rule_repository.get_enabled.return_value = []
    settings = make_settings(DEFAULT_GST_RATE=Decimal("12"), SHIPPING_FALLBACK_RATE=Decimal("149"))
    use_case = CalculateCheckoutUseCase(
        campaign_repository=mock_campaign_repository,
        tax_settings_repository=mock_tax_settings_repository,
        shipping_rule_repository=mock_shipping_rule_repository,
        defaults=PricingDefaults.from_settings(settings),
    )

    quote = await use_case.execute(quote_request(customer_state="Kerala", postal_code="682001"), now=NOW)

    assert quote.tax.igst == Decimal("600.00")
    assert quote.shipping.amount == Decimal("149.00")


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_rate_override_applied(checkout_use_case):
    quote = await checkout_use_case.execute(quote_request(rate_override=Decimal("5")), now=NOW)

    assert quote.tax.total_tax == Decimal("250.00")


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides,reason",
    [
        ({"items": []}, "EMPTY_CART"),
        ({"customer_state": None}, "MISSING_CUSTOMER_STATE"),
        ({"customer_state": "  "}, "MISSING_CUSTOMER_STATE"),
        ({"postal_code": "038656"}, "INVALID_POSTAL_CODE"),
    ],
)
async def test_validation_errors_stop_before_configuration_reads(
    checkout_use_case, mock_campaign_repository, overrides, reason
):
    with pytest.raises(ValidationException) as exc_info:
        await checkout_use_case.execute(quote_request(**overrides), now=NOW)

    assert exc_info.value.reason == reason
    mock_campaign_repository.get_active.assert_not_awaited()


# ============================================================================
# CreateOrderUseCase Tests
# ============================================================================


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_create_order_persists_pending_snapshot(checkout_use_case, order_repository, mock_payment_gateway):
    # Arrange
    use_case = CreateOrderUseCase(order_repository, checkout_use_case, mock_payment_gateway)

    # Act
    result = await use_case.execute(order_request(), now=NOW)

    # Assert
    order = result.order
    assert order.order_status == OrderStatus.PENDING
    assert order.payment_status == PaymentStatus.PENDING
    assert order.gateway_order_id == "order_RZP123"
    assert re.match(r"^ORD-20250115-[0-9A-F]{6}$", order.order_number)
    assert order.subtotal == Decimal("5000.00")
    assert order.discount_amount == Decimal("500.00")
    assert order.tax_amount == Decimal("900.00")
    assert order.shipping_fee == Decimal("60.00")
    assert order.total == Decimal("5460.00")
    assert order.campaign_snapshot["id"] == "camp-1"
    assert order.tax_snapshot["tax_type"] == "intra_state"
    assert order.shipping_snapshot["rule_id"] == "tn-low"
    assert order.items[0].gst_rate == Decimal("18")
    assert order.items[0].tax_amount == Decimal("900.00")

    assert order.id in order_repository.orders
    mock_payment_gateway.create_order.assert_awaited_once_with(
        amount_paise=546000,
        receipt=order.order_number,
        notes={"order_id": order.id, "order_number": order.order_number},
    )


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_create_order_without_gateway(checkout_use_case, order_repository):
    use_case = CreateOrderUseCase(order_repository, checkout_use_case, payment_gateway=None)

    result = await use_case.execute(order_request(), now=NOW)

    assert result.order.gateway_order_id is None
    assert result.gateway_order is None


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_gateway_failure_persists_nothing(checkout_use_case, order_repository, mock_payment_gateway):
    mock_payment_gateway.create_order.side_effect = RazorpayConnectionError("Razorpay unreachable")
    use_case = CreateOrderUseCase(order_repository, checkout_use_case, mock_payment_gateway)

    with pytest.raises(RazorpayConnectionError):
        await use_case.execute(order_request(), now=NOW)

    assert order_repository.orders == {}


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_invalid_order_never_reaches_gateway(checkout_use_case, order_repository, mock_payment_gateway):
    use_case = CreateOrderUseCase(order_repository, checkout_use_case, mock_payment_gateway)

    with pytest.raises(ValidationException):
        await use_case.execute(order_request(postal_code="12345"), now=NOW)

    mock_payment_gateway.create_order.assert_not_awaited()
    assert order_repository.orders == {}


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_order_snapshot_ignores_later_configuration_changes(
    checkout_use_case, order_repository, mock_campaign_repository
):
    use_case = CreateOrderUseCase(order_repository, checkout_use_case)
    created = (await use_case.execute(order_request(), now=NOW)).order

    mock_campaign_repository.get_active.return_value = []
    stored = await order_repository.get_by_id(created.id)

    assert stored.discount_amount == Decimal("500.00")
    assert stored.total == created.total


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_tax_disabled_order_items_carry_no_rate(
    checkout_use_case, order_repository, mock_tax_settings_repository
):
    mock_tax_settings_repository.get_current.return_value = TaxSettings(tax_enabled=False)
    use_case = CreateOrderUseCase(order_repository, checkout_use_case)

    order = (await use_case.execute(order_request(), now=NOW)).order

    assert order.tax_amount == Decimal("0.00")
    assert order.items[0].gst_rate is None
    assert order.total == Decimal("4560.00")
