"""
Unit tests for Checkout Domain Repositories.

Tests the data access layer for orders, campaigns, tax settings and
shipping rules against a mocked async session.
"""

import logging
from datetime import date, timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.domain import PersistenceException
from storefront.domains.checkout.domain.entities.campaign import CampaignStatus
from storefront.domains.checkout.domain.services import OrderLifecycle
from storefront.domains.checkout.domain.value_objects import (
    DiscountTarget,
    DiscountType,
    MinSubtotal,
    OrderStatus,
    PaymentStatus,
)
from storefront.domains.checkout.infrastructure.repositories import (
    SQLAlchemyCampaignRepository,
    SQLAlchemyOrderRepository,
    SQLAlchemyShippingRuleRepository,
    SQLAlchemyTaxSettingsRepository,
)
from storefront.models.db.orders import OrderStatusHistory as OrderStatusHistoryModel
from tests.utils import NOW, make_order

# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def mock_async_session():
    """Create a mock async database session."""
    session = AsyncMock(spec=AsyncSession)
    session.execute = AsyncMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.refresh = AsyncMock()
    session.add = MagicMock()
    return session


@pytest.fixture
def sample_order_model():
    """Sample SQLAlchemy order model."""
    item = MagicMock()
    item.product_id = "shirt-1"
    item.variant_id = None
    item.name = "Cotton Shirt"
    item.quantity = 2
    item.unit_price = Decimal("1000.00")
    item.gst_rate = Decimal("18.00")
    item.tax_amount = Decimal("360.00")

    model = MagicMock()
    model.id = uuid4()
    model.order_number = "ORD-20250115-ABC123"
    model.created_at = NOW
    model.updated_at = NOW
    model.customer_name = "Priya"
    model.customer_email = "priya@example.com"
    model.customer_phone = None
    model.shipping_address = {"city": "Erode"}
    model.customer_state = "Tamil Nadu"
    model.postal_code = "638656"
    model.items = [item]
    model.currency = "INR"
    model.subtotal = Decimal("2000.00")
    model.discount_amount = Decimal("0.00")
    model.tax_amount = Decimal("360.00")
    model.shipping_fee = Decimal("60.00")
    model.total = Decimal("2420.00")
    model.campaign_snapshot = None
    model.tax_snapshot = {"tax_type": "intra_state"}
    model.shipping_snapshot = {"rule_id": "tn-low"}
    model.order_status = "processing"
    model.payment_status = "paid"
    model.payment_method = "razorpay"
    model.gateway_order_id = "order_TEST123"
    model.gateway_payment_id = "pay_ABC"
    model.gateway_payment_method = "upi"
    model.payment_failure_reason = None
    model.paid_at = NOW
    model.tracking_number = None
    model.tracking_courier = None
    model.tracking_url = None
    model.shipped_at = None
    model.estimated_delivery = None
    model.delivered_at = None
    model.cancelled_at = None
    model.cancellation_reason = None
    return model


@pytest.fixture
def sample_campaign_model():
    """Sample SQLAlchemy campaign model."""
    model = MagicMock()
    model.id = uuid4()
    model.name = "Pongal Sale"
    model.description = "10% off above ₹3000"
    model.priority = 5
    model.status = "active"
    model.conditions = [{"type": "min_subtotal", "amount": "3000"}]
    model.discount_type = "percentage"
    model.discount_value = Decimal("10.00")
    model.max_discount = Decimal("750.00")
    model.applies_to = "cart"
    model.starts_at = NOW - timedelta(days=1)
    model.ends_at = None
    model.created_at = NOW - timedelta(days=3)
    model.updated_at = NOW - timedelta(days=3)
    return model


@pytest.fixture
def sample_shipping_rule_model():
    model = MagicMock()
    model.id = uuid4()
    model.zone = "tamil_nadu"
    model.provider = "ST Courier"
    model.rate = Decimal("60.00")
    model.min_quantity = 1
    model.max_quantity = 5
    model.is_enabled = True
    model.max_delivery_days = 4
    model.created_at = NOW
    return model


def scalars_result(items):
    result = MagicMock()
    result.scalars.return_value.all.return_value = items
    return result


def scalar_result(value):
    result = MagicMock()
    result.scalar_one_or_none.return_value = value
    return result


def row_result(row):
    result = MagicMock()
    result.first.return_value = row
    return result


# ============================================================================
# Order Repository Tests
# ============================================================================


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_order_get_by_id_maps_model(mock_async_session, sample_order_model):
    # Arrange
    mock_async_session.execute.return_value = scalar_result(sample_order_model)
    repository = SQLAlchemyOrderRepository(mock_async_session)

    # Act
    order = await repository.get_by_id(str(sample_order_model.id))

    # Assert
    assert order is not None
    assert order.id == str(sample_order_model.id)
    assert order.order_status == OrderStatus.PROCESSING
    assert order.payment_status == PaymentStatus.PAID
    assert order.total == Decimal("2420.00")
    assert order.items[0].gst_rate == Decimal("18.00")
    assert order.items[0].line_total == Decimal("2000.00")
    mock_async_session.execute.assert_called_once()


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_order_get_by_order_number(mock_async_session, sample_order_model):
    mock_async_session.execute.return_value = scalar_result(sample_order_model)
    repository = SQLAlchemyOrderRepository(mock_async_session)

    order = await repository.get_by_id("ORD-20250115-ABC123")

    assert order.order_number == "ORD-20250115-ABC123"


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_order_get_by_id_not_found(mock_async_session):
    mock_async_session.execute.return_value = scalar_result(None)
    repository = SQLAlchemyOrderRepository(mock_async_session)

    assert await repository.get_by_id(str(uuid4())) is None


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_order_read_error_raises_persistence_exception(mock_async_session):
    mock_async_session.execute.side_effect = OperationalError("SELECT", {}, Exception("connection lost"))
    repository = SQLAlchemyOrderRepository(mock_async_session)

    with pytest.raises(PersistenceException) as exc_info:
        await repository.get_by_gateway_order_id("order_TEST123")

    assert exc_info.value.operation == "get_order"


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_order_create_commits_snapshot(mock_async_session):
    repository = SQLAlchemyOrderRepository(mock_async_session)
    order = make_order()

    created = await repository.create(order)

    mock_async_session.add.assert_called_once()
    mock_async_session.commit.assert_awaited_once()
    model = mock_async_session.add.call_args.args[0]
    assert model.order_number == "ORD-20250115-ABC123"
    assert model.payment_method == "razorpay"
    assert model.items[0].position == 0
    assert created.id == order.id
    assert created.total == Decimal("2420.00")


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_order_create_rolls_back_on_error(mock_async_session):
    mock_async_session.commit.side_effect = OperationalError("INSERT", {}, Exception("disk full"))
    repository = SQLAlchemyOrderRepository(mock_async_session)

    with pytest.raises(PersistenceException):
        await repository.create(make_order())

    mock_async_session.rollback.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_apply_transition_records_history(mock_async_session, sample_order_model):
    # Arrange
    order_uuid = sample_order_model.id
    mock_async_session.execute.side_effect = [
        row_result((order_uuid, "pending")),
        scalar_result(order_uuid),
        scalar_result(sample_order_model),
    ]
    repository = SQLAlchemyOrderRepository(mock_async_session)
    transition = OrderLifecycle().payment_captured("pay_ABC", "upi", now=NOW)

    # Act
    order = await repository.apply_transition(str(order_uuid), transition)

    # Assert
    assert order.payment_status == PaymentStatus.PAID
    history = mock_async_session.add.call_args.args[0]
    assert isinstance(history, OrderStatusHistoryModel)
    assert history.from_status == "pending"
    assert history.to_status == "processing"
    assert history.payment_status == "paid"
    mock_async_session.commit.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_apply_transition_state_mismatch_returns_none(mock_async_session):
    order_uuid = uuid4()
    mock_async_session.execute.side_effect = [row_result((order_uuid, "cancelled")), scalar_result(None)]
    repository = SQLAlchemyOrderRepository(mock_async_session)

    result = await repository.apply_transition_by_gateway_order_id(
        "order_TEST123", OrderLifecycle().payment_captured("pay_LATE", now=NOW)
    )

    assert result is None
    mock_async_session.add.assert_not_called()
    mock_async_session.commit.assert_not_awaited()
    mock_async_session.rollback.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_apply_transition_unknown_order_returns_none(mock_async_session):
    mock_async_session.execute.return_value = row_result(None)
    repository = SQLAlchemyOrderRepository(mock_async_session)

    result = await repository.apply_transition_by_gateway_order_id(
        "order_UNKNOWN", OrderLifecycle().payment_failed("pay_1", now=NOW)
    )

    assert result is None
    mock_async_session.execute.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_apply_transition_invalid_uuid_returns_none(mock_async_session):
    repository = SQLAlchemyOrderRepository(mock_async_session)

    assert await repository.apply_transition("not-a-uuid", OrderLifecycle().deliver(now=NOW)) is None
    mock_async_session.execute.assert_not_called()


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_apply_transition_write_error(mock_async_session):
    mock_async_session.execute.side_effect = OperationalError("UPDATE", {}, Exception("deadlock"))
    repository = SQLAlchemyOrderRepository(mock_async_session)

    with pytest.raises(PersistenceException) as exc_info:
        await repository.apply_transition(str(uuid4()), OrderLifecycle().deliver(now=NOW))

    assert exc_info.value.operation == "transition_deliver"
    mock_async_session.rollback.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_expire_stale_batch(mock_async_session, sample_order_model):
    sample_order_model.order_status = "cancelled"
    sample_order_model.payment_status = "expired"
    expired_ids = [sample_order_model.id, uuid4()]
    mock_async_session.execute.side_effect = [scalars_result(expired_ids), scalars_result([sample_order_model])]
    repository = SQLAlchemyOrderRepository(mock_async_session)
    lifecycle = OrderLifecycle()

    orders = await repository.expire_stale(lifecycle.expiry_cutoff(NOW), lifecycle.expire(now=NOW))

    assert [o.payment_status for o in orders] == [PaymentStatus.EXPIRED]
    assert mock_async_session.add.call_count == 2
    assert all(c.args[0].to_status == "cancelled" for c in mock_async_session.add.call_args_list)
    mock_async_session.commit.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_expire_stale_nothing_to_do(mock_async_session):
    mock_async_session.execute.return_value = scalars_result([])
    repository = SQLAlchemyOrderRepository(mock_async_session)
    lifecycle = OrderLifecycle()

    assert await repository.expire_stale(lifecycle.expiry_cutoff(NOW), lifecycle.expire(now=NOW)) == []
    mock_async_session.add.assert_not_called()
    mock_async_session.execute.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_order_tracking_fields_mapped(mock_async_session, sample_order_model):
    sample_order_model.order_status = "shipped"
    sample_order_model.tracking_number = "1234567890"
    sample_order_model.tracking_courier = "ST Courier"
    sample_order_model.estimated_delivery = date(2025, 1, 22)
    mock_async_session.execute.return_value = scalar_result(sample_order_model)

    order = await SQLAlchemyOrderRepository(mock_async_session).get_by_gateway_order_id("order_TEST123")

    assert order.order_status == OrderStatus.SHIPPED
    assert order.tracking_number == "1234567890"
    assert order.estimated_delivery == date(2025, 1, 22)


# ============================================================================
# Campaign Repository Tests
# ============================================================================


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_campaign_get_active_maps_conditions(mock_async_session, sample_campaign_model):
    mock_async_session.execute.return_value = scalars_result([sample_campaign_model])
    repository = SQLAlchemyCampaignRepository(mock_async_session)

    campaigns = await repository.get_active(NOW)

    assert len(campaigns) == 1
    campaign = campaigns[0]
    assert campaign.id == str(sample_campaign_model.id)
    assert campaign.status == CampaignStatus.ACTIVE
    assert campaign.conditions == (MinSubtotal(Decimal("3000")),)
    assert campaign.discount.type == DiscountType.PERCENT
    assert campaign.discount.max_discount == Decimal("750.00")
    assert campaign.discount.applies_to == DiscountTarget.CART


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_campaign_item_discount_mapped(mock_async_session, sample_campaign_model):
    sample_campaign_model.applies_to = "items"
    mock_async_session.execute.return_value = scalars_result([sample_campaign_model])

    campaigns = await SQLAlchemyCampaignRepository(mock_async_session).get_active(NOW)

    assert campaigns[0].discount.applies_to == DiscountTarget.ITEMS


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_campaign_malformed_rows_skipped(mock_async_session, sample_campaign_model, caplog):
    broken = MagicMock()
    broken.id = uuid4()
    broken.name = "Broken"
    broken.status = "active"
    broken.conditions = [{"type": "buy_x_get_y"}]
    mock_async_session.execute.return_value = scalars_result([broken, sample_campaign_model])
    repository = SQLAlchemyCampaignRepository(mock_async_session)

    with caplog.at_level(logging.WARNING):
        campaigns = await repository.get_active(NOW)

    assert [c.name for c in campaigns] == ["Pongal Sale"]
    assert "[CAMPAIGN] Skipping malformed campaign" in caplog.text


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
@pytest.mark.parametrize("conditions", [["min_subtotal"], [None], [["min_subtotal", 3000]], "min_subtotal"])
async def test_campaign_non_object_conditions_skipped(mock_async_session, sample_campaign_model, caplog, conditions):
    broken = MagicMock()
    broken.id = uuid4()
    broken.name = "Broken"
    broken.status = "active"
    broken.conditions = conditions
    mock_async_session.execute.return_value = scalars_result([broken, sample_campaign_model])

    with caplog.at_level(logging.WARNING):
        campaigns = await SQLAlchemyCampaignRepository(mock_async_session).get_active(NOW)

    assert [c.name for c in campaigns] == ["Pongal Sale"]
    assert f"Skipping malformed campaign {broken.id}" in caplog.text


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_campaign_read_error(mock_async_session):
    mock_async_session.execute.side_effect = OperationalError("SELECT", {}, Exception("timeout"))

    with pytest.raises(PersistenceException):
        await SQLAlchemyCampaignRepository(mock_async_session).get_active(NOW)


# ============================================================================
# Tax Settings Repository Tests
# ============================================================================


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_tax_settings_mapped(mock_async_session):
    model = MagicMock()
    model.tax_enabled = True
    model.default_gst_rate = Decimal("12.00")
    model.price_includes_tax = False
    model.store_state = None
    model.gstin = "33AAAAA0000A1Z5"
    mock_async_session.execute.return_value = scalar_result(model)

    settings = await SQLAlchemyTaxSettingsRepository(mock_async_session).get_current()

    assert settings.default_gst_rate == Decimal("12.00")
    assert settings.store_state == "Tamil Nadu"
    assert settings.gstin == "33AAAAA0000A1Z5"


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_tax_settings_absent(mock_async_session):
    mock_async_session.execute.return_value = scalar_result(None)

    assert await SQLAlchemyTaxSettingsRepository(mock_async_session).get_current() is None


# ============================================================================
# Shipping Rule Repository Tests
# ============================================================================


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_shipping_rules_mapped(mock_async_session, sample_shipping_rule_model):
    mock_async_session.execute.return_value = scalars_result([sample_shipping_rule_model])

    rules = await SQLAlchemyShippingRuleRepository(mock_async_session).get_enabled(["tamil_nadu", "all_india"])

    assert len(rules) == 1
    assert rules[0].rate == Decimal("60.00")
    assert rules[0].max_quantity == 5
    assert rules[0].max_delivery_days == 4
    assert rules[0].covers(3)


@pytest.mark.unit
@pytest.mark.repository
@pytest.mark.asyncio
async def test_shipping_rules_read_error(mock_async_session):
    mock_async_session.execute.side_effect = OperationalError("SELECT", {}, Exception("timeout"))

    with pytest.raises(PersistenceException) as exc_info:
        await SQLAlchemyShippingRuleRepository(mock_async_session).get_enabled(["all_india"])

    assert exc_info.value.operation == "get_shipping_rules"
