"""
Unit tests for order management use cases.

Tests:
- ExpirePendingOrdersUseCase
- ShipOrderUseCase
- MarkDeliveredUseCase
- CancelOrderUseCase
"""

import json
from datetime import date, timedelta
from unittest.mock import ANY, AsyncMock

import pytest

from storefront.core.domain import EntityNotFoundException, InvalidOperationException, ValidationException
from storefront.domains.checkout.application.ports import NotificationEvent
from storefront.domains.checkout.application.use_cases import (
    CancelOrderRequest,
    CancelOrderUseCase,
    ExpirePendingOrdersUseCase,
    MarkDeliveredUseCase,
    ProcessPaymentWebhookUseCase,
    ShipOrderRequest,
    ShipOrderUseCase,
)
from storefront.domains.checkout.domain.value_objects import OrderStatus, PaymentStatus
from storefront.domains.checkout.infrastructure.services import RazorpaySignatureVerifier, compute_signature
from tests.utils import NOW, WEBHOOK_SECRET, InMemoryOrderRepository, make_order

STALE_ID = "00000000-0000-4000-8000-000000000025"
FRESH_ID = "00000000-0000-4000-8000-000000000023"
PAID_ID = "00000000-0000-4000-8000-0000000000aa"

# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def sweep_repository():
    return InMemoryOrderRepository(
        [
            make_order(
                order_id=STALE_ID,
                order_number="ORD-20250114-STALE1",
                gateway_order_id="order_STALE",
                created_at=NOW - timedelta(hours=25),
            ),
            make_order(
                order_id=FRESH_ID,
                order_number="ORD-20250114-FRESH1",
                gateway_order_id="order_FRESH",
                created_at=NOW - timedelta(hours=23),
            ),
            make_order(
                order_id=PAID_ID,
                order_number="ORD-20250113-PAID01",
                gateway_order_id="order_PAID",
                created_at=NOW - timedelta(hours=48),
                order_status=OrderStatus.PROCESSING,
                payment_status=PaymentStatus.PAID,
            ),
        ]
    )


def paid_order(**kwargs):
    return make_order(order_status=OrderStatus.PROCESSING, payment_status=PaymentStatus.PAID, **kwargs)


def shipped_order(**kwargs):
    return make_order(order_status=OrderStatus.SHIPPED, payment_status=PaymentStatus.PAID, **kwargs)


# ============================================================================
# ExpirePendingOrdersUseCase Tests
# ============================================================================


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_sweep_expires_only_stale_unpaid_orders(sweep_repository):
    # Arrange
    use_case = ExpirePendingOrdersUseCase(sweep_repository)

    # Act
    result = await use_case.execute(now=NOW)

    # Assert
    assert result.expired_count == 1
    assert result.cutoff == NOW - timedelta(hours=24)

    stale = await sweep_repository.get_by_id(STALE_ID)
    assert stale.order_status == OrderStatus.CANCELLED
    assert stale.payment_status == PaymentStatus.EXPIRED

    fresh = await sweep_repository.get_by_id(FRESH_ID)
    assert fresh.order_status == OrderStatus.PENDING
    assert fresh.payment_status == PaymentStatus.PENDING

    paid = await sweep_repository.get_by_id(PAID_ID)
    assert paid.payment_status == PaymentStatus.PAID


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_sweep_is_idempotent(sweep_repository):
    use_case = ExpirePendingOrdersUseCase(sweep_repository)

    first = await use_case.execute(now=NOW)
    second = await use_case.execute(now=NOW + timedelta(minutes=5))

    assert first.expired_count == 1
    assert second.expired_count == 0
    assert len(sweep_repository.history) == 1


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_sweep_response_lists_expired_orders(sweep_repository):
    data = (await ExpirePendingOrdersUseCase(sweep_repository).execute(now=NOW)).to_dict()

    assert data["expired_count"] == 1
    assert data["orders"][0]["order_number"] == "ORD-20250114-STALE1"
    assert data["cutoff"] == (NOW - timedelta(hours=24)).isoformat()


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_capture_after_sweep_is_ignored(sweep_repository):
    await ExpirePendingOrdersUseCase(sweep_repository).execute(now=NOW)
    webhook = ProcessPaymentWebhookUseCase(sweep_repository, RazorpaySignatureVerifier(WEBHOOK_SECRET))
    body = json.dumps(
        {
            "event": "payment.captured",
            "payload": {"payment": {"entity": {"id": "pay_LATE", "order_id": "order_STALE"}}},
        }
    ).encode("utf-8")

    result = await webhook.execute(body, compute_signature(WEBHOOK_SECRET, body))

    assert result.status == "ignored"
    stale = await sweep_repository.get_by_id(STALE_ID)
    assert stale.payment_status == PaymentStatus.EXPIRED
    assert stale.gateway_payment_id is None


# ============================================================================
# ShipOrderUseCase Tests
# ============================================================================


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_ship_paid_order(mock_notifier):
    repository = InMemoryOrderRepository([paid_order()])
    use_case = ShipOrderUseCase(repository, notifier=mock_notifier)

    order = await use_case.execute(
        ShipOrderRequest(order_id="ORD-20250115-ABC123", tracking_number="9876543210", shipped_at=NOW)
    )

    assert order.order_status == OrderStatus.SHIPPED
    assert order.tracking_number == "9876543210"
    assert order.tracking_courier == "ST Courier"
    assert order.tracking_url.endswith("tracking_no=9876543210")
    assert order.estimated_delivery == (NOW + timedelta(days=7)).date()
    mock_notifier.notify.assert_awaited_once_with(NotificationEvent.ORDER_SHIPPED, ANY)


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_ship_uses_configured_delivery_days_and_explicit_eta():
    repository = InMemoryOrderRepository([paid_order()])
    use_case = ShipOrderUseCase(repository, delivery_days=3)

    default_eta = await use_case.execute(
        ShipOrderRequest(order_id="ORD-20250115-ABC123", tracking_number="9876543210", shipped_at=NOW)
    )

    assert default_eta.estimated_delivery == (NOW + timedelta(days=3)).date()

    repository = InMemoryOrderRepository([paid_order()])
    explicit = await ShipOrderUseCase(repository).execute(
        ShipOrderRequest(
            order_id="ORD-20250115-ABC123",
            tracking_number="9876543210",
            shipped_at=NOW,
            estimated_delivery=date(2025, 1, 18),
        )
    )

    assert explicit.estimated_delivery == date(2025, 1, 18)


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_ship_unpaid_order_rejected(order_repository, mock_notifier):
    await order_repository.create(make_order())
    use_case = ShipOrderUseCase(order_repository, notifier=mock_notifier)

    with pytest.raises(InvalidOperationException) as exc_info:
        await use_case.execute(ShipOrderRequest(order_id="ORD-20250115-ABC123", tracking_number="9876543210"))

    assert exc_info.value.current_state == "pending/pending"
    assert order_repository.history == []
    mock_notifier.notify.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_ship_rejects_invalid_awb_before_lookup():
    repository = AsyncMock()
    use_case = ShipOrderUseCase(repository)

    with pytest.raises(ValidationException) as exc_info:
        await use_case.execute(ShipOrderRequest(order_id="ORD-20250115-ABC123", tracking_number="AWB-12"))

    assert exc_info.value.reason == "INVALID_AWB"
    repository.get_by_id.assert_not_awaited()


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_ship_unknown_order(order_repository):
    with pytest.raises(EntityNotFoundException):
        await ShipOrderUseCase(order_repository).execute(
            ShipOrderRequest(order_id="ORD-00000000-NOPE00", tracking_number="9876543210")
        )


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_concurrent_change_is_reported(mock_notifier):
    repository = AsyncMock()
    repository.get_by_id.side_effect = [paid_order(), make_order(order_status=OrderStatus.CANCELLED)]
    repository.apply_transition.return_value = None
    use_case = ShipOrderUseCase(repository, notifier=mock_notifier)

    with pytest.raises(InvalidOperationException) as exc_info:
        await use_case.execute(ShipOrderRequest(order_id="ORD-20250115-ABC123", tracking_number="9876543210"))

    assert exc_info.value.current_state == "cancelled/pending"
    mock_notifier.notify.assert_not_awaited()


# ============================================================================
# MarkDeliveredUseCase Tests
# ============================================================================


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_mark_delivered(mock_notifier):
    repository = InMemoryOrderRepository([shipped_order()])

    order = await MarkDeliveredUseCase(repository, notifier=mock_notifier).execute("ORD-20250115-ABC123")

    assert order.order_status == OrderStatus.DELIVERED
    assert order.delivered_at is not None
    mock_notifier.notify.assert_awaited_once_with(NotificationEvent.ORDER_DELIVERED, ANY)


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_deliver_before_shipping_rejected():
    repository = InMemoryOrderRepository([paid_order()])

    with pytest.raises(InvalidOperationException):
        await MarkDeliveredUseCase(repository).execute("ORD-20250115-ABC123")


# ============================================================================
# CancelOrderUseCase Tests
# ============================================================================


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
@pytest.mark.parametrize("order_factory", [make_order, paid_order])
async def test_cancel_before_shipment(mock_notifier, order_factory):
    original = order_factory()
    repository = InMemoryOrderRepository([original])

    order = await CancelOrderUseCase(repository, notifier=mock_notifier).execute(
        CancelOrderRequest(order_id="ORD-20250115-ABC123", reason="Out of stock")
    )

    assert order.order_status == OrderStatus.CANCELLED
    assert order.payment_status == original.payment_status
    assert order.cancellation_reason == "Out of stock"
    mock_notifier.notify.assert_awaited_once_with(NotificationEvent.ORDER_CANCELLED, ANY)


@pytest.mark.unit
@pytest.mark.use_case
@pytest.mark.asyncio
async def test_cancel_after_shipment_rejected():
    repository = InMemoryOrderRepository([shipped_order()])

    with pytest.raises(InvalidOperationException):
        await CancelOrderUseCase(repository).execute(CancelOrderRequest(order_id="ORD-20250115-ABC123"))

    order = await repository.get_by_id("ORD-20250115-ABC123")
    assert order.order_status == OrderStatus.SHIPPED
