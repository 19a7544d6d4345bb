"""
Fulfillment Use Cases

Operator actions on an order: ship, mark delivered, cancel. Each one is
checked against the order's current state first (illegal requests get a
clear error) and then written conditionally, so a concurrent change
between the check and the write is reported rather than overwritten.
"""

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime

from storefront.core.domain import EntityNotFoundException, InvalidOperationException
from storefront.domains.checkout.application.ports import (
    INotificationService,
    IOrderRepository,
    NotificationEvent,
)
from storefront.domains.checkout.domain.entities import Order
from storefront.domains.checkout.domain.services import OrderLifecycle, OrderTransition
from storefront.domains.checkout.domain.value_objects import TrackingInfo
from storefront.domains.checkout.domain.value_objects.tracking import DEFAULT_COURIER

logger = logging.getLogger(__name__)


@dataclass
class ShipOrderRequest:
    order_id: str
    tracking_number: str
    courier: str | None = None
    shipped_at: datetime | None = None
    estimated_delivery: date | None = None


@dataclass
class CancelOrderRequest:
    order_id: str
    reason: str | None = None


class _FulfillmentUseCase:
    def __init__(
        self,
        order_repository: IOrderRepository,
        lifecycle: OrderLifecycle | None = None,
        notifier: INotificationService | None = None,
    ):
        self.order_repository = order_repository
        self.lifecycle = lifecycle or OrderLifecycle()
        self.notifier = notifier

    async def _transition(self, order_id: str, transition: OrderTransition, notification: NotificationEvent) -> Order:
        order = await self.order_repository.get_by_id(order_id)
        if order is None:
            raise EntityNotFoundException("Order", order_id)

        self.lifecycle.ensure_allowed(order, transition)

        updated = await self.order_repository.apply_transition(order.id or order_id, transition)
        if updated is None:
            current = await self.order_repository.get_by_id(order_id)
            state = current.state_label() if current else order.state_label()
            raise InvalidOperationException(
                operation=transition.name,
                current_state=state,
                message=f"Order {order.order_number} changed concurrently; '{transition.name}' not applied",
            )

        logger.info(f"[FULFILLMENT] Order {updated.order_number}: {transition.name} -> {updated.state_label()}")
        if self.notifier is not None:
            await self.notifier.notify(notification, updated)
        return updated


class ShipOrderUseCase(_FulfillmentUseCase):
    """
    Use Case: Ship Order

    Only legal for paid orders in processing. Validates the AWB number and
    attaches tracking metadata.
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        lifecycle: OrderLifecycle | None = None,
        notifier: INotificationService | None = None,
        default_courier: str = DEFAULT_COURIER,
        delivery_days: int = 7,
    ):
        super().__init__(order_repository, lifecycle, notifier)
        self.default_courier = default_courier
        self.delivery_days = delivery_days

    async def execute(self, request: ShipOrderRequest) -> Order:
        tracking = TrackingInfo.create(
            tracking_number=request.tracking_number,
            shipped_at=request.shipped_at or datetime.now(UTC),
            courier=request.courier or self.default_courier,
            estimated_delivery=request.estimated_delivery,
            delivery_days=self.delivery_days,
        )
        return await self._transition(request.order_id, self.lifecycle.ship(tracking), NotificationEvent.ORDER_SHIPPED)


class MarkDeliveredUseCase(_FulfillmentUseCase):
    async def execute(self, order_id: str) -> Order:
        return await self._transition(order_id, self.lifecycle.deliver(), NotificationEvent.ORDER_DELIVERED)


class CancelOrderUseCase(_FulfillmentUseCase):
    """Cancel an order that has not shipped yet."""

    async def execute(self, request: CancelOrderRequest) -> Order:
        return await self._transition(
            request.order_id,
            self.lifecycle.cancel(request.reason),
            NotificationEvent.ORDER_CANCELLED,
        )
