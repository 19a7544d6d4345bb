"""
Order Lifecycle

State machine for orders after creation. Every transition is expressed as
an ``OrderTransition``: the statuses the order must currently be in, and
the fields to write when it is. Stores apply a transition as one
conditional update, so a transition whose expected state no longer holds
(late webhook, second sweep, duplicate delivery) matches nothing and is a
no-op rather than an error.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any

from storefront.core.domain import InvalidOperationException

from ..entities.order import Order
from ..value_objects.order_status import (
    OrderStatus,
    OrderStatusTransition,
    PaymentMethod,
    PaymentStatus,
)
from ..value_objects.tracking import TrackingInfo

logger = logging.getLogger(__name__)

DEFAULT_EXPIRY_WINDOW = timedelta(hours=24)


@dataclass(frozen=True)
class OrderTransition:
    """
    A compare-and-swap on an order's statuses.

    ``expected_payment``/``expected_order`` are the states the order must be
    in; ``updates`` maps Order attribute names to their new values.
    """

    name: str
    expected_payment: frozenset[PaymentStatus]
    expected_order: frozenset[OrderStatus]
    updates: dict[str, Any] = field(default_factory=dict)
    reason: str | None = None

    @property
    def target_order_status(self) -> OrderStatus | None:
        return self.updates.get("order_status")

    @property
    def target_payment_status(self) -> PaymentStatus | None:
        return self.updates.get("payment_status")

    def matches(self, order: Order) -> bool:
        return order.payment_status in self.expected_payment and order.order_status in self.expected_order

    def history_entry(self, previous: OrderStatus) -> OrderStatusTransition:
        return OrderStatusTransition(
            from_status=previous,
            to_status=self.target_order_status or previous,
            payment_status=self.target_payment_status,
            reason=self.reason or self.name,
        )


class OrderLifecycle:
    """
    Domain service that builds and applies order transitions.

    States:
    - pending/pending: created, awaiting payment
    - processing/paid: payment confirmed
    - cancelled/failed: gateway reported failure
    - cancelled/expired: unpaid past the expiry window
    - shipped/paid -> delivered/paid
    - cancelled: operator cancellation before shipment
    """

    def __init__(self, expiry_window: timedelta = DEFAULT_EXPIRY_WINDOW):
        self.expiry_window = expiry_window

    # ------------------------------------------------------------------
    # Transition builders
    # ------------------------------------------------------------------

    def payment_captured(
        self,
        payment_id: str | None,
        method: str | None = None,
        now: datetime | None = None,
    ) -> OrderTransition:
        now = now or datetime.now(UTC)
        return OrderTransition(
            name="payment_captured",
            expected_payment=frozenset({PaymentStatus.PENDING}),
            expected_order=frozenset({OrderStatus.PENDING}),
            updates={
                "payment_status": PaymentStatus.PAID,
                "order_status": OrderStatus.PROCESSING,
                "gateway_payment_id": payment_id,
                "gateway_payment_method": method,
                "paid_at": now,
                "updated_at": now,
            },
            reason="Payment confirmed",
        )

    def payment_failed(
        self,
        payment_id: str | None,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> OrderTransition:
        now = now or datetime.now(UTC)
        return OrderTransition(
            name="payment_failed",
            expected_payment=frozenset({PaymentStatus.PENDING}),
            expected_order=frozenset({OrderStatus.PENDING}),
            updates={
                "payment_status": PaymentStatus.FAILED,
                "order_status": OrderStatus.CANCELLED,
                "gateway_payment_id": payment_id,
                "payment_failure_reason": reason,
                "cancelled_at": now,
                "cancellation_reason": "payment_failed",
                "updated_at": now,
            },
            reason=f"Payment failed: {reason}" if reason else "Payment failed",
        )

    def expire(self, now: datetime | None = None) -> OrderTransition:
        now = now or datetime.now(UTC)
        return OrderTransition(
            name="expire",
            expected_payment=frozenset({PaymentStatus.PENDING}),
            expected_order=frozenset({OrderStatus.PENDING}),
            updates={
                "payment_status": PaymentStatus.EXPIRED,
                "order_status": OrderStatus.CANCELLED,
                "cancelled_at": now,
                "cancellation_reason": "payment_expired",
                "updated_at": now,
            },
            reason=f"Payment not received within {self._window_label()}",
        )

    def ship(self, tracking: TrackingInfo) -> OrderTransition:
        return OrderTransition(
            name="ship",
            expected_payment=frozenset({PaymentStatus.PAID}),
            expected_order=frozenset({OrderStatus.PROCESSING}),
            updates={
                "order_status": OrderStatus.SHIPPED,
                "tracking_number": tracking.tracking_number.value,
                "tracking_courier": tracking.courier,
                "tracking_url": tracking.tracking_url,
                "shipped_at": tracking.shipped_at,
                "estimated_delivery": tracking.estimated_delivery,
                "updated_at": tracking.shipped_at,
            },
            reason=f"Shipped via {tracking.courier} ({tracking.tracking_number})",
        )

    def deliver(self, now: datetime | None = None) -> OrderTransition:
        now = now or datetime.now(UTC)
        return OrderTransition(
            name="deliver",
            expected_payment=frozenset({PaymentStatus.PAID}),
            expected_order=frozenset({OrderStatus.SHIPPED}),
            updates={
                "order_status": OrderStatus.DELIVERED,
                "delivered_at": now,
                "updated_at": now,
            },
            reason="Delivered",
        )

    def cancel(self, reason: str | None = None, now: datetime | None = None) -> OrderTransition:
        """Operator cancellation; the payment status is left as it is."""
        now = now or datetime.now(UTC)
        return OrderTransition(
            name="cancel",
            expected_payment=frozenset({PaymentStatus.PENDING, PaymentStatus.PAID}),
            expected_order=frozenset(s for s in OrderStatus if s.can_be_cancelled()),
            updates={
                "order_status": OrderStatus.CANCELLED,
                "cancelled_at": now,
                "cancellation_reason": reason or "cancelled_by_operator",
                "updated_at": now,
            },
            reason=reason or "Cancelled by operator",
        )

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def expiry_cutoff(self, now: datetime | None = None) -> datetime:
        """Gateway orders created before this instant and still unpaid are expired."""
        return (now or datetime.now(UTC)) - self.expiry_window

    def is_expirable(self, order: Order, cutoff: datetime) -> bool:
        return (
            order.payment_method == PaymentMethod.RAZORPAY
            and order.payment_status == PaymentStatus.PENDING
            and order.order_status == OrderStatus.PENDING
            and order.created_at < cutoff
        )

    def ensure_allowed(self, order: Order, transition: OrderTransition) -> None:
        """
        Raise for operator actions that are illegal in the order's current state.

        Webhooks and the sweep skip this and rely on the conditional write.
        """
        if not transition.matches(order):
            raise InvalidOperationException(
                operation=transition.name,
                current_state=order.state_label(),
            )

    # ------------------------------------------------------------------
    # In-memory application
    # ------------------------------------------------------------------

    def apply(self, order: Order, transition: OrderTransition) -> bool:
        """
        Apply a transition to an in-memory order if it matches.

        Returns:
            True when the order changed
        """
        if not transition.matches(order):
            logger.debug(
                f"Transition {transition.name} skipped for order {order.id} in state {order.state_label()}"
            )
            return False
        for attribute, value in transition.updates.items():
            setattr(order, attribute, value)
        return True

    def _window_label(self) -> str:
        hours = int(self.expiry_window.total_seconds() // 3600)
        return f"{hours} hours"
