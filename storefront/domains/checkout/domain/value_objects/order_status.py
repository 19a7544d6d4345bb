"""
Order Status Value Objects

An order carries two status axes: fulfillment (OrderStatus) and payment
(PaymentStatus). The legal moves between them are defined by
OrderLifecycle, which states the expected current statuses for every
transition.
"""

from dataclasses import dataclass

from storefront.core.domain import StatusEnum


class OrderStatus(StatusEnum):
    """
    Fulfillment states.

    Valid transitions:
    - PENDING -> PROCESSING, CANCELLED
    - PROCESSING -> SHIPPED, CANCELLED
    - SHIPPED -> DELIVERED
    - DELIVERED, CANCELLED -> (terminal states)
    """

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"

    def can_be_cancelled(self) -> bool:
        """Cancellation is allowed until the parcel leaves the warehouse."""
        return self in (OrderStatus.PENDING, OrderStatus.PROCESSING)


class PaymentStatus(StatusEnum):
    """
    Payment states.

    Valid transitions:
    - PENDING -> PAID, FAILED, EXPIRED
    - PAID, FAILED, EXPIRED -> (terminal states)
    """

    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    EXPIRED = "expired"


class PaymentMethod(StatusEnum):
    """Payment channel recorded on the order; the expiry sweep only touches gateway orders."""

    RAZORPAY = "razorpay"


@dataclass(frozen=True)
class OrderStatusTransition:
    """
    A recorded status change, kept for the order's history.
    """

    from_status: OrderStatus | None
    to_status: OrderStatus
    payment_status: PaymentStatus | None = None
    reason: str | None = None

    def __str__(self) -> str:
        from_str = self.from_status.value if self.from_status else "NEW"
        return f"{from_str} -> {self.to_status.value}"
