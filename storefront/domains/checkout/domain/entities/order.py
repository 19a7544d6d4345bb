"""
Order Entity

An order snapshots the pricing outcome at checkout time and is afterwards
changed only through OrderLifecycle transitions.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from storefront.core.domain import AggregateRoot, round_currency

from ..value_objects.order_status import OrderStatus, PaymentMethod, PaymentStatus


@dataclass
class OrderItem:
    """Line item frozen at checkout."""

    product_id: str
    quantity: int
    unit_price: Decimal
    variant_id: str | None = None
    name: str | None = None
    gst_rate: Decimal | None = None
    tax_amount: Decimal = Decimal("0")

    @property
    def line_total(self) -> Decimal:
        return round_currency(self.unit_price * self.quantity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": str(self.unit_price),
            "line_total": str(self.line_total),
            "gst_rate": str(self.gst_rate) if self.gst_rate is not None else None,
            "tax_amount": str(self.tax_amount),
        }


@dataclass(eq=False)
class Order(AggregateRoot[str]):
    """
    Order aggregate root.

    Pricing fields (subtotal, discount, tax, shipping, total and the
    snapshots) are written once at creation and never recomputed, so later
    configuration changes never alter an existing order.
    """

    order_number: str | None = None

    # Customer
    customer_name: str = ""
    customer_email: str | None = None
    customer_phone: str | None = None
    shipping_address: dict[str, Any] = field(default_factory=dict)
    customer_state: str | None = None
    postal_code: str | None = None

    items: list[OrderItem] = field(default_factory=list)

    # Pricing snapshot
    currency: str = "INR"
    subtotal: Decimal = Decimal("0")
    discount_amount: Decimal = Decimal("0")
    tax_amount: Decimal = Decimal("0")
    shipping_fee: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    campaign_snapshot: dict[str, Any] | None = None
    tax_snapshot: dict[str, Any] = field(default_factory=dict)
    shipping_snapshot: dict[str, Any] = field(default_factory=dict)

    # Status
    order_status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    payment_method: PaymentMethod = PaymentMethod.RAZORPAY

    # Payment gateway
    gateway_order_id: str | None = None
    gateway_payment_id: str | None = None
    gateway_payment_method: str | None = None
    payment_failure_reason: str | None = None
    paid_at: datetime | None = None

    # Fulfillment
    tracking_number: str | None = None
    tracking_courier: str | None = None
    tracking_url: str | None = None
    shipped_at: datetime | None = None
    estimated_delivery: date | None = None
    delivered_at: datetime | None = None
    cancelled_at: datetime | None = None
    cancellation_reason: str | None = None

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def total_paise(self) -> int:
        return int(round_currency(self.total) * 100)

    def state_label(self) -> str:
        return f"{self.order_status.value}/{self.payment_status.value}"

    def to_summary_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "order_status": self.order_status.value,
            "payment_status": self.payment_status.value,
            "total": str(self.total),
            "created_at": self.created_at.isoformat(),
        }

    def to_detail_dict(self) -> dict[str, Any]:
        return {
            **self.to_summary_dict(),
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "shipping_address": self.shipping_address,
            "items": [item.to_dict() for item in self.items],
            "currency": self.currency,
            "subtotal": str(self.subtotal),
            "discount_amount": str(self.discount_amount),
            "tax_amount": str(self.tax_amount),
            "shipping_fee": str(self.shipping_fee),
            "campaign": self.campaign_snapshot,
            "tax_breakdown": self.tax_snapshot,
            "shipping": self.shipping_snapshot,
            "payment_method": self.payment_method.value,
            "gateway_order_id": self.gateway_order_id,
            "gateway_payment_id": self.gateway_payment_id,
            "tracking_number": self.tracking_number,
            "tracking_courier": self.tracking_courier,
            "tracking_url": self.tracking_url,
            "shipped_at": self.shipped_at.isoformat() if self.shipped_at else None,
            "estimated_delivery": self.estimated_delivery.isoformat() if self.estimated_delivery else None,
            "delivered_at": self.delivered_at.isoformat() if self.delivered_at else None,
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "cancellation_reason": self.cancellation_reason,
            "updated_at": self.updated_at.isoformat(),
        }
