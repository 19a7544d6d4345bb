"""
Checkout API Schemas

Pydantic schemas for API request/response validation. Business rules
(quantities, prices, PIN codes, AWB numbers) are enforced by the domain so
every rejection carries the same error envelope.
"""

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, Field

from storefront.domains.checkout.domain.entities import CartItem


class CartItemSchema(BaseModel):
    """Cart line as sent by the storefront."""

    product_id: str = Field(..., min_length=1)
    quantity: int
    unit_price: Decimal
    variant_id: str | None = None
    name: str | None = None
    free_shipping_eligible: bool = False
    category_id: str | None = None
    collection_ids: list[str] = Field(default_factory=list)
    gst_rate: Decimal | None = None

    def to_domain(self) -> CartItem:
        return CartItem(
            product_id=self.product_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
            variant_id=self.variant_id,
            name=self.name,
            free_shipping_eligible=self.free_shipping_eligible,
            category_id=self.category_id,
            collection_ids=frozenset(self.collection_ids),
            gst_rate=self.gst_rate,
        )


class QuoteRequest(BaseModel):
    """Checkout quote request schema."""

    items: list[CartItemSchema]
    customer_state: str | None = None
    postal_code: str
    gst_rate_override: Decimal | None = None

    def cart_items(self) -> list[CartItem]:
        return [item.to_domain() for item in self.items]


class CreateOrderRequestSchema(QuoteRequest):
    """Create order request schema."""

    customer_name: str = Field(..., min_length=1, max_length=200)
    customer_email: str | None = Field(default=None, max_length=254)
    customer_phone: str | None = Field(default=None, max_length=20)
    shipping_address: dict[str, Any] = Field(default_factory=dict)


class CreateOrderResponseSchema(BaseModel):
    order: dict[str, Any]
    quote: dict[str, Any]
    gateway_order_id: str | None = None
    amount_paise: int
    currency: str
    key_id: str | None = None


class VerifyPaymentSchema(BaseModel):
    """Fields returned by the Razorpay checkout widget after payment."""

    razorpay_order_id: str
    razorpay_payment_id: str
    razorpay_signature: str
    payment_method: str | None = None


class VerifyPaymentResponseSchema(BaseModel):
    order: dict[str, Any]
    changed: bool


class ShipOrderSchema(BaseModel):
    tracking_number: str
    courier: str | None = None
    estimated_delivery: date | None = None


class CancelOrderSchema(BaseModel):
    reason: str | None = Field(default=None, max_length=500)


class OrderResponseSchema(BaseModel):
    order: dict[str, Any]


class WebhookResponseSchema(BaseModel):
    status: str
    event: str
    order_id: str | None = None
    reason: str | None = None


class ExpireOrdersResponseSchema(BaseModel):
    expired_count: int
    cutoff: str
    orders: list[dict[str, Any]]
