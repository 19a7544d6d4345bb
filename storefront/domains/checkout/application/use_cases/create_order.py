"""
Create Order Use Case

Prices the cart, opens a payment-gateway order and persists the order
with its pricing snapshot in pending/pending.
"""

import logging
import secrets
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from storefront.core.domain import generate_uuid_str
from storefront.domains.checkout.application.ports import IOrderRepository, IPaymentGateway
from storefront.domains.checkout.domain.entities import CartItem, Order, OrderItem
from storefront.domains.checkout.domain.value_objects import OrderStatus, PaymentMethod, PaymentStatus

from .calculate_checkout import CalculateCheckoutRequest, CalculateCheckoutUseCase, CheckoutQuote

logger = logging.getLogger(__name__)


@dataclass
class CreateOrderRequest:
    """Request for creating an order."""

    items: list[CartItem]
    customer_state: str
    postal_code: str
    customer_name: str
    customer_email: str | None = None
    customer_phone: str | None = None
    shipping_address: dict[str, Any] = field(default_factory=dict)
    rate_override: Decimal | None = None


@dataclass
class CreateOrderResponse:
    order: Order
    quote: CheckoutQuote
    gateway_order: dict[str, Any] | None = None


def generate_order_number(now: datetime) -> str:
    return f"ORD-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


class CreateOrderUseCase:
    """
    Use Case: Create Order

    Responsibilities:
    - Price the cart (validation errors abort before anything is written)
    - Create the remote gateway order for the payable amount
    - Persist the order snapshot; configuration changes never touch it again
    """

    def __init__(
        self,
        order_repository: IOrderRepository,
        checkout: CalculateCheckoutUseCase,
        payment_gateway: IPaymentGateway | None = None,
    ):
        self.order_repository = order_repository
        self.checkout = checkout
        self.payment_gateway = payment_gateway

    async def execute(self, request: CreateOrderRequest, now: datetime | None = None) -> CreateOrderResponse:
        now = now or datetime.now(UTC)
        quote = await self.checkout.execute(
            CalculateCheckoutRequest(
                items=request.items,
                customer_state=request.customer_state,
                postal_code=request.postal_code,
                rate_override=request.rate_override,
            ),
            now=now,
        )

        order = self._build_order(request, quote, now)

        gateway_order = None
        if self.payment_gateway is not None:
            gateway_order = await self.payment_gateway.create_order(
                amount_paise=quote.total_paise,
                receipt=order.order_number or order.id or "",
                notes={"order_id": order.id or "", "order_number": order.order_number or ""},
            )
            order.gateway_order_id = gateway_order.get("id")
        else:
            logger.warning(f"[CHECKOUT] Payment gateway disabled; order {order.order_number} has no gateway order")

        created = await self.order_repository.create(order)
        logger.info(
            f"[CHECKOUT] Order created: {created.order_number} total={created.total} "
            f"gateway_order={created.gateway_order_id}"
        )
        return CreateOrderResponse(order=created, quote=quote, gateway_order=gateway_order)

    @staticmethod
    def _build_order(request: CreateOrderRequest, quote: CheckoutQuote, now: datetime) -> Order:
        # Tax lines follow cart order; there are none when tax is disabled
        tax_lines = quote.tax.lines or (None,) * len(quote.cart.items)
        items = [
            OrderItem(
                product_id=item.product_id,
                variant_id=item.variant_id,
                name=item.name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                gst_rate=line.gst_rate if line else None,
                tax_amount=line.total_tax if line else Decimal("0.00"),
            )
            for item, line in zip(quote.cart.items, tax_lines, strict=True)
        ]

        return Order(
            id=generate_uuid_str(),
            order_number=generate_order_number(now),
            created_at=now,
            updated_at=now,
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            customer_phone=request.customer_phone,
            shipping_address=request.shipping_address,
            customer_state=request.customer_state,
            postal_code=request.postal_code,
            items=items,
            subtotal=quote.subtotal,
            discount_amount=quote.discount,
            tax_amount=quote.tax.payable_tax,
            shipping_fee=quote.shipping.amount,
            total=quote.total,
            campaign_snapshot=quote.campaign_snapshot(),
            tax_snapshot=quote.tax.to_dict(),
            shipping_snapshot=quote.shipping.to_dict(),
            order_status=OrderStatus.PENDING,
            payment_status=PaymentStatus.PENDING,
            payment_method=PaymentMethod.RAZORPAY,
        )
