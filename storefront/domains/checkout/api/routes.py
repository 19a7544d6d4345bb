"""
Checkout API Routes

FastAPI router for pricing, order creation, payment confirmation,
fulfillment and the pending-order sweep.
"""

import logging

from fastapi import APIRouter, Depends, Header, Request

from storefront.config.settings import Settings, get_settings
from storefront.domains.checkout.api.dependencies import (
    get_calculate_checkout_use_case,
    get_cancel_order_use_case,
    get_create_order_use_case,
    get_expire_orders_use_case,
    get_mark_delivered_use_case,
    get_process_webhook_use_case,
    get_ship_order_use_case,
    get_verify_payment_use_case,
    verify_cron_secret,
)
from storefront.domains.checkout.api.schemas import (
    CancelOrderSchema,
    CreateOrderRequestSchema,
    CreateOrderResponseSchema,
    ExpireOrdersResponseSchema,
    OrderResponseSchema,
    QuoteRequest,
    ShipOrderSchema,
    VerifyPaymentResponseSchema,
    VerifyPaymentSchema,
    WebhookResponseSchema,
)
from storefront.domains.checkout.application.use_cases import (
    CalculateCheckoutRequest,
    CalculateCheckoutUseCase,
    CancelOrderRequest,
    CancelOrderUseCase,
    CreateOrderRequest,
    CreateOrderUseCase,
    ExpirePendingOrdersUseCase,
    MarkDeliveredUseCase,
    ProcessPaymentWebhookUseCase,
    ShipOrderRequest,
    ShipOrderUseCase,
    VerifyPaymentRequest,
    VerifyPaymentUseCase,
)

router = APIRouter(prefix="/checkout", tags=["Checkout"])
logger = logging.getLogger(__name__)


@router.post("/quote")
async def calculate_quote(
    request: QuoteRequest,
    use_case: CalculateCheckoutUseCase = Depends(get_calculate_checkout_use_case),  # noqa: B008
):
    """Price a cart: campaign discount, GST split and shipping."""
    quote = await use_case.execute(
        CalculateCheckoutRequest(
            items=request.cart_items(),
            customer_state=request.customer_state,
            postal_code=request.postal_code,
            rate_override=request.gst_rate_override,
        )
    )
    return quote.to_dict()


@router.post("/orders", response_model=CreateOrderResponseSchema, status_code=201)
async def create_order(
    request: CreateOrderRequestSchema,
    use_case: CreateOrderUseCase = Depends(get_create_order_use_case),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
):
    """Create an order in pending/pending and open the matching gateway order."""
    result = await use_case.execute(
        CreateOrderRequest(
            items=request.cart_items(),
            customer_state=request.customer_state or "",
            postal_code=request.postal_code,
            rate_override=request.gst_rate_override,
            customer_name=request.customer_name,
            customer_email=request.customer_email,
            customer_phone=request.customer_phone,
            shipping_address=request.shipping_address,
        )
    )
    return CreateOrderResponseSchema(
        order=result.order.to_detail_dict(),
        quote=result.quote.to_dict(),
        gateway_order_id=result.order.gateway_order_id,
        amount_paise=result.quote.total_paise,
        currency=result.order.currency,
        key_id=settings.RAZORPAY_KEY_ID,
    )


@router.post("/orders/{order_id}/verify-payment", response_model=VerifyPaymentResponseSchema)
async def verify_payment(
    order_id: str,
    request: VerifyPaymentSchema,
    use_case: VerifyPaymentUseCase = Depends(get_verify_payment_use_case),  # noqa: B008
):
    """Confirm a payment using the signature returned by the checkout widget."""
    result = await use_case.execute(
        VerifyPaymentRequest(
            order_id=order_id,
            gateway_order_id=request.razorpay_order_id,
            gateway_payment_id=request.razorpay_payment_id,
            signature=request.razorpay_signature,
            payment_method=request.payment_method,
        )
    )
    return VerifyPaymentResponseSchema(order=result.order.to_detail_dict(), changed=result.changed)


@router.post("/orders/{order_id}/ship", response_model=OrderResponseSchema)
async def ship_order(
    order_id: str,
    request: ShipOrderSchema,
    use_case: ShipOrderUseCase = Depends(get_ship_order_use_case),  # noqa: B008
):
    """Mark a paid order as shipped with its AWB number."""
    order = await use_case.execute(
        ShipOrderRequest(
            order_id=order_id,
            tracking_number=request.tracking_number,
            courier=request.courier,
            estimated_delivery=request.estimated_delivery,
        )
    )
    return OrderResponseSchema(order=order.to_detail_dict())


@router.post("/orders/{order_id}/deliver", response_model=OrderResponseSchema)
async def deliver_order(
    order_id: str,
    use_case: MarkDeliveredUseCase = Depends(get_mark_delivered_use_case),  # noqa: B008
):
    """Mark a shipped order as delivered."""
    order = await use_case.execute(order_id)
    return OrderResponseSchema(order=order.to_detail_dict())


@router.post("/orders/{order_id}/cancel", response_model=OrderResponseSchema)
async def cancel_order(
    order_id: str,
    request: CancelOrderSchema | None = None,
    use_case: CancelOrderUseCase = Depends(get_cancel_order_use_case),  # noqa: B008
):
    """Cancel an order that has not shipped."""
    order = await use_case.execute(CancelOrderRequest(order_id=order_id, reason=request.reason if request else None))
    return OrderResponseSchema(order=order.to_detail_dict())


@router.post("/webhooks/razorpay", response_model=WebhookResponseSchema)
async def razorpay_webhook(
    request: Request,
    x_razorpay_signature: str | None = Header(None),
    use_case: ProcessPaymentWebhookUseCase = Depends(get_process_webhook_use_case),  # noqa: B008
):
    """
    Handle Razorpay payment notifications.

    The signature is checked against the raw body before anything is parsed.
    Duplicate and stale events are acknowledged with status ``ignored``.
    """
    raw_body = await request.body()
    logger.info(f"[WEBHOOK] Payload received ({len(raw_body)} bytes)")

    result = await use_case.execute(raw_body, x_razorpay_signature)
    return WebhookResponseSchema(**result.to_dict())


@router.api_route(
    "/cron/expire-orders",
    methods=["GET", "POST"],
    response_model=ExpireOrdersResponseSchema,
    dependencies=[Depends(verify_cron_secret)],
)
async def expire_orders(
    use_case: ExpirePendingOrdersUseCase = Depends(get_expire_orders_use_case),  # noqa: B008
):
    """Expire unpaid gateway orders older than the configured window."""
    result = await use_case.execute()
    return ExpireOrdersResponseSchema(**result.to_dict())


__all__ = ["router"]
