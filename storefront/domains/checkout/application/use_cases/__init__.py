"""
Checkout Use Cases
"""

from .calculate_checkout import (
    CalculateCheckoutRequest,
    CalculateCheckoutUseCase,
    CheckoutQuote,
    PricingDefaults,
)
from .create_order import CreateOrderRequest, CreateOrderResponse, CreateOrderUseCase
from .expire_pending_orders import ExpirePendingOrdersResponse, ExpirePendingOrdersUseCase
from .process_payment_webhook import ProcessPaymentWebhookUseCase, WebhookResult
from .update_fulfillment import (
    CancelOrderRequest,
    CancelOrderUseCase,
    MarkDeliveredUseCase,
    ShipOrderRequest,
    ShipOrderUseCase,
)
from .verify_payment import VerifyPaymentRequest, VerifyPaymentResponse, VerifyPaymentUseCase

__all__ = [
    "CalculateCheckoutRequest",
    "CalculateCheckoutUseCase",
    "CheckoutQuote",
    "PricingDefaults",
    "CreateOrderRequest",
    "CreateOrderResponse",
    "CreateOrderUseCase",
    "ExpirePendingOrdersResponse",
    "ExpirePendingOrdersUseCase",
    "ProcessPaymentWebhookUseCase",
    "WebhookResult",
    "CancelOrderRequest",
    "CancelOrderUseCase",
    "MarkDeliveredUseCase",
    "ShipOrderRequest",
    "ShipOrderUseCase",
    "VerifyPaymentRequest",
    "VerifyPaymentResponse",
    "VerifyPaymentUseCase",
]
