"""
Checkout API Dependencies

FastAPI dependencies that assemble checkout use cases per request.
"""

import hmac
import logging
from datetime import timedelta
from typing import AsyncGenerator

from fastapi import Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.config.settings import Settings, get_settings
from storefront.database.async_db import get_async_db
from storefront.domains.checkout.application.ports import IPaymentGateway
from storefront.domains.checkout.application.use_cases import (
    CalculateCheckoutUseCase,
    CancelOrderUseCase,
    CreateOrderUseCase,
    ExpirePendingOrdersUseCase,
    MarkDeliveredUseCase,
    PricingDefaults,
    ProcessPaymentWebhookUseCase,
    ShipOrderUseCase,
    VerifyPaymentUseCase,
)
from storefront.domains.checkout.domain.services import OrderLifecycle
from storefront.domains.checkout.infrastructure.repositories import (
    SQLAlchemyCampaignRepository,
    SQLAlchemyOrderRepository,
    SQLAlchemyShippingRuleRepository,
    SQLAlchemyTaxSettingsRepository,
)
from storefront.domains.checkout.infrastructure.services import (
    RazorpayClient,
    RazorpaySignatureVerifier,
    ResendNotificationService,
)

logger = logging.getLogger(__name__)


# ============================================================
# Collaborators
# ============================================================


def get_order_lifecycle(settings: Settings = Depends(get_settings)) -> OrderLifecycle:  # noqa: B008
    return OrderLifecycle(expiry_window=timedelta(hours=settings.ORDER_EXPIRY_HOURS))


def get_signature_verifier(settings: Settings = Depends(get_settings)) -> RazorpaySignatureVerifier:  # noqa: B008
    return RazorpaySignatureVerifier(
        webhook_secret=settings.RAZORPAY_WEBHOOK_SECRET,
        key_secret=settings.RAZORPAY_KEY_SECRET,
    )


def get_notifier(settings: Settings = Depends(get_settings)) -> ResendNotificationService:  # noqa: B008
    return ResendNotificationService(settings)


async def get_payment_gateway(
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> AsyncGenerator[IPaymentGateway | None, None]:
    """Open a Razorpay client for the request, or None when the gateway is disabled."""
    if not settings.RAZORPAY_ENABLED:
        yield None
        return
    async with RazorpayClient(settings) as client:
        yield client


# ============================================================
# Use cases
# ============================================================


def get_calculate_checkout_use_case(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> CalculateCheckoutUseCase:
    return CalculateCheckoutUseCase(
        campaign_repository=SQLAlchemyCampaignRepository(db),
        tax_settings_repository=SQLAlchemyTaxSettingsRepository(db),
        shipping_rule_repository=SQLAlchemyShippingRuleRepository(db),
        defaults=PricingDefaults.from_settings(settings),
    )


def get_create_order_use_case(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    checkout: CalculateCheckoutUseCase = Depends(get_calculate_checkout_use_case),  # noqa: B008
    payment_gateway: IPaymentGateway | None = Depends(get_payment_gateway),  # noqa: B008
) -> CreateOrderUseCase:
    return CreateOrderUseCase(
        order_repository=SQLAlchemyOrderRepository(db),
        checkout=checkout,
        payment_gateway=payment_gateway,
    )


def get_process_webhook_use_case(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    verifier: RazorpaySignatureVerifier = Depends(get_signature_verifier),  # noqa: B008
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),  # noqa: B008
    notifier: ResendNotificationService = Depends(get_notifier),  # noqa: B008
) -> ProcessPaymentWebhookUseCase:
    return ProcessPaymentWebhookUseCase(
        order_repository=SQLAlchemyOrderRepository(db),
        signature_verifier=verifier,
        lifecycle=lifecycle,
        notifier=notifier,
    )


def get_verify_payment_use_case(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    verifier: RazorpaySignatureVerifier = Depends(get_signature_verifier),  # noqa: B008
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),  # noqa: B008
    notifier: ResendNotificationService = Depends(get_notifier),  # noqa: B008
) -> VerifyPaymentUseCase:
    return VerifyPaymentUseCase(
        order_repository=SQLAlchemyOrderRepository(db),
        signature_verifier=verifier,
        lifecycle=lifecycle,
        notifier=notifier,
    )


def get_ship_order_use_case(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),  # noqa: B008
    notifier: ResendNotificationService = Depends(get_notifier),  # noqa: B008
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> ShipOrderUseCase:
    return ShipOrderUseCase(
        order_repository=SQLAlchemyOrderRepository(db),
        lifecycle=lifecycle,
        notifier=notifier,
        default_courier=settings.TRACKING_COURIER,
        delivery_days=settings.SHIPPING_MAX_DELIVERY_DAYS,
    )


def get_mark_delivered_use_case(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),  # noqa: B008
    notifier: ResendNotificationService = Depends(get_notifier),  # noqa: B008
) -> MarkDeliveredUseCase:
    return MarkDeliveredUseCase(SQLAlchemyOrderRepository(db), lifecycle, notifier)


def get_cancel_order_use_case(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),  # noqa: B008
    notifier: ResendNotificationService = Depends(get_notifier),  # noqa: B008
) -> CancelOrderUseCase:
    return CancelOrderUseCase(SQLAlchemyOrderRepository(db), lifecycle, notifier)


def get_expire_orders_use_case(
    db: AsyncSession = Depends(get_async_db),  # noqa: B008
    lifecycle: OrderLifecycle = Depends(get_order_lifecycle),  # noqa: B008
) -> ExpirePendingOrdersUseCase:
    return ExpirePendingOrdersUseCase(SQLAlchemyOrderRepository(db), lifecycle)


# ============================================================
# Authorization
# ============================================================


async def verify_cron_secret(
    authorization: str | None = Header(None),
    settings: Settings = Depends(get_settings),  # noqa: B008
) -> bool:
    """
    Require ``Authorization: Bearer <CRON_SECRET>`` on sweep triggers.
    """
    if not settings.CRON_SECRET:
        logger.error("[SWEEP] CRON_SECRET not configured; refusing sweep trigger")
        raise HTTPException(status_code=401, detail="Unauthorized")

    if not authorization or not authorization.startswith("Bearer "):
        logger.warning("[SWEEP] Missing bearer token on sweep trigger")
        raise HTTPException(status_code=401, detail="Unauthorized")

    token = authorization[len("Bearer ") :]
    if not hmac.compare_digest(token.encode("utf-8"), settings.CRON_SECRET.encode("utf-8")):
        logger.warning("[SWEEP] Invalid bearer token on sweep trigger")
        raise HTTPException(status_code=401, detail="Unauthorized")

    return True


__all__ = [
    "get_order_lifecycle",
    "get_signature_verifier",
    "get_notifier",
    "get_payment_gateway",
    "get_calculate_checkout_use_case",
    "get_create_order_use_case",
    "get_process_webhook_use_case",
    "get_verify_payment_use_case",
    "get_ship_order_use_case",
    "get_mark_delivered_use_case",
    "get_cancel_order_use_case",
    "get_expire_orders_use_case",
    "verify_cron_secret",
]
