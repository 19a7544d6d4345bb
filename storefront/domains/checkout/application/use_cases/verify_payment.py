"""
Verify Payment Use Case

Confirms a payment from the signature the checkout widget returns to the
browser, so orders move to paid even before the webhook arrives.
"""

import logging
from dataclasses import dataclass

from storefront.core.domain import EntityNotFoundException, ValidationException
from storefront.domains.checkout.application.ports import (
    INotificationService,
    IOrderRepository,
    ISignatureVerifier,
    NotificationEvent,
)
from storefront.domains.checkout.domain.entities import Order
from storefront.domains.checkout.domain.services import OrderLifecycle

logger = logging.getLogger(__name__)


@dataclass
class VerifyPaymentRequest:
    order_id: str
    gateway_order_id: str
    gateway_payment_id: str
    signature: str
    payment_method: str | None = None


@dataclass
class VerifyPaymentResponse:
    order: Order
    changed: bool


class VerifyPaymentUseCase:
    def __init__(
        self,
        order_repository: IOrderRepository,
        signature_verifier: ISignatureVerifier,
        lifecycle: OrderLifecycle | None = None,
        notifier: INotificationService | None = None,
    ):
        self.order_repository = order_repository
        self.signature_verifier = signature_verifier
        self.lifecycle = lifecycle or OrderLifecycle()
        self.notifier = notifier

    async def execute(self, request: VerifyPaymentRequest) -> VerifyPaymentResponse:
        """
        Verify the checkout signature and mark the order paid.

        Idempotent: an order already confirmed by the webhook is returned
        unchanged.

        Raises:
            EntityNotFoundException: unknown order
            ValidationException: gateway order id does not belong to the order
            InvalidSignatureException: signature mismatch
        """
        order = await self.order_repository.get_by_id(request.order_id)
        if order is None:
            raise EntityNotFoundException("Order", request.order_id)

        if order.gateway_order_id != request.gateway_order_id:
            raise ValidationException(
                "Gateway order does not belong to this order",
                field="gateway_order_id",
                reason="ORDER_MISMATCH",
            )

        self.signature_verifier.verify_payment(
            request.gateway_order_id, request.gateway_payment_id, request.signature
        )

        transition = self.lifecycle.payment_captured(request.gateway_payment_id, request.payment_method)
        updated = await self.order_repository.apply_transition(order.id or request.order_id, transition)
        if updated is None:
            logger.info(f"[PAYMENT] Order {order.order_number} already in state {order.state_label()}")
            current = await self.order_repository.get_by_id(request.order_id)
            return VerifyPaymentResponse(order=current or order, changed=False)

        logger.info(f"[PAYMENT] Order {updated.order_number} confirmed by checkout signature")
        if self.notifier is not None:
            await self.notifier.notify(NotificationEvent.ORDER_CONFIRMED, updated)
        return VerifyPaymentResponse(order=updated, changed=True)
