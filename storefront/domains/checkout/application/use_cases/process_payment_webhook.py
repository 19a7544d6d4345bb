"""
Process Payment Webhook Use Case

Verifies and applies payment-gateway events to orders. Duplicate or
out-of-order deliveries fall through the conditional write as no-ops.
"""

import json
import logging
from dataclasses import dataclass

from storefront.core.domain import ValidationException
from storefront.domains.checkout.application.ports import (
    INotificationService,
    IOrderRepository,
    ISignatureVerifier,
    NotificationEvent,
)
from storefront.domains.checkout.domain.entities import Order
from storefront.domains.checkout.domain.services import OrderLifecycle, OrderTransition
from storefront.domains.checkout.domain.value_objects import WebhookEvent, WebhookEventType

logger = logging.getLogger(__name__)


@dataclass
class WebhookResult:
    status: str  # processed | ignored
    event: str
    order_id: str | None = None
    reason: str | None = None

    def to_dict(self) -> dict:
        return {"status": self.status, "event": self.event, "order_id": self.order_id, "reason": self.reason}


class ProcessPaymentWebhookUseCase:
    """
    Use Case: Process Payment Webhook

    1. Verify the HMAC signature over the raw body (no state change on failure)
    2. Parse the event envelope into a known event type or UNKNOWN
    3. Apply the matching transition as a conditional write
    4. Notify the customer when the order actually changed

    Persistence errors propagate so the gateway redelivers.
    """

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

    async def execute(self, raw_body: bytes, signature: str | None) -> WebhookResult:
        self.signature_verifier.verify_webhook(raw_body, signature)

        event = self._parse(raw_body)
        logger.info(
            f"[WEBHOOK] Event {event.name}: gateway_order={event.gateway_order_id} payment={event.payment_id}"
        )

        match event.type:
            case WebhookEventType.PAYMENT_AUTHORIZED | WebhookEventType.PAYMENT_CAPTURED | WebhookEventType.ORDER_PAID:
                transition = self.lifecycle.payment_captured(event.payment_id, event.payment_method)
                notification = NotificationEvent.ORDER_CONFIRMED
            case WebhookEventType.PAYMENT_FAILED:
                transition = self.lifecycle.payment_failed(event.payment_id, event.failure_reason)
                notification = NotificationEvent.PAYMENT_FAILED
            case WebhookEventType.UNKNOWN:
                logger.info(f"[WEBHOOK] Unhandled event type: {event.name}")
                return WebhookResult(status="ignored", event=event.name, reason="unhandled_event")

        if not event.gateway_order_id:
            logger.warning(f"[WEBHOOK] Event {event.name} carries no gateway order id")
            return WebhookResult(status="ignored", event=event.name, reason="missing_order_id")

        return await self._apply(event, transition, notification)

    async def _apply(
        self,
        event: WebhookEvent,
        transition: OrderTransition,
        notification: NotificationEvent,
    ) -> WebhookResult:
        gateway_order_id = event.gateway_order_id or ""
        updated = await self.order_repository.apply_transition_by_gateway_order_id(gateway_order_id, transition)

        if updated is None:
            current = await self.order_repository.get_by_gateway_order_id(gateway_order_id)
            if current is None:
                logger.warning(f"[WEBHOOK] No order for gateway order {gateway_order_id}")
                return WebhookResult(status="ignored", event=event.name, reason="order_not_found")
            logger.info(
                f"[WEBHOOK] {transition.name} is a no-op for order {current.order_number} "
                f"in state {current.state_label()}"
            )
            return WebhookResult(status="ignored", event=event.name, order_id=current.id, reason="state_mismatch")

        logger.info(f"[WEBHOOK] Order {updated.order_number} -> {updated.state_label()}")
        await self._notify(notification, updated)
        return WebhookResult(status="processed", event=event.name, order_id=updated.id)

    async def _notify(self, event: NotificationEvent, order: Order) -> None:
        if self.notifier is not None:
            await self.notifier.notify(event, order)

    @staticmethod
    def _parse(raw_body: bytes) -> WebhookEvent:
        try:
            data = json.loads(raw_body)
        except ValueError as e:
            raise ValidationException(
                "Webhook body is not valid JSON", field="body", reason="INVALID_PAYLOAD"
            ) from e
        if not isinstance(data, dict):
            raise ValidationException("Webhook body must be a JSON object", field="body", reason="INVALID_PAYLOAD")
        return WebhookEvent.from_payload(data)
