"""
Order Notification Service.

Sends customer emails for lifecycle events through the Resend HTTP API.
Delivery failures are logged and never propagate to the caller.
"""

import logging
from dataclasses import dataclass

import httpx

from storefront.config.settings import Settings, get_settings
from storefront.domains.checkout.application.ports import INotificationService, NotificationEvent
from storefront.domains.checkout.domain.entities import Order

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EmailTemplate:
    subject_template: str
    body_template: str


TEMPLATES: dict[NotificationEvent, EmailTemplate] = {
    NotificationEvent.ORDER_CONFIRMED: EmailTemplate(
        subject_template="Order {order_number} confirmed",
        body_template=(
            "Hi {customer_name},\n\n"
            "We received your payment of ₹{total} for order {order_number}. "
            "We will let you know as soon as it ships."
        ),
    ),
    NotificationEvent.PAYMENT_FAILED: EmailTemplate(
        subject_template="Payment failed for order {order_number}",
        body_template=(
            "Hi {customer_name},\n\n"
            "Your payment for order {order_number} did not go through and the order was cancelled. "
            "No amount has been charged."
        ),
    ),
    NotificationEvent.ORDER_SHIPPED: EmailTemplate(
        subject_template="Order {order_number} has shipped",
        body_template=(
            "Hi {customer_name},\n\n"
            "Order {order_number} is on its way with {courier}. Tracking number: {tracking_number}.\n"
            "{tracking_line}"
            "Estimated delivery: {estimated_delivery}."
        ),
    ),
    NotificationEvent.ORDER_DELIVERED: EmailTemplate(
        subject_template="Order {order_number} delivered",
        body_template="Hi {customer_name},\n\nOrder {order_number} has been delivered. Thank you for shopping with us.",
    ),
    NotificationEvent.ORDER_CANCELLED: EmailTemplate(
        subject_template="Order {order_number} cancelled",
        body_template="Hi {customer_name},\n\nOrder {order_number} has been cancelled.",
    ),
}


class ResendNotificationService(INotificationService):
    """
    Email notifications via Resend.

    Responsibilities:
    - Render the template for a lifecycle event
    - Deliver it to the order's customer email
    - Swallow and log delivery failures so order transitions never roll back
    """

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = settings or get_settings()
        self._enabled = settings.NOTIFICATIONS_ENABLED and bool(settings.RESEND_API_KEY)
        self._base_url = settings.RESEND_API_BASE
        self._api_key = settings.RESEND_API_KEY
        self._from_email = settings.NOTIFICATION_FROM_EMAIL
        self._timeout = settings.NOTIFICATION_TIMEOUT
        self._transport = transport

        if settings.NOTIFICATIONS_ENABLED and not settings.RESEND_API_KEY:
            logger.warning("[NOTIFY] NOTIFICATIONS_ENABLED but RESEND_API_KEY not configured")

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    async def notify(self, event: NotificationEvent, order: Order) -> None:
        if not self._enabled:
            logger.debug(f"[NOTIFY] Notifications disabled; skipping {event} for {order.order_number}")
            return
        if not order.customer_email:
            logger.info(f"[NOTIFY] Order {order.order_number} has no email; skipping {event}")
            return

        subject, body = self.render(event, order)
        payload = {
            "from": self._from_email,
            "to": [order.customer_email],
            "subject": subject,
            "text": body,
        }

        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                headers={"Authorization": f"Bearer {self._api_key}"},
                timeout=self._timeout,
                transport=self._transport,
            ) as client:
                response = await client.post("/emails", json=payload)
                response.raise_for_status()
            logger.info(f"[NOTIFY] {event} sent for order {order.order_number}")
        except httpx.HTTPError as e:
            logger.error(f"[NOTIFY] Failed to send {event} for order {order.order_number}: {e}")

    @staticmethod
    def render(event: NotificationEvent, order: Order) -> tuple[str, str]:
        template = TEMPLATES[event]
        values = {
            "order_number": order.order_number,
            "customer_name": order.customer_name or "there",
            "total": order.total,
            "courier": order.tracking_courier or "our courier",
            "tracking_number": order.tracking_number or "-",
            "tracking_line": f"Track it here: {order.tracking_url}\n" if order.tracking_url else "",
            "estimated_delivery": order.estimated_delivery.isoformat() if order.estimated_delivery else "soon",
        }
        return template.subject_template.format(**values), template.body_template.format(**values)
