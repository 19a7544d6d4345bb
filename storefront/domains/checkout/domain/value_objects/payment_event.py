"""
Payment gateway webhook events.

Razorpay posts ``{"event": "...", "payload": {"payment": {"entity": {...}},
"order": {"entity": {...}}}}``. Known event names map onto a closed enum;
anything else is kept as UNKNOWN with its raw name.
"""

from dataclasses import dataclass
from typing import Any

from storefront.core.domain import StatusEnum, ValidationException


class WebhookEventType(StatusEnum):
    PAYMENT_AUTHORIZED = "payment.authorized"
    PAYMENT_CAPTURED = "payment.captured"
    PAYMENT_FAILED = "payment.failed"
    ORDER_PAID = "order.paid"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, name: str | None) -> "WebhookEventType":
        for member in cls:
            if member is not cls.UNKNOWN and member.value == name:
                return member
        return cls.UNKNOWN


@dataclass(frozen=True)
class WebhookEvent:
    type: WebhookEventType
    name: str
    gateway_order_id: str | None = None
    payment_id: str | None = None
    payment_method: str | None = None
    amount_paise: int | None = None
    error_reason: str | None = None
    error_description: str | None = None

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> "WebhookEvent":
        """
        Parse a decoded webhook envelope.

        Raises:
            ValidationException: a nested section is not an object or the amount is not an integer
        """
        name = str(data.get("event") or "")
        payload = _section(data, "payload")
        payment = _section(_section(payload, "payment", "payload"), "entity", "payload.payment")
        order = _section(_section(payload, "order", "payload"), "entity", "payload.order")

        amount = payment.get("amount", order.get("amount"))
        try:
            amount_paise = int(amount) if amount is not None else None
        except (TypeError, ValueError) as e:
            raise ValidationException(
                f"Webhook amount is not an integer: {amount!r}", field="payload.amount", reason="INVALID_PAYLOAD"
            ) from e

        return cls(
            type=WebhookEventType.parse(name),
            name=name,
            gateway_order_id=_text(payment.get("order_id") or order.get("id")),
            payment_id=_text(payment.get("id")),
            payment_method=_text(payment.get("method")),
            amount_paise=amount_paise,
            error_reason=_text(payment.get("error_reason")),
            error_description=_text(payment.get("error_description")),
        )

    @property
    def failure_reason(self) -> str | None:
        return self.error_description or self.error_reason


def _section(parent: dict[str, Any], key: str, path: str | None = None) -> dict[str, Any]:
    value = parent.get(key) or {}
    if not isinstance(value, dict):
        location = f"{path}.{key}" if path else key
        raise ValidationException(f"Webhook {location} must be an object", field=location, reason="INVALID_PAYLOAD")
    return value


def _text(value: Any) -> str | None:
    return str(value) if value is not None else None
