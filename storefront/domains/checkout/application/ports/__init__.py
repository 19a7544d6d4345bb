"""
Checkout Application Ports

Interface definitions (ports) for the checkout domain.
Uses Protocol for structural typing.
"""

from datetime import datetime
from typing import Any, Protocol, runtime_checkable

from storefront.core.domain import StatusEnum
from storefront.domains.checkout.domain.entities import Campaign, Order, ShippingRule, TaxSettings
from storefront.domains.checkout.domain.services import OrderTransition


@runtime_checkable
class ICampaignRepository(Protocol):
    """Read access to promotional campaigns."""

    async def get_active(self, now: datetime) -> list[Campaign]:
        """Get campaigns that are active and inside their validity window at ``now``"""
        ...


@runtime_checkable
class ITaxSettingsRepository(Protocol):
    async def get_current(self) -> TaxSettings | None:
        """Get the single active tax configuration, or None when none is configured"""
        ...


@runtime_checkable
class IShippingRuleRepository(Protocol):
    async def get_enabled(self, zones: list[str]) -> list[ShippingRule]:
        """Get enabled rules for the given zones, oldest first"""
        ...


@runtime_checkable
class IOrderRepository(Protocol):
    """
    Interface for order persistence.

    Transition methods are conditional writes: they change the order only
    while it is still in the transition's expected state and return None
    (or an empty list) when nothing matched.
    """

    async def create(self, order: Order) -> Order:
        """Persist a new order"""
        ...

    async def get_by_id(self, order_id: str) -> Order | None:
        """Get order by ID or order number"""
        ...

    async def get_by_gateway_order_id(self, gateway_order_id: str) -> Order | None:
        """Get order by payment gateway order ID"""
        ...

    async def apply_transition(self, order_id: str, transition: OrderTransition) -> Order | None:
        """Apply a transition to one order if it is still in the expected state"""
        ...

    async def apply_transition_by_gateway_order_id(
        self, gateway_order_id: str, transition: OrderTransition
    ) -> Order | None:
        """Apply a transition to the order owning a gateway order ID"""
        ...

    async def expire_stale(self, cutoff: datetime, transition: OrderTransition) -> list[Order]:
        """Apply the expiry transition to every unpaid gateway order created before ``cutoff``"""
        ...


@runtime_checkable
class IPaymentGateway(Protocol):
    async def create_order(self, amount_paise: int, receipt: str, notes: dict[str, str] | None = None) -> dict[str, Any]:
        """Create a remote payment order; returns the gateway payload including its ``id``"""
        ...


@runtime_checkable
class ISignatureVerifier(Protocol):
    def verify_webhook(self, raw_body: bytes, signature: str | None) -> None:
        """Raise InvalidSignatureException unless ``signature`` is the HMAC of ``raw_body``"""
        ...

    def verify_payment(self, gateway_order_id: str, payment_id: str, signature: str | None) -> None:
        """Raise InvalidSignatureException unless the checkout signature is valid"""
        ...


class NotificationEvent(StatusEnum):
    ORDER_CONFIRMED = "order_confirmed"
    PAYMENT_FAILED = "payment_failed"
    ORDER_SHIPPED = "order_shipped"
    ORDER_DELIVERED = "order_delivered"
    ORDER_CANCELLED = "order_cancelled"


@runtime_checkable
class INotificationService(Protocol):
    async def notify(self, event: NotificationEvent, order: Order) -> None:
        """Send a customer notification; must never raise"""
        ...


__all__ = [
    "ICampaignRepository",
    "ITaxSettingsRepository",
    "IShippingRuleRepository",
    "IOrderRepository",
    "IPaymentGateway",
    "ISignatureVerifier",
    "INotificationService",
    "NotificationEvent",
]
