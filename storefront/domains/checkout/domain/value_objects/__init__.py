from .campaign_conditions import (
    CampaignCondition,
    DiscountAction,
    DiscountTarget,
    DiscountType,
    MinQuantity,
    MinSubtotal,
    ProductScope,
    parse_condition,
    serialize_condition,
)
from .location import (
    PostalCode,
    ShippingZone,
    is_tamil_nadu,
    normalize_state,
    resolve_zone,
    same_state,
)
from .order_status import OrderStatus, OrderStatusTransition, PaymentMethod, PaymentStatus
from .payment_event import WebhookEvent, WebhookEventType
from .tracking import AwbNumber, TrackingInfo

__all__ = [
    "CampaignCondition",
    "DiscountAction",
    "DiscountTarget",
    "DiscountType",
    "MinQuantity",
    "MinSubtotal",
    "ProductScope",
    "parse_condition",
    "serialize_condition",
    "PostalCode",
    "ShippingZone",
    "is_tamil_nadu",
    "normalize_state",
    "resolve_zone",
    "same_state",
    "OrderStatus",
    "OrderStatusTransition",
    "PaymentMethod",
    "PaymentStatus",
    "WebhookEvent",
    "WebhookEventType",
    "AwbNumber",
    "TrackingInfo",
]
