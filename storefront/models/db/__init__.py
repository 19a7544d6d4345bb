"""
Database models package
"""

from .base import Base, TimestampMixin
from .orders import Order, OrderItem, OrderStatusHistory
from .pricing import Campaign, ShippingRule, TaxSettings

__all__ = [
    "Base",
    "TimestampMixin",
    "Order",
    "OrderItem",
    "OrderStatusHistory",
    "Campaign",
    "ShippingRule",
    "TaxSettings",
]
