from .campaign import Campaign, CampaignStatus
from .cart import Cart, CartItem
from .configuration import ShippingRule, TaxSettings
from .order import Order, OrderItem

__all__ = [
    "Campaign",
    "CampaignStatus",
    "Cart",
    "CartItem",
    "ShippingRule",
    "TaxSettings",
    "Order",
    "OrderItem",
]
