"""
Checkout Infrastructure Repositories
"""

from .campaign_repository import SQLAlchemyCampaignRepository
from .order_repository import SQLAlchemyOrderRepository
from .shipping_rule_repository import SQLAlchemyShippingRuleRepository
from .tax_settings_repository import SQLAlchemyTaxSettingsRepository

__all__ = [
    "SQLAlchemyCampaignRepository",
    "SQLAlchemyOrderRepository",
    "SQLAlchemyShippingRuleRepository",
    "SQLAlchemyTaxSettingsRepository",
]
