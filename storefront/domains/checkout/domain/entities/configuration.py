"""
Pricing configuration read at checkout time: tax settings and shipping rules.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from storefront.core.domain import round_currency

DEFAULT_GST_RATE = Decimal("18")
DEFAULT_STORE_STATE = "Tamil Nadu"
DEFAULT_MAX_DELIVERY_DAYS = 7


@dataclass(frozen=True)
class TaxSettings:
    """
    The store's single active GST configuration.

    ``TaxSettings.default()`` is what applies when no row is configured.
    """

    tax_enabled: bool = True
    default_gst_rate: Decimal | None = DEFAULT_GST_RATE
    price_includes_tax: bool = False
    store_state: str = DEFAULT_STORE_STATE
    gstin: str | None = None

    def __post_init__(self):
        if self.default_gst_rate is not None:
            rate = Decimal(str(self.default_gst_rate))
            if rate < 0 or rate > 100:
                raise ValueError("default_gst_rate must be between 0 and 100")
            object.__setattr__(self, "default_gst_rate", rate)

    @classmethod
    def default(
        cls,
        default_gst_rate: Decimal = DEFAULT_GST_RATE,
        store_state: str = DEFAULT_STORE_STATE,
        price_includes_tax: bool = False,
    ) -> "TaxSettings":
        return cls(
            tax_enabled=True,
            default_gst_rate=default_gst_rate,
            price_includes_tax=price_includes_tax,
            store_state=store_state,
        )


@dataclass(frozen=True)
class ShippingRule:
    """
    Zone-tiered shipping rate.

    ``max_quantity=None`` means "and above".
    """

    id: str
    zone: str
    rate: Decimal
    min_quantity: int = 1
    max_quantity: int | None = None
    provider: str = "Standard"
    is_enabled: bool = True
    max_delivery_days: int | None = None
    created_at: datetime | None = None

    def __post_init__(self):
        object.__setattr__(self, "rate", round_currency(self.rate))
        if self.rate < 0:
            raise ValueError("Shipping rate cannot be negative")
        if self.max_quantity is not None and self.max_quantity < self.min_quantity:
            raise ValueError("max_quantity cannot be lower than min_quantity")

    def covers(self, quantity: int) -> bool:
        if quantity < self.min_quantity:
            return False
        return self.max_quantity is None or quantity <= self.max_quantity
