"""
Calculate Checkout Use Case

Runs a cart through campaign selection, GST and shipping to produce the
payable amount and the snapshot stored with an order.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from storefront.config.settings import Settings
from storefront.core.domain import ValidationException, round_currency
from storefront.domains.checkout.application.ports import (
    ICampaignRepository,
    IShippingRuleRepository,
    ITaxSettingsRepository,
)
from storefront.domains.checkout.domain.entities import Cart, CartItem, TaxSettings
from storefront.domains.checkout.domain.entities.configuration import (
    DEFAULT_GST_RATE,
    DEFAULT_MAX_DELIVERY_DAYS,
    DEFAULT_STORE_STATE,
)
from storefront.domains.checkout.domain.services import (
    CampaignEvaluation,
    CampaignEvaluator,
    ShippingCalculator,
    ShippingResult,
    TaxBreakdown,
    TaxCalculator,
)
from storefront.domains.checkout.domain.services.shipping_calculator import (
    DEFAULT_FALLBACK_PROVIDER,
    DEFAULT_FALLBACK_RATE,
)
from storefront.domains.checkout.domain.value_objects import (
    PostalCode,
    ShippingZone,
    normalize_state,
    resolve_zone,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PricingDefaults:
    """Fallback values used when configuration rows are missing."""

    default_gst_rate: Decimal = DEFAULT_GST_RATE
    store_state: str = DEFAULT_STORE_STATE
    price_includes_tax: bool = False
    shipping_fallback_rate: Decimal = DEFAULT_FALLBACK_RATE
    shipping_fallback_provider: str = DEFAULT_FALLBACK_PROVIDER
    max_delivery_days: int = DEFAULT_MAX_DELIVERY_DAYS

    @classmethod
    def from_settings(cls, settings: Settings) -> "PricingDefaults":
        return cls(
            default_gst_rate=settings.DEFAULT_GST_RATE,
            store_state=settings.DEFAULT_STORE_STATE,
            price_includes_tax=settings.DEFAULT_PRICE_INCLUDES_TAX,
            shipping_fallback_rate=settings.SHIPPING_FALLBACK_RATE,
            shipping_fallback_provider=settings.SHIPPING_FALLBACK_PROVIDER,
            max_delivery_days=settings.SHIPPING_MAX_DELIVERY_DAYS,
        )

    def tax_settings(self) -> TaxSettings:
        return TaxSettings.default(
            default_gst_rate=self.default_gst_rate,
            store_state=self.store_state,
            price_includes_tax=self.price_includes_tax,
        )


@dataclass
class CalculateCheckoutRequest:
    """Cart plus delivery location."""

    items: list[CartItem]
    customer_state: str | None
    postal_code: str
    rate_override: Decimal | None = None


@dataclass
class CheckoutQuote:
    """Outcome of a checkout calculation."""

    cart: Cart
    campaigns: CampaignEvaluation
    tax: TaxBreakdown
    shipping: ShippingResult
    calculated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def subtotal(self) -> Decimal:
        return self.cart.subtotal

    @property
    def discount(self) -> Decimal:
        return self.campaigns.discount_amount

    @property
    def total(self) -> Decimal:
        return round_currency(self.subtotal - self.discount + self.tax.payable_tax + self.shipping.amount)

    @property
    def total_paise(self) -> int:
        return int(self.total * 100)

    def campaign_snapshot(self) -> dict[str, Any] | None:
        return self.campaigns.applied.to_dict() if self.campaigns.applied else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "subtotal": str(self.subtotal),
            "discount": str(self.discount),
            "tax": str(self.tax.payable_tax),
            "shipping": str(self.shipping.amount),
            "total": str(self.total),
            "total_paise": self.total_paise,
            "applied_campaign": self.campaign_snapshot(),
            "nearest_campaign": self.campaigns.nearest.to_dict() if self.campaigns.nearest else None,
            "tax_breakdown": self.tax.to_dict(),
            "shipping_result": self.shipping.to_dict(),
        }


class CalculateCheckoutUseCase:
    """
    Use Case: Calculate Checkout

    Responsibilities:
    - Validate the cart and delivery location before touching configuration
    - Load campaigns, tax settings and shipping rules
    - Fall back to defaults (and log) when configuration is missing
    - Compose CampaignEvaluator -> TaxCalculator -> ShippingCalculator
    """

    def __init__(
        self,
        campaign_repository: ICampaignRepository,
        tax_settings_repository: ITaxSettingsRepository,
        shipping_rule_repository: IShippingRuleRepository,
        defaults: PricingDefaults | None = None,
    ):
        self.campaign_repository = campaign_repository
        self.tax_settings_repository = tax_settings_repository
        self.shipping_rule_repository = shipping_rule_repository
        self.defaults = defaults or PricingDefaults()
        self.campaign_evaluator = CampaignEvaluator()
        self.tax_calculator = TaxCalculator()
        self.shipping_calculator = ShippingCalculator(
            fallback_rate=self.defaults.shipping_fallback_rate,
            fallback_provider=self.defaults.shipping_fallback_provider,
            default_delivery_days=self.defaults.max_delivery_days,
        )

    async def execute(self, request: CalculateCheckoutRequest, now: datetime | None = None) -> CheckoutQuote:
        """
        Price a cart.

        Raises:
            ValidationException: empty cart, missing state or malformed PIN
        """
        now = now or datetime.now(UTC)
        cart = Cart.of(request.items)

        cart.ensure_not_empty()
        if not normalize_state(request.customer_state):
            raise ValidationException(
                "Customer state is required", field="customer_state", reason="MISSING_CUSTOMER_STATE"
            )
        pin = PostalCode(request.postal_code)
        zone = resolve_zone(pin, request.customer_state)

        campaigns = await self.campaign_repository.get_active(now)
        tax_settings = await self._load_tax_settings()
        rules = await self.shipping_rule_repository.get_enabled(
            list(dict.fromkeys([zone.value, ShippingZone.ALL_INDIA.value]))
        )

        evaluation = self.campaign_evaluator.evaluate(cart, campaigns, now=now)
        tax = self.tax_calculator.calculate(
            items=cart.items,
            customer_state=request.customer_state,
            store_state=tax_settings.store_state,
            settings=tax_settings,
            rate_override=request.rate_override,
        )
        shipping = self.shipping_calculator.calculate(
            postal_code=pin.value,
            state=request.customer_state,
            total_quantity=cart.total_quantity,
            free_shipping_flags=cart.free_shipping_flags,
            rules=rules,
        )

        quote = CheckoutQuote(cart=cart, campaigns=evaluation, tax=tax, shipping=shipping, calculated_at=now)
        logger.info(
            f"[CHECKOUT] Quote: subtotal={quote.subtotal} discount={quote.discount} "
            f"tax={tax.payable_tax} ({tax.tax_type}) shipping={shipping.amount} ({shipping.source}) "
            f"total={quote.total}"
        )
        return quote

    async def _load_tax_settings(self) -> TaxSettings:
        settings = await self.tax_settings_repository.get_current()
        if settings is None:
            logger.warning("[TAX] No active tax settings configured; using defaults")
            return self.defaults.tax_settings()
        return settings
