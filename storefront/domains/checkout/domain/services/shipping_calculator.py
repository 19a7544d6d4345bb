"""
Shipping Calculator

Zone-tiered shipping rates with a free-shipping override.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from storefront.core.domain import StatusEnum, ValidationException, round_currency

from ..entities.configuration import DEFAULT_MAX_DELIVERY_DAYS, ShippingRule
from ..value_objects.location import PostalCode, ShippingZone, resolve_zone

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_RATE = Decimal("99")
DEFAULT_FALLBACK_PROVIDER = "Standard"


class ShippingSource(StatusEnum):
    FREE_SHIPPING = "free_shipping"
    RULE = "rule"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class ShippingResult:
    amount: Decimal
    provider: str
    zone: ShippingZone
    source: ShippingSource
    total_quantity: int
    max_delivery_days: int
    rule_id: str | None = None

    @property
    def is_free(self) -> bool:
        return self.source == ShippingSource.FREE_SHIPPING

    @property
    def is_tamil_nadu(self) -> bool:
        return self.zone == ShippingZone.TAMIL_NADU

    @property
    def amount_paise(self) -> int:
        return int(self.amount * 100)

    @property
    def label(self) -> str:
        return "Free Delivery" if self.is_free else f"₹{self.amount:,.2f}"

    @property
    def description(self) -> str:
        noun = "item" if self.total_quantity == 1 else "items"
        return f"{self.zone.label} Delivery ({self.total_quantity} {noun})"

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount": str(self.amount),
            "amount_paise": self.amount_paise,
            "provider": self.provider,
            "zone": self.zone.value,
            "source": self.source.value,
            "is_free": self.is_free,
            "is_tamil_nadu": self.is_tamil_nadu,
            "rule_id": self.rule_id,
            "label": self.label,
            "description": self.description,
            "max_delivery_days": self.max_delivery_days,
        }


class ShippingCalculator:
    """
    Domain service for shipping fees.

    Lookup order:
    1. Malformed PIN codes are rejected before anything else.
    2. If every line is free-shipping eligible the fee is zero.
    3. Enabled rules for the resolved zone or ``all_india`` whose quantity
       range contains the cart quantity; exact-zone rules beat ``all_india``,
       then the tier with the higher ``min_quantity``, then input order.
    4. No match: the fallback rate, logged as an anomaly.

    Example:
        ```python
        calculator = ShippingCalculator()
        result = calculator.calculate("638656", None, 3, [False, False], rules)
        result.amount  # Decimal("60.00") with the default Tamil Nadu tiers
        ```
    """

    def __init__(
        self,
        fallback_rate: Decimal = DEFAULT_FALLBACK_RATE,
        fallback_provider: str = DEFAULT_FALLBACK_PROVIDER,
        default_delivery_days: int = DEFAULT_MAX_DELIVERY_DAYS,
    ):
        self.fallback_rate = round_currency(fallback_rate)
        self.fallback_provider = fallback_provider
        self.default_delivery_days = default_delivery_days

    def calculate(
        self,
        postal_code: str,
        state: str | None,
        total_quantity: int,
        free_shipping_flags: list[bool],
        rules: list[ShippingRule],
    ) -> ShippingResult:
        pin = PostalCode(postal_code)
        if total_quantity < 1:
            raise ValidationException(
                "Total quantity must be at least 1", field="total_quantity", reason="INVALID_QUANTITY"
            )

        zone = resolve_zone(pin, state)

        if free_shipping_flags and all(free_shipping_flags):
            return ShippingResult(
                amount=Decimal("0.00"),
                provider=self.fallback_provider,
                zone=zone,
                source=ShippingSource.FREE_SHIPPING,
                total_quantity=total_quantity,
                max_delivery_days=self.default_delivery_days,
            )

        rule = self.select_rule(zone, total_quantity, rules)
        if rule is None:
            logger.warning(
                f"[SHIPPING] No shipping rule for zone={zone.value} quantity={total_quantity} "
                f"pin={pin}; using fallback rate {self.fallback_rate}"
            )
            return ShippingResult(
                amount=self.fallback_rate,
                provider=self.fallback_provider,
                zone=zone,
                source=ShippingSource.FALLBACK,
                total_quantity=total_quantity,
                max_delivery_days=self.default_delivery_days,
            )

        return ShippingResult(
            amount=rule.rate,
            provider=rule.provider,
            zone=zone,
            source=ShippingSource.RULE,
            total_quantity=total_quantity,
            max_delivery_days=rule.max_delivery_days or self.default_delivery_days,
            rule_id=rule.id,
        )

    @staticmethod
    def select_rule(zone: ShippingZone, quantity: int, rules: list[ShippingRule]) -> ShippingRule | None:
        zone_keys = {zone.value, ShippingZone.ALL_INDIA.value}
        matching = [r for r in rules if r.is_enabled and r.zone in zone_keys and r.covers(quantity)]
        if not matching:
            return None
        # sorted() is stable, so input order decides remaining ties
        ranked = sorted(matching, key=lambda r: (r.zone != zone.value, -r.min_quantity))
        return ranked[0]
