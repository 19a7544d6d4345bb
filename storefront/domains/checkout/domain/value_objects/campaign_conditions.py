"""
Campaign Condition Variants

Conditions form a closed set of tagged variants so the evaluator can match
exhaustively. Stored rows carry a ``type`` discriminator and are parsed
with ``parse_condition``.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from storefront.core.domain import StatusEnum, ValueObject, round_currency


class DiscountType(StatusEnum):
    PERCENT = "percent"
    FLAT = "flat"

    @classmethod
    def parse(cls, value: str) -> "DiscountType":
        # Older rows use "percentage"
        if value.lower() == "percentage":
            return cls.PERCENT
        return cls.from_string(value)


@dataclass(frozen=True)
class MinSubtotal(ValueObject):
    """Cart subtotal must reach ``amount``."""

    amount: Decimal

    def _validate(self) -> None:
        object.__setattr__(self, "amount", round_currency(self.amount))
        if self.amount < 0:
            raise ValueError("MinSubtotal amount cannot be negative")


@dataclass(frozen=True)
class MinQuantity(ValueObject):
    """Total item count must reach ``count``."""

    count: int

    def _validate(self) -> None:
        if self.count < 0:
            raise ValueError("MinQuantity count cannot be negative")


@dataclass(frozen=True)
class ProductScope(ValueObject):
    """At least one cart line must belong to one of the listed products, categories or collections."""

    product_ids: frozenset[str] = field(default_factory=frozenset)
    category_ids: frozenset[str] = field(default_factory=frozenset)
    collection_ids: frozenset[str] = field(default_factory=frozenset)

    def _validate(self) -> None:
        for name in ("product_ids", "category_ids", "collection_ids"):
            object.__setattr__(self, name, frozenset(str(v) for v in getattr(self, name)))
        if not (self.product_ids or self.category_ids or self.collection_ids):
            raise ValueError("ProductScope needs at least one product, category or collection id")


CampaignCondition = MinSubtotal | MinQuantity | ProductScope


class DiscountTarget(StatusEnum):
    """Whether a discount is granted once per cart or per unit of every line."""

    CART = "cart"
    ITEMS = "items"


@dataclass(frozen=True)
class DiscountAction(ValueObject):
    """
    What a campaign grants.

    Cart discounts apply once: ``max_discount`` caps a percent discount.
    Item discounts apply per unit: a flat value is granted for every unit
    and ``max_discount`` caps each unit. The evaluator caps the total at
    the cart subtotal.
    """

    type: DiscountType
    value: Decimal
    max_discount: Decimal | None = None
    applies_to: DiscountTarget = DiscountTarget.CART

    def _validate(self) -> None:
        if not isinstance(self.value, Decimal):
            object.__setattr__(self, "value", Decimal(str(self.value)))
        if self.value < 0:
            raise ValueError("Discount value cannot be negative")
        if self.type == DiscountType.PERCENT and self.value > 100:
            raise ValueError("Percent discount cannot exceed 100")
        if self.max_discount is not None:
            object.__setattr__(self, "max_discount", round_currency(self.max_discount))

    def amount_for(self, subtotal: Decimal) -> Decimal:
        """Cart-level discount for ``subtotal``."""
        if self.type == DiscountType.PERCENT:
            amount = subtotal * self.value / Decimal("100")
            if self.max_discount is not None:
                amount = min(amount, self.max_discount)
        else:
            amount = self.value
        return round_currency(min(amount, subtotal))

    def line_amount_for(self, unit_price: Decimal, quantity: int) -> Decimal:
        """Item-level discount for one cart line."""
        if self.type == DiscountType.PERCENT:
            amount = unit_price * quantity * self.value / Decimal("100")
            if self.max_discount is not None:
                amount = min(amount, self.max_discount * quantity)
        else:
            amount = self.value * quantity
        return round_currency(amount)


def parse_condition(data: dict[str, Any]) -> CampaignCondition:
    """
    Build a condition variant from its stored representation.

    Raises:
        ValueError: unknown ``type`` or malformed payload
    """
    if not isinstance(data, dict):
        raise ValueError(f"Campaign condition must be an object, got {type(data).__name__}")
    kind = str(data.get("type", "")).lower()
    if kind in ("min_subtotal", "min_cart_value"):
        return MinSubtotal(amount=Decimal(str(data["amount"])))
    if kind in ("min_quantity", "min_items"):
        return MinQuantity(count=int(data["count"]))
    if kind == "product_scope":
        return ProductScope(
            product_ids=frozenset(data.get("product_ids") or ()),
            category_ids=frozenset(data.get("category_ids") or ()),
            collection_ids=frozenset(data.get("collection_ids") or ()),
        )
    raise ValueError(f"Unknown campaign condition type: {kind!r}")


def serialize_condition(condition: CampaignCondition) -> dict[str, Any]:
    match condition:
        case MinSubtotal(amount=amount):
            return {"type": "min_subtotal", "amount": str(amount)}
        case MinQuantity(count=count):
            return {"type": "min_quantity", "count": count}
        case ProductScope():
            return {
                "type": "product_scope",
                "product_ids": sorted(condition.product_ids),
                "category_ids": sorted(condition.category_ids),
                "collection_ids": sorted(condition.collection_ids),
            }
