"""
Cart Entity

The cart is supplied by the caller and never persisted by the engine;
it is treated as an immutable input to every calculator.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from storefront.core.domain import ValidationException, round_currency


@dataclass(frozen=True)
class CartItem:
    """A single cart line."""

    product_id: str
    quantity: int
    unit_price: Decimal
    variant_id: str | None = None
    name: str | None = None
    free_shipping_eligible: bool = False
    category_id: str | None = None
    collection_ids: frozenset[str] = field(default_factory=frozenset)
    gst_rate: Decimal | None = None

    def __post_init__(self):
        if not isinstance(self.unit_price, Decimal):
            object.__setattr__(self, "unit_price", Decimal(str(self.unit_price)))
        if self.gst_rate is not None and not isinstance(self.gst_rate, Decimal):
            object.__setattr__(self, "gst_rate", Decimal(str(self.gst_rate)))
        object.__setattr__(self, "collection_ids", frozenset(str(c) for c in self.collection_ids))
        if self.quantity < 1:
            raise ValidationException(
                f"Quantity for product {self.product_id} must be at least 1",
                field="quantity",
                reason="INVALID_QUANTITY",
            )
        if self.unit_price < 0:
            raise ValidationException(
                f"Price for product {self.product_id} cannot be negative",
                field="unit_price",
                reason="INVALID_PRICE",
            )
        if self.gst_rate is not None and not Decimal("0") <= self.gst_rate <= Decimal("100"):
            raise ValidationException(
                f"GST rate for product {self.product_id} must be between 0 and 100",
                field="gst_rate",
                reason="INVALID_TAX_RATE",
            )

    @property
    def line_key(self) -> str:
        return f"{self.product_id}:{self.variant_id}" if self.variant_id else self.product_id

    @property
    def line_total(self) -> Decimal:
        return round_currency(self.unit_price * self.quantity)

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "variant_id": self.variant_id,
            "name": self.name,
            "quantity": self.quantity,
            "unit_price": str(round_currency(self.unit_price)),
            "line_total": str(self.line_total),
            "free_shipping_eligible": self.free_shipping_eligible,
        }


@dataclass(frozen=True)
class Cart:
    """
    Ordered sequence of cart lines.

    Example:
        ```python
        cart = Cart.of([CartItem(product_id="shirt-1", quantity=2, unit_price=Decimal("1499"))])
        cart.subtotal  # Decimal("2998.00")
        ```
    """

    items: tuple[CartItem, ...] = ()

    @classmethod
    def of(cls, items: list[CartItem] | tuple[CartItem, ...]) -> "Cart":
        return cls(items=tuple(items))

    @property
    def subtotal(self) -> Decimal:
        return round_currency(sum((item.line_total for item in self.items), Decimal("0")))

    @property
    def total_quantity(self) -> int:
        return sum(item.quantity for item in self.items)

    @property
    def free_shipping_flags(self) -> list[bool]:
        return [item.free_shipping_eligible for item in self.items]

    def is_empty(self) -> bool:
        return not self.items

    def ensure_not_empty(self) -> None:
        if self.is_empty():
            raise ValidationException("No items provided", field="items", reason="EMPTY_CART")
