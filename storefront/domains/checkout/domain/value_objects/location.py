"""
Location Value Objects

Indian PIN codes, state-name normalization and shipping zones.
"""

import re
from dataclasses import dataclass

from storefront.core.domain import StatusEnum, ValidationException, ValueObject

PIN_CODE_PATTERN = re.compile(r"^[1-9][0-9]{5}$")

# First two digits of PIN codes delivered inside Tamil Nadu
TAMIL_NADU_PIN_PREFIXES = frozenset({"60", "61", "62", "63", "64"})

TAMIL_NADU_ALIASES = frozenset({"tamil nadu", "tamilnadu", "tn"})


def normalize_state(state: str | None) -> str:
    """Lowercase, trim and collapse inner whitespace."""
    if not state:
        return ""
    return " ".join(state.split()).lower()


def is_tamil_nadu(state: str | None) -> bool:
    return normalize_state(state) in TAMIL_NADU_ALIASES


def same_state(a: str | None, b: str | None) -> bool:
    """Compare two state names, treating Tamil Nadu spellings as one state."""
    left, right = normalize_state(a), normalize_state(b)
    if not left or not right:
        return False
    if left in TAMIL_NADU_ALIASES and right in TAMIL_NADU_ALIASES:
        return True
    return left == right


class ShippingZone(StatusEnum):
    """Shipping-rate grouping keys."""

    TAMIL_NADU = "tamil_nadu"
    ALL_INDIA = "all_india"

    @property
    def label(self) -> str:
        return "Tamil Nadu" if self == ShippingZone.TAMIL_NADU else "All India"


@dataclass(frozen=True)
class PostalCode(ValueObject):
    """
    Six-digit Indian PIN code, first digit 1-9.

    Example:
        ```python
        pin = PostalCode("638656")
        pin.zone  # ShippingZone.TAMIL_NADU
        ```
    """

    value: str

    def _validate(self) -> None:
        cleaned = (self.value or "").strip()
        if not PIN_CODE_PATTERN.match(cleaned):
            raise ValidationException(
                f"Invalid PIN code: {self.value!r}. Expected 6 digits not starting with 0",
                field="postal_code",
                reason="INVALID_POSTAL_CODE",
            )
        object.__setattr__(self, "value", cleaned)

    @property
    def prefix(self) -> str:
        return self.value[:2]

    @property
    def zone(self) -> ShippingZone:
        return ShippingZone.TAMIL_NADU if self.prefix in TAMIL_NADU_PIN_PREFIXES else ShippingZone.ALL_INDIA

    def __str__(self) -> str:
        return self.value


def resolve_zone(postal_code: PostalCode, state: str | None = None) -> ShippingZone:
    """A supplied state wins; otherwise the zone is derived from the PIN prefix."""
    if normalize_state(state):
        return ShippingZone.TAMIL_NADU if is_tamil_nadu(state) else ShippingZone.ALL_INDIA
    return postal_code.zone
