"""
GST Tax Calculator

Computes CGST/SGST (intra-state) or IGST (inter-state) per cart line and
aggregates the totals. All amounts are rounded half-up to paise.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from storefront.core.domain import StatusEnum, ValidationException, round_currency

from ..entities.cart import CartItem
from ..entities.configuration import DEFAULT_GST_RATE, TaxSettings
from ..value_objects.location import normalize_state, same_state

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


class TaxType(StatusEnum):
    INTRA_STATE = "intra_state"
    INTER_STATE = "inter_state"


def _format_rate(rate: Decimal) -> str:
    return f"{rate.normalize():f}"


@dataclass(frozen=True)
class LineTax:
    product_id: str
    quantity: int
    gst_rate: Decimal
    line_total: Decimal
    taxable_amount: Decimal
    cgst: Decimal = ZERO
    sgst: Decimal = ZERO
    igst: Decimal = ZERO

    @property
    def total_tax(self) -> Decimal:
        return self.cgst + self.sgst + self.igst

    def to_dict(self) -> dict[str, Any]:
        return {
            "product_id": self.product_id,
            "quantity": self.quantity,
            "gst_rate": _format_rate(self.gst_rate),
            "line_total": str(self.line_total),
            "taxable_amount": str(self.taxable_amount),
            "cgst": str(self.cgst),
            "sgst": str(self.sgst),
            "igst": str(self.igst),
            "total_tax": str(self.total_tax),
        }


@dataclass(frozen=True)
class TaxBreakdown:
    """
    Aggregated GST outcome for a cart.

    ``tax_type`` is None when tax is disabled.
    """

    subtotal: Decimal
    taxable_amount: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal
    tax_type: TaxType | None
    price_includes_tax: bool
    store_state: str
    customer_state: str
    lines: tuple[LineTax, ...] = field(default_factory=tuple)

    @property
    def total_tax(self) -> Decimal:
        return self.cgst + self.sgst + self.igst

    @property
    def grand_total(self) -> Decimal:
        """Amount payable for the items; inclusive prices already contain the tax."""
        return self.subtotal if self.price_includes_tax else self.subtotal + self.total_tax

    @property
    def payable_tax(self) -> Decimal:
        """Tax added on top of the item prices."""
        return ZERO if self.price_includes_tax else self.total_tax

    @property
    def gst_rate(self) -> Decimal | None:
        """The single rate applied, or None for mixed-rate carts and disabled tax."""
        rates = {line.gst_rate for line in self.lines}
        return rates.pop() if len(rates) == 1 else None

    def display_lines(self) -> list[tuple[str, Decimal]]:
        """Invoice labels such as ``CGST (9%)``, grouped by rate."""
        if self.tax_type is None:
            return []
        grouped: dict[Decimal, list[LineTax]] = defaultdict(list)
        for line in self.lines:
            grouped[line.gst_rate].append(line)

        result: list[tuple[str, Decimal]] = []
        for rate in sorted(grouped):
            lines = grouped[rate]
            if self.tax_type == TaxType.INTRA_STATE:
                half = _format_rate(rate / 2)
                result.append((f"CGST ({half}%)", sum((line.cgst for line in lines), ZERO)))
                result.append((f"SGST ({half}%)", sum((line.sgst for line in lines), ZERO)))
            else:
                result.append((f"IGST ({_format_rate(rate)}%)", sum((line.igst for line in lines), ZERO)))
        return result

    def to_dict(self) -> dict[str, Any]:
        rate = self.gst_rate
        return {
            "subtotal": str(self.subtotal),
            "taxable_amount": str(self.taxable_amount),
            "cgst": str(self.cgst),
            "sgst": str(self.sgst),
            "igst": str(self.igst),
            "total_tax": str(self.total_tax),
            "grand_total": str(self.grand_total),
            "tax_type": self.tax_type.value if self.tax_type else None,
            "gst_rate": _format_rate(rate) if rate is not None else None,
            "price_includes_tax": self.price_includes_tax,
            "store_state": self.store_state,
            "customer_state": self.customer_state,
            "display": [{"label": label, "amount": str(amount)} for label, amount in self.display_lines()],
            "lines": [line.to_dict() for line in self.lines],
        }


class TaxCalculator:
    """
    Domain service for GST.

    Rate precedence per line: the line's own rate, then the request
    override, then the configured default, then 18%.

    Example:
        ```python
        breakdown = TaxCalculator().calculate(
            items=cart.items,
            customer_state="Karnataka",
            store_state="Tamil Nadu",
            settings=TaxSettings.default(),
        )
        breakdown.igst  # full rate, no CGST/SGST
        ```
    """

    def calculate(
        self,
        items: list[CartItem] | tuple[CartItem, ...],
        customer_state: str | None,
        store_state: str | None,
        settings: TaxSettings,
        rate_override: Decimal | None = None,
    ) -> TaxBreakdown:
        if not items:
            raise ValidationException("No items provided", field="items", reason="EMPTY_CART")
        if not normalize_state(customer_state):
            raise ValidationException(
                "Customer state is required", field="customer_state", reason="MISSING_CUSTOMER_STATE"
            )

        store_state = store_state or settings.store_state
        subtotal = round_currency(sum((item.line_total for item in items), ZERO))

        if not settings.tax_enabled:
            return TaxBreakdown(
                subtotal=subtotal,
                taxable_amount=subtotal,
                cgst=ZERO,
                sgst=ZERO,
                igst=ZERO,
                tax_type=None,
                price_includes_tax=settings.price_includes_tax,
                store_state=store_state,
                customer_state=customer_state or "",
            )

        tax_type = TaxType.INTRA_STATE if same_state(customer_state, store_state) else TaxType.INTER_STATE
        lines = tuple(
            self._line_tax(item, self._rate_for(item, settings, rate_override), tax_type, settings.price_includes_tax)
            for item in items
        )

        return TaxBreakdown(
            subtotal=subtotal,
            taxable_amount=sum((line.taxable_amount for line in lines), ZERO),
            cgst=sum((line.cgst for line in lines), ZERO),
            sgst=sum((line.sgst for line in lines), ZERO),
            igst=sum((line.igst for line in lines), ZERO),
            tax_type=tax_type,
            price_includes_tax=settings.price_includes_tax,
            store_state=store_state,
            customer_state=customer_state or "",
            lines=lines,
        )

    @staticmethod
    def _rate_for(item: CartItem, settings: TaxSettings, rate_override: Decimal | None) -> Decimal:
        for candidate in (item.gst_rate, rate_override, settings.default_gst_rate):
            if candidate is not None:
                return Decimal(str(candidate))
        return DEFAULT_GST_RATE

    @staticmethod
    def _line_tax(item: CartItem, rate: Decimal, tax_type: TaxType, inclusive: bool) -> LineTax:
        line_total = item.line_total
        if inclusive:
            taxable = round_currency(line_total / (1 + rate / HUNDRED))
            tax = line_total - taxable
        else:
            taxable = line_total
            tax = round_currency(taxable * rate / HUNDRED)

        if tax_type == TaxType.INTRA_STATE:
            cgst = round_currency(tax / 2)
            return LineTax(item.product_id, item.quantity, rate, line_total, taxable, cgst=cgst, sgst=tax - cgst)
        return LineTax(item.product_id, item.quantity, rate, line_total, taxable, igst=tax)
