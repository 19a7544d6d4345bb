"""
Campaign Evaluator

Selects the single best campaign for a cart, or the nearest campaign the
customer could still unlock. Pure function over its inputs.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from storefront.core.domain import round_currency

from ..entities.campaign import Campaign
from ..entities.cart import Cart
from ..value_objects.campaign_conditions import (
    CampaignCondition,
    DiscountTarget,
    MinQuantity,
    MinSubtotal,
    ProductScope,
)

_EPOCH = datetime.min.replace(tzinfo=UTC)


@dataclass(frozen=True)
class AppliedCampaign:
    campaign: Campaign
    discount_amount: Decimal
    item_discounts: dict[str, Decimal] = field(default_factory=dict, compare=False)

    def to_dict(self) -> dict[str, Any]:
        data = {**self.campaign.to_summary_dict(), "discount_amount": str(self.discount_amount)}
        if self.item_discounts:
            data["item_discounts"] = {key: str(amount) for key, amount in self.item_discounts.items()}
        return data


@dataclass(frozen=True)
class ConditionGap:
    """How far a cart is from satisfying one numeric condition."""

    condition: CampaignCondition
    amount_needed: Decimal | None = None
    items_needed: int | None = None


@dataclass(frozen=True)
class NearestCampaign:
    campaign: Campaign
    gaps: tuple[ConditionGap, ...] = field(default_factory=tuple)

    @property
    def amount_needed(self) -> Decimal | None:
        amounts = [g.amount_needed for g in self.gaps if g.amount_needed is not None]
        return max(amounts) if amounts else None

    @property
    def items_needed(self) -> int | None:
        counts = [g.items_needed for g in self.gaps if g.items_needed is not None]
        return max(counts) if counts else None

    @property
    def message(self) -> str:
        parts = []
        if self.amount_needed is not None:
            parts.append(f"₹{self.amount_needed:,.2f} more")
        if self.items_needed is not None:
            noun = "item" if self.items_needed == 1 else "items"
            parts.append(f"{self.items_needed} more {noun}")
        return f"Add {' and '.join(parts)} to unlock {self.campaign.name}"

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.campaign.to_summary_dict(),
            "amount_needed": str(self.amount_needed) if self.amount_needed is not None else None,
            "items_needed": self.items_needed,
            "message": self.message,
        }


@dataclass(frozen=True)
class CampaignEvaluation:
    applied: AppliedCampaign | None = None
    nearest: NearestCampaign | None = None

    @property
    def discount_amount(self) -> Decimal:
        return self.applied.discount_amount if self.applied else Decimal("0.00")


class CampaignEvaluator:
    """
    Domain service for campaign selection.

    Rules:
    - Only live campaigns (active, inside their window) with at least one
      condition are considered.
    - A candidate satisfies every condition it declares.
    - Cart discounts apply once; item discounts apply to every line and
      report per-line amounts. Either total is capped at the subtotal.
    - The candidate with the largest discount amount wins; ties go to higher
      priority, then the most recently created, then the lowest id.
    - Without a candidate, the nearest miss is the campaign with the fewest
      unmet conditions and then the smallest estimated extra spend.
      Campaigns blocked by a product scope are never suggested.

    Example:
        ```python
        evaluation = CampaignEvaluator().evaluate(cart, campaigns)
        if evaluation.applied:
            total -= evaluation.applied.discount_amount
        elif evaluation.nearest:
            banner = evaluation.nearest.message
        ```
    """

    def evaluate(
        self,
        cart: Cart,
        campaigns: list[Campaign],
        now: datetime | None = None,
    ) -> CampaignEvaluation:
        if cart.is_empty():
            return CampaignEvaluation()

        now = now or datetime.now(UTC)
        live = [c for c in campaigns if c.conditions and c.is_live(now)]

        candidates: list[AppliedCampaign] = []
        misses: list[NearestCampaign] = []
        for campaign in live:
            gaps, blocked = self._gaps(campaign, cart)
            if blocked:
                continue
            if not gaps:
                candidates.append(self._apply(campaign, cart))
            else:
                misses.append(NearestCampaign(campaign, tuple(gaps)))

        if candidates:
            best = min(
                candidates,
                key=lambda a: (-a.discount_amount, *self._tie_break(a.campaign)),
            )
            return CampaignEvaluation(applied=best)

        if misses:
            nearest = min(
                misses,
                key=lambda m: (len(m.gaps), self._estimated_spend(m, cart), *self._tie_break(m.campaign)),
            )
            return CampaignEvaluation(nearest=nearest)

        return CampaignEvaluation()

    def _apply(self, campaign: Campaign, cart: Cart) -> AppliedCampaign:
        discount = campaign.discount
        if discount.applies_to != DiscountTarget.ITEMS:
            return AppliedCampaign(campaign, discount.amount_for(cart.subtotal))

        item_discounts: dict[str, Decimal] = {}
        for item in cart.items:
            amount = discount.line_amount_for(item.unit_price, item.quantity)
            item_discounts[item.line_key] = item_discounts.get(item.line_key, Decimal("0.00")) + amount
        total = min(sum(item_discounts.values(), Decimal("0.00")), cart.subtotal)
        return AppliedCampaign(campaign, round_currency(total), item_discounts)

    def is_satisfied(self, condition: CampaignCondition, cart: Cart) -> bool:
        match condition:
            case MinSubtotal(amount=amount):
                return cart.subtotal >= amount
            case MinQuantity(count=count):
                return cart.total_quantity >= count
            case ProductScope():
                return any(self._in_scope(condition, item) for item in cart.items)

    def _gaps(self, campaign: Campaign, cart: Cart) -> tuple[list[ConditionGap], bool]:
        """Unmet numeric conditions, and whether an unmet product scope blocks the campaign."""
        gaps: list[ConditionGap] = []
        for condition in campaign.conditions:
            if self.is_satisfied(condition, cart):
                continue
            match condition:
                case MinSubtotal(amount=amount):
                    gaps.append(ConditionGap(condition, amount_needed=round_currency(amount - cart.subtotal)))
                case MinQuantity(count=count):
                    gaps.append(ConditionGap(condition, items_needed=count - cart.total_quantity))
                case ProductScope():
                    return [], True
        return gaps, False

    @staticmethod
    def _in_scope(scope: ProductScope, item) -> bool:
        if item.product_id in scope.product_ids:
            return True
        if item.category_id is not None and item.category_id in scope.category_ids:
            return True
        return bool(item.collection_ids & scope.collection_ids)

    @staticmethod
    def _estimated_spend(nearest: NearestCampaign, cart: Cart) -> Decimal:
        # Item gaps are priced at the cart's average unit price
        average_unit_price = cart.subtotal / cart.total_quantity
        estimates = []
        for gap in nearest.gaps:
            if gap.amount_needed is not None:
                estimates.append(gap.amount_needed)
            elif gap.items_needed is not None:
                estimates.append(average_unit_price * gap.items_needed)
        return max(estimates)

    @staticmethod
    def _tie_break(campaign: Campaign) -> tuple:
        created = campaign.created_at or _EPOCH
        return (-campaign.priority, -created.timestamp(), str(campaign.id))
