"""
Campaign Entity

Promotional campaigns are configured by operators and are read-only here.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal

from storefront.core.domain import Entity, StatusEnum

from ..value_objects.campaign_conditions import CampaignCondition, DiscountAction, DiscountType


class CampaignStatus(StatusEnum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DRAFT = "draft"


@dataclass(eq=False)
class Campaign(Entity[str]):
    """
    A promotion that grants one discount when all of its conditions hold.

    Campaigns never stack; the evaluator picks at most one per cart.
    """

    name: str = ""
    priority: int = 0
    conditions: tuple[CampaignCondition, ...] = ()
    discount: DiscountAction = field(default_factory=lambda: DiscountAction(type=DiscountType.FLAT, value=Decimal("0")))
    status: CampaignStatus = CampaignStatus.INACTIVE
    starts_at: datetime | None = None
    ends_at: datetime | None = None
    description: str | None = None

    def is_live(self, now: datetime | None = None) -> bool:
        """Active and inside its validity window."""
        if self.status != CampaignStatus.ACTIVE:
            return False
        now = now or datetime.now(UTC)
        if self.starts_at and now < self.starts_at:
            return False
        if self.ends_at and now > self.ends_at:
            return False
        return True

    def to_summary_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "priority": self.priority,
            "discount_type": self.discount.type.value,
            "discount_value": str(self.discount.value),
            "applies_to": self.discount.applies_to.value,
        }
