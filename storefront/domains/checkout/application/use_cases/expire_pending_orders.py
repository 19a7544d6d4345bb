"""
Expire Pending Orders Use Case

Time-triggered sweep that cancels unpaid gateway orders older than the
expiry window. Stateless between runs and idempotent: already-expired
orders no longer match and are left alone.
"""

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from storefront.domains.checkout.application.ports import IOrderRepository
from storefront.domains.checkout.domain.entities import Order
from storefront.domains.checkout.domain.services import OrderLifecycle

logger = logging.getLogger(__name__)


@dataclass
class ExpirePendingOrdersResponse:
    cutoff: datetime
    orders: list[Order] = field(default_factory=list)

    @property
    def expired_count(self) -> int:
        return len(self.orders)

    def to_dict(self) -> dict[str, Any]:
        return {
            "expired_count": self.expired_count,
            "cutoff": self.cutoff.isoformat(),
            "orders": [
                {
                    "id": order.id,
                    "order_number": order.order_number,
                    "created_at": order.created_at.isoformat(),
                }
                for order in self.orders
            ],
        }


class ExpirePendingOrdersUseCase:
    def __init__(self, order_repository: IOrderRepository, lifecycle: OrderLifecycle | None = None):
        self.order_repository = order_repository
        self.lifecycle = lifecycle or OrderLifecycle()

    async def execute(self, now: datetime | None = None) -> ExpirePendingOrdersResponse:
        now = now or datetime.now(UTC)
        cutoff = self.lifecycle.expiry_cutoff(now)

        orders = await self.order_repository.expire_stale(cutoff, self.lifecycle.expire(now))

        if orders:
            logger.info(
                f"[SWEEP] Expired {len(orders)} unpaid orders created before {cutoff.isoformat()}: "
                f"{', '.join(o.order_number or str(o.id) for o in orders)}"
            )
        else:
            logger.info(f"[SWEEP] No unpaid orders older than {cutoff.isoformat()}")
        return ExpirePendingOrdersResponse(cutoff=cutoff, orders=orders)
