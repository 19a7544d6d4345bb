"""
Shipping Rule Repository Implementation

SQLAlchemy implementation of IShippingRuleRepository.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import cast

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.domain import PersistenceException
from storefront.domains.checkout.application.ports import IShippingRuleRepository
from storefront.domains.checkout.domain.entities.configuration import ShippingRule
from storefront.models.db.pricing import ShippingRule as ShippingRuleModel

logger = logging.getLogger(__name__)


class SQLAlchemyShippingRuleRepository(IShippingRuleRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_enabled(self, zones: list[str]) -> list[ShippingRule]:
        """Get enabled rules for the given zones, oldest first."""
        try:
            result = await self.session.execute(
                select(ShippingRuleModel)
                .where(
                    ShippingRuleModel.is_enabled.is_(True),
                    ShippingRuleModel.zone.in_(zones),
                )
                .order_by(ShippingRuleModel.created_at.asc(), ShippingRuleModel.id.asc())
            )
            return [self._to_entity(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            logger.error(f"Error loading shipping rules for zones {zones}: {e}")
            raise PersistenceException("get_shipping_rules", original_error=e) from e

    def _to_entity(self, model: ShippingRuleModel) -> ShippingRule:
        return ShippingRule(
            id=str(model.id),
            zone=cast(str, model.zone),
            provider=cast(str, model.provider or "Standard"),
            rate=Decimal(str(model.rate)),
            min_quantity=cast(int, model.min_quantity or 1),
            max_quantity=cast(int | None, model.max_quantity),
            is_enabled=bool(model.is_enabled),
            max_delivery_days=cast(int | None, model.max_delivery_days),
            created_at=cast(datetime | None, model.created_at),
        )
