"""
Campaign Repository Implementation

SQLAlchemy implementation of ICampaignRepository.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import cast

from sqlalchemy import or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.domain import PersistenceException
from storefront.domains.checkout.application.ports import ICampaignRepository
from storefront.domains.checkout.domain.entities.campaign import Campaign, CampaignStatus
from storefront.domains.checkout.domain.value_objects.campaign_conditions import (
    DiscountAction,
    DiscountTarget,
    DiscountType,
    parse_condition,
)
from storefront.models.db.pricing import Campaign as CampaignModel

logger = logging.getLogger(__name__)


class SQLAlchemyCampaignRepository(ICampaignRepository):
    """
    SQLAlchemy implementation of campaign repository.

    Rows whose conditions or discount cannot be parsed are skipped with a
    warning so one bad campaign never blocks checkout.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_active(self, now: datetime) -> list[Campaign]:
        """Get campaigns that are active and inside their validity window."""
        try:
            result = await self.session.execute(
                select(CampaignModel)
                .where(
                    CampaignModel.status == CampaignStatus.ACTIVE.value,
                    or_(CampaignModel.starts_at.is_(None), CampaignModel.starts_at <= now),
                    or_(CampaignModel.ends_at.is_(None), CampaignModel.ends_at >= now),
                )
                .order_by(CampaignModel.priority.desc(), CampaignModel.created_at.desc())
            )
            models = result.scalars().all()
        except SQLAlchemyError as e:
            logger.error(f"Error loading active campaigns: {e}")
            raise PersistenceException("get_active_campaigns", original_error=e) from e

        campaigns = []
        for model in models:
            try:
                campaigns.append(self._to_entity(model))
            except (ValueError, KeyError, TypeError, ArithmeticError) as e:
                logger.warning(f"[CAMPAIGN] Skipping malformed campaign {model.id}: {e}")
        return campaigns

    # Mapping methods

    def _to_entity(self, model: CampaignModel) -> Campaign:
        """Convert model to entity."""
        raw_conditions = cast(list, model.conditions or [])
        return Campaign(
            id=str(model.id),
            name=cast(str, model.name),
            description=cast(str | None, model.description),
            priority=cast(int, model.priority or 0),
            status=CampaignStatus.from_string(cast(str, model.status)),
            conditions=tuple(parse_condition(c) for c in raw_conditions),
            discount=DiscountAction(
                type=DiscountType.parse(cast(str, model.discount_type)),
                value=Decimal(str(model.discount_value)),
                max_discount=Decimal(str(model.max_discount)) if model.max_discount is not None else None,
                applies_to=DiscountTarget.from_string(cast(str, model.applies_to or "cart")),
            ),
            starts_at=cast(datetime | None, model.starts_at),
            ends_at=cast(datetime | None, model.ends_at),
            created_at=cast(datetime, model.created_at),
            updated_at=cast(datetime, model.updated_at),
        )
