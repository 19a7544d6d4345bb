"""
Tax Settings Repository Implementation

SQLAlchemy implementation of ITaxSettingsRepository.
"""

import logging
from decimal import Decimal
from typing import cast

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from storefront.core.domain import PersistenceException
from storefront.domains.checkout.application.ports import ITaxSettingsRepository
from storefront.domains.checkout.domain.entities.configuration import DEFAULT_STORE_STATE, TaxSettings
from storefront.models.db.pricing import TaxSettings as TaxSettingsModel

logger = logging.getLogger(__name__)


class SQLAlchemyTaxSettingsRepository(ITaxSettingsRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_current(self) -> TaxSettings | None:
        """Get the most recently updated active configuration."""
        try:
            result = await self.session.execute(
                select(TaxSettingsModel)
                .where(TaxSettingsModel.is_active.is_(True))
                .order_by(TaxSettingsModel.updated_at.desc())
                .limit(1)
            )
            model = result.scalar_one_or_none()
            return self._to_entity(model) if model else None
        except SQLAlchemyError as e:
            logger.error(f"Error loading tax settings: {e}")
            raise PersistenceException("get_tax_settings", original_error=e) from e

    def _to_entity(self, model: TaxSettingsModel) -> TaxSettings:
        return TaxSettings(
            tax_enabled=bool(model.tax_enabled),
            default_gst_rate=Decimal(str(model.default_gst_rate)) if model.default_gst_rate is not None else None,
            price_includes_tax=bool(model.price_includes_tax),
            store_state=cast(str, model.store_state or DEFAULT_STORE_STATE),
            gstin=cast(str | None, model.gstin),
        )
