"""
Order Repository Implementation

SQLAlchemy implementation of IOrderRepository.

Lifecycle transitions are written as a single conditional
``UPDATE ... WHERE <expected state> RETURNING id`` so concurrent writers
(webhook retries, the expiry sweep, operators) can never move an order out
of a state it has already left.
"""

import logging
import uuid
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, cast

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from storefront.core.domain import PersistenceException
from storefront.domains.checkout.application.ports import IOrderRepository
from storefront.domains.checkout.domain.entities.order import Order, OrderItem
from storefront.domains.checkout.domain.services.order_lifecycle import OrderTransition
from storefront.domains.checkout.domain.value_objects.order_status import (
    OrderStatus,
    PaymentMethod,
    PaymentStatus,
)
from storefront.models.db.orders import Order as OrderModel
from storefront.models.db.orders import OrderItem as OrderItemModel
from storefront.models.db.orders import OrderStatusHistory as OrderStatusHistoryModel

logger = logging.getLogger(__name__)


class SQLAlchemyOrderRepository(IOrderRepository):
    """
    SQLAlchemy implementation of order repository.

    Handles all order data persistence operations.
    """

    def __init__(self, session: AsyncSession):
        """
        Initialize repository.

        Args:
            session: SQLAlchemy async session
        """
        self.session = session

    async def create(self, order: Order) -> Order:
        """Create a new order."""
        try:
            model = self._to_model(order)
            self.session.add(model)
            await self.session.commit()
            await self.session.refresh(model, attribute_names=["items"])
            return self._to_entity(model)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Error creating order {order.order_number}: {e}")
            raise PersistenceException("create_order", original_error=e) from e

    async def get_by_id(self, order_id: str) -> Order | None:
        """Get order by ID, falling back to the order number."""
        try:
            try:
                order_uuid = uuid.UUID(order_id)
            except ValueError:
                return await self._get_one(OrderModel.order_number == order_id)
            return await self._get_one(OrderModel.id == order_uuid)
        except SQLAlchemyError as e:
            logger.error(f"Error getting order by ID {order_id}: {e}")
            raise PersistenceException("get_order", original_error=e) from e

    async def get_by_gateway_order_id(self, gateway_order_id: str) -> Order | None:
        """Get order by payment gateway order ID."""
        try:
            return await self._get_one(OrderModel.gateway_order_id == gateway_order_id)
        except SQLAlchemyError as e:
            logger.error(f"Error getting order by gateway order {gateway_order_id}: {e}")
            raise PersistenceException("get_order", original_error=e) from e

    async def apply_transition(self, order_id: str, transition: OrderTransition) -> Order | None:
        """Apply a transition to one order if it is still in the expected state."""
        try:
            order_uuid = uuid.UUID(order_id)
        except ValueError:
            logger.warning(f"Invalid order_id format: {order_id}")
            return None
        return await self._transition_one(OrderModel.id == order_uuid, transition, order_id)

    async def apply_transition_by_gateway_order_id(
        self, gateway_order_id: str, transition: OrderTransition
    ) -> Order | None:
        """Apply a transition to the order owning a gateway order ID."""
        return await self._transition_one(
            OrderModel.gateway_order_id == gateway_order_id, transition, gateway_order_id
        )

    async def expire_stale(self, cutoff: datetime, transition: OrderTransition) -> list[Order]:
        """Apply the expiry transition to every unpaid gateway order created before ``cutoff``."""
        try:
            result = await self.session.execute(
                update(OrderModel)
                .where(
                    OrderModel.payment_method == PaymentMethod.RAZORPAY.value,
                    OrderModel.created_at < cutoff,
                    *self._expected_state(transition),
                )
                .values(**self._column_values(transition.updates))
                .returning(OrderModel.id)
                .execution_options(synchronize_session=False)
            )
            expired_ids = list(result.scalars().all())
            if not expired_ids:
                await self.session.commit()
                return []

            previous = self._single_expected_order(transition)
            for expired_id in expired_ids:
                self._add_history(expired_id, previous, transition)
            await self.session.commit()

            result = await self.session.execute(
                select(OrderModel)
                .options(selectinload(OrderModel.items))
                .where(OrderModel.id.in_(expired_ids))
                .order_by(OrderModel.created_at.asc())
                .execution_options(populate_existing=True)
            )
            return [self._to_entity(m) for m in result.scalars().all()]
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Error expiring orders created before {cutoff.isoformat()}: {e}")
            raise PersistenceException("expire_orders", original_error=e) from e

    # Internal helpers

    async def _get_one(self, criterion: Any) -> Order | None:
        result = await self.session.execute(
            select(OrderModel)
            .options(selectinload(OrderModel.items))
            .where(criterion)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def _transition_one(self, criterion: Any, transition: OrderTransition, reference: str) -> Order | None:
        try:
            # Lock the row so the history entry records the state actually left
            current = await self.session.execute(
                select(OrderModel.id, OrderModel.order_status).where(criterion).with_for_update()
            )
            row = current.first()
            if row is None:
                await self.session.rollback()
                return None
            order_uuid, previous_status = row

            result = await self.session.execute(
                update(OrderModel)
                .where(OrderModel.id == order_uuid, *self._expected_state(transition))
                .values(**self._column_values(transition.updates))
                .returning(OrderModel.id)
                .execution_options(synchronize_session=False)
            )
            if result.scalar_one_or_none() is None:
                await self.session.rollback()
                logger.info(f"Transition {transition.name} matched no order for {reference}")
                return None

            self._add_history(order_uuid, OrderStatus.from_string(previous_status), transition)
            await self.session.commit()
            return await self._get_one(OrderModel.id == order_uuid)
        except SQLAlchemyError as e:
            await self.session.rollback()
            logger.error(f"Error applying transition {transition.name} to {reference}: {e}")
            raise PersistenceException(f"transition_{transition.name}", original_error=e) from e

    def _add_history(self, order_id: uuid.UUID, previous: OrderStatus, transition: OrderTransition) -> None:
        entry = transition.history_entry(previous)
        self.session.add(
            OrderStatusHistoryModel(
                order_id=order_id,
                from_status=entry.from_status.value if entry.from_status else None,
                to_status=entry.to_status.value,
                payment_status=entry.payment_status.value if entry.payment_status else None,
                reason=entry.reason,
            )
        )

    @staticmethod
    def _expected_state(transition: OrderTransition) -> list[Any]:
        return [
            OrderModel.payment_status.in_(sorted(s.value for s in transition.expected_payment)),
            OrderModel.order_status.in_(sorted(s.value for s in transition.expected_order)),
        ]

    @staticmethod
    def _single_expected_order(transition: OrderTransition) -> OrderStatus:
        if len(transition.expected_order) != 1:
            raise ValueError(f"Batch transition {transition.name} must expect exactly one order status")
        return next(iter(transition.expected_order))

    @staticmethod
    def _column_values(updates: dict[str, Any]) -> dict[str, Any]:
        return {key: value.value if isinstance(value, Enum) else value for key, value in updates.items()}

    # Mapping methods

    def _to_entity(self, model: OrderModel) -> Order:
        """Convert model to entity."""
        items = [
            OrderItem(
                product_id=cast(str, item.product_id),
                variant_id=cast(str | None, item.variant_id),
                name=cast(str | None, item.name),
                quantity=cast(int, item.quantity),
                unit_price=Decimal(str(item.unit_price)),
                gst_rate=Decimal(str(item.gst_rate)) if item.gst_rate is not None else None,
                tax_amount=Decimal(str(item.tax_amount or 0)),
            )
            for item in (model.items or [])
        ]

        return Order(
            id=str(model.id),
            order_number=cast(str, model.order_number),
            created_at=cast(datetime, model.created_at),
            updated_at=cast(datetime, model.updated_at),
            customer_name=cast(str, model.customer_name),
            customer_email=cast(str | None, model.customer_email),
            customer_phone=cast(str | None, model.customer_phone),
            shipping_address=cast(dict, model.shipping_address or {}),
            customer_state=cast(str | None, model.customer_state),
            postal_code=cast(str | None, model.postal_code),
            items=items,
            currency=cast(str, model.currency or "INR"),
            subtotal=Decimal(str(model.subtotal)),
            discount_amount=Decimal(str(model.discount_amount)),
            tax_amount=Decimal(str(model.tax_amount)),
            shipping_fee=Decimal(str(model.shipping_fee)),
            total=Decimal(str(model.total)),
            campaign_snapshot=cast(dict | None, model.campaign_snapshot),
            tax_snapshot=cast(dict, model.tax_snapshot or {}),
            shipping_snapshot=cast(dict, model.shipping_snapshot or {}),
            order_status=OrderStatus.from_string(cast(str, model.order_status)),
            payment_status=PaymentStatus.from_string(cast(str, model.payment_status)),
            payment_method=PaymentMethod.from_string(cast(str, model.payment_method)),
            gateway_order_id=cast(str | None, model.gateway_order_id),
            gateway_payment_id=cast(str | None, model.gateway_payment_id),
            gateway_payment_method=cast(str | None, model.gateway_payment_method),
            payment_failure_reason=cast(str | None, model.payment_failure_reason),
            paid_at=cast(datetime | None, model.paid_at),
            tracking_number=cast(str | None, model.tracking_number),
            tracking_courier=cast(str | None, model.tracking_courier),
            tracking_url=cast(str | None, model.tracking_url),
            shipped_at=cast(datetime | None, model.shipped_at),
            estimated_delivery=cast(date | None, model.estimated_delivery),
            delivered_at=cast(datetime | None, model.delivered_at),
            cancelled_at=cast(datetime | None, model.cancelled_at),
            cancellation_reason=cast(str | None, model.cancellation_reason),
        )

    def _to_model(self, order: Order) -> OrderModel:
        """Convert entity to model."""
        model = OrderModel(
            id=uuid.UUID(order.id) if order.id else uuid.uuid4(),
            order_number=order.order_number,
            created_at=order.created_at,
            updated_at=order.updated_at,
            customer_name=order.customer_name,
            customer_email=order.customer_email,
            customer_phone=order.customer_phone,
            shipping_address=order.shipping_address,
            customer_state=order.customer_state,
            postal_code=order.postal_code,
            currency=order.currency,
            subtotal=order.subtotal,
            discount_amount=order.discount_amount,
            tax_amount=order.tax_amount,
            shipping_fee=order.shipping_fee,
            total=order.total,
            campaign_snapshot=order.campaign_snapshot,
            tax_snapshot=order.tax_snapshot,
            shipping_snapshot=order.shipping_snapshot,
            order_status=order.order_status.value,
            payment_status=order.payment_status.value,
            payment_method=order.payment_method.value,
            gateway_order_id=order.gateway_order_id,
        )
        model.items = [
            OrderItemModel(
                position=position,
                product_id=item.product_id,
                variant_id=item.variant_id,
                name=item.name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                gst_rate=item.gst_rate,
                tax_amount=item.tax_amount,
            )
            for position, item in enumerate(order.items)
        ]
        return model
