"""
Order models
"""

import uuid
from datetime import UTC, datetime
from typing import List

from sqlalchemy import Column, Date, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, relationship

from .base import Base, TimestampMixin


class Order(Base, TimestampMixin):
    """Orders with their checkout pricing snapshot"""

    __tablename__ = "orders"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_number = Column(String(50), unique=True, nullable=False, index=True)

    # Customer
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(254))
    customer_phone = Column(String(20))
    shipping_address = Column(JSONB, default=dict)
    customer_state = Column(String(100))
    postal_code = Column(String(6))

    # Pricing snapshot
    currency = Column(String(3), nullable=False, default="INR")
    subtotal = Column(Numeric(12, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(12, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)
    shipping_fee = Column(Numeric(12, 2), nullable=False, default=0)
    total = Column(Numeric(12, 2), nullable=False)
    campaign_snapshot = Column(JSONB)
    tax_snapshot = Column(JSONB, default=dict)
    shipping_snapshot = Column(JSONB, default=dict)

    # Status
    order_status = Column(String(20), nullable=False, default="pending")  # pending, processing, shipped, delivered, cancelled
    payment_status = Column(String(20), nullable=False, default="pending")  # pending, paid, failed, expired
    payment_method = Column(String(20), nullable=False, default="razorpay")

    # Payment gateway
    gateway_order_id = Column(String(64), unique=True)
    gateway_payment_id = Column(String(64))
    gateway_payment_method = Column(String(30))  # upi, card, netbanking, wallet
    payment_failure_reason = Column(Text)
    paid_at = Column(DateTime(timezone=True))

    # Fulfillment
    tracking_number = Column(String(20))
    tracking_courier = Column(String(50))
    tracking_url = Column(String(255))
    shipped_at = Column(DateTime(timezone=True))
    estimated_delivery = Column(Date)
    delivered_at = Column(DateTime(timezone=True))
    cancelled_at = Column(DateTime(timezone=True))
    cancellation_reason = Column(Text)

    items: Mapped[List["OrderItem"]] = relationship(
        "OrderItem", back_populates="order", cascade="all, delete-orphan", order_by="OrderItem.position"
    )
    status_history: Mapped[List["OrderStatusHistory"]] = relationship(
        "OrderStatusHistory", back_populates="order", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_orders_status", order_status),
        Index("idx_orders_payment_status", payment_status),
        # Expiry sweep lookup
        Index("idx_orders_expiry_sweep", "payment_method", "payment_status", "order_status", "created_at"),
    )

    def __repr__(self):
        return f"<Order(number='{self.order_number}', status='{self.order_status}/{self.payment_status}', total={self.total})>"


class OrderItem(Base):
    """Line items frozen at checkout"""

    __tablename__ = "order_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(String(64), nullable=False)
    variant_id = Column(String(64))
    name = Column(String(255))
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    gst_rate = Column(Numeric(5, 2))
    tax_amount = Column(Numeric(12, 2), nullable=False, default=0)

    order: Mapped["Order"] = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem(product='{self.product_id}', qty={self.quantity})>"


class OrderStatusHistory(Base):
    """Audit trail of lifecycle transitions"""

    __tablename__ = "order_status_history"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    order_id = Column(UUID(as_uuid=True), ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    from_status = Column(String(20))
    to_status = Column(String(20), nullable=False)
    payment_status = Column(String(20))
    reason = Column(Text)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(UTC), nullable=False)

    order: Mapped["Order"] = relationship("Order", back_populates="status_history")
