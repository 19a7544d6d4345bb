"""
Pricing configuration models: campaigns, tax settings, shipping rules
"""

import uuid

from sqlalchemy import Boolean, Column, DateTime, Index, Integer, Numeric, String, Text
from sqlalchemy.dialects.postgresql import JSONB, UUID

from .base import Base, TimestampMixin


class Campaign(Base, TimestampMixin):
    """Promotional campaigns"""

    __tablename__ = "campaigns"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False)
    description = Column(Text)
    status = Column(String(20), nullable=False, default="draft")  # active, inactive, draft
    priority = Column(Integer, nullable=False, default=0)

    # [{"type": "min_subtotal", "amount": "3000"}, {"type": "min_quantity", "count": 3}, ...]
    conditions = Column(JSONB, nullable=False, default=list)

    discount_type = Column(String(20), nullable=False)  # percent, flat
    discount_value = Column(Numeric(12, 2), nullable=False)
    max_discount = Column(Numeric(12, 2))
    applies_to = Column(String(10), nullable=False, default="cart")  # cart, items

    starts_at = Column(DateTime(timezone=True))
    ends_at = Column(DateTime(timezone=True))

    __table_args__ = (Index("idx_campaigns_status_window", status, starts_at, ends_at),)

    def __repr__(self):
        return f"<Campaign(name='{self.name}', status='{self.status}', priority={self.priority})>"


class TaxSettings(Base, TimestampMixin):
    """GST configuration; one active row is consulted per calculation"""

    __tablename__ = "tax_settings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    tax_enabled = Column(Boolean, nullable=False, default=True)
    default_gst_rate = Column(Numeric(5, 2), default=18)
    price_includes_tax = Column(Boolean, nullable=False, default=False)
    store_state = Column(String(100), nullable=False, default="Tamil Nadu")
    gstin = Column(String(15))
    is_active = Column(Boolean, nullable=False, default=True, index=True)


class ShippingRule(Base, TimestampMixin):
    """Zone and quantity tiered shipping rates"""

    __tablename__ = "shipping_rules"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    zone = Column(String(30), nullable=False)  # tamil_nadu, all_india
    provider = Column(String(100), nullable=False, default="Standard")
    min_quantity = Column(Integer, nullable=False, default=1)
    max_quantity = Column(Integer)  # NULL = and above
    rate = Column(Numeric(10, 2), nullable=False)
    is_enabled = Column(Boolean, nullable=False, default=True)
    max_delivery_days = Column(Integer)

    __table_args__ = (Index("idx_shipping_rules_zone_enabled", zone, is_enabled),)

    def __repr__(self):
        return f"<ShippingRule(zone='{self.zone}', qty={self.min_quantity}-{self.max_quantity}, rate={self.rate})>"
