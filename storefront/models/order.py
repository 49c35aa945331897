# storefront/models/order.py

import uuid

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func
from storefront.utils.database import Base


def new_order_id() -> str:
    return str(uuid.uuid4())


class Order(Base):
    __tablename__ = "orders"

    id = Column(String(36), primary_key=True, default=new_order_id)

    tracking_code     = Column(String, unique=True, index=True, nullable=False)   # customer-facing, upper-case
    status            = Column(String, nullable=False, default="pending")         # pending | paid | payment_failed | ...
    payment_status    = Column(String, nullable=False, default="pending")         # pending | completed | failed
    payment_reference = Column(String, index=True, nullable=True)                 # gateway tracking id, then payment account
    gateway_tracking_id = Column(String, index=True, nullable=True)               # set on first reconciliation
    payment_error     = Column(Text, nullable=True)

    customer_name  = Column(String, nullable=True)
    customer_email = Column(String, nullable=True)
    customer_phone = Column(String, nullable=True)
    total_amount   = Column(Numeric(12, 2), nullable=True)
    currency       = Column(String(3), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())

    items = relationship("OrderItem", back_populates="order", lazy="raise")

    @validates("tracking_code")
    def normalize_tracking_code(self, key, value):
        return value.strip().upper() if value else value


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(String(36), ForeignKey("orders.id"), index=True, nullable=False)

    product_name = Column(String, nullable=True)
    quantity     = Column(Integer, nullable=False, default=1)
    unit_price   = Column(Numeric(12, 2), nullable=True)

    order = relationship("Order", back_populates="items")
