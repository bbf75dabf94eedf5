"""
Order tables - persistence mapping only, business rules live in domain.order.entity.Order
"""
from sqlalchemy import (
    Column, DateTime, ForeignKey, Index, Integer, JSON, Numeric, String, Text,
)
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class OrderModel(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)
    order_number = Column(String(32), unique=True, nullable=False, index=True)

    # Customer snapshot, stored as-is
    customer_info = Column(JSON, nullable=False)
    payment_method = Column(String(50), nullable=False)
    total = Column(Numeric(precision=12, scale=2), nullable=False)
    currency = Column(String(3), nullable=False, default="EGP")

    order_status = Column(String(20), nullable=False, default="pending", index=True)
    payment_status = Column(String(20), nullable=False, default="pending", index=True)

    tracking_number = Column(String(100), nullable=True)
    admin_notes = Column(Text, nullable=True)
    cancellation_reason = Column(Text, nullable=True)

    # Optimistic concurrency token
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)
    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    shipped_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    items = relationship(
        "OrderItemModel",
        back_populates="order",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="OrderItemModel.id",
    )

    __table_args__ = (
        Index("ix_orders_status_created", "order_status", "created_at"),
    )

    def __repr__(self):
        return (
            f"<OrderModel(id={self.id}, order_number='{self.order_number}', "
            f"order_status='{self.order_status}', payment_status='{self.payment_status}')>"
        )


class OrderItemModel(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True, index=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, index=True)
    product_id = Column(Integer, nullable=False, index=True)
    # Name and price are snapshots taken when the order was placed
    name_en = Column(String(200), nullable=False)
    name_ar = Column(String(200), nullable=False, default="")
    quantity = Column(Integer, nullable=False)
    price = Column(Numeric(precision=12, scale=2), nullable=False)

    order = relationship("OrderModel", back_populates="items")
