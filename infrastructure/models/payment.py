"""
Payment tables - persistence mapping only.
All business rules live in domain.payment.entity.Payment.
"""
from sqlalchemy import (
    Boolean, Column, DateTime, ForeignKey, Index, Integer, JSON, Numeric, String, Text,
)
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class PaymentModel(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    payment_id = Column(String(40), unique=True, nullable=False, index=True)

    order_id = Column(Integer, ForeignKey("orders.id"), nullable=False, index=True)
    order_number = Column(String(32), nullable=False, index=True)

    method_name = Column(String(50), nullable=False, index=True)
    method_type = Column(String(30), nullable=False)
    provider = Column(String(50), nullable=False)
    provider_ref = Column(String(200), nullable=True)

    # amount = subtotal + fees
    amount = Column(Numeric(precision=12, scale=2), nullable=False)
    subtotal = Column(Numeric(precision=12, scale=2), nullable=False)
    fees = Column(Numeric(precision=12, scale=2), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="EGP")

    status = Column(String(30), nullable=False, default="initialized", index=True)
    is_current = Column(Boolean, nullable=False, default=True)

    refunded_amount = Column(Numeric(precision=12, scale=2), nullable=False, default=0)
    refund_count = Column(Integer, nullable=False, default=0)
    version = Column(Integer, nullable=False, default=1)

    expires_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    failure_reason = Column(Text, nullable=True)
    # "metadata" is reserved on declarative classes
    extra_metadata = Column("metadata", JSON, nullable=True)

    refunds = relationship(
        "RefundModel",
        back_populates="payment",
        cascade="all, delete-orphan",
        lazy="select",
    )

    __table_args__ = (
        Index("ix_payments_provider_ref", "provider", "provider_ref"),
        Index("ix_payments_order_current", "order_id", "is_current"),
    )

    def __repr__(self):
        return (
            f"<PaymentModel(id={self.id}, payment_id='{self.payment_id}', "
            f"method='{self.method_name}', amount={self.amount}, status='{self.status}')>"
        )


class RefundModel(Base):
    __tablename__ = "refunds"

    id = Column(Integer, primary_key=True, index=True)
    payment_id = Column(
        Integer,
        ForeignKey("payments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount = Column(Numeric(precision=12, scale=2), nullable=False)
    currency = Column(String(3), nullable=False)
    reason = Column(Text, nullable=False)
    actor = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default="completed")
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    processed_at = Column(DateTime(timezone=True), nullable=True)

    payment = relationship("PaymentModel", back_populates="refunds")

    def __repr__(self):
        return f"<RefundModel(id={self.id}, payment_id={self.payment_id}, amount={self.amount})>"
