"""
Payment method configuration table
"""
from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, Numeric, String

from .base import Base, utcnow


class PaymentMethodModel(Base):
    __tablename__ = "payment_methods"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    display_name = Column(JSON, nullable=False)
    type = Column(String(30), nullable=False)
    provider = Column(String(50), nullable=False)
    # {"EGP": {"fixed": "5.00", "percentage": "2.5"}, ...}
    fee_schedules = Column(JSON, nullable=False, default=dict)
    min_amount = Column(Numeric(precision=12, scale=2), nullable=False, default=0)
    max_amount = Column(Numeric(precision=12, scale=2), nullable=False)
    timeout_minutes = Column(Integer, nullable=False, default=30)
    supports_refunds = Column(Boolean, nullable=False, default=True)
    supports_partial_refunds = Column(Boolean, nullable=False, default=True)
    active = Column(Boolean, nullable=False, default=True, index=True)
    sort_order = Column(Integer, nullable=False, default=0)
    description = Column(JSON, nullable=True)
    instructions = Column(JSON, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<PaymentMethodModel(name='{self.name}', type='{self.type}', active={self.active})>"
