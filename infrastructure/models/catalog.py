"""
Product table as read by the order engine. Only stock is written here.
"""
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, Integer, Numeric, String

from .base import Base, utcnow


class ProductModel(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    name_en = Column(String(200), nullable=False)
    name_ar = Column(String(200), nullable=False, default="")
    price = Column(Numeric(precision=12, scale=2), nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    in_stock = Column(Boolean, nullable=False, default=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("stock >= 0", name="ck_products_stock_non_negative"),
    )

    def __repr__(self):
        return f"<ProductModel(id={self.id}, name_en='{self.name_en}', stock={self.stock})>"
