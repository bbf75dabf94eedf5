"""Infrastructure models package exports."""
from .base import Base, metadata
from .catalog import ProductModel
from .order import OrderItemModel, OrderModel
from .payment import PaymentModel, RefundModel
from .payment_method import PaymentMethodModel

__all__ = [
    "Base",
    "metadata",
    "ProductModel",
    "OrderModel",
    "OrderItemModel",
    "PaymentModel",
    "RefundModel",
    "PaymentMethodModel",
]
