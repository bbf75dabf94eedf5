"""Order domain exports."""
from .entity import (
    CustomerInfo,
    Order,
    OrderItem,
    OrderPaymentMethod,
    OrderPaymentStatus,
    OrderStatus,
    StatusType,
)
from .number import IdentifierGenerator
from .repository import OrderRepository
from .service import OrderDomainService
from .validator import ItemErrorCode, ItemValidationError, OrderValidator, RequestedItem

__all__ = [
    "CustomerInfo",
    "Order",
    "OrderItem",
    "OrderPaymentMethod",
    "OrderPaymentStatus",
    "OrderStatus",
    "StatusType",
    "IdentifierGenerator",
    "OrderRepository",
    "OrderDomainService",
    "ItemErrorCode",
    "ItemValidationError",
    "OrderValidator",
    "RequestedItem",
]
