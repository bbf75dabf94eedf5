"""
Order domain entity - order aggregate root with the dual status state machine
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from domain.catalog.entity import LocalizedName
from domain.common.exceptions import DomainValidationException
from .exceptions import IllegalStatusTransitionException, InvalidStatusException


class OrderStatus(str, Enum):
    """Fulfillment status"""
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class OrderPaymentStatus(str, Enum):
    """Payment status mirrored on the order for quick reads"""
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"


class StatusType(str, Enum):
    ORDER = "order"
    PAYMENT = "payment"


class OrderPaymentMethod(str, Enum):
    CARD = "card"
    MOBILE_WALLET = "mobile_wallet"
    CASH_ON_DELIVERY = "cash_on_delivery"
    BANK_TRANSFER = "bank_transfer"
    PAYPAL = "paypal"


ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PROCESSING, OrderStatus.CANCELLED}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.SHIPPED}),
    OrderStatus.SHIPPED: frozenset({OrderStatus.DELIVERED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

# failed -> pending/completed lets the customer retry with a new payment attempt
PAYMENT_TRANSITIONS: dict[OrderPaymentStatus, frozenset[OrderPaymentStatus]] = {
    OrderPaymentStatus.PENDING: frozenset({OrderPaymentStatus.COMPLETED, OrderPaymentStatus.FAILED}),
    OrderPaymentStatus.FAILED: frozenset({OrderPaymentStatus.PENDING, OrderPaymentStatus.COMPLETED}),
    OrderPaymentStatus.COMPLETED: frozenset({OrderPaymentStatus.REFUNDED}),
    OrderPaymentStatus.REFUNDED: frozenset(),
}

CANCELLABLE_STATUSES = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})
REFUNDABLE_ORDER_STATUSES = frozenset({OrderStatus.CONFIRMED, OrderStatus.PROCESSING})
DELETABLE_PAYMENT_STATUSES = frozenset({OrderPaymentStatus.PENDING, OrderPaymentStatus.FAILED})


def parse_status_type(value: Union[str, StatusType]) -> StatusType:
    try:
        return StatusType(value)
    except ValueError:
        raise DomainValidationException(
            f"Invalid status type: {value!r}",
            field="status_type",
        ) from None


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class CustomerInfo:
    """Contact and shipping details used for fulfillment only"""

    first_name: str
    last_name: str
    email: str
    phone: str
    address: str
    city: str
    country: str
    postal_code: Optional[str] = None
    notes: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class OrderItem:
    """Line item with price and name snapshotted at order time"""

    product_id: int
    product_name: LocalizedName
    quantity: int
    price: Decimal
    id: Optional[int] = None

    def __post_init__(self):
        if self.quantity < 1:
            raise DomainValidationException(
                f"Quantity must be at least 1: {self.quantity}",
                field="quantity",
            )
        if self.price < 0:
            raise DomainValidationException(
                f"Price cannot be negative: {self.price}",
                field="price",
            )

    @property
    def subtotal(self) -> Decimal:
        return self.price * self.quantity


@dataclass
class Order:
    """
    Order aggregate root.

    Business rules:
    1. order_number is unique and never changes once assigned
    2. total >= 0 and equals the sum of item subtotals
    3. every item quantity >= 1
    4. order_status / payment_status only change through update_status
    5. a paid order is never deleted
    """

    id: Optional[int]
    order_number: str
    items: list[OrderItem]
    customer_info: CustomerInfo
    payment_method: OrderPaymentMethod
    total: Decimal
    order_status: OrderStatus = OrderStatus.PENDING
    payment_status: OrderPaymentStatus = OrderPaymentStatus.PENDING
    currency: str = "EGP"
    tracking_number: Optional[str] = None
    admin_notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    version: int = 1

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.items:
            raise DomainValidationException("Order must contain at least one item", field="items")
        if self.total < 0:
            raise DomainValidationException(f"Order total cannot be negative: {self.total}", field="total")
        self.created_at = _ensure_utc(self.created_at)
        self.updated_at = _ensure_utc(self.updated_at)
        self.confirmed_at = _ensure_utc(self.confirmed_at)
        self.shipped_at = _ensure_utc(self.shipped_at)
        self.delivered_at = _ensure_utc(self.delivered_at)
        self.cancelled_at = _ensure_utc(self.cancelled_at)

    @staticmethod
    def calculate_total(items: list[OrderItem]) -> Decimal:
        return sum((item.subtotal for item in items), Decimal("0"))

    def has_valid_total(self) -> bool:
        return self.total == self.calculate_total(self.items)

    def update_status(
        self,
        new_status: Union[str, OrderStatus, OrderPaymentStatus],
        status_type: Union[str, StatusType] = StatusType.ORDER,
    ) -> None:
        """
        The only way to change order_status or payment_status.

        Unknown values raise InvalidStatusException naming the value, illegal
        moves raise IllegalStatusTransitionException; in both cases the
        current status is left untouched.
        """
        status_type = parse_status_type(status_type)
        if status_type is StatusType.ORDER:
            self._transition_order(self._parse(OrderStatus, new_status, status_type))
        else:
            self._transition_payment(self._parse(OrderPaymentStatus, new_status, status_type))

    @staticmethod
    def _parse(enum_cls, value, status_type: StatusType):
        try:
            return enum_cls(value)
        except ValueError:
            raise InvalidStatusException(str(getattr(value, "value", value)), status_type.value) from None

    def _transition_order(self, target: OrderStatus) -> None:
        if target not in ORDER_TRANSITIONS[self.order_status]:
            raise IllegalStatusTransitionException(
                self.order_status.value, target.value, StatusType.ORDER.value
            )
        now = datetime.now(timezone.utc)
        self.order_status = target
        self.updated_at = now
        if target is OrderStatus.CONFIRMED:
            self.confirmed_at = now
        elif target is OrderStatus.SHIPPED:
            self.shipped_at = now
        elif target is OrderStatus.DELIVERED:
            self.delivered_at = now
        elif target is OrderStatus.CANCELLED:
            self.cancelled_at = now

    def _transition_payment(self, target: OrderPaymentStatus) -> None:
        if target not in PAYMENT_TRANSITIONS[self.payment_status]:
            raise IllegalStatusTransitionException(
                self.payment_status.value, target.value, StatusType.PAYMENT.value
            )
        self.payment_status = target
        self.updated_at = datetime.now(timezone.utc)

    def can_be_cancelled(self) -> bool:
        return self.order_status in CANCELLABLE_STATUSES

    def can_be_refunded(self) -> bool:
        return (
            self.payment_status is OrderPaymentStatus.COMPLETED
            and self.order_status in REFUNDABLE_ORDER_STATUSES
        )

    def can_be_deleted(self) -> bool:
        """Only orders whose payment never settled may be physically removed"""
        return self.payment_status in DELETABLE_PAYMENT_STATUSES

    def holds_stock(self) -> bool:
        """Stock reserved at placement is still held (not yet given back)"""
        return self.order_status is not OrderStatus.CANCELLED
