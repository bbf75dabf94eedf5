"""
Order DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import ConfigDict, EmailStr, Field, field_validator

from application.dto import DTOBase, Money
from domain.order.entity import (
    CustomerInfo,
    Order,
    OrderPaymentMethod,
    OrderPaymentStatus,
    OrderStatus,
)
from domain.order.validator import ItemValidationError, RequestedItem


class LocalizedNameDTO(DTOBase):
    en: str
    ar: str


class OrderItemInput(DTOBase):
    product_id: int
    quantity: int = Field(..., ge=1)
    price: Decimal = Field(..., ge=0, description="Unit price the customer saw")

    def to_requested(self) -> RequestedItem:
        return RequestedItem(product_id=self.product_id, quantity=self.quantity, price=self.price)


class CustomerInfoInput(DTOBase):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: str = Field(..., min_length=5, max_length=32)
    address: str = Field(..., min_length=1, max_length=500)
    city: str = Field(..., min_length=1, max_length=100)
    country: str = Field("Egypt", max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    notes: Optional[str] = Field(None, max_length=1000)

    def to_entity(self) -> CustomerInfo:
        return CustomerInfo(**self.model_dump())


class CreateOrderRequest(DTOBase):
    items: list[OrderItemInput] = Field(..., min_length=1)
    customer_info: CustomerInfoInput
    payment_method: OrderPaymentMethod
    currency: str = Field("EGP", min_length=3, max_length=3)
    total: Optional[Decimal] = Field(None, ge=0, description="Client-side total, checked when given")

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        u = (v or "").upper()
        if not u.isalpha():
            raise ValueError("currency must be ISO-4217 alpha-3")
        return u


class UpdateOrderStatusRequest(DTOBase):
    status: str
    status_type: str = "order"


class CancelOrderRequest(DTOBase):
    reason: Optional[str] = Field(None, max_length=500)


class OrderListQuery(DTOBase):
    order_status: Optional[OrderStatus] = None
    payment_status: Optional[OrderPaymentStatus] = None


class OrderItemDTO(DTOBase):
    product_id: int
    product_name: LocalizedNameDTO
    quantity: int
    price: Money
    subtotal: Money


class CustomerInfoDTO(DTOBase):
    first_name: str
    last_name: str
    email: str
    phone: str
    address: str
    city: str
    country: str
    postal_code: Optional[str] = None
    notes: Optional[str] = None


class OrderDTO(DTOBase):
    id: int
    order_number: str
    items: list[OrderItemDTO]
    customer_info: CustomerInfoDTO
    payment_method: OrderPaymentMethod
    total: Money
    currency: str
    order_status: OrderStatus
    payment_status: OrderPaymentStatus
    tracking_number: Optional[str] = None
    cancellation_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    can_be_cancelled: bool = False
    can_be_refunded: bool = False

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_entity(cls, order: Order) -> "OrderDTO":
        return cls(
            id=order.id or 0,
            order_number=order.order_number,
            items=[
                OrderItemDTO(
                    product_id=i.product_id,
                    product_name=LocalizedNameDTO(en=i.product_name.en, ar=i.product_name.ar),
                    quantity=i.quantity,
                    price=i.price,
                    subtotal=i.subtotal,
                )
                for i in order.items
            ],
            customer_info=CustomerInfoDTO.model_validate(order.customer_info, from_attributes=True),
            payment_method=order.payment_method,
            total=order.total,
            currency=order.currency,
            order_status=order.order_status,
            payment_status=order.payment_status,
            tracking_number=order.tracking_number,
            cancellation_reason=order.cancellation_reason,
            created_at=order.created_at,
            updated_at=order.updated_at,
            confirmed_at=order.confirmed_at,
            shipped_at=order.shipped_at,
            delivered_at=order.delivered_at,
            cancelled_at=order.cancelled_at,
            can_be_cancelled=order.can_be_cancelled(),
            can_be_refunded=order.can_be_refunded(),
        )


class ValidationErrorDTO(DTOBase):
    code: str
    message: str
    product_id: Optional[int] = None
    item_index: Optional[int] = None
    details: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_error(cls, error: ItemValidationError) -> "ValidationErrorDTO":
        return cls(**error.as_dict())


class CreateOrderResult(DTOBase):
    """Either an order, or the complete list of item errors"""
    success: bool
    order: Optional[OrderDTO] = None
    errors: list[ValidationErrorDTO] = Field(default_factory=list)
