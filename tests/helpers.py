"""Shared builders for service-level tests."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

from application.dtos.orders import CreateOrderRequest, OrderDTO, OrderItemInput
from application.dtos.payments import InitializePaymentRequest
from application.services.order_service import OrderApplicationService
from application.services.payment_service import PaymentApplicationService

CUSTOMER = {
    "first_name": "Mona",
    "last_name": "Hassan",
    "email": "mona@example.com",
    "phone": "01012345678",
    "address": "12 Nile St",
    "city": "Cairo",
}

GOOD_CARD = {
    "card_number": "4242424242424242",
    "expiry_date": "12/30",
    "cvv": "123",
    "cardholder_name": "Mona Hassan",
}


async def place_order(uow_factory, quantity: int = 2, product_id: int = 1, price: str = "100.00",
                      payment_method: str = "card", currency: str = "EGP") -> OrderDTO:
    result = await OrderApplicationService(uow_factory).create_order(CreateOrderRequest(
        items=[OrderItemInput(product_id=product_id, quantity=quantity, price=price)],
        customer_info=CUSTOMER,
        payment_method=payment_method,
        currency=currency,
    ))
    assert result.success, result.errors
    return result.order


async def start_payment(service: PaymentApplicationService, order_number: str, method: str):
    return await service.initialize_payment(InitializePaymentRequest(
        order_number=order_number,
        method=method,
        customer_data={"email": "mona@example.com", "card_number": "4242424242424242"},
    ))


def expire(store, payment_id: str) -> None:
    """Move a stored payment's deadline into the past"""
    store.payment_by_id(payment_id).expires_at = datetime.now(timezone.utc) - timedelta(minutes=1)
