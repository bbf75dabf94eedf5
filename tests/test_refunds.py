import asyncio
from decimal import Decimal

import pytest

from application.services.order_service import OrderApplicationService
from application.services.payment_service import PaymentApplicationService
from domain.common.exceptions import ConcurrencyConflictException
from domain.order.entity import OrderPaymentStatus
from domain.order.exceptions import OrderNotRefundableException
from domain.payment.entity import PaymentStatus
from domain.payment.exceptions import (
    InvalidRefundAmountException,
    PaymentNotFoundException,
    RefundExceedsPaymentException,
)
from fakes import resolver_for
from helpers import GOOD_CARD, place_order, start_payment


@pytest.fixture
def service(uow_factory, gateway):
    return PaymentApplicationService(uow_factory, resolver_for(gateway))


async def paid_payment(service, uow_factory, method="visa", details=None):
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, method)
    await service.process_payment(init.payment.payment_id, details if details is not None else GOOD_CARD)
    return order, init.payment.payment_id


@pytest.mark.asyncio
async def test_partial_then_full_refund(service, store, uow_factory):
    order, payment_id = await paid_payment(service, uow_factory)

    first = await service.process_refund(payment_id, Decimal("100.00"), "damaged bottle", "admin@store")
    assert first.payment.status is PaymentStatus.PARTIALLY_REFUNDED
    assert first.payment.refunded_amount == Decimal("100.00")
    assert first.payment.refund_count == 1
    assert first.order_payment_status is OrderPaymentStatus.COMPLETED
    assert first.refund.actor == "admin@store"

    second = await service.process_refund(payment_id, Decimal("110.00"), "rest", "admin@store")
    assert second.payment.status is PaymentStatus.REFUNDED
    assert second.payment.refunded_amount == Decimal("210.00")
    assert second.order_payment_status is OrderPaymentStatus.REFUNDED
    assert store.order_by_number(order.order_number).payment_status is OrderPaymentStatus.REFUNDED

    detail = await service.get_payment(payment_id)
    assert [r.amount for r in detail.refunds] == [Decimal("100.00"), Decimal("110.00")]


@pytest.mark.asyncio
async def test_refund_exceeding_remaining_amount_changes_nothing(service, store, uow_factory):
    _, payment_id = await paid_payment(service, uow_factory)
    await service.process_refund(payment_id, Decimal("200.00"), "most of it", "admin")

    with pytest.raises(RefundExceedsPaymentException):
        await service.process_refund(payment_id, Decimal("10.01"), "too much", "admin")

    stored = store.payment_by_id(payment_id)
    assert stored.refunded_amount == Decimal("200.00")
    assert stored.refund_count == 1
    assert len(store.refunds) == 1


@pytest.mark.asyncio
async def test_refund_amount_must_be_positive(service, uow_factory):
    _, payment_id = await paid_payment(service, uow_factory)
    with pytest.raises(InvalidRefundAmountException):
        await service.process_refund(payment_id, Decimal("0"), "nothing", "admin")


@pytest.mark.asyncio
async def test_refund_requires_refundable_order(service, uow_factory):
    order, payment_id = await paid_payment(service, uow_factory)
    orders = OrderApplicationService(uow_factory)
    await orders.update_status(order.id, "processing")
    await orders.update_status(order.id, "shipped")

    with pytest.raises(OrderNotRefundableException):
        await service.process_refund(payment_id, Decimal("10"), "late", "admin")


@pytest.mark.asyncio
async def test_refund_of_unpaid_payment_rejected(service, uow_factory, gateway):
    gateway.result_status = "failure"
    _, payment_id = await paid_payment(service, uow_factory)
    with pytest.raises(OrderNotRefundableException):
        await service.process_refund(payment_id, Decimal("10"), "declined anyway", "admin")


@pytest.mark.asyncio
async def test_unknown_payment(service):
    with pytest.raises(PaymentNotFoundException):
        await service.process_refund("PAY-missing", Decimal("1"), "x", "admin")


@pytest.mark.asyncio
async def test_method_without_partial_refunds(service, store, uow_factory):
    _, payment_id = await paid_payment(
        service, uow_factory, method="vodafone_cash", details={"phone_number": "01012345678"}
    )
    amount = store.payment_by_id(payment_id).amount

    with pytest.raises(InvalidRefundAmountException):
        await service.process_refund(payment_id, Decimal("50"), "partial", "admin")

    full = await service.process_refund(payment_id, amount, "full", "admin")
    assert full.payment.status is PaymentStatus.REFUNDED


@pytest.mark.asyncio
async def test_refund_against_stale_payment_is_rejected(service, store, uow_factory):
    _, payment_id = await paid_payment(service, uow_factory)
    async with uow_factory() as uow:
        stale = await uow.payment_repository.get_by_payment_id(payment_id)

    await service.process_refund(payment_id, Decimal("150.00"), "first agent", "agent-1")

    stale.apply_refund(Decimal("150.00"))
    with pytest.raises(ConcurrencyConflictException):
        async with uow_factory() as uow:
            await uow.payment_repository.update(stale)

    stored = store.payment_by_id(payment_id)
    assert stored.refunded_amount == Decimal("150.00")
    assert stored.refund_count == 1
    assert len(store.refunds) == 1


@pytest.mark.asyncio
async def test_simultaneous_refunds_never_exceed_the_payment(service, store, uow_factory):
    _, payment_id = await paid_payment(service, uow_factory)

    results = await asyncio.gather(
        service.process_refund(payment_id, Decimal("150.00"), "agent one", "agent-1"),
        service.process_refund(payment_id, Decimal("150.00"), "agent two", "agent-2"),
        return_exceptions=True,
    )

    errors = [r for r in results if isinstance(r, Exception)]
    assert len(errors) == 1
    assert isinstance(errors[0], (RefundExceedsPaymentException, ConcurrencyConflictException))
    stored = store.payment_by_id(payment_id)
    assert stored.refunded_amount == Decimal("150.00")
    assert stored.status is PaymentStatus.PARTIALLY_REFUNDED
    assert sum(r.amount for r in store.refunds.values()) == Decimal("150.00")
