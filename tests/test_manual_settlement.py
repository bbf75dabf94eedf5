import pytest

from application.services.payment_service import PaymentApplicationService
from domain.order.entity import OrderPaymentStatus, OrderStatus
from domain.payment.entity import PaymentStatus
from domain.payment.exceptions import (
    NotBankTransferException,
    NotCashOnDeliveryException,
    PaymentNotPendingException,
)
from fakes import resolver_for
from helpers import GOOD_CARD, place_order, start_payment


@pytest.fixture
def service(uow_factory, gateway):
    return PaymentApplicationService(uow_factory, resolver_for(gateway))


async def submitted_bank_transfer(service, uow_factory):
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "bank_transfer")
    assert init.next_step.type == "bank_details"
    assert init.next_step.data["transfer_note"] == init.payment.payment_id
    outcome = await service.process_payment(init.payment.payment_id, {"bank_reference": "TRX-55120"})
    return order, init.payment.payment_id, outcome


@pytest.mark.asyncio
async def test_bank_transfer_pending_confirms_order(service, store, uow_factory, gateway):
    order, payment_id, outcome = await submitted_bank_transfer(service, uow_factory)

    assert outcome.outcome == "pending"
    assert outcome.payment.status is PaymentStatus.PENDING
    stored_order = store.order_by_number(order.order_number)
    assert stored_order.order_status is OrderStatus.CONFIRMED
    assert stored_order.payment_status is OrderPaymentStatus.PENDING
    assert store.payment_by_id(payment_id).metadata["bank_reference"] == "TRX-55120"
    assert gateway.submissions == []


@pytest.mark.asyncio
async def test_verified_bank_transfer_completes(service, store, uow_factory):
    order, payment_id, _ = await submitted_bank_transfer(service, uow_factory)

    result = await service.verify_bank_transfer(payment_id, True, "seen on statement", "finance@store")

    assert result.outcome == "success"
    assert result.payment.status is PaymentStatus.COMPLETED
    assert result.order_payment_status is OrderPaymentStatus.COMPLETED
    verification = store.payment_by_id(payment_id).metadata["verification"]
    assert verification["actor"] == "finance@store"
    assert verification["verified"] is True

    with pytest.raises(PaymentNotPendingException):
        await service.verify_bank_transfer(payment_id, True, None, "finance@store")


@pytest.mark.asyncio
async def test_rejected_bank_transfer_fails(service, store, uow_factory):
    order, payment_id, _ = await submitted_bank_transfer(service, uow_factory)

    result = await service.verify_bank_transfer(payment_id, False, "no such transfer", "finance@store")

    assert result.outcome == "failure"
    assert result.payment.failure_reason == "no such transfer"
    assert store.order_by_number(order.order_number).payment_status is OrderPaymentStatus.FAILED


@pytest.mark.asyncio
async def test_verification_only_for_bank_transfers(service, uow_factory):
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "visa")
    await service.process_payment(init.payment.payment_id, GOOD_CARD)

    with pytest.raises(NotBankTransferException):
        await service.verify_bank_transfer(init.payment.payment_id, True, None, "finance")
    with pytest.raises(NotCashOnDeliveryException):
        await service.confirm_cash_collected(init.payment.payment_id, "courier")


@pytest.mark.asyncio
async def test_unsubmitted_bank_transfer_cannot_be_verified(service, uow_factory):
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "bank_transfer")
    with pytest.raises(PaymentNotPendingException):
        await service.verify_bank_transfer(init.payment.payment_id, True, None, "finance")


@pytest.mark.asyncio
async def test_cash_on_delivery_flow(service, store, uow_factory):
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "cash_on_delivery")
    assert init.payment.amount == order.total + 15

    outcome = await service.process_payment(init.payment.payment_id)
    assert outcome.outcome == "pending"
    assert outcome.payment.expires_at is None
    stored_order = store.order_by_number(order.order_number)
    assert stored_order.order_status is OrderStatus.CONFIRMED
    assert stored_order.payment_method.value == "cash_on_delivery"

    collected = await service.confirm_cash_collected(init.payment.payment_id, "courier-7")
    assert collected.outcome == "success"
    assert collected.order_payment_status is OrderPaymentStatus.COMPLETED
    assert store.payment_by_id(init.payment.payment_id).metadata["collected_by"] == "courier-7"

    again = await service.confirm_cash_collected(init.payment.payment_id, "courier-7")
    assert again.payment.status is PaymentStatus.COMPLETED


@pytest.mark.asyncio
async def test_cash_must_be_submitted_before_collection(service, uow_factory):
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "cash_on_delivery")
    with pytest.raises(PaymentNotPendingException):
        await service.confirm_cash_collected(init.payment.payment_id, "courier-7")
