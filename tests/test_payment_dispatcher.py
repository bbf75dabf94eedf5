from decimal import Decimal

import pytest

from application.dto import PaginationParams
from application.services.order_service import OrderApplicationService
from application.services.payment_service import PaymentApplicationService
from domain.order.entity import OrderPaymentMethod, OrderPaymentStatus, OrderStatus
from domain.order.exceptions import OrderAlreadyPaidException, OrderNotFoundException, OrderNotPayableException
from domain.payment.entity import PaymentStatus
from domain.payment.exceptions import (
    AmountOutOfRangeException,
    CaptureNotSupportedException,
    PaymentDetailsInvalidException,
    PaymentExpiredException,
    PaymentInProgressException,
    PaymentMethodNotFoundException,
    PaymentNotPendingException,
    UnsupportedCurrencyException,
)
from infrastructure.external.payments.exceptions import PaymentRecoverableError
from fakes import StubGateway, resolver_for
from helpers import GOOD_CARD, expire, place_order, start_payment


@pytest.fixture
def service(uow_factory, gateway):
    return PaymentApplicationService(uow_factory, resolver_for(gateway))


@pytest.mark.asyncio
async def test_list_methods_and_quote(service):
    methods = await service.list_payment_methods("EGP")
    assert [m.name for m in methods] == [
        "visa", "mastercard", "vodafone_cash", "cash_on_delivery", "bank_transfer",
    ]
    usd = await service.list_payment_methods("USD")
    assert [m.name for m in usd] == ["visa", "mastercard", "paypal"]

    quote = await service.quote_fees("VISA", Decimal("200"), "EGP")
    assert quote.total == Decimal("210.00")
    with pytest.raises(PaymentMethodNotFoundException):
        await service.quote_fees("bitcoin", Decimal("200"), "EGP")


@pytest.mark.asyncio
async def test_initialize_creates_current_payment_with_fees(service, store, uow_factory):
    order = await place_order(uow_factory)
    result = await start_payment(service, order.order_number, "visa")

    payment = result.payment
    assert payment.status is PaymentStatus.INITIALIZED
    assert payment.payment_id.startswith("PAY")
    assert payment.payment_id != order.order_number
    assert payment.subtotal == Decimal("200.00")
    assert payment.fees == Decimal("10.00")
    assert payment.amount == Decimal("210.00")
    assert payment.expires_at is not None
    assert result.next_step.type == "card_form"

    stored = store.payment_by_id(payment.payment_id)
    # only contact fields are kept
    assert stored.metadata["customer"] == {"email": "mona@example.com"}


@pytest.mark.asyncio
async def test_initialize_checks_order_and_method(service, uow_factory):
    order = await place_order(uow_factory)

    with pytest.raises(OrderNotFoundException):
        await start_payment(service, "MD-missing", "visa")
    with pytest.raises(PaymentMethodNotFoundException):
        await start_payment(service, order.order_number, "bitcoin")
    with pytest.raises(UnsupportedCurrencyException):
        await start_payment(service, order.order_number, "paypal")


@pytest.mark.asyncio
async def test_initialize_rejects_amount_outside_method_range(service, uow_factory):
    small = await place_order(uow_factory, quantity=1, product_id=4, price="5.00")
    with pytest.raises(AmountOutOfRangeException):
        await start_payment(service, small.order_number, "cash_on_delivery")


@pytest.mark.asyncio
async def test_card_success_completes_payment_and_confirms_order(service, store, uow_factory, gateway):
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "visa")

    outcome = await service.process_payment(init.payment.payment_id, GOOD_CARD)

    assert outcome.outcome == "success"
    assert outcome.payment.status is PaymentStatus.COMPLETED
    assert outcome.payment.provider_ref == "ref_1"
    assert outcome.order_payment_status is OrderPaymentStatus.COMPLETED
    stored_order = store.order_by_number(order.order_number)
    assert stored_order.order_status is OrderStatus.CONFIRMED
    assert stored_order.payment_method is OrderPaymentMethod.CARD
    stored = store.payment_by_id(init.payment.payment_id)
    assert stored.metadata["card_last4"] == "4242"
    assert "card_number" not in stored.metadata
    assert gateway.submissions[0].amount == Decimal("210.00")


@pytest.mark.asyncio
async def test_card_decline_fails_payment_but_keeps_order(service, store, uow_factory, gateway):
    gateway.result_status = "failure"
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "visa")

    outcome = await service.process_payment(init.payment.payment_id, GOOD_CARD)

    assert outcome.outcome == "failure"
    assert outcome.payment.status is PaymentStatus.FAILED
    assert outcome.payment.failure_reason == "Declined by issuer"
    stored_order = store.order_by_number(order.order_number)
    assert stored_order.payment_status is OrderPaymentStatus.FAILED
    assert stored_order.order_status is OrderStatus.PENDING


@pytest.mark.asyncio
async def test_processor_error_is_a_failure_outcome(service, store, uow_factory, gateway):
    gateway.error = PaymentRecoverableError("Connection reset", provider="paymob")
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "visa")

    outcome = await service.process_payment(init.payment.payment_id, GOOD_CARD)

    assert outcome.outcome == "failure"
    assert outcome.message == "Connection reset"
    assert store.payment_by_id(init.payment.payment_id).status is PaymentStatus.FAILED


@pytest.mark.asyncio
async def test_invalid_details_leave_payment_untouched(service, store, uow_factory, gateway):
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "visa")

    with pytest.raises(PaymentDetailsInvalidException):
        await service.process_payment(init.payment.payment_id, {**GOOD_CARD, "cvv": "x"})

    assert store.payment_by_id(init.payment.payment_id).status is PaymentStatus.INITIALIZED
    assert gateway.submissions == []


@pytest.mark.asyncio
async def test_reprocessing_a_completed_payment_is_idempotent(service, store, uow_factory, gateway):
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "visa")
    first = await service.process_payment(init.payment.payment_id, GOOD_CARD)

    again = await service.process_payment(init.payment.payment_id, GOOD_CARD)

    assert again.already_processed
    assert again.outcome == "success"
    assert again.payment.provider_ref == first.payment.provider_ref
    assert len(gateway.submissions) == 1


@pytest.mark.asyncio
async def test_failed_payment_cannot_be_resubmitted(service, uow_factory, gateway):
    gateway.result_status = "failure"
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "visa")
    await service.process_payment(init.payment.payment_id, GOOD_CARD)

    with pytest.raises(PaymentNotPendingException):
        await service.process_payment(init.payment.payment_id, GOOD_CARD)


@pytest.mark.asyncio
async def test_expired_payment_is_rejected(service, store, uow_factory, gateway):
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "visa")
    expire(store, init.payment.payment_id)

    with pytest.raises(PaymentExpiredException):
        await service.process_payment(init.payment.payment_id, GOOD_CARD)
    assert gateway.submissions == []

    detail = await service.get_payment(init.payment.payment_id)
    assert detail.payment.status is PaymentStatus.EXPIRED


@pytest.mark.asyncio
async def test_retry_after_failure_supersedes_previous_attempt(service, store, uow_factory, gateway):
    gateway.result_status = "failure"
    order = await place_order(uow_factory)
    first = await start_payment(service, order.order_number, "visa")
    await service.process_payment(first.payment.payment_id, GOOD_CARD)

    gateway.result_status = "success"
    second = await start_payment(service, order.order_number, "mastercard")
    outcome = await service.process_payment(second.payment.payment_id, GOOD_CARD)

    assert outcome.order_payment_status is OrderPaymentStatus.COMPLETED
    history = await service.list_order_payments(order.order_number)
    assert [p.payment_id for p in history] == [first.payment.payment_id, second.payment.payment_id]
    assert [p.is_current for p in history] == [False, True]


@pytest.mark.asyncio
async def test_replaced_attempt_can_no_longer_be_charged(service, store, uow_factory, gateway):
    order = await place_order(uow_factory)
    first = await start_payment(service, order.order_number, "visa")
    second = await start_payment(service, order.order_number, "mastercard")

    replaced = store.payment_by_id(first.payment.payment_id)
    assert replaced.status is PaymentStatus.EXPIRED
    assert replaced.is_current is False
    with pytest.raises(PaymentNotPendingException):
        await service.process_payment(first.payment.payment_id, GOOD_CARD)
    assert gateway.submissions == []

    outcome = await service.process_payment(second.payment.payment_id, GOOD_CARD)
    assert outcome.outcome == "success"
    completed = [p for p in store.payments.values() if p.status is PaymentStatus.COMPLETED]
    assert [p.payment_id for p in completed] == [second.payment.payment_id]
    assert len(gateway.submissions) == 1


@pytest.mark.asyncio
async def test_cancelling_the_order_closes_its_open_payment(service, store, uow_factory, gateway):
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "visa")

    await OrderApplicationService(uow_factory).cancel_order(order.id, reason="changed my mind")

    assert store.payment_by_id(init.payment.payment_id).status is PaymentStatus.EXPIRED
    with pytest.raises(OrderNotPayableException):
        await service.process_payment(init.payment.payment_id, GOOD_CARD)
    assert gateway.submissions == []
    assert store.order_by_number(order.order_number).payment_status is OrderPaymentStatus.PENDING


@pytest.mark.asyncio
async def test_cancelling_a_cash_order_fails_its_payment(service, store, uow_factory):
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "cash_on_delivery")
    await service.process_payment(init.payment.payment_id)

    await OrderApplicationService(uow_factory).update_status(order.id, "cancelled")

    payment = store.payment_by_id(init.payment.payment_id)
    assert payment.status is PaymentStatus.FAILED
    assert payment.failure_reason == "Order cancelled"
    stored_order = store.order_by_number(order.order_number)
    assert stored_order.order_status is OrderStatus.CANCELLED
    assert stored_order.payment_status is OrderPaymentStatus.FAILED
    with pytest.raises(PaymentNotPendingException):
        await service.confirm_cash_collected(init.payment.payment_id, "courier-7")


@pytest.mark.asyncio
async def test_order_with_submitted_card_payment_cannot_be_cancelled(service, store, uow_factory, gateway):
    gateway.result_status = "pending"
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "visa")
    await service.process_payment(init.payment.payment_id, GOOD_CARD)

    with pytest.raises(PaymentInProgressException):
        await OrderApplicationService(uow_factory).cancel_order(order.id)
    assert store.order_by_number(order.order_number).order_status is OrderStatus.PENDING
    assert store.payment_by_id(init.payment.payment_id).status is PaymentStatus.PENDING


@pytest.mark.asyncio
async def test_submitted_attempt_blocks_a_new_one(service, uow_factory, gateway):
    gateway.result_status = "pending"
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "visa")
    await service.process_payment(init.payment.payment_id, GOOD_CARD)

    with pytest.raises(PaymentInProgressException):
        await start_payment(service, order.order_number, "mastercard")


@pytest.mark.asyncio
async def test_paid_or_cancelled_orders_cannot_start_payments(service, uow_factory):
    paid = await place_order(uow_factory)
    init = await start_payment(service, paid.order_number, "visa")
    await service.process_payment(init.payment.payment_id, GOOD_CARD)
    with pytest.raises(OrderAlreadyPaidException):
        await start_payment(service, paid.order_number, "visa")

    cancelled = await place_order(uow_factory)
    await OrderApplicationService(uow_factory).cancel_order(cancelled.id)
    with pytest.raises(OrderNotPayableException):
        await start_payment(service, cancelled.order_number, "visa")


@pytest.mark.asyncio
async def test_missing_gateway_fails_the_payment(store, uow_factory):
    def no_gateway(provider):
        raise ValueError(f"Unsupported payment provider: {provider}")

    service = PaymentApplicationService(uow_factory, no_gateway)
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "visa")

    outcome = await service.process_payment(init.payment.payment_id, GOOD_CARD)
    assert outcome.outcome == "failure"


@pytest.mark.asyncio
async def test_redirect_wallet_pending_then_capture(uow_factory, store):
    gateway = StubGateway(provider="paypal", result_status="pending")
    gateway.redirect_url = "https://paypal.example/approve?token=ref_1"
    service = PaymentApplicationService(uow_factory, resolver_for(gateway))
    order = await place_order(uow_factory, currency="USD")
    init = await start_payment(service, order.order_number, "paypal")
    assert init.next_step.type == "redirect"

    pending = await service.process_payment(init.payment.payment_id)
    assert pending.outcome == "pending"
    assert pending.redirect_url == gateway.redirect_url
    assert pending.payment.status is PaymentStatus.PENDING
    assert pending.order_payment_status is OrderPaymentStatus.PENDING

    with pytest.raises(PaymentDetailsInvalidException):
        await service.capture_payment(init.payment.payment_id, "someone_elses_ref")

    captured = await service.capture_payment(init.payment.payment_id, "ref_1")
    assert captured.outcome == "success"
    assert captured.payment.status is PaymentStatus.COMPLETED
    assert store.order_by_number(order.order_number).order_status is OrderStatus.CONFIRMED

    again = await service.capture_payment(init.payment.payment_id, "ref_1")
    assert again.already_processed
    assert len(gateway.captures) == 1


@pytest.mark.asyncio
async def test_capture_rejected_for_card_payments(service, uow_factory, gateway):
    gateway.result_status = "pending"
    order = await place_order(uow_factory)
    init = await start_payment(service, order.order_number, "visa")
    await service.process_payment(init.payment.payment_id, GOOD_CARD)

    with pytest.raises(CaptureNotSupportedException):
        await service.capture_payment(init.payment.payment_id, "ref_1")


@pytest.mark.asyncio
async def test_list_payments_filters(service, uow_factory):
    for method in ("visa", "vodafone_cash"):
        order = await place_order(uow_factory)
        await start_payment(service, order.order_number, method)

    items, total = await service.list_payments(PaginationParams(), method="vodafone_cash")
    assert total == 1
    assert items[0].method == "vodafone_cash"
    _, initialized = await service.list_payments(PaginationParams(), status=PaymentStatus.INITIALIZED)
    assert initialized == 2
