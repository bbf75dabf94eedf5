from decimal import Decimal

import pytest

from application.services.payment_service import PaymentApplicationService
from domain.catalog.entity import LocalizedName
from domain.common.exceptions import DomainValidationException
from domain.payment.exceptions import AmountOutOfRangeException, UnsupportedCurrencyException
from domain.payment.fees import calculate_fees
from domain.payment.method import FeeSchedule, PaymentMethod, PaymentMethodType
from infrastructure.seed import default_payment_methods
from fakes import resolver_for
from helpers import place_order, start_payment


def methods():
    return {m.name: m for m in default_payment_methods()}


def test_fixed_plus_percentage():
    quote = calculate_fees(methods()["visa"], Decimal("200.00"), "egp")

    assert quote.currency == "EGP"
    assert quote.fixed_fee == Decimal("5.00")
    assert quote.percentage_fee == Decimal("5.00")
    assert quote.fee == Decimal("10.00")
    assert quote.total == Decimal("210.00")


def test_percentage_rounds_half_up_to_cents():
    quote = calculate_fees(methods()["visa"], Decimal("333.33"), "EGP")
    # 2.5% of 333.33 = 8.33325
    assert quote.percentage_fee == Decimal("8.33")
    assert quote.total == Decimal("346.66")

    quote = calculate_fees(methods()["vodafone_cash"], Decimal("100.30"), "EGP")
    # 1.5% of 100.30 = 1.5045
    assert quote.percentage_fee == Decimal("1.50")
    assert quote.fee == Decimal("3.50")


def test_fixed_only_and_free_methods():
    assert calculate_fees(methods()["cash_on_delivery"], Decimal("100"), "EGP").fee == Decimal("15.00")
    assert calculate_fees(methods()["bank_transfer"], Decimal("1000"), "EGP").fee == Decimal("0.00")


def test_currency_without_schedule_is_rejected():
    with pytest.raises(UnsupportedCurrencyException):
        calculate_fees(methods()["vodafone_cash"], Decimal("100"), "USD")
    with pytest.raises(UnsupportedCurrencyException):
        calculate_fees(methods()["paypal"], Decimal("100"), "EGP")


def test_supported_currencies_come_from_schedules():
    assert methods()["visa"].supported_currencies == ["EGP", "USD"]
    assert methods()["paypal"].supports_currency("eur")


def test_amount_range():
    cod = methods()["cash_on_delivery"]
    cod.validate_amount(Decimal("50"))
    cod.validate_amount(Decimal("10000"))
    with pytest.raises(AmountOutOfRangeException):
        cod.validate_amount(Decimal("49.99"))
    with pytest.raises(AmountOutOfRangeException):
        cod.validate_amount(Decimal("10000.01"))


def test_method_configuration_is_checked():
    with pytest.raises(DomainValidationException):
        FeeSchedule(Decimal("-1"), Decimal("0"))
    with pytest.raises(DomainValidationException):
        FeeSchedule(Decimal("0"), Decimal("101"))
    with pytest.raises(DomainValidationException):
        PaymentMethod(
            name="Odd",
            display_name=LocalizedName("Odd", "Odd"),
            type=PaymentMethodType.CARD,
            provider="paymob",
            min_amount=Decimal("10"),
            max_amount=Decimal("5"),
        )


def test_method_names_are_normalized():
    method = PaymentMethod(
        name="  Meeza ",
        display_name=LocalizedName("Meeza", "ميزة"),
        type="card",
        provider="paymob",
        fee_schedules={"egp": FeeSchedule()},
    )
    assert method.name == "meeza"
    assert method.type is PaymentMethodType.CARD
    assert method.supports_currency("EGP")


@pytest.mark.asyncio
async def test_quoting_fees_writes_nothing(store, uow_factory, gateway):
    service = PaymentApplicationService(uow_factory, resolver_for(gateway))
    order = await place_order(uow_factory)
    await start_payment(service, order.order_number, "visa")
    before = store.snapshot()
    commits = store.commits

    first = await service.quote_fees("visa", Decimal("200.00"), "EGP")
    second = await service.quote_fees("visa", Decimal("200.00"), "EGP")

    assert first == second
    assert first.total == Decimal("210.00")
    assert store.snapshot() == before
    assert store.commits == commits
    assert gateway.submissions == []
