"""
Default payment method configuration.

Applied at startup when SEED_PAYMENT_METHODS is enabled; existing rows with
the same name are updated in place.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Callable

from core.logging_config import get_logger
from domain.catalog.entity import LocalizedName
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.payment.method import FeeSchedule, PaymentMethod, PaymentMethodType

logger = get_logger(__name__)


def _card(name: str, en: str, ar: str, sort_order: int) -> PaymentMethod:
    return PaymentMethod(
        name=name,
        display_name=LocalizedName(en=en, ar=ar),
        type=PaymentMethodType.CARD,
        provider="paymob",
        fee_schedules={
            "EGP": FeeSchedule(Decimal("5"), Decimal("2.5")),
            "USD": FeeSchedule(Decimal("5"), Decimal("2.5")),
        },
        min_amount=Decimal("10"),
        max_amount=Decimal("50000"),
        timeout_minutes=30,
        sort_order=sort_order,
        description=LocalizedName(en=f"Pay securely with your {en} card", ar=f"ادفع بأمان باستخدام بطاقة {ar}"),
        instructions=LocalizedName(
            en=f"Enter your {en} card details to complete the payment",
            ar=f"أدخل بيانات بطاقة {ar} لإتمام عملية الدفع",
        ),
    )


def default_payment_methods() -> list[PaymentMethod]:
    return [
        _card("visa", "Visa", "فيزا", 1),
        _card("mastercard", "Mastercard", "ماستركارد", 2),
        PaymentMethod(
            name="vodafone_cash",
            display_name=LocalizedName(en="Vodafone Cash", ar="فودافون كاش"),
            type=PaymentMethodType.MOBILE_WALLET,
            provider="fawry",
            fee_schedules={"EGP": FeeSchedule(Decimal("2"), Decimal("1.5"))},
            min_amount=Decimal("5"),
            max_amount=Decimal("30000"),
            timeout_minutes=15,
            supports_partial_refunds=False,
            sort_order=3,
            description=LocalizedName(en="Pay easily with Vodafone Cash wallet", ar="ادفع بسهولة باستخدام محفظة فودافون كاش"),
            instructions=LocalizedName(
                en="Enter your Vodafone Cash number to complete the payment",
                ar="أدخل رقم فودافون كاش الخاص بك لإتمام عملية الدفع",
            ),
        ),
        PaymentMethod(
            name="cash_on_delivery",
            display_name=LocalizedName(en="Cash on Delivery", ar="الدفع عند الاستلام"),
            type=PaymentMethodType.CASH,
            provider="internal",
            fee_schedules={"EGP": FeeSchedule(Decimal("15"), Decimal("0"))},
            min_amount=Decimal("50"),
            max_amount=Decimal("10000"),
            timeout_minutes=1440,
            sort_order=4,
            description=LocalizedName(en="Pay cash when you receive your order", ar="ادفع نقداً عند استلام طلبك"),
            instructions=LocalizedName(
                en="Payment will be collected in cash upon delivery",
                ar="سيتم تحصيل المبلغ نقداً عند تسليم الطلب",
            ),
        ),
        PaymentMethod(
            name="bank_transfer",
            display_name=LocalizedName(en="Bank Transfer", ar="تحويل بنكي"),
            type=PaymentMethodType.BANK_TRANSFER,
            provider="internal",
            fee_schedules={"EGP": FeeSchedule(Decimal("0"), Decimal("0"))},
            min_amount=Decimal("100"),
            max_amount=Decimal("100000"),
            timeout_minutes=4320,
            sort_order=5,
            description=LocalizedName(en="Transfer the amount to our bank account", ar="حول المبلغ إلى حسابنا البنكي"),
            instructions=LocalizedName(
                en="Transfer to the specified bank account and send the transfer receipt",
                ar="قم بالتحويل إلى الحساب البنكي المحدد وأرسل إيصال التحويل",
            ),
        ),
        PaymentMethod(
            name="paypal",
            display_name=LocalizedName(en="PayPal", ar="باي بال"),
            type=PaymentMethodType.DIGITAL_WALLET,
            provider="paypal",
            fee_schedules={
                "USD": FeeSchedule(Decimal("0"), Decimal("3.4")),
                "EUR": FeeSchedule(Decimal("0"), Decimal("3.4")),
            },
            min_amount=Decimal("1"),
            max_amount=Decimal("10000"),
            timeout_minutes=60,
            sort_order=6,
            description=LocalizedName(en="Pay securely with your PayPal account", ar="ادفع بأمان باستخدام حساب PayPal الخاص بك"),
            instructions=LocalizedName(
                en="You will be redirected to PayPal to complete the payment",
                ar="سيتم توجيهك إلى PayPal لإتمام عملية الدفع",
            ),
        ),
    ]


async def seed_payment_methods(uow_factory: Callable[..., AbstractUnitOfWork]) -> int:
    methods = default_payment_methods()
    async with uow_factory() as uow:
        for method in methods:
            await uow.payment_method_repository.save(method)
    logger.info("payment_methods_seeded", count=len(methods))
    return len(methods)
