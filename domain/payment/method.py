"""
Payment method configuration - slowly-changing reference data read by the
fee calculator and the dispatcher
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional

from domain.catalog.entity import LocalizedName
from domain.common.exceptions import DomainValidationException
from domain.order.entity import OrderPaymentMethod
from .exceptions import AmountOutOfRangeException, UnsupportedCurrencyException


class PaymentMethodType(str, Enum):
    """Processing flow; each type has exactly one processor"""
    CARD = "card"
    MOBILE_WALLET = "mobile_wallet"
    CASH = "cash"
    BANK_TRANSFER = "bank_transfer"
    DIGITAL_WALLET = "digital_wallet"


# How a method type is recorded on the order
ORDER_METHOD_BY_TYPE: dict[PaymentMethodType, OrderPaymentMethod] = {
    PaymentMethodType.CARD: OrderPaymentMethod.CARD,
    PaymentMethodType.MOBILE_WALLET: OrderPaymentMethod.MOBILE_WALLET,
    PaymentMethodType.CASH: OrderPaymentMethod.CASH_ON_DELIVERY,
    PaymentMethodType.BANK_TRANSFER: OrderPaymentMethod.BANK_TRANSFER,
    PaymentMethodType.DIGITAL_WALLET: OrderPaymentMethod.PAYPAL,
}


@dataclass(frozen=True)
class FeeSchedule:
    """Fixed fee plus a percentage of the amount, for one currency"""

    fixed: Decimal = Decimal("0")
    percentage: Decimal = Decimal("0")

    def __post_init__(self):
        if self.fixed < 0:
            raise DomainValidationException(f"Fixed fee cannot be negative: {self.fixed}", field="fixed")
        if not (Decimal("0") <= self.percentage <= Decimal("100")):
            raise DomainValidationException(
                f"Percentage fee must be between 0 and 100: {self.percentage}",
                field="percentage",
            )


@dataclass
class PaymentMethod:
    """
    Configured payment channel.

    Business rules:
    1. name is unique and lower-case
    2. a currency is supported iff a fee schedule exists for it
    3. min_amount <= max_amount
    """

    name: str
    display_name: LocalizedName
    type: PaymentMethodType
    provider: str
    fee_schedules: dict[str, FeeSchedule] = field(default_factory=dict)
    min_amount: Decimal = Decimal("0")
    max_amount: Decimal = Decimal("100000")
    timeout_minutes: int = 30
    supports_refunds: bool = True
    supports_partial_refunds: bool = True
    active: bool = True
    sort_order: int = 0
    description: Optional[LocalizedName] = None
    instructions: Optional[LocalizedName] = None
    id: Optional[int] = None

    def __post_init__(self):
        self.name = self.name.strip().lower()
        self.type = PaymentMethodType(self.type)
        self.fee_schedules = {c.upper(): s for c, s in (self.fee_schedules or {}).items()}
        if self.min_amount < 0:
            raise DomainValidationException("Minimum amount cannot be negative", field="min_amount")
        if self.min_amount > self.max_amount:
            raise DomainValidationException(
                f"min_amount {self.min_amount} exceeds max_amount {self.max_amount}",
                field="min_amount",
            )
        if self.timeout_minutes < 1:
            raise DomainValidationException("timeout_minutes must be positive", field="timeout_minutes")

    @property
    def supported_currencies(self) -> list[str]:
        return sorted(self.fee_schedules)

    @property
    def order_payment_method(self) -> OrderPaymentMethod:
        return ORDER_METHOD_BY_TYPE[self.type]

    def supports_currency(self, currency: str) -> bool:
        return currency.upper() in self.fee_schedules

    def fee_schedule_for(self, currency: str) -> FeeSchedule:
        schedule = self.fee_schedules.get(currency.upper())
        if schedule is None:
            raise UnsupportedCurrencyException(self.name, currency.upper())
        return schedule

    def validate_amount(self, amount: Decimal) -> None:
        if amount < self.min_amount or amount > self.max_amount:
            raise AmountOutOfRangeException(amount, self.min_amount, self.max_amount, self.name)
