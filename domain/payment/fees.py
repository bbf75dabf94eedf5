"""
Fee calculator.

Pure functions over PaymentMethod configuration; quoting never touches a
payment or order record.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP

from .method import PaymentMethod

CENT = Decimal("0.01")


def quantize_money(value: Decimal) -> Decimal:
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class FeeQuote:
    method: str
    currency: str
    amount: Decimal
    fixed_fee: Decimal
    percentage_fee: Decimal

    @property
    def fee(self) -> Decimal:
        return quantize_money(self.fixed_fee + self.percentage_fee)

    @property
    def total(self) -> Decimal:
        """Amount the customer pays, fees included"""
        return quantize_money(self.amount + self.fee)


def calculate_fees(method: PaymentMethod, amount: Decimal, currency: str) -> FeeQuote:
    """
    Quote fixed + percentage fees for an amount.

    Raises UnsupportedCurrencyException when the method has no schedule for
    the currency; there is no zero-fee fallback.
    """
    schedule = method.fee_schedule_for(currency)
    amount = Decimal(amount)
    return FeeQuote(
        method=method.name,
        currency=currency.upper(),
        amount=amount,
        fixed_fee=quantize_money(schedule.fixed),
        percentage_fee=quantize_money(amount * schedule.percentage / Decimal("100")),
    )
