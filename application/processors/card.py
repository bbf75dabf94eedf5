"""Card processor - validates card input and authorizes through the gateway."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from application.dtos.payments import NextStepDTO
from application.ports.payment_gateway import PaymentGateway
from domain.payment.entity import Payment
from domain.payment.exceptions import PaymentDetailsInvalidException
from domain.payment.method import PaymentMethod, PaymentMethodType
from .base import PaymentProcessor, ProcessorOutcome

_EXPIRY_RE = re.compile(r"^(0[1-9]|1[0-2])/(\d{2})$")
_CVV_RE = re.compile(r"^\d{3,4}$")


def luhn_valid(number: str) -> bool:
    total = 0
    for index, char in enumerate(reversed(number)):
        digit = int(char)
        if index % 2 == 1:
            digit *= 2
            if digit > 9:
                digit -= 9
        total += digit
    return total % 10 == 0


def detect_brand(number: str) -> str:
    if number.startswith("4"):
        return "visa"
    if re.match(r"^5[1-5]", number):
        return "mastercard"
    if re.match(r"^3[47]", number):
        return "amex"
    if number.startswith("6"):
        return "discover"
    return "unknown"


class CardProcessor(PaymentProcessor):
    method_type = PaymentMethodType.CARD

    def __init__(self, clock: Optional[Callable[[], datetime]] = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def next_step(self, payment: Payment, method: PaymentMethod) -> NextStepDTO:
        return NextStepDTO(
            type="card_form",
            message="Enter your card details to complete the payment",
            fields=["card_number", "expiry_date", "cvv", "cardholder_name"],
        )

    def validate(self, details: dict[str, Any]) -> dict[str, Any]:
        errors: dict[str, str] = {}
        number = re.sub(r"[\s-]", "", str(details.get("card_number") or ""))
        if not re.fullmatch(r"\d{13,19}", number) or not luhn_valid(number):
            errors["card_number"] = "Invalid card number"

        expiry = str(details.get("expiry_date") or "").strip()
        match = _EXPIRY_RE.match(expiry)
        if not match:
            errors["expiry_date"] = "Expiry date must be MM/YY"
        else:
            month, year = int(match.group(1)), 2000 + int(match.group(2))
            now = self._clock()
            if (year, month) < (now.year, now.month):
                errors["expiry_date"] = "Card has expired"

        if not _CVV_RE.match(str(details.get("cvv") or "")):
            errors["cvv"] = "CVV must be 3 or 4 digits"

        holder = str(details.get("cardholder_name") or "").strip()
        if len(holder) < 2:
            errors["cardholder_name"] = "Cardholder name is required"

        if errors:
            raise PaymentDetailsInvalidException(errors)
        return {"card_last4": number[-4:], "card_brand": detect_brand(number)}

    async def execute(
        self,
        payment: Payment,
        details: dict[str, Any],
        gateway: Optional[PaymentGateway],
    ) -> ProcessorOutcome:
        gateway = self.require_gateway(payment, gateway)
        fields = {
            "card_number": re.sub(r"[\s-]", "", str(details["card_number"])),
            "expiry_date": str(details["expiry_date"]).strip(),
            "cvv": str(details["cvv"]),
            "cardholder_name": str(details["cardholder_name"]).strip(),
        }
        result = await gateway.submit(self.submission(payment, fields))
        return ProcessorOutcome.from_gateway(result)
