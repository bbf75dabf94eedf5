"""Mobile wallet (cash push) processor - phone driven, usually settles by webhook."""
from __future__ import annotations

import re
from typing import Any, Optional

from application.dtos.payments import NextStepDTO
from application.ports.payment_gateway import PaymentGateway
from domain.payment.entity import Payment
from domain.payment.exceptions import PaymentDetailsInvalidException
from domain.payment.method import PaymentMethod, PaymentMethodType
from .base import PaymentProcessor, ProcessorOutcome

# Egyptian mobile numbers
WALLET_PHONE_RE = re.compile(r"^01[0-9]{9}$")


def mask_phone(phone: str) -> str:
    return f"{phone[:3]}****{phone[-4:]}"


class MobileWalletProcessor(PaymentProcessor):
    method_type = PaymentMethodType.MOBILE_WALLET

    def next_step(self, payment: Payment, method: PaymentMethod) -> NextStepDTO:
        return NextStepDTO(
            type="mobile_wallet",
            message=f"Enter your {method.display_name.en} number to receive a payment request",
            fields=["phone_number"],
        )

    def validate(self, details: dict[str, Any]) -> dict[str, Any]:
        phone = re.sub(r"[\s-]", "", str(details.get("phone_number") or ""))
        if not WALLET_PHONE_RE.match(phone):
            raise PaymentDetailsInvalidException({"phone_number": "Invalid mobile wallet number"})
        return {"wallet_phone": mask_phone(phone)}

    async def execute(
        self,
        payment: Payment,
        details: dict[str, Any],
        gateway: Optional[PaymentGateway],
    ) -> ProcessorOutcome:
        gateway = self.require_gateway(payment, gateway)
        phone = re.sub(r"[\s-]", "", str(details["phone_number"]))
        result = await gateway.submit(self.submission(payment, {"phone_number": phone}))
        return ProcessorOutcome.from_gateway(result)
