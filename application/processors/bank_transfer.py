"""Bank transfer - stays pending until an administrator verifies the transfer."""
from __future__ import annotations

from typing import Any, Optional

from application.dtos.payments import NextStepDTO
from application.ports.payment_gateway import PaymentGateway
from core.settings import BankAccountSettings
from domain.payment.entity import Payment
from domain.payment.exceptions import PaymentDetailsInvalidException
from domain.payment.method import PaymentMethod, PaymentMethodType
from .base import PaymentProcessor, ProcessorOutcome


class BankTransferProcessor(PaymentProcessor):
    method_type = PaymentMethodType.BANK_TRANSFER
    uses_gateway = False

    def __init__(self, account: BankAccountSettings) -> None:
        self._account = account

    def next_step(self, payment: Payment, method: PaymentMethod) -> NextStepDTO:
        return NextStepDTO(
            type="bank_details",
            message="Transfer the amount to the account below and submit the transfer reference",
            fields=["bank_reference"],
            data={
                **self._account.model_dump(exclude_none=True),
                "amount": str(payment.amount),
                "currency": payment.currency,
                "transfer_note": payment.payment_id,
            },
        )

    def validate(self, details: dict[str, Any]) -> dict[str, Any]:
        reference = str(details.get("bank_reference") or "").strip()
        if len(reference) < 4:
            raise PaymentDetailsInvalidException({"bank_reference": "Bank transfer reference is required"})
        return {"bank_reference": reference}

    async def execute(
        self,
        payment: Payment,
        details: dict[str, Any],
        gateway: Optional[PaymentGateway],
    ) -> ProcessorOutcome:
        return ProcessorOutcome(
            status="pending",
            message="Transfer submitted, waiting for verification",
            confirms_order=True,
        )
