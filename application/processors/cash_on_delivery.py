"""Cash on delivery - nothing is captured up front."""
from __future__ import annotations

from typing import Any, Optional

from application.dtos.payments import NextStepDTO
from application.ports.payment_gateway import PaymentGateway
from domain.payment.entity import Payment
from domain.payment.method import PaymentMethod, PaymentMethodType
from .base import PaymentProcessor, ProcessorOutcome


class CashOnDeliveryProcessor(PaymentProcessor):
    method_type = PaymentMethodType.CASH
    uses_gateway = False

    def next_step(self, payment: Payment, method: PaymentMethod) -> NextStepDTO:
        return NextStepDTO(
            type="confirmation",
            message=f"Confirm your order; {payment.amount} {payment.currency} will be collected in cash on delivery",
            data={"amount_due": str(payment.amount), "currency": payment.currency},
        )

    def validate(self, details: dict[str, Any]) -> dict[str, Any]:
        return {}

    async def execute(
        self,
        payment: Payment,
        details: dict[str, Any],
        gateway: Optional[PaymentGateway],
    ) -> ProcessorOutcome:
        return ProcessorOutcome(
            status="pending",
            message="Payment will be collected on delivery",
            deferred=True,
            confirms_order=True,
        )
