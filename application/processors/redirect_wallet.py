"""Redirect wallet (PayPal style) - approval URL first, capture after redirect-back."""
from __future__ import annotations

from typing import Any, Optional

from application.dtos.payments import NextStepDTO
from application.ports.payment_gateway import PaymentGateway
from domain.payment.entity import Payment
from domain.payment.method import PaymentMethod, PaymentMethodType
from .base import PaymentProcessor, ProcessorOutcome


class RedirectWalletProcessor(PaymentProcessor):
    method_type = PaymentMethodType.DIGITAL_WALLET
    supports_capture = True

    def __init__(self, frontend_url: str) -> None:
        self._frontend_url = frontend_url.rstrip("/")

    def _return_urls(self, payment: Payment) -> tuple[str, str]:
        base = f"{self._frontend_url}/payment"
        return (
            f"{base}/success?payment_id={payment.payment_id}",
            f"{base}/cancel?payment_id={payment.payment_id}",
        )

    def next_step(self, payment: Payment, method: PaymentMethod) -> NextStepDTO:
        return NextStepDTO(
            type="redirect",
            message=f"You will be redirected to {method.display_name.en} to approve the payment",
        )

    def validate(self, details: dict[str, Any]) -> dict[str, Any]:
        return {}

    async def execute(
        self,
        payment: Payment,
        details: dict[str, Any],
        gateway: Optional[PaymentGateway],
    ) -> ProcessorOutcome:
        gateway = self.require_gateway(payment, gateway)
        return_url, cancel_url = self._return_urls(payment)
        result = await gateway.submit(
            self.submission(payment, {}, return_url=return_url, cancel_url=cancel_url)
        )
        return ProcessorOutcome.from_gateway(result)

    async def capture_remote(
        self,
        payment: Payment,
        provider_ref: str,
        gateway: Optional[PaymentGateway],
    ) -> ProcessorOutcome:
        gateway = self.require_gateway(payment, gateway)
        result = await gateway.capture(self.capture_request(payment, provider_ref))
        return ProcessorOutcome.from_gateway(result)
