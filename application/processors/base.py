"""
Processor variants share one capability set:
validate method-specific input, perform the method's action, report a
normalized outcome. Adding a payment method type means adding one subclass.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Optional

from application.dtos.payments import (
    GatewayCapture,
    GatewayResult,
    GatewayStatus,
    GatewaySubmission,
    NextStepDTO,
)
from application.ports.payment_gateway import PaymentGateway
from core.logging_config import get_logger
from domain.payment.entity import Payment
from domain.payment.exceptions import CaptureNotSupportedException, PaymentProcessorError
from domain.payment.method import PaymentMethod, PaymentMethodType


logger = get_logger(__name__)


@dataclass(frozen=True)
class ProcessorOutcome:
    """Normalized processor result"""

    status: GatewayStatus
    provider_ref: Optional[str] = None
    redirect_url: Optional[str] = None
    message: Optional[str] = None
    # Settled later outside the processor (cash collection), so no expiry applies
    deferred: bool = False
    # Order moves pending -> confirmed even though the money is not in yet
    confirms_order: bool = False

    @classmethod
    def failure(cls, message: str, provider_ref: Optional[str] = None) -> "ProcessorOutcome":
        return cls(status="failure", message=message, provider_ref=provider_ref)

    @classmethod
    def from_gateway(cls, result: GatewayResult) -> "ProcessorOutcome":
        return cls(
            status=result.status,
            provider_ref=result.provider_ref,
            redirect_url=result.redirect_url,
            message=result.message,
        )


class PaymentProcessor(ABC):
    """One implementation per PaymentMethodType"""

    method_type: ClassVar[PaymentMethodType]
    uses_gateway: ClassVar[bool] = True
    supports_capture: ClassVar[bool] = False

    @abstractmethod
    def next_step(self, payment: Payment, method: PaymentMethod) -> NextStepDTO:
        """Instruction returned with a freshly initialized payment"""

    @abstractmethod
    def validate(self, details: dict[str, Any]) -> dict[str, Any]:
        """
        Check method-specific input.

        Raises PaymentDetailsInvalidException; returns the subset that is safe
        to store on the payment (never full card data).
        """

    @abstractmethod
    async def execute(
        self,
        payment: Payment,
        details: dict[str, Any],
        gateway: Optional[PaymentGateway],
    ) -> ProcessorOutcome:
        """Perform the method's action; may raise PaymentProcessorError"""

    async def capture_remote(
        self,
        payment: Payment,
        provider_ref: str,
        gateway: Optional[PaymentGateway],
    ) -> ProcessorOutcome:
        raise CaptureNotSupportedException(payment.payment_id, self.method_type.value)

    async def process(
        self,
        payment: Payment,
        details: dict[str, Any],
        gateway: Optional[PaymentGateway],
    ) -> ProcessorOutcome:
        """execute() with processor errors turned into a failure outcome"""
        try:
            return await self.execute(payment, details, gateway)
        except PaymentProcessorError as exc:
            logger.warning(
                "processor_call_failed",
                payment_id=payment.payment_id,
                method=payment.method_name,
                provider=exc.provider,
                error_type=exc.error_type,
                error=exc.message,
            )
            return ProcessorOutcome.failure(exc.message)

    async def capture(
        self,
        payment: Payment,
        provider_ref: str,
        gateway: Optional[PaymentGateway],
    ) -> ProcessorOutcome:
        if not self.supports_capture:
            raise CaptureNotSupportedException(payment.payment_id, self.method_type.value)
        try:
            return await self.capture_remote(payment, provider_ref, gateway)
        except PaymentProcessorError as exc:
            logger.warning(
                "processor_capture_failed",
                payment_id=payment.payment_id,
                provider=exc.provider,
                error_type=exc.error_type,
                error=exc.message,
            )
            return ProcessorOutcome.failure(exc.message, provider_ref=provider_ref)

    # Helpers

    @staticmethod
    def submission(payment: Payment, fields: dict[str, Any], **extra: Any) -> GatewaySubmission:
        return GatewaySubmission(
            payment_id=payment.payment_id,
            order_number=payment.order_number,
            amount=payment.amount,
            currency=payment.currency,
            method=payment.method_name,
            fields=fields,
            idempotency_key=f"submit:{payment.payment_id}",
            **extra,
        )

    @staticmethod
    def capture_request(payment: Payment, provider_ref: str) -> GatewayCapture:
        return GatewayCapture(
            payment_id=payment.payment_id,
            provider_ref=provider_ref,
            amount=payment.amount,
            currency=payment.currency,
            idempotency_key=f"capture:{payment.payment_id}",
        )

    @staticmethod
    def require_gateway(payment: Payment, gateway: Optional[PaymentGateway]) -> PaymentGateway:
        if gateway is None:
            raise PaymentProcessorError(
                f"No gateway configured for provider {payment.provider}",
                provider=payment.provider,
            )
        return gateway
