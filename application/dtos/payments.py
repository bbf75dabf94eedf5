"""
Payment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Literal, Optional

from pydantic import ConfigDict, Field, field_validator

from application.dto import DTOBase, Money
from domain.order.entity import OrderPaymentStatus
from domain.payment.entity import Payment, PaymentStatus, Refund, RefundStatus
from domain.payment.fees import FeeQuote
from domain.payment.method import PaymentMethod, PaymentMethodType

GatewayStatus = Literal["success", "pending", "failure"]


# ---- gateway contract -----------------------------------------------------


class GatewaySubmission(DTOBase):
    """What a processor hands to an external gateway; amount already includes fees"""
    payment_id: str
    order_number: str
    amount: Decimal
    currency: str
    method: str
    fields: dict[str, Any] = Field(default_factory=dict)
    return_url: Optional[str] = None
    cancel_url: Optional[str] = None
    idempotency_key: Optional[str] = None


class GatewayCapture(DTOBase):
    payment_id: str
    provider_ref: str
    amount: Decimal
    currency: str
    idempotency_key: Optional[str] = None


class GatewayResult(DTOBase):
    status: GatewayStatus
    provider: str
    provider_ref: Optional[str] = None
    redirect_url: Optional[str] = None
    message: Optional[str] = None
    raw: Optional[dict[str, Any]] = None


class WebhookEvent(DTOBase):
    id: str
    type: str
    provider: str
    provider_ref: str
    status: GatewayStatus
    data: dict[str, Any] = Field(default_factory=dict)
    # raw fields for traceability (optional)
    raw_headers: Optional[dict[str, Any]] = None
    raw_body: Optional[bytes] = None

    model_config = ConfigDict(arbitrary_types_allowed=True)


# ---- requests -------------------------------------------------------------


class FeeQuoteRequest(DTOBase):
    method: str
    amount: Decimal = Field(..., gt=0)
    currency: str = Field("EGP", min_length=3, max_length=3)

    @field_validator("currency")
    @classmethod
    def _upper_currency(cls, v: str) -> str:
        return (v or "").upper()


class InitializePaymentRequest(DTOBase):
    order_number: str
    method: str
    customer_data: dict[str, Any] = Field(default_factory=dict)


class ProcessPaymentRequest(DTOBase):
    """Method-specific fields: card details, phone number, bank reference, or nothing"""
    details: dict[str, Any] = Field(default_factory=dict)


class CapturePaymentRequest(DTOBase):
    provider_ref: Optional[str] = None


class RefundPaymentRequest(DTOBase):
    amount: Decimal = Field(..., gt=0)
    reason: str = Field(..., min_length=1, max_length=500)
    actor: str = Field(..., min_length=1)


class VerifyBankTransferRequest(DTOBase):
    verified: bool
    notes: Optional[str] = Field(None, max_length=1000)
    actor: str = Field(..., min_length=1)


class ConfirmCashCollectedRequest(DTOBase):
    actor: str = Field(..., min_length=1)


# ---- responses ------------------------------------------------------------


class FeeQuoteDTO(DTOBase):
    method: str
    currency: str
    amount: Money
    fixed_fee: Money
    percentage_fee: Money
    fee: Money
    total: Money

    @classmethod
    def from_quote(cls, quote: FeeQuote) -> "FeeQuoteDTO":
        return cls(
            method=quote.method,
            currency=quote.currency,
            amount=quote.amount,
            fixed_fee=quote.fixed_fee,
            percentage_fee=quote.percentage_fee,
            fee=quote.fee,
            total=quote.total,
        )


class FeeScheduleDTO(DTOBase):
    currency: str
    fixed: Decimal
    percentage: Decimal


class PaymentMethodDTO(DTOBase):
    name: str
    display_name: dict[str, str]
    type: PaymentMethodType
    provider: str
    supported_currencies: list[str]
    fees: list[FeeScheduleDTO]
    min_amount: Money
    max_amount: Money
    timeout_minutes: int
    supports_refunds: bool
    supports_partial_refunds: bool
    sort_order: int
    description: Optional[dict[str, str]] = None
    instructions: Optional[dict[str, str]] = None

    @classmethod
    def from_entity(cls, method: PaymentMethod) -> "PaymentMethodDTO":
        def localized(value):
            return {"en": value.en, "ar": value.ar} if value else None

        return cls(
            name=method.name,
            display_name=localized(method.display_name),
            type=method.type,
            provider=method.provider,
            supported_currencies=method.supported_currencies,
            fees=[
                FeeScheduleDTO(currency=c, fixed=s.fixed, percentage=s.percentage)
                for c, s in sorted(method.fee_schedules.items())
            ],
            min_amount=method.min_amount,
            max_amount=method.max_amount,
            timeout_minutes=method.timeout_minutes,
            supports_refunds=method.supports_refunds,
            supports_partial_refunds=method.supports_partial_refunds,
            sort_order=method.sort_order,
            description=localized(method.description),
            instructions=localized(method.instructions),
        )


class PaymentDTO(DTOBase):
    payment_id: str
    order_number: str
    method: str
    method_type: PaymentMethodType
    provider: str
    status: PaymentStatus
    amount: Money
    subtotal: Money
    fees: Money
    currency: str
    refunded_amount: Money
    refund_count: int
    provider_ref: Optional[str] = None
    is_current: bool = True
    expires_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failure_reason: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, payment: Payment, now: Optional[datetime] = None) -> "PaymentDTO":
        """status is the effective status, so an overdue open payment reads as expired"""
        return cls(
            payment_id=payment.payment_id,
            order_number=payment.order_number,
            method=payment.method_name,
            method_type=payment.method_type,
            provider=payment.provider,
            status=payment.effective_status(now),
            amount=payment.amount,
            subtotal=payment.subtotal,
            fees=payment.fees,
            currency=payment.currency,
            refunded_amount=payment.refunded_amount,
            refund_count=payment.refund_count,
            provider_ref=payment.provider_ref,
            is_current=payment.is_current,
            expires_at=payment.expires_at,
            completed_at=payment.completed_at,
            failure_reason=payment.failure_reason,
            created_at=payment.created_at,
            updated_at=payment.updated_at,
        )


class NextStepDTO(DTOBase):
    """What the client has to do next for the chosen method"""
    type: str
    message: str
    fields: list[str] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)


class InitializePaymentResult(DTOBase):
    payment: PaymentDTO
    quote: FeeQuoteDTO
    next_step: NextStepDTO


class PaymentOutcomeDTO(DTOBase):
    """Normalized result of any processor call"""
    outcome: GatewayStatus
    payment: PaymentDTO
    order_payment_status: OrderPaymentStatus
    redirect_url: Optional[str] = None
    message: Optional[str] = None
    already_processed: bool = False


class RefundDTO(DTOBase):
    id: Optional[int] = None
    amount: Money
    currency: str
    reason: str
    actor: str
    status: RefundStatus
    created_at: Optional[datetime] = None

    @classmethod
    def from_entity(cls, refund: Refund) -> "RefundDTO":
        return cls(
            id=refund.id,
            amount=refund.amount,
            currency=refund.currency,
            reason=refund.reason,
            actor=refund.actor,
            status=refund.status,
            created_at=refund.created_at,
        )


class RefundResultDTO(DTOBase):
    payment: PaymentDTO
    refund: RefundDTO
    order_payment_status: OrderPaymentStatus


class PaymentDetailDTO(DTOBase):
    payment: PaymentDTO
    refunds: list[RefundDTO] = Field(default_factory=list)


class WebhookResultDTO(DTOBase):
    event_id: str
    payment_id: Optional[str] = None
    status: Optional[PaymentStatus] = None
    applied: bool = False
    duplicate: bool = False
