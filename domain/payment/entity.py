"""
Payment domain entity - payment aggregate root with refund sub-records
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from domain.common.exceptions import DomainValidationException
from .exceptions import (
    InvalidRefundAmountException,
    PaymentInProgressException,
    PaymentNotPendingException,
    PaymentNotRefundableException,
    RefundExceedsPaymentException,
)
from .method import PaymentMethodType


class PaymentStatus(str, Enum):
    """Method-agnostic payment status"""
    INITIALIZED = "initialized"        # created, nothing submitted yet
    PENDING = "pending"                # submitted, outcome not yet known
    COMPLETED = "completed"
    FAILED = "failed"
    EXPIRED = "expired"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


class RefundStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


OPEN_STATUSES = frozenset({PaymentStatus.INITIALIZED, PaymentStatus.PENDING})
SETTLED_STATUSES = frozenset({
    PaymentStatus.COMPLETED,
    PaymentStatus.PARTIALLY_REFUNDED,
    PaymentStatus.REFUNDED,
})
REFUNDABLE_STATUSES = frozenset({PaymentStatus.COMPLETED, PaymentStatus.PARTIALLY_REFUNDED})
MANUAL_METHOD_TYPES = frozenset({PaymentMethodType.CASH, PaymentMethodType.BANK_TRANSFER})


def _ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Payment:
    """
    Payment aggregate root - one collection attempt for an order.

    Business rules:
    1. payment_id is unique and distinct from the order number
    2. amount > 0 and already includes fees (amount = subtotal + fees)
    3. status moves only through the mark_* / apply_refund methods
    4. refunded_amount never exceeds amount
    5. an open payment past expires_at reads as expired
    """

    id: Optional[int]
    payment_id: str
    order_id: int
    order_number: str
    method_name: str
    method_type: PaymentMethodType
    provider: str
    amount: Decimal
    subtotal: Decimal
    fees: Decimal
    currency: str
    status: PaymentStatus = PaymentStatus.INITIALIZED
    provider_ref: Optional[str] = None
    is_current: bool = True

    refunded_amount: Decimal = field(default_factory=lambda: Decimal("0"))
    refund_count: int = 0
    version: int = 1

    expires_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    failure_reason: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.amount <= 0:
            raise DomainValidationException(f"Payment amount must be greater than 0: {self.amount}", field="amount")
        if not self.currency or len(self.currency) != 3 or not self.currency.isalpha():
            raise DomainValidationException(f"Invalid currency code: {self.currency}", field="currency")
        self.currency = self.currency.upper()
        self.method_type = PaymentMethodType(self.method_type)
        self.status = PaymentStatus(self.status)
        self.expires_at = _ensure_utc(self.expires_at)
        self.completed_at = _ensure_utc(self.completed_at)
        self.failed_at = _ensure_utc(self.failed_at)
        self.created_at = _ensure_utc(self.created_at)
        self.updated_at = _ensure_utc(self.updated_at)
        if self.metadata is None:
            self.metadata = {}

    # Expiry is derived at read time, no background job flips the stored status

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        if self.status not in OPEN_STATUSES or self.expires_at is None:
            return False
        return (now or _now()) > self.expires_at

    def effective_status(self, now: Optional[datetime] = None) -> PaymentStatus:
        if self.is_expired(now):
            return PaymentStatus.EXPIRED
        return self.status

    def is_settled(self) -> bool:
        return self.status in SETTLED_STATUSES

    def _require_open(self) -> None:
        if self.status not in OPEN_STATUSES:
            raise PaymentNotPendingException(self.payment_id, self.status.value)

    def mark_pending(
        self,
        provider_ref: Optional[str] = None,
        *,
        deferred: bool = False,
    ) -> None:
        """
        Submitted to the processor, outcome not yet known.

        A deferred payment (collected on delivery) has no expiry.
        """
        self._require_open()
        self.status = PaymentStatus.PENDING
        if provider_ref:
            self.provider_ref = provider_ref
        if deferred:
            self.expires_at = None
        self.updated_at = _now()

    def mark_completed(self, provider_ref: Optional[str] = None) -> None:
        self._require_open()
        self.status = PaymentStatus.COMPLETED
        if provider_ref:
            self.provider_ref = provider_ref
        self.completed_at = _now()
        self.updated_at = self.completed_at
        self.failure_reason = None

    def mark_failed(self, reason: Optional[str] = None) -> None:
        self._require_open()
        self.status = PaymentStatus.FAILED
        self.failure_reason = reason
        self.failed_at = _now()
        self.updated_at = self.failed_at

    def supersede(self, now: Optional[datetime] = None) -> None:
        """Replaced by a newer attempt for the same order; an open attempt is closed as expired"""
        if self.status in OPEN_STATUSES:
            self.status = PaymentStatus.EXPIRED
        self.is_current = False
        self.updated_at = _now()

    def release(self, reason: Optional[str] = None, now: Optional[datetime] = None) -> None:
        """
        Close an open attempt because its order was cancelled.

        Manual collections (cash, bank transfer) are failed. A processor
        submission still awaiting its outcome cannot be released.
        """
        if self.status not in OPEN_STATUSES:
            return
        if self.status is PaymentStatus.INITIALIZED or self.is_expired(now):
            self.status = PaymentStatus.EXPIRED
            self.failure_reason = reason
            self.updated_at = _now()
            return
        if self.method_type not in MANUAL_METHOD_TYPES:
            raise PaymentInProgressException(self.payment_id)
        self.mark_failed(reason)

    def refundable_amount(self) -> Decimal:
        return self.amount - self.refunded_amount

    def check_refund(self, amount: Decimal) -> None:
        """Raise when the refund would break a rule; never mutates"""
        if self.status not in REFUNDABLE_STATUSES:
            raise PaymentNotRefundableException(self.payment_id, self.status.value)
        if amount <= 0:
            raise InvalidRefundAmountException(amount)
        refundable = self.refundable_amount()
        if amount > refundable:
            raise RefundExceedsPaymentException(amount, refundable)

    def apply_refund(self, amount: Decimal) -> None:
        self.check_refund(amount)
        self.refunded_amount += amount
        self.refund_count += 1
        self.updated_at = _now()
        if self.refunded_amount >= self.amount:
            self.status = PaymentStatus.REFUNDED
        else:
            self.status = PaymentStatus.PARTIALLY_REFUNDED

    def is_fully_refunded(self) -> bool:
        return self.status is PaymentStatus.REFUNDED

    def update_metadata(self, key: str, value: Any) -> None:
        if self.metadata is None:
            self.metadata = {}
        self.metadata[key] = value
        self.updated_at = _now()

    @staticmethod
    def expiry_from(timeout_minutes: int, now: Optional[datetime] = None) -> datetime:
        return (now or _now()) + timedelta(minutes=timeout_minutes)


@dataclass
class Refund:
    """Refund sub-record of a payment"""

    id: Optional[int]
    payment_id: int
    amount: Decimal
    currency: str
    reason: str
    actor: str
    status: RefundStatus = RefundStatus.COMPLETED
    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None

    def __post_init__(self):
        if self.amount <= 0:
            raise DomainValidationException(f"Refund amount must be greater than 0: {self.amount}", field="amount")
        if not self.actor:
            raise DomainValidationException("Refund requires an actor", field="actor")
        self.status = RefundStatus(self.status)
        self.created_at = _ensure_utc(self.created_at)
        self.processed_at = _ensure_utc(self.processed_at)
