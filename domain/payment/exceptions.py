"""
Payment domain exceptions
"""
from __future__ import annotations

from decimal import Decimal
from typing import Optional

from domain.common.exceptions import BusinessException, ErrorKind
from shared.codes import BusinessCode
from shared.codes.payment_codes import PaymentCode


class PaymentNotFoundException(BusinessException):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, identifier: str):
        super().__init__(
            code=BusinessCode.PAYMENT_NOT_FOUND,
            message=f"Payment not found: {identifier}",
            error_type="PaymentNotFound",
            details={"payment": identifier},
        )


class PaymentMethodNotFoundException(BusinessException):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, name: str):
        super().__init__(
            code=BusinessCode.PAYMENT_METHOD_NOT_FOUND,
            message=f"Payment method not available: {name}",
            error_type="PaymentMethodNotFound",
            details={"method": name},
        )


class UnsupportedCurrencyException(BusinessException):
    """No fee schedule is configured for the method/currency pair"""

    def __init__(self, method: str, currency: str):
        super().__init__(
            code=BusinessCode.UNSUPPORTED_CURRENCY,
            message=f"Payment method {method} does not support currency {currency}",
            error_type="UnsupportedCurrency",
            details={"method": method, "currency": currency},
            field="currency",
        )


class AmountOutOfRangeException(BusinessException):
    def __init__(self, amount: Decimal, min_amount: Decimal, max_amount: Decimal, method: str):
        super().__init__(
            code=BusinessCode.AMOUNT_OUT_OF_RANGE,
            message=f"Amount {amount} is outside the allowed range {min_amount}-{max_amount} for {method}",
            error_type="AmountOutOfRange",
            details={
                "amount": str(amount),
                "min_amount": str(min_amount),
                "max_amount": str(max_amount),
                "method": method,
            },
            field="amount",
        )


class PaymentExpiredException(BusinessException):
    def __init__(self, payment_id: str):
        super().__init__(
            code=BusinessCode.PAYMENT_EXPIRED,
            message=f"Payment {payment_id} has expired, initialize a new payment",
            error_type="PaymentExpired",
            details={"payment_id": payment_id},
        )


class PaymentNotPendingException(BusinessException):
    def __init__(self, payment_id: str, status: str):
        super().__init__(
            code=BusinessCode.PAYMENT_NOT_PENDING,
            message=f"Payment {payment_id} is {status}, expected an open payment",
            error_type="PaymentNotPending",
            details={"payment_id": payment_id, "status": status},
        )


class PaymentInProgressException(BusinessException):
    """A submitted payment is still waiting for its outcome"""

    def __init__(self, payment_id: str):
        super().__init__(
            code=BusinessCode.PAYMENT_IN_PROGRESS,
            message=f"Payment {payment_id} is still in progress",
            error_type="PaymentInProgress",
            details={"payment_id": payment_id},
        )


class NotBankTransferException(BusinessException):
    def __init__(self, payment_id: str, method_type: str):
        super().__init__(
            code=BusinessCode.NOT_BANK_TRANSFER,
            message=f"Payment {payment_id} is not a bank transfer ({method_type})",
            error_type="NotBankTransfer",
            details={"payment_id": payment_id, "method_type": method_type},
        )


class NotCashOnDeliveryException(BusinessException):
    def __init__(self, payment_id: str, method_type: str):
        super().__init__(
            code=BusinessCode.NOT_CASH_ON_DELIVERY,
            message=f"Payment {payment_id} is not cash on delivery ({method_type})",
            error_type="NotCashOnDelivery",
            details={"payment_id": payment_id, "method_type": method_type},
        )


class CaptureNotSupportedException(BusinessException):
    def __init__(self, payment_id: str, method_type: str):
        super().__init__(
            code=BusinessCode.CAPTURE_NOT_SUPPORTED,
            message=f"Payment {payment_id} uses {method_type}, which has no capture step",
            error_type="CaptureNotSupported",
            details={"payment_id": payment_id, "method_type": method_type},
        )


class PaymentDetailsInvalidException(BusinessException):
    """Method-specific input (card, phone number, reference) failed validation"""

    kind = ErrorKind.VALIDATION

    def __init__(self, errors: dict[str, str]):
        super().__init__(
            code=BusinessCode.PAYMENT_DETAILS_INVALID,
            message="; ".join(errors.values()) or "Invalid payment details",
            error_type="PaymentDetailsInvalid",
            details={"errors": errors},
            field=next(iter(errors), None),
        )
        self.errors = errors


class InvalidRefundAmountException(BusinessException):
    kind = ErrorKind.VALIDATION

    def __init__(self, amount: Decimal, reason: str = "Refund amount must be greater than 0"):
        super().__init__(
            code=BusinessCode.INVALID_REFUND_AMOUNT,
            message=f"{reason}: {amount}",
            error_type="InvalidRefundAmount",
            details={"amount": str(amount)},
            field="amount",
        )


class RefundExceedsPaymentException(BusinessException):
    def __init__(self, refund_amount: Decimal, refundable: Decimal):
        super().__init__(
            code=BusinessCode.REFUND_EXCEEDS_PAYMENT,
            message=f"Refund amount ({refund_amount}) exceeds refundable amount ({refundable})",
            error_type="RefundExceedsPayment",
            details={"amount": str(refund_amount), "refundable": str(refundable)},
            field="amount",
        )


class PaymentNotRefundableException(BusinessException):
    def __init__(self, payment_id: str, status: str, reason: Optional[str] = None):
        super().__init__(
            code=BusinessCode.PAYMENT_NOT_REFUNDABLE,
            message=reason or f"Payment {payment_id} is {status} and cannot be refunded",
            error_type="PaymentNotRefundable",
            details={"payment_id": payment_id, "status": status},
        )


class PaymentProcessorError(BusinessException):
    """
    External processor failure (rejection, timeout, malformed response).

    The dispatcher turns these into a failed payment outcome; they never
    reach the order level.
    """

    kind = ErrorKind.PROCESSOR

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        provider_code: Optional[str] = None,
        details: Optional[dict] = None,
        code: int = PaymentCode.PROVIDER_ERROR,
        error_type: str = "PaymentProviderError",
    ):
        full_details = {"provider": provider, "provider_code": provider_code}
        if details:
            full_details.update(details)
        super().__init__(
            code=code,
            message=message,
            error_type=error_type,
            details=full_details,
        )
        self.provider = provider
        self.provider_code = provider_code


class PaymentIdConflictException(BusinessException):
    """Insert hit the unique index on payment_id"""

    kind = ErrorKind.CONFLICT

    def __init__(self, payment_id: str):
        super().__init__(
            code=BusinessCode.CONFLICT,
            message=f"Payment id {payment_id} already exists",
            error_type="PaymentIdConflict",
            details={"payment_id": payment_id},
        )
