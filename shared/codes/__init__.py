"""
Shared business codes used across layers (Domain/Core/API).

This package exposes BusinessCode at `shared.codes` and keeps
payment-specific codes under `shared.codes.payment_codes`.
"""
from enum import IntEnum


class BusinessCode(IntEnum):
    """Unified business status codes (single source of truth)."""

    # Success
    SUCCESS = 0

    # Parameter errors (1xxxx)
    PARAM_ERROR = 10000
    PARAM_MISSING = 10001
    PARAM_TYPE_ERROR = 10002
    PARAM_VALIDATION_ERROR = 10003
    ORDER_VALIDATION_FAILED = 10010
    PAYMENT_DETAILS_INVALID = 10011
    INVALID_STATUS = 10012

    # Business rule errors (2xxxx)
    BUSINESS_ERROR = 20000
    NOT_FOUND = 20006  # Generic resource not found

    # Orders (201xx)
    ORDER_NOT_FOUND = 20101
    ILLEGAL_STATUS_TRANSITION = 20102
    ORDER_NOT_CANCELLABLE = 20103
    ORDER_NOT_REFUNDABLE = 20104
    PAID_ORDER_DELETION = 20105
    ORDER_ALREADY_PAID = 20106
    ORDER_NOT_PAYABLE = 20107

    # Payments (202xx)
    PAYMENT_NOT_FOUND = 20201
    PAYMENT_METHOD_NOT_FOUND = 20202
    UNSUPPORTED_CURRENCY = 20203
    AMOUNT_OUT_OF_RANGE = 20204
    PAYMENT_EXPIRED = 20205
    PAYMENT_NOT_PENDING = 20206
    NOT_BANK_TRANSFER = 20207
    REFUND_EXCEEDS_PAYMENT = 20208
    INVALID_REFUND_AMOUNT = 20209
    CAPTURE_NOT_SUPPORTED = 20210
    PAYMENT_IN_PROGRESS = 20211
    PAYMENT_NOT_REFUNDABLE = 20212
    NOT_CASH_ON_DELIVERY = 20213

    # Concurrency conflicts (3xxxx)
    CONFLICT = 30000
    STOCK_CONFLICT = 30001
    VERSION_CONFLICT = 30002

    # System errors (4xxxx)
    SYSTEM_ERROR = 40000
    DATABASE_ERROR = 40001
    NETWORK_ERROR = 40002
    SERVICE_UNAVAILABLE = 40003
    IDENTIFIER_GENERATION_FAILED = 40010


__all__ = ["BusinessCode"]
