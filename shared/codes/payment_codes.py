"""
Payment specific codes and provider status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    PROVIDER_RECOVERABLE = 60001
    SIGNATURE_ERROR = 60002
    TIMEOUT = 60003
    MALFORMED_RESPONSE = 60004


# Provider status -> normalized gateway status ("success" | "pending" | "failure")
PROVIDER_STATUS_TO_INTERNAL = {
    "paymob": {
        "approved": "success",
        "captured": "success",
        "pending": "pending",
        "requires_action": "pending",
        "declined": "failure",
        "voided": "failure",
    },
    "fawry": {
        "PAID": "success",
        "NEW": "pending",
        "UNPAID": "pending",
        "EXPIRED": "failure",
        "FAILED": "failure",
        "CANCELED": "failure",
    },
    "paypal": {
        "COMPLETED": "success",
        "CREATED": "pending",
        "APPROVED": "pending",
        "PAYER_ACTION_REQUIRED": "pending",
        "VOIDED": "failure",
        "DECLINED": "failure",
    },
    "sandbox": {
        "success": "success",
        "pending": "pending",
        "failure": "failure",
    },
}
