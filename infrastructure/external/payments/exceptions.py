"""
Provider failures mapped onto the domain's PaymentProcessorError, so the
dispatcher turns them into a failed outcome instead of an order-level error.
"""
from __future__ import annotations

from typing import Optional

from domain.common.exceptions import ErrorKind
from domain.payment.exceptions import PaymentProcessorError
from shared.codes.payment_codes import PaymentCode


class PaymentProviderError(PaymentProcessorError):
    def __init__(self, message: str, *, provider: str, provider_code: str | None = None, details: Optional[dict] = None):
        super().__init__(
            message,
            provider=provider,
            provider_code=provider_code,
            details=details,
            code=PaymentCode.PROVIDER_ERROR,
            error_type="PaymentProviderError",
        )


class PaymentRecoverableError(PaymentProcessorError):
    """Transport failure that survived the retry budget"""

    def __init__(self, message: str, *, provider: str, provider_code: str | None = None, details: Optional[dict] = None):
        super().__init__(
            message,
            provider=provider,
            provider_code=provider_code,
            details=details,
            code=PaymentCode.PROVIDER_RECOVERABLE,
            error_type="PaymentRecoverableError",
        )


class PaymentMalformedResponseError(PaymentProcessorError):
    def __init__(self, message: str, *, provider: str, details: Optional[dict] = None):
        super().__init__(
            message,
            provider=provider,
            details=details,
            code=PaymentCode.MALFORMED_RESPONSE,
            error_type="PaymentMalformedResponse",
        )


class PaymentSignatureError(PaymentProcessorError):
    """Webhook could not be authenticated; reported to the caller, never applied"""

    kind = ErrorKind.VALIDATION

    def __init__(self, message: str, *, provider: str, details: Optional[dict] = None):
        super().__init__(
            message,
            provider=provider,
            details=details,
            code=PaymentCode.SIGNATURE_ERROR,
            error_type="PaymentSignatureError",
        )
