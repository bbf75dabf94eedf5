"""Domain-level business exceptions shared by domain and infrastructure.

The core layer only maps these to transport responses; the domain never
imports from core.
"""
from __future__ import annotations

from enum import Enum
from typing import Optional

from shared.codes import BusinessCode


class ErrorKind(str, Enum):
    """Error taxonomy used by callers to decide how to react."""

    VALIDATION = "validation"          # bad input shape, fix and resubmit
    RULE_VIOLATION = "rule_violation"  # a domain rule rejected the request
    NOT_FOUND = "not_found"            # unknown order/payment/method
    PROCESSOR = "processor"            # external payment processor problem
    CONFLICT = "conflict"              # lost a compare-and-swap, retry the whole operation
    FATAL = "fatal"                    # unexpected, should not happen in normal operation


class BusinessException(Exception):
    """Base business exception."""

    kind: ErrorKind = ErrorKind.RULE_VIOLATION

    def __init__(
        self,
        code: int,
        message: str,
        error_type: str = "BusinessError",
        details: Optional[dict] = None,
        field: Optional[str] = None,
        kind: Optional[ErrorKind] = None,
    ) -> None:
        self.code = code
        self.message = message
        self.error_type = error_type
        self.details = details
        self.field = field
        if kind is not None:
            self.kind = kind
        super().__init__(self.message)


class DomainValidationException(BusinessException):
    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        field: str | None = None,
        details: dict | None = None,
    ):
        super().__init__(
            code=BusinessCode.PARAM_VALIDATION_ERROR,
            message=message,
            error_type="DomainValidationError",
            details=details,
            field=field,
        )


class ConcurrencyConflictException(BusinessException):
    """A conditional update matched no row because the record changed underneath us."""

    kind = ErrorKind.CONFLICT

    def __init__(self, entity: str, identifier: str):
        super().__init__(
            code=BusinessCode.VERSION_CONFLICT,
            message=f"{entity} {identifier} was modified concurrently, retry the operation",
            error_type="ConcurrencyConflict",
            details={"entity": entity, "identifier": identifier},
        )


class IdentifierGenerationError(BusinessException):
    """Unique identifier could not be produced within the retry budget."""

    kind = ErrorKind.FATAL

    def __init__(self, prefix: str, attempts: int):
        super().__init__(
            code=BusinessCode.IDENTIFIER_GENERATION_FAILED,
            message=f"Unable to generate a unique {prefix} identifier after {attempts} attempts",
            error_type="IdentifierGenerationError",
            details={"prefix": prefix, "attempts": attempts},
        )
