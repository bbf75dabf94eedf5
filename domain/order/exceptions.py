"""
Order domain exceptions
"""
from __future__ import annotations

from typing import Optional

from domain.common.exceptions import (
    BusinessException,
    DomainValidationException,
    ErrorKind,
    IdentifierGenerationError,
)
from shared.codes import BusinessCode


class InvalidStatusException(DomainValidationException):
    """Status value outside the enumeration of its status type"""

    def __init__(self, value: str, status_type: str):
        super().__init__(
            f"Invalid {status_type} status: {value!r}",
            field="status",
            details={"value": value, "status_type": status_type},
        )
        self.code = BusinessCode.INVALID_STATUS
        self.error_type = "InvalidStatus"


class IllegalStatusTransitionException(BusinessException):
    """Known status value that is not reachable from the current status"""

    kind = ErrorKind.RULE_VIOLATION

    def __init__(self, current: str, requested: str, status_type: str):
        super().__init__(
            code=BusinessCode.ILLEGAL_STATUS_TRANSITION,
            message=f"Cannot move {status_type} status from {current} to {requested}",
            error_type="IllegalStatusTransition",
            details={"from": current, "to": requested, "status_type": status_type},
            field="status",
        )


class OrderNotFoundException(BusinessException):
    kind = ErrorKind.NOT_FOUND

    def __init__(self, identifier: str):
        super().__init__(
            code=BusinessCode.ORDER_NOT_FOUND,
            message=f"Order not found: {identifier}",
            error_type="OrderNotFound",
            details={"order": identifier},
        )


class OrderValidationException(BusinessException):
    """Carries the complete list of item-level validation errors"""

    kind = ErrorKind.VALIDATION

    def __init__(self, errors: list):
        super().__init__(
            code=BusinessCode.ORDER_VALIDATION_FAILED,
            message=f"Order validation failed with {len(errors)} error(s)",
            error_type="OrderValidationFailed",
            details={"errors": [e.as_dict() for e in errors]},
        )
        self.errors = errors


class OrderNotCancellableException(BusinessException):
    def __init__(self, order_number: str, status: str):
        super().__init__(
            code=BusinessCode.ORDER_NOT_CANCELLABLE,
            message=f"Order {order_number} cannot be cancelled while {status}",
            error_type="OrderNotCancellable",
            details={"order_number": order_number, "order_status": status},
        )


class OrderNotRefundableException(BusinessException):
    def __init__(self, order_number: str, order_status: str, payment_status: str):
        super().__init__(
            code=BusinessCode.ORDER_NOT_REFUNDABLE,
            message=(
                f"Order {order_number} is not eligible for refund "
                f"(order {order_status}, payment {payment_status})"
            ),
            error_type="OrderNotRefundable",
            details={
                "order_number": order_number,
                "order_status": order_status,
                "payment_status": payment_status,
            },
        )


class PaidOrderDeletionException(BusinessException):
    def __init__(self, order_number: str, payment_status: str):
        super().__init__(
            code=BusinessCode.PAID_ORDER_DELETION,
            message=f"Cannot delete order {order_number}: payment is {payment_status}",
            error_type="PaidOrderDeletion",
            details={"order_number": order_number, "payment_status": payment_status},
        )


class StockConflictException(BusinessException):
    """Stock changed between validation and reservation"""

    kind = ErrorKind.CONFLICT

    def __init__(self, product_id: int, requested: int, available: Optional[int] = None):
        details = {"product_id": product_id, "requested": requested}
        if available is not None:
            details["available"] = available
        super().__init__(
            code=BusinessCode.STOCK_CONFLICT,
            message=f"Stock for product {product_id} changed while reserving {requested} unit(s), retry the order",
            error_type="StockConflict",
            details=details,
        )


class OrderNumberConflictException(BusinessException):
    """Insert hit the unique index on order_number"""

    kind = ErrorKind.CONFLICT

    def __init__(self, order_number: str):
        super().__init__(
            code=BusinessCode.CONFLICT,
            message=f"Order number {order_number} already exists",
            error_type="OrderNumberConflict",
            details={"order_number": order_number},
        )


class OrderNumberGenerationError(IdentifierGenerationError):
    pass


class OrderNotPayableException(BusinessException):
    """Payments can only be started for live orders"""

    def __init__(self, order_number: str, status: str):
        super().__init__(
            code=BusinessCode.ORDER_NOT_PAYABLE,
            message=f"Order {order_number} cannot accept a payment while {status}",
            error_type="OrderNotPayable",
            details={"order_number": order_number, "order_status": status},
        )


class OrderAlreadyPaidException(BusinessException):
    def __init__(self, order_number: str):
        super().__init__(
            code=BusinessCode.ORDER_ALREADY_PAID,
            message=f"Order {order_number} is already paid",
            error_type="OrderAlreadyPaid",
            details={"order_number": order_number},
        )
