"""Payment domain exports."""
from .entity import Payment, PaymentStatus, Refund, RefundStatus
from .fees import FeeQuote, calculate_fees
from .method import FeeSchedule, PaymentMethod, PaymentMethodType
from .repository import PaymentMethodRepository, PaymentRepository, RefundRepository
from .service import PaymentDomainService

__all__ = [
    "Payment",
    "PaymentStatus",
    "Refund",
    "RefundStatus",
    "FeeQuote",
    "calculate_fees",
    "FeeSchedule",
    "PaymentMethod",
    "PaymentMethodType",
    "PaymentMethodRepository",
    "PaymentRepository",
    "RefundRepository",
    "PaymentDomainService",
]
