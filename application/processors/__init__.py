"""Payment processor variants, one per payment method type."""
from .base import PaymentProcessor, ProcessorOutcome
from .registry import ProcessorRegistry, build_default_registry

__all__ = ["PaymentProcessor", "ProcessorOutcome", "ProcessorRegistry", "build_default_registry"]
