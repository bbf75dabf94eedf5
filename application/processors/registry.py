"""Processor lookup by method type."""
from __future__ import annotations

from typing import Iterable, Optional

from core.settings import PaymentSettings, payment_settings
from domain.payment.method import PaymentMethodType
from .bank_transfer import BankTransferProcessor
from .base import PaymentProcessor
from .card import CardProcessor
from .cash_on_delivery import CashOnDeliveryProcessor
from .mobile_wallet import MobileWalletProcessor
from .redirect_wallet import RedirectWalletProcessor


class ProcessorRegistry:
    def __init__(self, processors: Iterable[PaymentProcessor]) -> None:
        self._processors = {p.method_type: p for p in processors}

    def get(self, method_type: PaymentMethodType) -> PaymentProcessor:
        try:
            return self._processors[PaymentMethodType(method_type)]
        except KeyError:
            raise LookupError(f"No processor registered for {method_type}") from None

    def types(self) -> list[PaymentMethodType]:
        return list(self._processors)


def build_default_registry(config: Optional[PaymentSettings] = None) -> ProcessorRegistry:
    config = config or payment_settings
    return ProcessorRegistry([
        CardProcessor(),
        MobileWalletProcessor(),
        CashOnDeliveryProcessor(),
        BankTransferProcessor(config.bank_account),
        RedirectWalletProcessor(config.frontend_url),
    ])
