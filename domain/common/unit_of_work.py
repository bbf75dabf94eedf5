"""Unit of Work abstraction"""
from __future__ import annotations

from abc import ABC, abstractmethod

from domain.catalog.repository import CatalogRepository
from domain.order.repository import OrderRepository
from domain.payment.repository import (
    PaymentMethodRepository,
    PaymentRepository,
    RefundRepository,
)


class AbstractUnitOfWork(ABC):
    """Transaction boundary used by application services"""

    catalog_repository: CatalogRepository
    order_repository: OrderRepository
    payment_repository: PaymentRepository
    refund_repository: RefundRepository
    payment_method_repository: PaymentMethodRepository

    def __init__(self, *, readonly: bool = False) -> None:
        self._committed = False
        self._readonly = readonly
        self.catalog_repository = None  # type: ignore[assignment]
        self.order_repository = None  # type: ignore[assignment]
        self.payment_repository = None  # type: ignore[assignment]
        self.refund_repository = None  # type: ignore[assignment]
        self.payment_method_repository = None  # type: ignore[assignment]

    async def __aenter__(self) -> "AbstractUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc:
            await self.rollback()
        else:
            # Auto-commit only for writable units that were not committed explicitly
            if not self._readonly and not self._committed:
                await self.commit()

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...
