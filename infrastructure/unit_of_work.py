"""SQLAlchemy Unit of Work"""
from __future__ import annotations

from typing import Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.database import AsyncSessionLocal
from infrastructure.repositories.catalog_repository import SQLAlchemyCatalogRepository
from infrastructure.repositories.order_repository import SQLAlchemyOrderRepository
from infrastructure.repositories.payment_method_repository import SQLAlchemyPaymentMethodRepository
from infrastructure.repositories.payment_repository import (
    SQLAlchemyPaymentRepository,
    SQLAlchemyRefundRepository,
)


class SQLAlchemyUnitOfWork(AbstractUnitOfWork):
    """One session and one transaction shared by every repository"""

    def __init__(
        self,
        session_factory: Callable[[], AsyncSession] = AsyncSessionLocal,
        session: Optional[AsyncSession] = None,
        *,
        readonly: bool = False,
    ) -> None:
        super().__init__(readonly=readonly)
        self._session_factory = session_factory
        self._external_session = session
        self.session: Optional[AsyncSession] = session
        self._transaction = None

    def _bind_repositories(self, session: Optional[AsyncSession]) -> None:
        if session is None:
            self.catalog_repository = None
            self.order_repository = None
            self.payment_repository = None
            self.refund_repository = None
            self.payment_method_repository = None
            return
        self.catalog_repository = SQLAlchemyCatalogRepository(session)
        self.order_repository = SQLAlchemyOrderRepository(session)
        self.payment_repository = SQLAlchemyPaymentRepository(session)
        self.refund_repository = SQLAlchemyRefundRepository(session)
        self.payment_method_repository = SQLAlchemyPaymentMethodRepository(session)

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        if self.session is None:
            self.session = self._session_factory()
        self._bind_repositories(self.session)
        # Read-only units run in autobegin mode and are never committed
        if not self._readonly and not self.session.in_transaction():
            self._transaction = await self.session.begin()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        try:
            await super().__aexit__(exc_type, exc, tb)
        finally:
            if self._transaction is not None and self._transaction.is_active:
                await self._transaction.rollback()
            self._transaction = None
            if self._external_session is None and self.session is not None:
                await self.session.close()
                self.session = None
            self._bind_repositories(None)

    async def commit(self) -> None:
        if self._readonly:
            self._committed = True
            return
        if self.session and self.session.in_transaction():
            await self.session.commit()
        self._committed = True

    async def rollback(self) -> None:
        if self.session and self.session.in_transaction():
            await self.session.rollback()
        self._committed = False
