"""
Payment repository ports
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from .entity import Payment, PaymentStatus, Refund
from .method import PaymentMethod


class PaymentRepository(ABC):
    """Payment persistence contract"""

    @abstractmethod
    async def create(self, payment: Payment) -> Payment:
        """
        Insert a payment.

        Raises PaymentIdConflictException when payment_id is already taken.
        """
        pass

    @abstractmethod
    async def get_by_payment_id(self, payment_id: str, *, for_update: bool = False) -> Optional[Payment]:
        """
        Load by public payment id.

        for_update locks the row where the backend supports it, so refunds
        against the same payment are serialized.
        """
        pass

    @abstractmethod
    async def get_by_provider_ref(self, provider: str, provider_ref: str) -> Optional[Payment]:
        pass

    @abstractmethod
    async def get_current_by_order(self, order_id: int) -> Optional[Payment]:
        """The single active payment of an order, if any"""
        pass

    @abstractmethod
    async def list_by_order(self, order_id: int) -> List[Payment]:
        """All attempts for an order, oldest first"""
        pass

    @abstractmethod
    async def list(
        self,
        skip: int = 0,
        limit: int = 20,
        status: Optional[PaymentStatus] = None,
        method_name: Optional[str] = None,
    ) -> List[Payment]:
        pass

    @abstractmethod
    async def count(
        self,
        status: Optional[PaymentStatus] = None,
        method_name: Optional[str] = None,
    ) -> int:
        pass

    @abstractmethod
    async def exists_by_payment_id(self, payment_id: str) -> bool:
        pass

    @abstractmethod
    async def update(self, payment: Payment) -> Payment:
        """
        Conditional update on (id, version).

        Raises ConcurrencyConflictException when the stored version moved.
        """
        pass

    @abstractmethod
    async def delete_by_order(self, order_id: int) -> int:
        """Remove every attempt of an order; returns the number removed"""
        pass


class RefundRepository(ABC):
    """Refund sub-record persistence"""

    @abstractmethod
    async def create(self, refund: Refund) -> Refund:
        pass

    @abstractmethod
    async def list_by_payment(self, payment_id: int) -> List[Refund]:
        pass


class PaymentMethodRepository(ABC):
    """Read access to payment method configuration"""

    @abstractmethod
    async def get_by_name(self, name: str) -> Optional[PaymentMethod]:
        pass

    @abstractmethod
    async def list_active(self, currency: Optional[str] = None) -> List[PaymentMethod]:
        """Active methods ordered by sort_order, optionally limited to a currency"""
        pass

    @abstractmethod
    async def save(self, method: PaymentMethod) -> PaymentMethod:
        """Insert or replace by name"""
        pass
