"""
Order repository port
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from .entity import Order, OrderPaymentStatus, OrderStatus


class OrderRepository(ABC):
    """Order persistence contract"""

    @abstractmethod
    async def create(self, order: Order) -> Order:
        """
        Insert a new order with its items.

        Raises OrderNumberConflictException when order_number is already taken.
        """
        pass

    @abstractmethod
    async def get_by_id(self, order_id: int) -> Optional[Order]:
        pass

    @abstractmethod
    async def get_by_order_number(self, order_number: str) -> Optional[Order]:
        pass

    @abstractmethod
    async def exists_by_order_number(self, order_number: str) -> bool:
        pass

    @abstractmethod
    async def update(self, order: Order) -> Order:
        """
        Conditional update on (id, version).

        Bumps the version on success and raises ConcurrencyConflictException
        when the stored version no longer matches.
        """
        pass

    @abstractmethod
    async def delete(self, order_id: int) -> bool:
        pass

    @abstractmethod
    async def list(
        self,
        skip: int = 0,
        limit: int = 20,
        order_status: Optional[OrderStatus] = None,
        payment_status: Optional[OrderPaymentStatus] = None,
    ) -> List[Order]:
        """Newest first"""
        pass

    @abstractmethod
    async def count(
        self,
        order_status: Optional[OrderStatus] = None,
        payment_status: Optional[OrderPaymentStatus] = None,
    ) -> int:
        pass
