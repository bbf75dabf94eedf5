"""
Catalog repository port - read access plus atomic stock mutations
"""
from abc import ABC, abstractmethod
from typing import Iterable, Optional

from .entity import Product


class CatalogRepository(ABC):
    """Catalog reference access used by the order engine."""

    @abstractmethod
    async def get_by_id(self, product_id: int) -> Optional[Product]:
        """Load a product by id"""
        pass

    @abstractmethod
    async def get_many(self, product_ids: Iterable[int]) -> dict[int, Product]:
        """Load several products keyed by id; unknown ids are simply absent"""
        pass

    @abstractmethod
    async def decrement_stock_if_available(self, product_id: int, quantity: int) -> bool:
        """
        Compare-and-swap stock decrement.

        Decrements only while stock >= quantity and returns False when the
        condition no longer holds (another order won the race).
        """
        pass

    @abstractmethod
    async def restore_stock(self, product_id: int, quantity: int) -> None:
        """Give reserved units back to the catalog"""
        pass
