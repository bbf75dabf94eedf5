"""
Catalog reference entity - read-only product state the order engine validates against
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class LocalizedName:
    """Bilingual display name snapshot."""

    en: str
    ar: str

    def get(self, language: str = "ar") -> str:
        if language == "en":
            return self.en
        return self.ar or self.en


@dataclass
class Product:
    """
    Product as seen by the order engine.

    The catalog is owned by another module; the engine only reads price,
    stock and availability and performs conditional stock updates through
    the repository.
    """

    id: Optional[int]
    name: LocalizedName
    price: Decimal
    stock: int
    in_stock: bool = True

    def is_available(self, quantity: int = 1) -> bool:
        return self.in_stock and self.stock >= quantity
