"""
Order validator - checks requested line items against live catalog state.

Every item is checked independently and all problems are reported together,
so a client can correct the whole cart in one round trip.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, Mapping, Optional

from domain.catalog.entity import Product


class ItemErrorCode(str, Enum):
    PRODUCT_NOT_FOUND = "PRODUCT_NOT_FOUND"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    PRICE_MISMATCH = "PRICE_MISMATCH"
    TOTAL_MISMATCH = "TOTAL_MISMATCH"


@dataclass(frozen=True)
class RequestedItem:
    product_id: int
    quantity: int
    price: Decimal


@dataclass(frozen=True)
class ItemValidationError:
    code: ItemErrorCode
    message: str
    product_id: Optional[int] = None
    item_index: Optional[int] = None
    details: Optional[dict] = None

    def as_dict(self) -> dict:
        return {
            "code": self.code.value,
            "message": self.message,
            "product_id": self.product_id,
            "item_index": self.item_index,
            "details": self.details or {},
        }


class OrderValidator:
    """Pure read-only validation of requested items against catalog products."""

    def validate(
        self,
        items: Iterable[RequestedItem],
        products: Mapping[int, Product],
    ) -> list[ItemValidationError]:
        errors: list[ItemValidationError] = []
        for index, item in enumerate(items):
            error = self._check_item(index, item, products.get(item.product_id))
            if error is not None:
                errors.append(error)
        return errors

    def validate_total(
        self,
        items: Iterable[RequestedItem],
        submitted_total: Decimal,
    ) -> Optional[ItemValidationError]:
        computed = sum((i.price * i.quantity for i in items), Decimal("0"))
        if submitted_total == computed:
            return None
        return ItemValidationError(
            code=ItemErrorCode.TOTAL_MISMATCH,
            message=f"Order total {submitted_total} does not match calculated total {computed}",
            details={"submitted": str(submitted_total), "calculated": str(computed)},
        )

    def _check_item(
        self,
        index: int,
        item: RequestedItem,
        product: Optional[Product],
    ) -> Optional[ItemValidationError]:
        # Checks run in a fixed order; the first failing check is the item's error
        if product is None:
            return ItemValidationError(
                code=ItemErrorCode.PRODUCT_NOT_FOUND,
                message=f"Product {item.product_id} not found",
                product_id=item.product_id,
                item_index=index,
            )

        if not product.in_stock:
            return ItemValidationError(
                code=ItemErrorCode.OUT_OF_STOCK,
                message=f"Product {product.name.en} is out of stock",
                product_id=item.product_id,
                item_index=index,
            )

        if product.stock < item.quantity:
            return ItemValidationError(
                code=ItemErrorCode.INSUFFICIENT_STOCK,
                message=(
                    f"Insufficient stock for {product.name.en}: "
                    f"{product.stock} available, requested {item.quantity}"
                ),
                product_id=item.product_id,
                item_index=index,
                details={"available": product.stock, "requested": item.quantity},
            )

        # Exact comparison; the catalog price is the source of truth
        if item.price != product.price:
            return ItemValidationError(
                code=ItemErrorCode.PRICE_MISMATCH,
                message=(
                    f"Price for {product.name.en} changed: "
                    f"submitted {item.price}, current {product.price}"
                ),
                product_id=item.product_id,
                item_index=index,
                details={"submitted": str(item.price), "current": str(product.price)},
            )

        return None
