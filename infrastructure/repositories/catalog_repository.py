"""
Catalog repository - product reads and conditional stock updates
"""
from decimal import Decimal
from typing import Iterable, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.catalog.entity import LocalizedName, Product
from domain.catalog.repository import CatalogRepository
from infrastructure.models.catalog import ProductModel


logger = get_logger(__name__)


class SQLAlchemyCatalogRepository(CatalogRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _to_entity(model: ProductModel) -> Product:
        return Product(
            id=model.id,
            name=LocalizedName(en=model.name_en, ar=model.name_ar or ""),
            price=Decimal(str(model.price)),
            stock=model.stock,
            in_stock=model.in_stock,
        )

    async def get_by_id(self, product_id: int) -> Optional[Product]:
        result = await self.session.execute(select(ProductModel).where(ProductModel.id == product_id))
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_many(self, product_ids: Iterable[int]) -> dict[int, Product]:
        ids = set(product_ids)
        if not ids:
            return {}
        result = await self.session.execute(select(ProductModel).where(ProductModel.id.in_(ids)))
        return {m.id: self._to_entity(m) for m in result.scalars().all()}

    async def decrement_stock_if_available(self, product_id: int, quantity: int) -> bool:
        # Single conditional UPDATE; two orders racing for the last unit cannot both match
        result = await self.session.execute(
            update(ProductModel)
            .where(
                ProductModel.id == product_id,
                ProductModel.in_stock.is_(True),
                ProductModel.stock >= quantity,
            )
            .values(stock=ProductModel.stock - quantity)
            .execution_options(synchronize_session=False)
        )
        reserved = result.rowcount == 1
        if not reserved:
            logger.info("stock_reservation_rejected", product_id=product_id, quantity=quantity)
        return reserved

    async def restore_stock(self, product_id: int, quantity: int) -> None:
        result = await self.session.execute(
            update(ProductModel)
            .where(ProductModel.id == product_id)
            .values(stock=ProductModel.stock + quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            logger.warning("stock_restore_missing_product", product_id=product_id, quantity=quantity)

    async def add(self, product: Product) -> Product:
        """Used by seeding and tests; the catalog is otherwise managed elsewhere"""
        model = ProductModel(
            id=product.id,
            name_en=product.name.en,
            name_ar=product.name.ar,
            price=product.price,
            stock=product.stock,
            in_stock=product.in_stock,
        )
        self.session.add(model)
        await self.session.flush()
        return self._to_entity(model)
