"""
Order repository implementation (SQLAlchemy)
"""
from dataclasses import asdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.catalog.entity import LocalizedName
from domain.common.exceptions import ConcurrencyConflictException
from domain.order.entity import (
    CustomerInfo,
    Order,
    OrderItem,
    OrderPaymentMethod,
    OrderPaymentStatus,
    OrderStatus,
)
from domain.order.exceptions import OrderNumberConflictException
from domain.order.repository import OrderRepository
from infrastructure.models.order import OrderItemModel, OrderModel


logger = get_logger(__name__)


class SQLAlchemyOrderRepository(OrderRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: OrderModel) -> Order:
        return Order(
            id=model.id,
            order_number=model.order_number,
            items=[
                OrderItem(
                    id=i.id,
                    product_id=i.product_id,
                    product_name=LocalizedName(en=i.name_en, ar=i.name_ar or ""),
                    quantity=i.quantity,
                    price=Decimal(str(i.price)),
                )
                for i in model.items
            ],
            customer_info=CustomerInfo(**(model.customer_info or {})),
            payment_method=OrderPaymentMethod(model.payment_method),
            total=Decimal(str(model.total)),
            order_status=OrderStatus(model.order_status),
            payment_status=OrderPaymentStatus(model.payment_status),
            currency=model.currency,
            tracking_number=model.tracking_number,
            admin_notes=model.admin_notes,
            cancellation_reason=model.cancellation_reason,
            version=model.version,
            created_at=model.created_at,
            updated_at=model.updated_at,
            confirmed_at=model.confirmed_at,
            shipped_at=model.shipped_at,
            delivered_at=model.delivered_at,
            cancelled_at=model.cancelled_at,
        )

    def _to_model(self, entity: Order) -> OrderModel:
        return OrderModel(
            order_number=entity.order_number,
            customer_info=asdict(entity.customer_info),
            payment_method=entity.payment_method.value,
            total=entity.total,
            currency=entity.currency,
            order_status=entity.order_status.value,
            payment_status=entity.payment_status.value,
            tracking_number=entity.tracking_number,
            admin_notes=entity.admin_notes,
            cancellation_reason=entity.cancellation_reason,
            version=entity.version,
            items=[
                OrderItemModel(
                    product_id=i.product_id,
                    name_en=i.product_name.en,
                    name_ar=i.product_name.ar,
                    quantity=i.quantity,
                    price=i.price,
                )
                for i in entity.items
            ],
        )

    def _select(self):
        # Rows may already sit in the identity map from before a conditional UPDATE
        return select(OrderModel).execution_options(populate_existing=True)

    async def create(self, order: Order) -> Order:
        model = self._to_model(order)
        try:
            # Savepoint so a duplicate number leaves the outer transaction usable
            async with self.session.begin_nested():
                self.session.add(model)
                await self.session.flush()
        except IntegrityError as e:
            message = str(e.orig).lower()
            if "order_number" in message or "unique" in message:
                logger.warning("order_number_conflict", order_number=order.order_number)
                raise OrderNumberConflictException(order.order_number) from e
            raise
        logger.info("order_created", order_id=model.id, order_number=model.order_number)
        return self._to_entity(model)

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        result = await self.session.execute(self._select().where(OrderModel.id == order_id))
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_order_number(self, order_number: str) -> Optional[Order]:
        result = await self.session.execute(self._select().where(OrderModel.order_number == order_number))
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def exists_by_order_number(self, order_number: str) -> bool:
        result = await self.session.execute(
            select(func.count(OrderModel.id)).where(OrderModel.order_number == order_number)
        )
        return result.scalar_one() > 0

    async def update(self, order: Order) -> Order:
        now = datetime.now(timezone.utc)
        result = await self.session.execute(
            update(OrderModel)
            .where(OrderModel.id == order.id, OrderModel.version == order.version)
            .values(
                payment_method=order.payment_method.value,
                order_status=order.order_status.value,
                payment_status=order.payment_status.value,
                tracking_number=order.tracking_number,
                admin_notes=order.admin_notes,
                cancellation_reason=order.cancellation_reason,
                confirmed_at=order.confirmed_at,
                shipped_at=order.shipped_at,
                delivered_at=order.delivered_at,
                cancelled_at=order.cancelled_at,
                updated_at=now,
                version=OrderModel.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning("order_version_conflict", order_number=order.order_number, version=order.version)
            raise ConcurrencyConflictException("Order", order.order_number)

        order.version += 1
        order.updated_at = now
        return order

    async def delete(self, order_id: int) -> bool:
        await self.session.execute(delete(OrderItemModel).where(OrderItemModel.order_id == order_id))
        result = await self.session.execute(delete(OrderModel).where(OrderModel.id == order_id))
        deleted = result.rowcount > 0
        if deleted:
            logger.info("order_deleted", order_id=order_id)
        return deleted

    def _filtered(self, query, order_status, payment_status):
        if order_status:
            query = query.where(OrderModel.order_status == OrderStatus(order_status).value)
        if payment_status:
            query = query.where(OrderModel.payment_status == OrderPaymentStatus(payment_status).value)
        return query

    async def list(
        self,
        skip: int = 0,
        limit: int = 20,
        order_status: Optional[OrderStatus] = None,
        payment_status: Optional[OrderPaymentStatus] = None,
    ) -> List[Order]:
        query = self._filtered(self._select(), order_status, payment_status)
        query = query.order_by(OrderModel.created_at.desc(), OrderModel.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def count(
        self,
        order_status: Optional[OrderStatus] = None,
        payment_status: Optional[OrderPaymentStatus] = None,
    ) -> int:
        query = self._filtered(select(func.count(OrderModel.id)), order_status, payment_status)
        result = await self.session.execute(query)
        return result.scalar_one()
