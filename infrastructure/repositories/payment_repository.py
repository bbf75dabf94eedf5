"""
Payment and refund repository implementations (SQLAlchemy)
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.common.exceptions import ConcurrencyConflictException
from domain.payment.entity import Payment, PaymentStatus, Refund, RefundStatus
from domain.payment.exceptions import PaymentIdConflictException
from domain.payment.method import PaymentMethodType
from domain.payment.repository import PaymentRepository, RefundRepository
from infrastructure.models.payment import PaymentModel, RefundModel


logger = get_logger(__name__)


class SQLAlchemyPaymentRepository(PaymentRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: PaymentModel) -> Payment:
        return Payment(
            id=model.id,
            payment_id=model.payment_id,
            order_id=model.order_id,
            order_number=model.order_number,
            method_name=model.method_name,
            method_type=PaymentMethodType(model.method_type),
            provider=model.provider,
            amount=Decimal(str(model.amount)),
            subtotal=Decimal(str(model.subtotal)),
            fees=Decimal(str(model.fees)),
            currency=model.currency,
            status=PaymentStatus(model.status),
            provider_ref=model.provider_ref,
            is_current=model.is_current,
            refunded_amount=Decimal(str(model.refunded_amount)),
            refund_count=model.refund_count,
            version=model.version,
            expires_at=model.expires_at,
            completed_at=model.completed_at,
            failed_at=model.failed_at,
            created_at=model.created_at,
            updated_at=model.updated_at,
            failure_reason=model.failure_reason,
            metadata=dict(model.extra_metadata or {}),
        )

    def _to_model(self, entity: Payment) -> PaymentModel:
        return PaymentModel(
            payment_id=entity.payment_id,
            order_id=entity.order_id,
            order_number=entity.order_number,
            method_name=entity.method_name,
            method_type=entity.method_type.value,
            provider=entity.provider,
            provider_ref=entity.provider_ref,
            amount=entity.amount,
            subtotal=entity.subtotal,
            fees=entity.fees,
            currency=entity.currency,
            status=entity.status.value,
            is_current=entity.is_current,
            refunded_amount=entity.refunded_amount,
            refund_count=entity.refund_count,
            version=entity.version,
            expires_at=entity.expires_at,
            completed_at=entity.completed_at,
            failed_at=entity.failed_at,
            failure_reason=entity.failure_reason,
            extra_metadata=entity.metadata,
        )

    def _select(self):
        return select(PaymentModel).execution_options(populate_existing=True)

    async def create(self, payment: Payment) -> Payment:
        model = self._to_model(payment)
        try:
            async with self.session.begin_nested():
                self.session.add(model)
                await self.session.flush()
        except IntegrityError as e:
            message = str(e.orig).lower()
            if "payment_id" in message or "unique" in message:
                logger.warning("payment_id_conflict", payment_id=payment.payment_id)
                raise PaymentIdConflictException(payment.payment_id) from e
            raise
        logger.info(
            "payment_created",
            payment_id=model.payment_id,
            order_number=model.order_number,
            method=model.method_name,
        )
        return self._to_entity(model)

    async def get_by_payment_id(self, payment_id: str, *, for_update: bool = False) -> Optional[Payment]:
        query = self._select().where(PaymentModel.payment_id == payment_id)
        if for_update:
            query = query.with_for_update()
        result = await self.session.execute(query)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_provider_ref(self, provider: str, provider_ref: str) -> Optional[Payment]:
        result = await self.session.execute(
            self._select()
            .where(PaymentModel.provider == provider, PaymentModel.provider_ref == provider_ref)
            .order_by(PaymentModel.id.desc())
            .limit(1)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_current_by_order(self, order_id: int) -> Optional[Payment]:
        result = await self.session.execute(
            self._select()
            .where(PaymentModel.order_id == order_id, PaymentModel.is_current.is_(True))
            .order_by(PaymentModel.id.desc())
            .limit(1)
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_by_order(self, order_id: int) -> List[Payment]:
        result = await self.session.execute(
            self._select().where(PaymentModel.order_id == order_id).order_by(PaymentModel.id.asc())
        )
        return [self._to_entity(m) for m in result.scalars().all()]

    def _filtered(self, query, status, method_name):
        if status:
            query = query.where(PaymentModel.status == PaymentStatus(status).value)
        if method_name:
            query = query.where(PaymentModel.method_name == method_name.lower())
        return query

    async def list(
        self,
        skip: int = 0,
        limit: int = 20,
        status: Optional[PaymentStatus] = None,
        method_name: Optional[str] = None,
    ) -> List[Payment]:
        query = self._filtered(self._select(), status, method_name)
        query = query.order_by(PaymentModel.created_at.desc(), PaymentModel.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return [self._to_entity(m) for m in result.scalars().all()]

    async def count(
        self,
        status: Optional[PaymentStatus] = None,
        method_name: Optional[str] = None,
    ) -> int:
        query = self._filtered(select(func.count(PaymentModel.id)), status, method_name)
        result = await self.session.execute(query)
        return result.scalar_one()

    async def exists_by_payment_id(self, payment_id: str) -> bool:
        result = await self.session.execute(
            select(func.count(PaymentModel.id)).where(PaymentModel.payment_id == payment_id)
        )
        return result.scalar_one() > 0

    async def update(self, payment: Payment) -> Payment:
        now = datetime.now(timezone.utc)
        result = await self.session.execute(
            update(PaymentModel)
            .where(PaymentModel.id == payment.id, PaymentModel.version == payment.version)
            .values(
                status=payment.status.value,
                provider_ref=payment.provider_ref,
                is_current=payment.is_current,
                refunded_amount=payment.refunded_amount,
                refund_count=payment.refund_count,
                expires_at=payment.expires_at,
                completed_at=payment.completed_at,
                failed_at=payment.failed_at,
                failure_reason=payment.failure_reason,
                extra_metadata=payment.metadata,
                updated_at=now,
                version=PaymentModel.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning("payment_version_conflict", payment_id=payment.payment_id, version=payment.version)
            raise ConcurrencyConflictException("Payment", payment.payment_id)

        payment.version += 1
        payment.updated_at = now
        logger.info("payment_updated", payment_id=payment.payment_id, status=payment.status.value)
        return payment

    async def delete_by_order(self, order_id: int) -> int:
        ids = select(PaymentModel.id).where(PaymentModel.order_id == order_id)
        await self.session.execute(
            delete(RefundModel).where(RefundModel.payment_id.in_(ids)).execution_options(synchronize_session=False)
        )
        result = await self.session.execute(
            delete(PaymentModel).where(PaymentModel.order_id == order_id).execution_options(synchronize_session=False)
        )
        if result.rowcount:
            logger.info("payments_deleted", order_id=order_id, count=result.rowcount)
        return result.rowcount


class SQLAlchemyRefundRepository(RefundRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _to_entity(model: RefundModel) -> Refund:
        return Refund(
            id=model.id,
            payment_id=model.payment_id,
            amount=Decimal(str(model.amount)),
            currency=model.currency,
            reason=model.reason,
            actor=model.actor,
            status=RefundStatus(model.status),
            created_at=model.created_at,
            processed_at=model.processed_at,
        )

    async def create(self, refund: Refund) -> Refund:
        model = RefundModel(
            payment_id=refund.payment_id,
            amount=refund.amount,
            currency=refund.currency,
            reason=refund.reason,
            actor=refund.actor,
            status=refund.status.value,
            processed_at=refund.processed_at,
        )
        if refund.created_at is not None:
            model.created_at = refund.created_at
        self.session.add(model)
        await self.session.flush()
        logger.info(
            "refund_created",
            refund_id=model.id,
            payment_id=model.payment_id,
            amount=str(model.amount),
            actor=model.actor,
        )
        return self._to_entity(model)

    async def list_by_payment(self, payment_id: int) -> List[Refund]:
        result = await self.session.execute(
            select(RefundModel)
            .where(RefundModel.payment_id == payment_id)
            .order_by(RefundModel.created_at.asc(), RefundModel.id.asc())
        )
        return [self._to_entity(r) for r in result.scalars().all()]
