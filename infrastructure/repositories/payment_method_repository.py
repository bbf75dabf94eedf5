"""
Payment method configuration repository (SQLAlchemy)
"""
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.catalog.entity import LocalizedName
from domain.payment.method import FeeSchedule, PaymentMethod, PaymentMethodType
from domain.payment.repository import PaymentMethodRepository
from infrastructure.models.payment_method import PaymentMethodModel


logger = get_logger(__name__)


def _localized(value: Optional[dict]) -> Optional[LocalizedName]:
    if not value:
        return None
    return LocalizedName(en=value.get("en", ""), ar=value.get("ar", ""))


def _plain(value: Optional[LocalizedName]) -> Optional[dict]:
    if value is None:
        return None
    return {"en": value.en, "ar": value.ar}


class SQLAlchemyPaymentMethodRepository(PaymentMethodRepository):
    def __init__(self, session: AsyncSession):
        self.session = session

    @staticmethod
    def _to_entity(model: PaymentMethodModel) -> PaymentMethod:
        return PaymentMethod(
            id=model.id,
            name=model.name,
            display_name=_localized(model.display_name),
            type=PaymentMethodType(model.type),
            provider=model.provider,
            fee_schedules={
                currency: FeeSchedule(
                    fixed=Decimal(str(s.get("fixed", "0"))),
                    percentage=Decimal(str(s.get("percentage", "0"))),
                )
                for currency, s in (model.fee_schedules or {}).items()
            },
            min_amount=Decimal(str(model.min_amount)),
            max_amount=Decimal(str(model.max_amount)),
            timeout_minutes=model.timeout_minutes,
            supports_refunds=model.supports_refunds,
            supports_partial_refunds=model.supports_partial_refunds,
            active=model.active,
            sort_order=model.sort_order,
            description=_localized(model.description),
            instructions=_localized(model.instructions),
        )

    @staticmethod
    def _apply(model: PaymentMethodModel, method: PaymentMethod) -> None:
        model.name = method.name
        model.display_name = _plain(method.display_name)
        model.type = method.type.value
        model.provider = method.provider
        model.fee_schedules = {
            currency: {"fixed": str(s.fixed), "percentage": str(s.percentage)}
            for currency, s in method.fee_schedules.items()
        }
        model.min_amount = method.min_amount
        model.max_amount = method.max_amount
        model.timeout_minutes = method.timeout_minutes
        model.supports_refunds = method.supports_refunds
        model.supports_partial_refunds = method.supports_partial_refunds
        model.active = method.active
        model.sort_order = method.sort_order
        model.description = _plain(method.description)
        model.instructions = _plain(method.instructions)

    async def get_by_name(self, name: str) -> Optional[PaymentMethod]:
        result = await self.session.execute(
            select(PaymentMethodModel).where(PaymentMethodModel.name == name.strip().lower())
        )
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def list_active(self, currency: Optional[str] = None) -> List[PaymentMethod]:
        result = await self.session.execute(
            select(PaymentMethodModel)
            .where(PaymentMethodModel.active.is_(True))
            .order_by(PaymentMethodModel.sort_order.asc(), PaymentMethodModel.name.asc())
        )
        methods = [self._to_entity(m) for m in result.scalars().all()]
        if currency:
            methods = [m for m in methods if m.supports_currency(currency)]
        return methods

    async def save(self, method: PaymentMethod) -> PaymentMethod:
        """Insert or update by name"""
        result = await self.session.execute(
            select(PaymentMethodModel).where(PaymentMethodModel.name == method.name)
        )
        model = result.scalar_one_or_none()
        if model is None:
            model = PaymentMethodModel()
            self.session.add(model)
        self._apply(model, method)
        await self.session.flush()
        logger.info("payment_method_saved", name=model.name, active=model.active)
        return self._to_entity(model)
