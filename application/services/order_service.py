"""Application layer orchestration for the order lifecycle (application/services)."""
from __future__ import annotations

from decimal import Decimal
from typing import Callable, Optional, Sequence

from application.dto import PaginationParams
from application.dtos.orders import (
    CreateOrderRequest,
    CreateOrderResult,
    OrderDTO,
    OrderItemInput,
    ValidationErrorDTO,
)
from application.utils.events import log_domain_events
from core.config import settings
from core.logging_config import get_logger
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.order.entity import OrderPaymentStatus, OrderStatus
from domain.order.exceptions import OrderNumberGenerationError, OrderValidationException
from domain.order.number import IdentifierGenerator
from domain.order.service import OrderDomainService


logger = get_logger(__name__)


def build_order_number_generator() -> IdentifierGenerator:
    cfg = settings.orders
    return IdentifierGenerator(
        cfg.number_prefix,
        random_digits=cfg.number_random_digits,
        max_attempts=cfg.number_max_attempts,
        error_cls=OrderNumberGenerationError,
    )


class OrderApplicationService:
    """Order workflows bridging API and domain layers."""

    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        number_generator: Optional[IdentifierGenerator] = None,
    ):
        self._uow_factory = uow_factory
        self._number_generator = number_generator or build_order_number_generator()

    def _domain(self, uow: AbstractUnitOfWork) -> OrderDomainService:
        return OrderDomainService(
            uow.order_repository,
            uow.catalog_repository,
            self._number_generator,
            payment_repository=uow.payment_repository,
        )

    async def validate_order(
        self,
        items: Sequence[OrderItemInput],
        total: Optional[Decimal] = None,
    ) -> list[ValidationErrorDTO]:
        """Dry run of the checks performed at creation; nothing is written"""
        async with self._uow_factory(readonly=True) as uow:
            errors = await self._domain(uow).validate_items(
                [i.to_requested() for i in items], total
            )
        return [ValidationErrorDTO.from_error(e) for e in errors]

    async def create_order(self, req: CreateOrderRequest) -> CreateOrderResult:
        """
        Create an order, or return every item error without writing anything.

        A StockConflictException means another order reserved the stock
        between validation and reservation; the whole call can be retried.
        """
        try:
            async with self._uow_factory() as uow:
                domain = self._domain(uow)
                order = await domain.place_order(
                    [i.to_requested() for i in req.items],
                    req.customer_info.to_entity(),
                    req.payment_method,
                    req.currency,
                    submitted_total=req.total,
                )
        except OrderValidationException as exc:
            logger.info(
                "order_validation_failed",
                error_count=len(exc.errors),
                codes=[e.code.value for e in exc.errors],
            )
            return CreateOrderResult(
                success=False,
                errors=[ValidationErrorDTO.from_error(e) for e in exc.errors],
            )

        log_domain_events(logger, domain.clear_events())
        return CreateOrderResult(success=True, order=OrderDTO.from_entity(order))

    async def get_order(self, order_id: int) -> OrderDTO:
        async with self._uow_factory(readonly=True) as uow:
            order = await self._domain(uow).get_order(order_id)
        return OrderDTO.from_entity(order)

    async def get_order_by_number(self, order_number: str) -> OrderDTO:
        async with self._uow_factory(readonly=True) as uow:
            order = await self._domain(uow).get_order_by_number(order_number)
        return OrderDTO.from_entity(order)

    async def list_orders(
        self,
        params: PaginationParams,
        order_status: Optional[OrderStatus] = None,
        payment_status: Optional[OrderPaymentStatus] = None,
    ) -> tuple[list[OrderDTO], int]:
        async with self._uow_factory(readonly=True) as uow:
            orders = await uow.order_repository.list(
                skip=params.skip,
                limit=params.limit,
                order_status=order_status,
                payment_status=payment_status,
            )
            total = await uow.order_repository.count(
                order_status=order_status,
                payment_status=payment_status,
            )
        return [OrderDTO.from_entity(o) for o in orders], total

    async def update_status(self, order_id: int, status: str, status_type: str = "order") -> OrderDTO:
        async with self._uow_factory() as uow:
            domain = self._domain(uow)
            order = await domain.change_status(order_id, status, status_type)
        log_domain_events(logger, domain.clear_events())
        return OrderDTO.from_entity(order)

    async def cancel_order(self, order_id: int, reason: Optional[str] = None) -> OrderDTO:
        async with self._uow_factory() as uow:
            domain = self._domain(uow)
            order = await domain.cancel_order(order_id, reason)
        log_domain_events(logger, domain.clear_events())
        return OrderDTO.from_entity(order)

    async def delete_order(self, order_id: int) -> None:
        async with self._uow_factory() as uow:
            domain = self._domain(uow)
            order = await domain.get_order(order_id)
            domain.ensure_deletable(order)
            # Unsettled attempts go with the order
            await uow.payment_repository.delete_by_order(order.id)
            await domain.delete_order(order_id)
        log_domain_events(logger, domain.clear_events())
