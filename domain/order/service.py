"""
Order domain service - placement, status changes, cancellation and deletion
"""
from __future__ import annotations

from decimal import Decimal
from typing import TYPE_CHECKING, List, Optional, Sequence, Union

from domain.catalog.repository import CatalogRepository
from .entity import (
    CustomerInfo,
    Order,
    OrderItem,
    OrderPaymentMethod,
    OrderPaymentStatus,
    OrderStatus,
    StatusType,
    parse_status_type,
)
from .events import OrderCancelled, OrderCreated, OrderDeleted, OrderStatusChanged
from .exceptions import (
    OrderNotCancellableException,
    OrderNotFoundException,
    OrderNumberConflictException,
    OrderNumberGenerationError,
    OrderValidationException,
    PaidOrderDeletionException,
    StockConflictException,
)
from .number import IdentifierGenerator
from .repository import OrderRepository
from .validator import ItemValidationError, OrderValidator, RequestedItem

if TYPE_CHECKING:
    from domain.payment.repository import PaymentRepository


class OrderDomainService:
    """
    Orchestrates order rules that need repositories.

    Responsibilities:
    1. validate requested items against the catalog (all errors at once)
    2. assign a unique order number and persist the order
    3. reserve stock with conditional decrements in the same transaction
    4. apply status transitions and the cancel / delete policies
    5. collect domain events
    """

    def __init__(
        self,
        order_repository: OrderRepository,
        catalog_repository: CatalogRepository,
        number_generator: IdentifierGenerator,
        validator: Optional[OrderValidator] = None,
        payment_repository: Optional[PaymentRepository] = None,
    ):
        self.order_repository = order_repository
        self.catalog_repository = catalog_repository
        self.number_generator = number_generator
        self.payment_repository = payment_repository
        self.validator = validator or OrderValidator()
        self.events: List = []

    async def validate_items(
        self,
        items: Sequence[RequestedItem],
        submitted_total: Optional[Decimal] = None,
    ) -> list[ItemValidationError]:
        products = await self.catalog_repository.get_many({i.product_id for i in items})
        return self._validate(items, products, submitted_total)

    def _validate(self, items, products, submitted_total) -> list[ItemValidationError]:
        errors = self.validator.validate(items, products)
        if submitted_total is not None:
            total_error = self.validator.validate_total(items, submitted_total)
            if total_error is not None:
                errors.append(total_error)
        return errors

    async def place_order(
        self,
        items: Sequence[RequestedItem],
        customer_info: CustomerInfo,
        payment_method: OrderPaymentMethod,
        currency: str,
        submitted_total: Optional[Decimal] = None,
    ) -> Order:
        """
        Validate, number, persist and reserve stock.

        Raises OrderValidationException carrying every item error when the
        cart is invalid, StockConflictException when a concurrent order took
        the stock after validation.
        """
        products = await self.catalog_repository.get_many({i.product_id for i in items})
        errors = self._validate(items, products, submitted_total)
        if errors:
            raise OrderValidationException(errors)

        order_items = [
            OrderItem(
                product_id=item.product_id,
                product_name=products[item.product_id].name,
                quantity=item.quantity,
                price=products[item.product_id].price,
            )
            for item in items
        ]

        created = await self._insert_with_unique_number(
            order_items, customer_info, payment_method, currency.upper()
        )

        # Stock is reserved after the insert so a number retry never double-reserves
        for item in created.items:
            reserved = await self.catalog_repository.decrement_stock_if_available(
                item.product_id, item.quantity
            )
            if not reserved:
                raise StockConflictException(item.product_id, item.quantity)

        self.events.append(OrderCreated(
            order_number=created.order_number,
            total=str(created.total),
            item_count=len(created.items),
        ))
        return created

    async def _insert_with_unique_number(
        self,
        items: list[OrderItem],
        customer_info: CustomerInfo,
        payment_method: OrderPaymentMethod,
        currency: str,
    ) -> Order:
        attempts = self.number_generator.max_attempts
        for _ in range(attempts):
            order_number = await self.number_generator.generate(
                self.order_repository.exists_by_order_number
            )
            order = Order(
                id=None,
                order_number=order_number,
                items=items,
                customer_info=customer_info,
                payment_method=payment_method,
                total=Order.calculate_total(items),
                currency=currency,
            )
            try:
                return await self.order_repository.create(order)
            except OrderNumberConflictException:
                # Lost the race between the existence check and the insert
                continue
        raise OrderNumberGenerationError(self.number_generator.prefix, attempts)

    async def get_order(self, order_id: int) -> Order:
        order = await self.order_repository.get_by_id(order_id)
        if not order:
            raise OrderNotFoundException(f"id={order_id}")
        return order

    async def get_order_by_number(self, order_number: str) -> Order:
        order = await self.order_repository.get_by_order_number(order_number)
        if not order:
            raise OrderNotFoundException(order_number)
        return order

    async def change_status(
        self,
        order_id: int,
        new_status: Union[str, OrderStatus, OrderPaymentStatus],
        status_type: Union[str, StatusType] = StatusType.ORDER,
    ) -> Order:
        status_type = parse_status_type(status_type)
        order = await self.get_order(order_id)
        if status_type is StatusType.ORDER and new_status == OrderStatus.CANCELLED:
            # Cancellation through the generic path still gives stock back
            return await self._cancel(order, None)

        before = self._status_of(order, status_type)
        order.update_status(new_status, status_type)
        updated = await self.order_repository.update(order)
        self.events.append(OrderStatusChanged(
            order_number=updated.order_number,
            status_type=status_type.value,
            from_status=before,
            to_status=self._status_of(updated, status_type),
        ))
        return updated

    async def cancel_order(self, order_id: int, reason: Optional[str] = None) -> Order:
        order = await self.get_order(order_id)
        return await self._cancel(order, reason)

    async def _cancel(self, order: Order, reason: Optional[str]) -> Order:
        if not order.can_be_cancelled():
            raise OrderNotCancellableException(order.order_number, order.order_status.value)

        await self._release_payment(order, reason)
        order.update_status(OrderStatus.CANCELLED, StatusType.ORDER)
        order.cancellation_reason = reason
        updated = await self.order_repository.update(order)
        await self._restore_stock(updated)

        self.events.append(OrderCancelled(order_number=updated.order_number, reason=reason))
        return updated

    async def _release_payment(self, order: Order, reason: Optional[str]) -> None:
        """Close the open attempt of a cancelled order so it can no longer be charged"""
        if self.payment_repository is None:
            return
        payment = await self.payment_repository.get_current_by_order(order.id)
        if payment is None or payment.is_settled():
            return
        before = payment.status
        payment.release(reason or "Order cancelled")
        if payment.status is before:
            return
        await self.payment_repository.update(payment)
        if payment.status == OrderPaymentStatus.FAILED.value and order.payment_status is OrderPaymentStatus.PENDING:
            order.update_status(OrderPaymentStatus.FAILED, StatusType.PAYMENT)

    @staticmethod
    def ensure_deletable(order: Order) -> None:
        if not order.can_be_deleted():
            raise PaidOrderDeletionException(order.order_number, order.payment_status.value)

    async def delete_order(self, order_id: int) -> None:
        """Physical removal, allowed only while the payment never settled"""
        order = await self.get_order(order_id)
        self.ensure_deletable(order)

        if order.holds_stock():
            await self._restore_stock(order)
        await self.order_repository.delete(order.id)
        self.events.append(OrderDeleted(order_number=order.order_number))

    async def _restore_stock(self, order: Order) -> None:
        for item in order.items:
            await self.catalog_repository.restore_stock(item.product_id, item.quantity)

    @staticmethod
    def _status_of(order: Order, status_type: StatusType) -> str:
        if status_type is StatusType.ORDER:
            return order.order_status.value
        return order.payment_status.value

    def clear_events(self) -> List:
        events = self.events.copy()
        self.events.clear()
        return events
