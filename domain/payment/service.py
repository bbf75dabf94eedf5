"""
Payment domain service - payment rules that span the payment and its order
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from domain.order.entity import Order, OrderPaymentStatus, OrderStatus, StatusType
from domain.order.exceptions import (
    OrderAlreadyPaidException,
    OrderNotFoundException,
    OrderNotPayableException,
    OrderNotRefundableException,
)
from domain.order.number import IdentifierGenerator
from domain.order.repository import OrderRepository
from .entity import Payment, PaymentStatus, Refund, RefundStatus
from .events import (
    BankTransferVerified,
    PaymentCompleted,
    PaymentFailed,
    PaymentInitialized,
    PaymentRefunded,
    PaymentSubmitted,
)
from .exceptions import (
    NotBankTransferException,
    NotCashOnDeliveryException,
    PaymentExpiredException,
    PaymentIdConflictException,
    PaymentInProgressException,
    PaymentMethodNotFoundException,
    PaymentNotFoundException,
    PaymentNotPendingException,
    PaymentNotRefundableException,
    InvalidRefundAmountException,
)
from .fees import FeeQuote, calculate_fees
from .method import PaymentMethod, PaymentMethodType
from .repository import PaymentMethodRepository, PaymentRepository, RefundRepository


class PaymentDomainService:
    """
    Orchestrates payment business rules.

    Responsibilities:
    1. payment method lookup and fee quotes
    2. opening a payment for an order (one current payment per order)
    3. applying normalized processor outcomes to payment and order
    4. refund rules and manual settlement (bank transfer, cash collection)
    5. collect domain events
    """

    def __init__(
        self,
        payment_repository: PaymentRepository,
        refund_repository: RefundRepository,
        method_repository: PaymentMethodRepository,
        order_repository: OrderRepository,
        id_generator: IdentifierGenerator,
    ):
        self.payment_repository = payment_repository
        self.refund_repository = refund_repository
        self.method_repository = method_repository
        self.order_repository = order_repository
        self.id_generator = id_generator
        self.events: List = []

    # ---- reference data -------------------------------------------------

    async def get_method(self, name: str) -> PaymentMethod:
        method = await self.method_repository.get_by_name(name.strip().lower())
        if not method or not method.active:
            raise PaymentMethodNotFoundException(name)
        return method

    async def quote(self, method_name: str, amount: Decimal, currency: str) -> FeeQuote:
        method = await self.get_method(method_name)
        return calculate_fees(method, amount, currency)

    # ---- lookups --------------------------------------------------------

    async def get_payment(self, payment_id: str, *, for_update: bool = False) -> Payment:
        payment = await self.payment_repository.get_by_payment_id(payment_id, for_update=for_update)
        if not payment:
            raise PaymentNotFoundException(payment_id)
        return payment

    async def get_order_of(self, payment: Payment) -> Order:
        order = await self.order_repository.get_by_id(payment.order_id)
        if not order:
            raise OrderNotFoundException(payment.order_number)
        return order

    # ---- opening a payment ----------------------------------------------

    async def open_payment(
        self,
        order: Order,
        method: PaymentMethod,
        metadata: Optional[dict] = None,
    ) -> tuple[Payment, FeeQuote]:
        """
        Create the current payment of an order.

        Business rules:
        1. the order is live and not yet paid
        2. a submitted, unexpired attempt blocks a new one
        3. the order total lies within the method's amount range
        4. the charged amount includes the method's fees
        """
        self.ensure_order_payable(order)

        now = datetime.now(timezone.utc)
        previous = await self.payment_repository.get_current_by_order(order.id)
        if previous is not None:
            if previous.is_settled():
                raise OrderAlreadyPaidException(order.order_number)
            if previous.effective_status(now) is PaymentStatus.PENDING:
                raise PaymentInProgressException(previous.payment_id)
            previous.supersede(now)
            await self.payment_repository.update(previous)

        method.validate_amount(order.total)
        quote = calculate_fees(method, order.total, order.currency)

        payment = await self._insert_with_unique_id(order, method, quote, now, metadata or {})

        if order.payment_status is OrderPaymentStatus.FAILED:
            order.update_status(OrderPaymentStatus.PENDING, StatusType.PAYMENT)
        order.payment_method = method.order_payment_method
        await self.order_repository.update(order)

        self.events.append(PaymentInitialized(
            payment_id=payment.payment_id,
            order_number=order.order_number,
            method=method.name,
            amount=str(payment.amount),
            fees=str(payment.fees),
        ))
        return payment, quote

    async def _insert_with_unique_id(
        self,
        order: Order,
        method: PaymentMethod,
        quote: FeeQuote,
        now: datetime,
        metadata: dict,
    ) -> Payment:
        for _ in range(self.id_generator.max_attempts):
            payment_id = await self.id_generator.generate(self.payment_repository.exists_by_payment_id)
            payment = Payment(
                id=None,
                payment_id=payment_id,
                order_id=order.id,
                order_number=order.order_number,
                method_name=method.name,
                method_type=method.type,
                provider=method.provider,
                amount=quote.total,
                subtotal=quote.amount,
                fees=quote.fee,
                currency=quote.currency,
                status=PaymentStatus.INITIALIZED,
                expires_at=Payment.expiry_from(method.timeout_minutes, now),
                created_at=now,
                updated_at=now,
                metadata=dict(metadata),
            )
            try:
                return await self.payment_repository.create(payment)
            except PaymentIdConflictException:
                continue
        raise self.id_generator.exhausted()

    # ---- submission and outcomes ----------------------------------------

    @staticmethod
    def ensure_order_payable(order: Order) -> None:
        if order.order_status is OrderStatus.CANCELLED:
            raise OrderNotPayableException(order.order_number, order.order_status.value)
        if order.payment_status in (OrderPaymentStatus.COMPLETED, OrderPaymentStatus.REFUNDED):
            raise OrderAlreadyPaidException(order.order_number)

    def ensure_submittable(self, payment: Payment, now: Optional[datetime] = None) -> None:
        """Current, open and unexpired; completed payments are handled by the caller"""
        if not payment.is_current:
            raise PaymentNotPendingException(payment.payment_id, "superseded")
        status = payment.effective_status(now)
        if status is PaymentStatus.EXPIRED:
            raise PaymentExpiredException(payment.payment_id)
        if status is not PaymentStatus.INITIALIZED:
            raise PaymentNotPendingException(payment.payment_id, status.value)

    def ensure_capturable(self, payment: Payment, now: Optional[datetime] = None) -> None:
        if not payment.is_current:
            raise PaymentNotPendingException(payment.payment_id, "superseded")
        status = payment.effective_status(now)
        if status is PaymentStatus.EXPIRED:
            raise PaymentExpiredException(payment.payment_id)
        if status is not PaymentStatus.PENDING:
            raise PaymentNotPendingException(payment.payment_id, status.value)

    async def record_submission(self, payment: Payment, details: Optional[dict] = None) -> Payment:
        """Mark in flight before the processor call so a second submit is rejected"""
        payment.mark_pending()
        for key, value in (details or {}).items():
            payment.update_metadata(key, value)
        updated = await self.payment_repository.update(payment)
        self.events.append(PaymentSubmitted(
            payment_id=updated.payment_id,
            order_number=updated.order_number,
            method=updated.method_name,
        ))
        return updated

    async def apply_success(
        self,
        payment: Payment,
        order: Order,
        provider_ref: Optional[str] = None,
    ) -> Payment:
        payment.mark_completed(provider_ref)
        updated = await self.payment_repository.update(payment)
        self._mirror(order, OrderPaymentStatus.COMPLETED)
        self._confirm(order)
        await self.order_repository.update(order)
        self.events.append(PaymentCompleted(
            payment_id=updated.payment_id,
            order_number=order.order_number,
            method=updated.method_name,
            provider_ref=updated.provider_ref,
            amount=str(updated.amount),
        ))
        return updated

    async def apply_failure(self, payment: Payment, order: Order, reason: Optional[str]) -> Payment:
        """The order keeps its fulfillment status so the customer can retry"""
        payment.mark_failed(reason)
        updated = await self.payment_repository.update(payment)
        if self._mirror(order, OrderPaymentStatus.FAILED):
            await self.order_repository.update(order)
        self.events.append(PaymentFailed(
            payment_id=updated.payment_id,
            order_number=order.order_number,
            method=updated.method_name,
            provider_ref=updated.provider_ref,
            reason=reason,
        ))
        return updated

    async def apply_pending(
        self,
        payment: Payment,
        order: Order,
        provider_ref: Optional[str] = None,
        *,
        deferred: bool = False,
        confirm_order: bool = False,
    ) -> Payment:
        """Outcome still open; COD and bank transfers confirm the order right away"""
        payment.mark_pending(provider_ref, deferred=deferred)
        updated = await self.payment_repository.update(payment)
        if confirm_order and self._confirm(order):
            await self.order_repository.update(order)
        return updated

    @staticmethod
    def _mirror(order: Order, target: OrderPaymentStatus) -> bool:
        if order.payment_status is target:
            return False
        order.update_status(target, StatusType.PAYMENT)
        return True

    @staticmethod
    def _confirm(order: Order) -> bool:
        if order.order_status is not OrderStatus.PENDING:
            return False
        order.update_status(OrderStatus.CONFIRMED, StatusType.ORDER)
        return True

    # ---- manual settlement ----------------------------------------------

    async def verify_bank_transfer(
        self,
        payment_id: str,
        verified: bool,
        notes: Optional[str],
        actor: str,
    ) -> tuple[Payment, Order]:
        payment = await self.get_payment(payment_id, for_update=True)
        if payment.method_type is not PaymentMethodType.BANK_TRANSFER:
            raise NotBankTransferException(payment.payment_id, payment.method_type.value)
        status = payment.effective_status()
        if status is not PaymentStatus.PENDING:
            raise PaymentNotPendingException(payment.payment_id, status.value)

        order = await self.get_order_of(payment)
        payment.update_metadata("verification", {
            "verified": verified,
            "notes": notes,
            "actor": actor,
            "verified_at": datetime.now(timezone.utc).isoformat(),
        })
        if verified:
            updated = await self.apply_success(payment, order)
        else:
            updated = await self.apply_failure(payment, order, notes or "Bank transfer rejected")

        self.events.append(BankTransferVerified(
            payment_id=updated.payment_id,
            order_number=order.order_number,
            method=updated.method_name,
            verified=verified,
            actor=actor,
        ))
        return updated, order

    async def confirm_cash_collected(self, payment_id: str, actor: str) -> tuple[Payment, Order]:
        payment = await self.get_payment(payment_id, for_update=True)
        if payment.method_type is not PaymentMethodType.CASH:
            raise NotCashOnDeliveryException(payment.payment_id, payment.method_type.value)
        order = await self.get_order_of(payment)
        if payment.status is PaymentStatus.COMPLETED:
            return payment, order
        if payment.effective_status() is not PaymentStatus.PENDING:
            raise PaymentNotPendingException(payment.payment_id, payment.effective_status().value)

        payment.update_metadata("collected_by", actor)
        updated = await self.apply_success(payment, order)
        return updated, order

    # ---- refunds --------------------------------------------------------

    async def refund(
        self,
        payment_id: str,
        amount: Decimal,
        reason: str,
        actor: str,
    ) -> tuple[Payment, Refund, Order]:
        """
        Apply a partial or full refund.

        Business rules, checked in order:
        1. the payment exists (row locked for the rest of the transaction)
        2. the owning order is refundable
        3. amount > 0
        4. refunded so far + amount <= payment amount
        A failed check leaves every record untouched.
        """
        payment = await self.get_payment(payment_id, for_update=True)
        order = await self.get_order_of(payment)
        if not order.can_be_refunded():
            raise OrderNotRefundableException(
                order.order_number, order.order_status.value, order.payment_status.value
            )
        if amount <= 0:
            raise InvalidRefundAmountException(amount)
        payment.check_refund(amount)

        method = await self.method_repository.get_by_name(payment.method_name)
        if method is not None:
            if not method.supports_refunds:
                raise PaymentNotRefundableException(
                    payment.payment_id,
                    payment.status.value,
                    reason=f"Payment method {method.name} does not support refunds",
                )
            if not method.supports_partial_refunds and amount != payment.refundable_amount():
                raise InvalidRefundAmountException(
                    amount, reason=f"Payment method {method.name} only supports full refunds"
                )

        now = datetime.now(timezone.utc)
        refund = await self.refund_repository.create(Refund(
            id=None,
            payment_id=payment.id,
            amount=amount,
            currency=payment.currency,
            reason=reason,
            actor=actor,
            status=RefundStatus.COMPLETED,
            created_at=now,
            processed_at=now,
        ))

        payment.apply_refund(amount)
        updated = await self.payment_repository.update(payment)
        if updated.is_fully_refunded():
            order.update_status(OrderPaymentStatus.REFUNDED, StatusType.PAYMENT)
            await self.order_repository.update(order)

        self.events.append(PaymentRefunded(
            payment_id=updated.payment_id,
            order_number=order.order_number,
            method=updated.method_name,
            provider_ref=updated.provider_ref,
            amount=str(amount),
            actor=actor,
            full=updated.is_fully_refunded(),
        ))
        return updated, refund, order

    def clear_events(self) -> List:
        events = self.events.copy()
        self.events.clear()
        return events
