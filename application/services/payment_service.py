"""
Application service orchestrating payment use-cases: the method dispatcher,
refunds and reconciliation.

This class depends only on the application PaymentGateway port and DTOs.
Gateway implementations are provided by infrastructure and must be injected
from the composition root (API), keeping dependencies one-way.

Every processor call runs between two short units of work; no transaction or
row lock is held while a gateway is being called.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Callable, Optional

from application.dto import PaginationParams
from application.dtos.payments import (
    FeeQuoteDTO,
    InitializePaymentRequest,
    InitializePaymentResult,
    PaymentDetailDTO,
    PaymentDTO,
    PaymentMethodDTO,
    PaymentOutcomeDTO,
    RefundDTO,
    RefundResultDTO,
    WebhookResultDTO,
)
from application.ports.payment_gateway import GatewayResolver, PaymentGateway
from application.processors import PaymentProcessor, ProcessorOutcome, ProcessorRegistry, build_default_registry
from application.utils.events import log_domain_events
from core.logging_config import get_logger
from core.settings import payment_settings
from domain.common.exceptions import DomainValidationException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.order.entity import Order
from domain.order.exceptions import OrderNotFoundException
from domain.order.number import IdentifierGenerator
from domain.payment.entity import OPEN_STATUSES, Payment, PaymentStatus
from domain.payment.exceptions import (
    CaptureNotSupportedException,
    PaymentDetailsInvalidException,
    PaymentNotFoundException,
)
from domain.payment.service import PaymentDomainService


logger = get_logger(__name__)


def build_payment_id_generator() -> IdentifierGenerator:
    return IdentifierGenerator(
        payment_settings.payment_id_prefix,
        random_digits=payment_settings.payment_id_random_digits,
    )


class PaymentApplicationService:
    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        gateway_resolver: GatewayResolver,
        registry: Optional[ProcessorRegistry] = None,
        id_generator: Optional[IdentifierGenerator] = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._resolve_gateway = gateway_resolver
        self._registry = registry or build_default_registry()
        self._id_generator = id_generator or build_payment_id_generator()

    def _domain(self, uow: AbstractUnitOfWork) -> PaymentDomainService:
        return PaymentDomainService(
            uow.payment_repository,
            uow.refund_repository,
            uow.payment_method_repository,
            uow.order_repository,
            self._id_generator,
        )

    def _gateway_for(self, processor: PaymentProcessor, provider: str) -> Optional[PaymentGateway]:
        if not processor.uses_gateway:
            return None
        try:
            return self._resolve_gateway(provider)
        except ValueError:
            # Processor reports the missing gateway as a failed outcome
            logger.error("payment_gateway_unavailable", provider=provider)
            return None

    @staticmethod
    def _outcome_dto(
        payment: Payment,
        order: Order,
        outcome: Optional[ProcessorOutcome] = None,
        *,
        already_processed: bool = False,
    ) -> PaymentOutcomeDTO:
        status = outcome.status if outcome else _outcome_of(payment)
        return PaymentOutcomeDTO(
            outcome=status,
            payment=PaymentDTO.from_entity(payment),
            order_payment_status=order.payment_status,
            redirect_url=outcome.redirect_url if outcome else None,
            message=outcome.message if outcome else None,
            already_processed=already_processed,
        )

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------
    async def list_payment_methods(self, currency: Optional[str] = None) -> list[PaymentMethodDTO]:
        async with self._uow_factory(readonly=True) as uow:
            methods = await uow.payment_method_repository.list_active(currency)
        return [PaymentMethodDTO.from_entity(m) for m in methods]

    async def quote_fees(self, method: str, amount: Decimal, currency: str) -> FeeQuoteDTO:
        """Pre-checkout estimate; nothing is written"""
        async with self._uow_factory(readonly=True) as uow:
            quote = await self._domain(uow).quote(method, amount, currency)
        return FeeQuoteDTO.from_quote(quote)

    # ------------------------------------------------------------------
    # Dispatcher
    # ------------------------------------------------------------------
    async def initialize_payment(self, req: InitializePaymentRequest) -> InitializePaymentResult:
        async with self._uow_factory() as uow:
            domain = self._domain(uow)
            order = await uow.order_repository.get_by_order_number(req.order_number)
            if order is None:
                raise OrderNotFoundException(req.order_number)
            method = await domain.get_method(req.method)
            processor = self._registry.get(method.type)
            payment, quote = await domain.open_payment(
                order,
                method,
                metadata={"customer": _safe_customer_data(req.customer_data)},
            )
            next_step = processor.next_step(payment, method)

        log_domain_events(logger, domain.clear_events())
        return InitializePaymentResult(
            payment=PaymentDTO.from_entity(payment),
            quote=FeeQuoteDTO.from_quote(quote),
            next_step=next_step,
        )

    async def process_payment(self, payment_id: str, details: Optional[dict[str, Any]] = None) -> PaymentOutcomeDTO:
        """
        Submit a payment through its method's processor.

        Calling it again for a completed payment returns the stored outcome
        without touching the processor.
        """
        details = details or {}
        async with self._uow_factory() as uow:
            domain = self._domain(uow)
            payment = await domain.get_payment(payment_id, for_update=True)
            if payment.is_settled():
                order = await domain.get_order_of(payment)
                return self._outcome_dto(payment, order, already_processed=True)

            domain.ensure_order_payable(await domain.get_order_of(payment))
            domain.ensure_submittable(payment)
            processor = self._registry.get(payment.method_type)
            safe_details = processor.validate(details)
            payment = await domain.record_submission(payment, safe_details)
        log_domain_events(logger, domain.clear_events())

        logger.info(
            "payment_submitting",
            payment_id=payment.payment_id,
            method=payment.method_name,
            provider=payment.provider,
            amount=str(payment.amount),
            currency=payment.currency,
        )
        gateway = self._gateway_for(processor, payment.provider)
        outcome = await processor.process(payment, details, gateway)
        return await self._apply_outcome(payment.payment_id, outcome)

    async def capture_payment(self, payment_id: str, provider_ref: Optional[str] = None) -> PaymentOutcomeDTO:
        """Second step of redirect methods, after the customer approved"""
        async with self._uow_factory() as uow:
            domain = self._domain(uow)
            payment = await domain.get_payment(payment_id, for_update=True)
            if payment.is_settled():
                order = await domain.get_order_of(payment)
                return self._outcome_dto(payment, order, already_processed=True)

            processor = self._registry.get(payment.method_type)
            if not processor.supports_capture:
                raise CaptureNotSupportedException(payment.payment_id, payment.method_type.value)
            domain.ensure_order_payable(await domain.get_order_of(payment))
            domain.ensure_capturable(payment)

            if provider_ref and payment.provider_ref and provider_ref != payment.provider_ref:
                raise PaymentDetailsInvalidException({"provider_ref": "Reference does not match this payment"})
            reference = provider_ref or payment.provider_ref
            if not reference:
                raise PaymentDetailsInvalidException({"provider_ref": "Processor reference is required"})

        gateway = self._gateway_for(processor, payment.provider)
        outcome = await processor.capture(payment, reference, gateway)
        return await self._apply_outcome(payment.payment_id, outcome)

    async def _apply_outcome(self, payment_id: str, outcome: ProcessorOutcome) -> PaymentOutcomeDTO:
        async with self._uow_factory() as uow:
            domain = self._domain(uow)
            payment = await domain.get_payment(payment_id, for_update=True)
            order = await domain.get_order_of(payment)

            if payment.status not in OPEN_STATUSES or not payment.is_current:
                # Settled by a webhook or a concurrent capture, or replaced by a newer attempt
                logger.info(
                    "payment_outcome_already_applied",
                    payment_id=payment.payment_id,
                    status=payment.status.value,
                    is_current=payment.is_current,
                    outcome=outcome.status,
                )
                return self._outcome_dto(payment, order, already_processed=True)

            if outcome.status == "success":
                payment = await domain.apply_success(payment, order, outcome.provider_ref)
            elif outcome.status == "failure":
                payment = await domain.apply_failure(payment, order, outcome.message)
            else:
                payment = await domain.apply_pending(
                    payment,
                    order,
                    outcome.provider_ref,
                    deferred=outcome.deferred,
                    confirm_order=outcome.confirms_order,
                )

        log_domain_events(logger, domain.clear_events())
        logger.info(
            "payment_processed",
            payment_id=payment.payment_id,
            outcome=outcome.status,
            status=payment.status.value,
            order_payment_status=order.payment_status.value,
        )
        return self._outcome_dto(payment, order, outcome)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def get_payment(self, payment_id: str) -> PaymentDetailDTO:
        async with self._uow_factory(readonly=True) as uow:
            payment = await self._domain(uow).get_payment(payment_id)
            refunds = await uow.refund_repository.list_by_payment(payment.id)
        return PaymentDetailDTO(
            payment=PaymentDTO.from_entity(payment),
            refunds=[RefundDTO.from_entity(r) for r in refunds],
        )

    async def list_order_payments(self, order_number: str) -> list[PaymentDTO]:
        async with self._uow_factory(readonly=True) as uow:
            order = await uow.order_repository.get_by_order_number(order_number)
            if order is None:
                raise OrderNotFoundException(order_number)
            payments = await uow.payment_repository.list_by_order(order.id)
        return [PaymentDTO.from_entity(p) for p in payments]

    async def list_payments(
        self,
        params: PaginationParams,
        status: Optional[PaymentStatus] = None,
        method: Optional[str] = None,
    ) -> tuple[list[PaymentDTO], int]:
        async with self._uow_factory(readonly=True) as uow:
            payments = await uow.payment_repository.list(
                skip=params.skip, limit=params.limit, status=status, method_name=method
            )
            total = await uow.payment_repository.count(status=status, method_name=method)
        return [PaymentDTO.from_entity(p) for p in payments], total

    # ------------------------------------------------------------------
    # Refunds and manual settlement
    # ------------------------------------------------------------------
    async def process_refund(
        self,
        payment_id: str,
        amount: Decimal,
        reason: str,
        actor: str,
    ) -> RefundResultDTO:
        async with self._uow_factory() as uow:
            domain = self._domain(uow)
            payment, refund, order = await domain.refund(payment_id, amount, reason, actor)

        log_domain_events(logger, domain.clear_events())
        return RefundResultDTO(
            payment=PaymentDTO.from_entity(payment),
            refund=RefundDTO.from_entity(refund),
            order_payment_status=order.payment_status,
        )

    async def verify_bank_transfer(
        self,
        payment_id: str,
        verified: bool,
        notes: Optional[str],
        actor: str,
    ) -> PaymentOutcomeDTO:
        async with self._uow_factory() as uow:
            domain = self._domain(uow)
            payment, order = await domain.verify_bank_transfer(payment_id, verified, notes, actor)

        log_domain_events(logger, domain.clear_events())
        return self._outcome_dto(payment, order)

    async def confirm_cash_collected(self, payment_id: str, actor: str) -> PaymentOutcomeDTO:
        async with self._uow_factory() as uow:
            domain = self._domain(uow)
            payment, order = await domain.confirm_cash_collected(payment_id, actor)

        log_domain_events(logger, domain.clear_events())
        return self._outcome_dto(payment, order)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------
    async def handle_webhook(self, provider: str, headers: dict, body: bytes) -> WebhookResultDTO:
        """
        Apply an out-of-band processor notification.

        Matched by (provider, provider_ref). Replays and notifications for a
        payment that is no longer open are acknowledged without changes.
        """
        try:
            gateway = self._resolve_gateway(provider)
        except ValueError as e:
            raise DomainValidationException(str(e), field="provider") from e
        event = gateway.parse_webhook(headers, body)
        logger.info(
            "payment_webhook_parsed",
            provider=event.provider,
            event_type=event.type,
            event_id=event.id,
            provider_ref=event.provider_ref,
            status=event.status,
        )

        async with self._uow_factory() as uow:
            domain = self._domain(uow)
            matched = await uow.payment_repository.get_by_provider_ref(event.provider, event.provider_ref)
            if matched is None:
                raise PaymentNotFoundException(f"{event.provider}:{event.provider_ref}")
            payment = await domain.get_payment(matched.payment_id, for_update=True)

            seen = list(payment.metadata.get("webhook_events") or [])
            if event.id in seen or payment.status not in OPEN_STATUSES:
                logger.info(
                    "webhook_duplicate_ignored",
                    event_id=event.id,
                    payment_id=payment.payment_id,
                    status=payment.status.value,
                )
                return WebhookResultDTO(
                    event_id=event.id,
                    payment_id=payment.payment_id,
                    status=payment.effective_status(),
                    duplicate=True,
                )

            order = await domain.get_order_of(payment)
            payment.update_metadata("webhook_events", seen + [event.id])
            if event.status == "success":
                if payment.is_expired():
                    logger.warning(
                        "webhook_settles_expired_payment",
                        payment_id=payment.payment_id,
                        expires_at=payment.expires_at.isoformat() if payment.expires_at else None,
                    )
                payment = await domain.apply_success(payment, order, event.provider_ref)
            elif event.status == "failure":
                payment = await domain.apply_failure(
                    payment, order, str(event.data.get("message") or "Declined by processor")
                )
            else:
                payment = await uow.payment_repository.update(payment)

        log_domain_events(logger, domain.clear_events())
        return WebhookResultDTO(
            event_id=event.id,
            payment_id=payment.payment_id,
            status=payment.effective_status(),
            applied=event.status != "pending",
        )


def _outcome_of(payment: Payment) -> str:
    status = payment.effective_status()
    if status in (PaymentStatus.COMPLETED, PaymentStatus.PARTIALLY_REFUNDED, PaymentStatus.REFUNDED):
        return "success"
    if status in (PaymentStatus.FAILED, PaymentStatus.EXPIRED):
        return "failure"
    return "pending"


_CUSTOMER_KEYS = ("name", "email", "phone", "first_name", "last_name")


def _safe_customer_data(data: dict[str, Any]) -> dict[str, Any]:
    """Only contact fields are kept on the payment"""
    return {k: data[k] for k in _CUSTOMER_KEYS if k in data}
