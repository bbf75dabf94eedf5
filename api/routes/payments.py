"""
Payments API routes.

Keep this thin: no processor details here, the application service owns the
dispatch and the gateways sit behind the port.
"""
from __future__ import annotations

import ipaddress
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.dependencies import get_payment_service
from application.dto import PaginationParams
from application.dtos.payments import (
    CapturePaymentRequest,
    ConfirmCashCollectedRequest,
    FeeQuoteDTO,
    FeeQuoteRequest,
    InitializePaymentRequest,
    InitializePaymentResult,
    PaymentDetailDTO,
    PaymentDTO,
    PaymentMethodDTO,
    PaymentOutcomeDTO,
    ProcessPaymentRequest,
    RefundPaymentRequest,
    RefundResultDTO,
    VerifyBankTransferRequest,
    WebhookResultDTO,
)
from application.services.payment_service import PaymentApplicationService
from core.logging_config import get_logger
from core.response import PaginatedData, Response as ApiResponse, error_response, paginated_response, success_response
from core.settings import payment_settings
from domain.payment.entity import PaymentStatus
from shared.codes import BusinessCode


router = APIRouter(prefix="/payments", tags=["Payments"])
logger = get_logger(__name__)


@router.get("/methods", summary="List payment methods", response_model=ApiResponse[list[PaymentMethodDTO]])
async def list_methods(
    currency: Optional[str] = None,
    service: PaymentApplicationService = Depends(get_payment_service),
):
    return success_response(data=await service.list_payment_methods(currency))


@router.post("/quote", summary="Quote fees", response_model=ApiResponse[FeeQuoteDTO])
async def quote_fees(payload: FeeQuoteRequest, service: PaymentApplicationService = Depends(get_payment_service)):
    return success_response(data=await service.quote_fees(payload.method, payload.amount, payload.currency))


@router.post("/initialize", summary="Initialize payment", response_model=ApiResponse[InitializePaymentResult])
async def initialize_payment(
    payload: InitializePaymentRequest,
    service: PaymentApplicationService = Depends(get_payment_service),
):
    return success_response(data=await service.initialize_payment(payload), message="Payment initialized")


@router.get("", summary="List payments", response_model=ApiResponse[PaginatedData[PaymentDTO]])
async def list_payments(
    params: PaginationParams = Depends(),
    status: Optional[PaymentStatus] = None,
    method: Optional[str] = None,
    service: PaymentApplicationService = Depends(get_payment_service),
):
    items, total = await service.list_payments(params, status=status, method=method)
    return paginated_response(items=items, total=total, page=params.page, size=params.size)


@router.get("/orders/{order_number}", summary="Payments of an order", response_model=ApiResponse[list[PaymentDTO]])
async def list_order_payments(order_number: str, service: PaymentApplicationService = Depends(get_payment_service)):
    return success_response(data=await service.list_order_payments(order_number))


@router.get("/{payment_id}", summary="Get payment", response_model=ApiResponse[PaymentDetailDTO])
async def get_payment(payment_id: str, service: PaymentApplicationService = Depends(get_payment_service)):
    return success_response(data=await service.get_payment(payment_id))


@router.post("/{payment_id}/process", summary="Process payment", response_model=ApiResponse[PaymentOutcomeDTO])
async def process_payment(
    payment_id: str,
    payload: ProcessPaymentRequest,
    service: PaymentApplicationService = Depends(get_payment_service),
):
    return success_response(data=await service.process_payment(payment_id, payload.details))


@router.post("/{payment_id}/capture", summary="Capture redirect payment", response_model=ApiResponse[PaymentOutcomeDTO])
async def capture_payment(
    payment_id: str,
    payload: CapturePaymentRequest,
    service: PaymentApplicationService = Depends(get_payment_service),
):
    return success_response(data=await service.capture_payment(payment_id, payload.provider_ref))


@router.post("/{payment_id}/refunds", summary="Refund payment", response_model=ApiResponse[RefundResultDTO])
async def refund_payment(
    payment_id: str,
    payload: RefundPaymentRequest,
    service: PaymentApplicationService = Depends(get_payment_service),
):
    result = await service.process_refund(payment_id, payload.amount, payload.reason, payload.actor)
    return success_response(data=result, message="Refund processed")


@router.post("/{payment_id}/verify", summary="Verify bank transfer", response_model=ApiResponse[PaymentOutcomeDTO])
async def verify_bank_transfer(
    payment_id: str,
    payload: VerifyBankTransferRequest,
    service: PaymentApplicationService = Depends(get_payment_service),
):
    result = await service.verify_bank_transfer(payment_id, payload.verified, payload.notes, payload.actor)
    return success_response(data=result)


@router.post("/{payment_id}/collect", summary="Confirm cash collected", response_model=ApiResponse[PaymentOutcomeDTO])
async def confirm_cash_collected(
    payment_id: str,
    payload: ConfirmCashCollectedRequest,
    service: PaymentApplicationService = Depends(get_payment_service),
):
    return success_response(data=await service.confirm_cash_collected(payment_id, payload.actor))


def _ip_permitted(remote_ip: str, allowlist: list[str]) -> bool:
    try:
        rip = ipaddress.ip_address(remote_ip)
    except ValueError:
        return False
    for entry in allowlist:
        try:
            if "/" in entry:
                if rip in ipaddress.ip_network(entry, strict=False):
                    return True
            elif remote_ip == entry:
                return True
        except ValueError:
            continue
    return False


@router.post("/webhooks/{provider}", summary="Processor webhook", response_model=ApiResponse[WebhookResultDTO])
async def payments_webhook(
    provider: str,
    request: Request,
    service: PaymentApplicationService = Depends(get_payment_service),
):
    ct = (request.headers.get("content-type") or "").lower()
    if "application/json" not in ct:
        body = error_response(
            code=BusinessCode.PARAM_ERROR,
            message="Webhook content type must be application/json",
            error_type="UnsupportedContentType",
            kind="validation",
        )
        return JSONResponse(status_code=415, content=body.model_dump(mode="json"))

    allowlist = payment_settings.webhook.ip_allowlist or []
    remote_ip = getattr(request.state, "client_ip", None) or (request.client.host if request.client else None)
    if allowlist and remote_ip:
        if not _ip_permitted(remote_ip, allowlist):
            logger.warning("webhook_ip_rejected", provider=provider, remote_ip=remote_ip)
            body = error_response(
                code=BusinessCode.PARAM_ERROR,
                message="Webhook source not allowed",
                error_type="WebhookForbidden",
            )
            return JSONResponse(status_code=403, content=body.model_dump(mode="json"))

    raw_body = await request.body()
    headers = {k: v for k, v in request.headers.items()}
    result = await service.handle_webhook(provider, headers, raw_body)
    # 200 acknowledges receipt, duplicates included
    return success_response(data=result, message="Webhook received")
