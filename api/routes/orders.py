"""
Order API routes - parse, forward, wrap
"""
from typing import Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from api.dependencies import get_order_service
from application.dto import MessageDTO, PaginationParams
from application.dtos.orders import (
    CancelOrderRequest,
    CreateOrderRequest,
    CreateOrderResult,
    OrderDTO,
    UpdateOrderStatusRequest,
)
from application.services.order_service import OrderApplicationService
from core.response import PaginatedData, Response as ApiResponse, error_response, paginated_response, success_response
from domain.order.entity import OrderPaymentStatus, OrderStatus
from shared.codes import BusinessCode

router = APIRouter(prefix="/orders", tags=["Orders"])


@router.post("", summary="Create order", response_model=ApiResponse[CreateOrderResult])
async def create_order(
    payload: CreateOrderRequest,
    service: OrderApplicationService = Depends(get_order_service),
):
    """
    Validate the items against the catalogue and place the order.

    Validation problems come back as a list, one entry per offending item.
    """
    result = await service.create_order(payload)
    if not result.success:
        body = error_response(
            code=BusinessCode.ORDER_VALIDATION_FAILED,
            message="Order validation failed",
            error_type="OrderValidationFailed",
            details={"errors": [e.model_dump(mode="json") for e in result.errors]},
            kind="validation",
        )
        return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body.model_dump(mode="json"))
    return success_response(data=result, message="Order created")


@router.get("", summary="List orders", response_model=ApiResponse[PaginatedData[OrderDTO]])
async def list_orders(
    params: PaginationParams = Depends(),
    order_status: Optional[OrderStatus] = None,
    payment_status: Optional[OrderPaymentStatus] = None,
    service: OrderApplicationService = Depends(get_order_service),
):
    items, total = await service.list_orders(params, order_status=order_status, payment_status=payment_status)
    return paginated_response(items=items, total=total, page=params.page, size=params.size)


@router.get("/by-number/{order_number}", summary="Get order by number", response_model=ApiResponse[OrderDTO])
async def get_order_by_number(order_number: str, service: OrderApplicationService = Depends(get_order_service)):
    return success_response(data=await service.get_order_by_number(order_number))


@router.get("/{order_id}", summary="Get order", response_model=ApiResponse[OrderDTO])
async def get_order(order_id: int, service: OrderApplicationService = Depends(get_order_service)):
    return success_response(data=await service.get_order(order_id))


@router.patch("/{order_id}/status", summary="Update order or payment status", response_model=ApiResponse[OrderDTO])
async def update_status(
    order_id: int,
    payload: UpdateOrderStatusRequest,
    service: OrderApplicationService = Depends(get_order_service),
):
    order = await service.update_status(order_id, payload.status, payload.status_type)
    return success_response(data=order, message="Status updated")


@router.post("/{order_id}/cancel", summary="Cancel order", response_model=ApiResponse[OrderDTO])
async def cancel_order(
    order_id: int,
    payload: CancelOrderRequest,
    service: OrderApplicationService = Depends(get_order_service),
):
    order = await service.cancel_order(order_id, payload.reason)
    return success_response(data=order, message="Order cancelled")


@router.delete("/{order_id}", summary="Delete order", response_model=ApiResponse[MessageDTO])
async def delete_order(order_id: int, service: OrderApplicationService = Depends(get_order_service)):
    await service.delete_order(order_id)
    return success_response(data=MessageDTO(message="Order deleted"))
