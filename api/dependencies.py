"""
API dependencies - application service wiring
"""
from application.services.order_service import OrderApplicationService
from application.services.payment_service import PaymentApplicationService
from infrastructure.external.payments import get_payment_gateway
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


async def get_order_service() -> OrderApplicationService:
    return OrderApplicationService(uow_factory=SQLAlchemyUnitOfWork)


async def get_payment_service() -> PaymentApplicationService:
    # Gateways come from infrastructure; the service only sees the port
    return PaymentApplicationService(
        uow_factory=SQLAlchemyUnitOfWork,
        gateway_resolver=get_payment_gateway,
    )
