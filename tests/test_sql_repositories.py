"""Repository and unit-of-work behaviour against a real SQLite database."""
from decimal import Decimal

import pytest
import pytest_asyncio

pytest.importorskip("aiosqlite")

from sqlalchemy.ext.asyncio import async_sessionmaker  # noqa: E402

from application.services.order_service import OrderApplicationService  # noqa: E402
from application.services.payment_service import PaymentApplicationService  # noqa: E402
from domain.catalog.entity import LocalizedName, Product  # noqa: E402
from domain.common.exceptions import ConcurrencyConflictException  # noqa: E402
from domain.order.entity import OrderPaymentStatus, OrderStatus  # noqa: E402
from domain.order.exceptions import OrderNumberConflictException  # noqa: E402
from domain.payment.entity import PaymentStatus  # noqa: E402
from infrastructure.database import build_engine, create_tables, drop_tables  # noqa: E402
from infrastructure.seed import seed_payment_methods  # noqa: E402
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork  # noqa: E402
from fakes import StubGateway, resolver_for  # noqa: E402
from helpers import GOOD_CARD, place_order, start_payment  # noqa: E402


@pytest_asyncio.fixture
async def sql_uow_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'shop.db'}")
    await create_tables(engine)
    sessions = async_sessionmaker(bind=engine, expire_on_commit=False)

    def factory(*, readonly: bool = False) -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(sessions, readonly=readonly)

    async with factory() as uow:
        await uow.catalog_repository.add(
            Product(id=1, name=LocalizedName(en="Oud Royale", ar="عود رويال"), price=Decimal("100.00"), stock=10)
        )
        await uow.catalog_repository.add(
            Product(id=2, name=LocalizedName(en="Rose Musk", ar="مسك الورد"), price=Decimal("250.00"), stock=1)
        )
    await seed_payment_methods(factory)

    yield factory
    await drop_tables(engine)
    await engine.dispose()


@pytest.mark.asyncio
async def test_order_round_trip_and_stock(sql_uow_factory):
    order = await place_order(sql_uow_factory, quantity=3)

    async with sql_uow_factory(readonly=True) as uow:
        loaded = await uow.order_repository.get_by_order_number(order.order_number)
        product = await uow.catalog_repository.get_by_id(1)

    assert loaded.total == Decimal("300.00")
    assert loaded.items[0].product_name.ar == "عود رويال"
    assert loaded.customer_info.city == "Cairo"
    assert loaded.version == 1
    assert product.stock == 7


@pytest.mark.asyncio
async def test_conditional_stock_decrement(sql_uow_factory):
    async with sql_uow_factory() as uow:
        assert await uow.catalog_repository.decrement_stock_if_available(2, 1)
        assert not await uow.catalog_repository.decrement_stock_if_available(2, 1)

    async with sql_uow_factory(readonly=True) as uow:
        assert (await uow.catalog_repository.get_by_id(2)).stock == 0


@pytest.mark.asyncio
async def test_stale_update_is_rejected(sql_uow_factory):
    order = await place_order(sql_uow_factory)
    async with sql_uow_factory(readonly=True) as uow:
        stale = await uow.order_repository.get_by_id(order.id)

    await OrderApplicationService(sql_uow_factory).update_status(order.id, "confirmed")

    stale.update_status(OrderStatus.CANCELLED)
    with pytest.raises(ConcurrencyConflictException):
        async with sql_uow_factory() as uow:
            await uow.order_repository.update(stale)

    async with sql_uow_factory(readonly=True) as uow:
        current = await uow.order_repository.get_by_id(order.id)
    assert current.order_status is OrderStatus.CONFIRMED
    assert current.version == 2


@pytest.mark.asyncio
async def test_duplicate_order_number_is_a_conflict(sql_uow_factory):
    order = await place_order(sql_uow_factory)
    async with sql_uow_factory(readonly=True) as uow:
        existing = await uow.order_repository.get_by_id(order.id)

    existing.id = None
    with pytest.raises(OrderNumberConflictException):
        async with sql_uow_factory() as uow:
            await uow.order_repository.create(existing)


@pytest.mark.asyncio
async def test_payment_lifecycle_persists(sql_uow_factory):
    service = PaymentApplicationService(sql_uow_factory, resolver_for(StubGateway()))
    order = await place_order(sql_uow_factory)
    init = await start_payment(service, order.order_number, "visa")

    outcome = await service.process_payment(init.payment.payment_id, GOOD_CARD)
    assert outcome.payment.status is PaymentStatus.COMPLETED

    refund = await service.process_refund(init.payment.payment_id, Decimal("10.00"), "gift wrap missing", "admin")
    assert refund.payment.status is PaymentStatus.PARTIALLY_REFUNDED

    detail = await service.get_payment(init.payment.payment_id)
    assert detail.payment.amount == Decimal("210.00")
    assert detail.payment.refunded_amount == Decimal("10.00")
    assert detail.payment.provider_ref == "ref_1"
    assert [r.reason for r in detail.refunds] == ["gift wrap missing"]

    async with sql_uow_factory(readonly=True) as uow:
        stored_order = await uow.order_repository.get_by_id(order.id)
        by_ref = await uow.payment_repository.get_by_provider_ref("paymob", "ref_1")
    assert stored_order.payment_status is OrderPaymentStatus.COMPLETED
    assert stored_order.order_status is OrderStatus.CONFIRMED
    assert by_ref.payment_id == init.payment.payment_id
    assert by_ref.metadata["card_last4"] == "4242"


@pytest.mark.asyncio
async def test_delete_order_removes_unsettled_payments(sql_uow_factory):
    service = PaymentApplicationService(sql_uow_factory, resolver_for(StubGateway()))
    order = await place_order(sql_uow_factory)
    await start_payment(service, order.order_number, "visa")

    await OrderApplicationService(sql_uow_factory).delete_order(order.id)

    async with sql_uow_factory(readonly=True) as uow:
        assert await uow.order_repository.get_by_id(order.id) is None
        assert await uow.payment_repository.list_by_order(order.id) == []
        assert (await uow.catalog_repository.get_by_id(1)).stock == 10


@pytest.mark.asyncio
async def test_replaced_and_cancelled_attempts_are_closed(sql_uow_factory):
    service = PaymentApplicationService(sql_uow_factory, resolver_for(StubGateway()))
    order = await place_order(sql_uow_factory)
    await start_payment(service, order.order_number, "visa")
    await start_payment(service, order.order_number, "mastercard")

    await OrderApplicationService(sql_uow_factory).cancel_order(order.id)

    async with sql_uow_factory(readonly=True) as uow:
        attempts = await uow.payment_repository.list_by_order(order.id)
        stored_order = await uow.order_repository.get_by_id(order.id)
    assert [p.status for p in attempts] == [PaymentStatus.EXPIRED, PaymentStatus.EXPIRED]
    assert [p.is_current for p in attempts] == [False, True]
    assert stored_order.order_status is OrderStatus.CANCELLED


@pytest.mark.asyncio
async def test_payment_methods_are_seeded_once(sql_uow_factory):
    await seed_payment_methods(sql_uow_factory)

    async with sql_uow_factory(readonly=True) as uow:
        egp = await uow.payment_method_repository.list_active("EGP")
        eur = await uow.payment_method_repository.list_active("EUR")
        wallet = await uow.payment_method_repository.get_by_name("vodafone_cash")

    assert [m.name for m in egp] == ["visa", "mastercard", "vodafone_cash", "cash_on_delivery", "bank_transfer"]
    assert [m.name for m in eur] == ["paypal"]
    assert wallet.fee_schedules["EGP"].percentage == Decimal("1.5")
    assert not wallet.supports_partial_refunds
    assert wallet.display_name.ar == "فودافون كاش"
