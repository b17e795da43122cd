"""Repository and unit of work behaviour against an in-memory SQLite database."""
from datetime import datetime, timezone
from decimal import Decimal
from functools import partial

import pytest

pytest.importorskip("aiosqlite")

import pytest_asyncio
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from application.dtos.orders import CreateOrderDTO, ReportPaymentDTO
from application.services.order_service import OrderApplicationService
from domain.common.exceptions import InvalidOrderStateException, RefundAlreadyPendingException
from domain.order.entity import Order, OrderStatus
from domain.refund.entity import Refund, RefundStatus
from infrastructure.models import Base, ProductModel
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork
from tests.fakes import FakeVerifier


@pytest_asyncio.fixture
async def session_factory():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, expire_on_commit=False)
    await engine.dispose()


async def _seed_product(session_factory, seller_id=20, delivery_type="manual") -> int:
    async with session_factory() as session:
        product = ProductModel(
            seller_id=seller_id,
            title="Prompt pack",
            price_usd=Decimal("50.00"),
            delivery_type=delivery_type,
            delivery_content="license key: ABC-123",
            status="approved",
        )
        session.add(product)
        await session.commit()
        return product.id


async def _seed_order(session_factory, status=OrderStatus.CREATED) -> Order:
    product_id = await _seed_product(session_factory)
    now = datetime.now(timezone.utc)
    async with SQLAlchemyUnitOfWork(session_factory) as uow:
        return await uow.order_repository.create(Order(
            id=None,
            buyer_id=10,
            seller_id=20,
            product_id=product_id,
            amount_usd=Decimal("50.00"),
            status=status,
            created_at=now,
            updated_at=now,
        ))


def _refund(order_id: int, status=RefundStatus.PENDING) -> Refund:
    now = datetime.now(timezone.utc)
    return Refund(
        id=None,
        order_id=order_id,
        requester_id=10,
        amount_usd=Decimal("50.00"),
        reason="broken key",
        status=status,
        created_at=now,
        updated_at=now,
    )


@pytest.mark.asyncio
async def test_order_round_trip(session_factory):
    order = await _seed_order(session_factory)
    assert order.id is not None

    async with SQLAlchemyUnitOfWork(session_factory, readonly=True) as uow:
        loaded = await uow.order_repository.get_by_id(order.id)
        purchases = await uow.order_repository.list_by_buyer(10)
        sales = await uow.order_repository.list_by_seller(10)

    assert loaded.amount_usd == Decimal("50.00")
    assert loaded.status == OrderStatus.CREATED
    assert [o.id for o in purchases] == [order.id]
    assert sales == []


@pytest.mark.asyncio
async def test_conditional_update_detects_stale_status(session_factory):
    order = await _seed_order(session_factory)

    async with SQLAlchemyUnitOfWork(session_factory) as uow:
        first = await uow.order_repository.get_by_id(order.id)
        first.report_payment()
        assert await uow.order_repository.update(first, OrderStatus.CREATED) is not None

    async with SQLAlchemyUnitOfWork(session_factory) as uow:
        stale = Order(**{**order.__dict__})
        stale.cancel()
        assert await uow.order_repository.update(stale, OrderStatus.CREATED) is None

    async with SQLAlchemyUnitOfWork(session_factory, readonly=True) as uow:
        stored = await uow.order_repository.get_by_id(order.id)
    assert stored.status == OrderStatus.PAID_REPORTED


@pytest.mark.asyncio
async def test_verification_details_persisted_as_json(session_factory):
    order = await _seed_order(session_factory)
    details = {"verified": False, "error": "Transaction not found on blockchain"}

    async with SQLAlchemyUnitOfWork(session_factory) as uow:
        loaded = await uow.order_repository.get_by_id(order.id)
        loaded.report_payment("0xabc", "ethereum", details)
        await uow.order_repository.update(loaded, OrderStatus.CREATED)

    async with SQLAlchemyUnitOfWork(session_factory, readonly=True) as uow:
        stored = await uow.order_repository.get_by_id(order.id)
    assert stored.verification_details == details
    assert stored.transaction_hash == "0xabc"


@pytest.mark.asyncio
async def test_second_pending_refund_hits_unique_index(session_factory):
    order = await _seed_order(session_factory, status=OrderStatus.REFUND_REQUESTED)

    async with SQLAlchemyUnitOfWork(session_factory) as uow:
        await uow.refund_repository.create(_refund(order.id))

    with pytest.raises(RefundAlreadyPendingException):
        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            await uow.refund_repository.create(_refund(order.id))

    async with SQLAlchemyUnitOfWork(session_factory) as uow:
        pending = await uow.refund_repository.get_pending_by_order(order.id)
        pending.reject(processed_by=99)
        assert await uow.refund_repository.update(pending, RefundStatus.PENDING) is not None

    # once nothing is pending a new request is accepted
    async with SQLAlchemyUnitOfWork(session_factory) as uow:
        await uow.refund_repository.create(_refund(order.id))
        refunds = await uow.refund_repository.list()
    assert sorted(r.status for r in refunds) == [RefundStatus.PENDING, RefundStatus.REJECTED]


@pytest.mark.asyncio
async def test_unit_of_work_rolls_back_on_error(session_factory):
    product_id = await _seed_product(session_factory)

    with pytest.raises(RuntimeError):
        async with SQLAlchemyUnitOfWork(session_factory) as uow:
            await uow.order_repository.create(Order(
                id=None, buyer_id=10, seller_id=20, product_id=product_id, amount_usd=Decimal("1.00"),
            ))
            raise RuntimeError("boom")

    async with SQLAlchemyUnitOfWork(session_factory, readonly=True) as uow:
        assert await uow.order_repository.list_all() == []


@pytest.mark.asyncio
async def test_order_service_over_sqlalchemy(session_factory):
    product_id = await _seed_product(session_factory, delivery_type="auto_hosted")
    service = OrderApplicationService(partial(SQLAlchemyUnitOfWork, session_factory), FakeVerifier())

    order = await service.create_order(10, CreateOrderDTO(product_id=product_id))
    await service.report_payment(order.id, 10, ReportPaymentDTO())
    order = await service.confirm_payment(order.id, 20)
    assert order.status == OrderStatus.COMPLETED

    delivery = await service.get_delivery_content(order.id, 10)
    assert delivery.delivery_content == "license key: ABC-123"

    with pytest.raises(InvalidOrderStateException):
        await service.cancel_order(order.id, 10)
