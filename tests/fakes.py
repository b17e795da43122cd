"""In-memory doubles for the unit of work, repositories, verifier and notifier."""
from __future__ import annotations

import asyncio
import copy
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from application.dtos.verification import TransactionVerification
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.order.entity import Order, OrderStatus
from domain.order.repository import OrderRepository
from domain.product.entity import DeliveryType, Product, ProductStatus
from domain.product.repository import ProductRepository
from domain.refund.entity import Refund, RefundStatus
from domain.refund.repository import RefundRepository


class ReadBarrier:
    """Holds every reader until ``parties`` reads have happened."""

    def __init__(self, parties: int):
        self._parties = parties
        self._count = 0
        self._event = asyncio.Event()

    async def wait(self) -> None:
        self._count += 1
        if self._count >= self._parties:
            self._event.set()
        await self._event.wait()


@dataclass
class InMemoryStore:
    orders: Dict[int, Order] = field(default_factory=dict)
    refunds: Dict[int, Refund] = field(default_factory=dict)
    products: Dict[int, Product] = field(default_factory=dict)
    order_read_barrier: Optional[ReadBarrier] = None
    _seq: Dict[str, int] = field(default_factory=dict)

    def next_id(self, kind: str) -> int:
        self._seq[kind] = self._seq.get(kind, 0) + 1
        return self._seq[kind]

    def add_product(
        self,
        seller_id: int,
        price: str = "50.00",
        delivery_type: DeliveryType = DeliveryType.MANUAL,
        delivery_content: Optional[str] = "license key: ABC-123",
        title: str = "Prompt pack",
    ) -> Product:
        product = Product(
            id=self.next_id("product"),
            seller_id=seller_id,
            title=title,
            price_usd=Decimal(price),
            delivery_type=delivery_type,
            delivery_content=delivery_content,
            status=ProductStatus.APPROVED,
            created_at=datetime.now(timezone.utc),
        )
        self.products[product.id] = product
        return product


def _newest_first(items):
    return sorted(items, key=lambda x: (x.created_at, x.id), reverse=True)


class FakeOrderRepository(OrderRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def create(self, order: Order) -> Order:
        order = copy.deepcopy(order)
        order.id = self.store.next_id("order")
        self.store.orders[order.id] = order
        return copy.deepcopy(order)

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        order = self.store.orders.get(order_id)
        snapshot = copy.deepcopy(order) if order else None
        if self.store.order_read_barrier is not None:
            await self.store.order_read_barrier.wait()
        return snapshot

    async def list_all(self, skip: int = 0, limit: int = 100) -> List[Order]:
        return [copy.deepcopy(o) for o in _newest_first(self.store.orders.values())[skip:skip + limit]]

    async def list_by_buyer(self, buyer_id: int, skip: int = 0, limit: int = 100) -> List[Order]:
        items = [o for o in self.store.orders.values() if o.buyer_id == buyer_id]
        return [copy.deepcopy(o) for o in _newest_first(items)[skip:skip + limit]]

    async def list_by_seller(self, seller_id: int, skip: int = 0, limit: int = 100) -> List[Order]:
        items = [o for o in self.store.orders.values() if o.seller_id == seller_id]
        return [copy.deepcopy(o) for o in _newest_first(items)[skip:skip + limit]]

    async def update(self, order: Order, expected_status: OrderStatus) -> Optional[Order]:
        stored = self.store.orders.get(order.id)
        if stored is None or stored.status != expected_status:
            return None
        self.store.orders[order.id] = copy.deepcopy(order)
        return copy.deepcopy(order)


class FakeRefundRepository(RefundRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def create(self, refund: Refund) -> Refund:
        refund = copy.deepcopy(refund)
        refund.id = self.store.next_id("refund")
        self.store.refunds[refund.id] = refund
        return copy.deepcopy(refund)

    async def get_by_id(self, refund_id: int) -> Optional[Refund]:
        refund = self.store.refunds.get(refund_id)
        return copy.deepcopy(refund) if refund else None

    async def get_pending_by_order(self, order_id: int) -> Optional[Refund]:
        for refund in self.store.refunds.values():
            if refund.order_id == order_id and refund.status == RefundStatus.PENDING:
                return copy.deepcopy(refund)
        return None

    async def list(self, status: Optional[RefundStatus] = None, skip: int = 0, limit: int = 100) -> List[Refund]:
        items = [r for r in self.store.refunds.values() if status is None or r.status == status]
        return [copy.deepcopy(r) for r in _newest_first(items)[skip:skip + limit]]

    async def list_by_requester(self, requester_id: int, skip: int = 0, limit: int = 100) -> List[Refund]:
        items = [r for r in self.store.refunds.values() if r.requester_id == requester_id]
        return [copy.deepcopy(r) for r in _newest_first(items)[skip:skip + limit]]

    async def update(self, refund: Refund, expected_status: RefundStatus) -> Optional[Refund]:
        stored = self.store.refunds.get(refund.id)
        if stored is None or stored.status != expected_status:
            return None
        self.store.refunds[refund.id] = copy.deepcopy(refund)
        return copy.deepcopy(refund)


class FakeProductRepository(ProductRepository):
    def __init__(self, store: InMemoryStore):
        self.store = store

    async def get_by_id(self, product_id: int) -> Optional[Product]:
        product = self.store.products.get(product_id)
        return copy.deepcopy(product) if product else None


class FakeUnitOfWork(AbstractUnitOfWork):
    def __init__(self, store: InMemoryStore, *, readonly: bool = False):
        super().__init__(readonly=readonly)
        self.order_repository = FakeOrderRepository(store)
        self.refund_repository = FakeRefundRepository(store)
        self.product_repository = FakeProductRepository(store)
        self.commits = 0
        self.rollbacks = 0

    async def commit(self) -> None:
        self.commits += 1
        self._committed = True

    async def rollback(self) -> None:
        self.rollbacks += 1


class FakeUnitOfWorkFactory:
    """Callable like ``SQLAlchemyUnitOfWork``: ``factory(readonly=True)``."""

    def __init__(self, store: InMemoryStore):
        self.store = store
        self.created: List[FakeUnitOfWork] = []

    def __call__(self, *, readonly: bool = False) -> FakeUnitOfWork:
        uow = FakeUnitOfWork(self.store, readonly=readonly)
        self.created.append(uow)
        return uow


class FakeVerifier:
    """Returns a canned result per transaction hash (default: not found)."""

    def __init__(self, results: Optional[Dict[str, TransactionVerification]] = None):
        self.results = results or {}
        self.calls: List[Tuple[str, str]] = []

    async def verify(self, tx_reference: str, network: str) -> TransactionVerification:
        self.calls.append((tx_reference, network))
        return self.results.get(
            tx_reference,
            TransactionVerification.failure("Transaction not found on blockchain"),
        )


class RecordingNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Tuple[str, Tuple[Any, ...]]] = []

    async def _record(self, name: str, *args: Any) -> None:
        if self.fail:
            raise RuntimeError("notification backend down")
        self.sent.append((name, args))

    async def notify_order_created(self, seller_id, order_id, product_title):
        await self._record("order_created", seller_id, order_id, product_title)

    async def notify_payment_reported(self, seller_id, order_id, verified):
        await self._record("payment_reported", seller_id, order_id, verified)

    async def notify_payment_confirmed(self, buyer_id, order_id):
        await self._record("payment_confirmed", buyer_id, order_id)

    async def notify_order_completed(self, buyer_id, order_id):
        await self._record("order_completed", buyer_id, order_id)

    async def notify_order_cancelled(self, user_id, order_id):
        await self._record("order_cancelled", user_id, order_id)

    async def notify_refund_requested(self, seller_id, order_id):
        await self._record("refund_requested", seller_id, order_id)

    async def notify_refund_decision(self, buyer_id, order_id, approved, admin_note=None):
        await self._record("refund_decision", buyer_id, order_id, approved, admin_note)

    def names(self) -> List[str]:
        return [name for name, _ in self.sent]
