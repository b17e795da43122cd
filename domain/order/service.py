"""
订单领域服务 - 订单状态机编排

职责：
1. 创建订单时的业务校验（商品存在、不能购买自己的商品）
2. 通过 find_one 统一读取订单，所有变更操作复用
3. 以状态为条件写回（compare-and-swap），并发冲突时抛出 OrderStateConflictException
4. 产生领域事件（由应用层在提交后转换为通知）
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

from domain.common.exceptions import (
    OrderNotFoundException,
    OrderStateConflictException,
    ProductNotFoundException,
    SelfPurchaseException,
    OrderAccessForbiddenException,
)
from domain.product.repository import ProductRepository
from .entity import Order, OrderStatus
from .events import (
    OrderCancelled,
    OrderCompleted,
    OrderCreated,
    PaymentConfirmed,
    PaymentReported,
)
from .repository import OrderRepository


class OrderDomainService:

    def __init__(
        self,
        order_repository: OrderRepository,
        product_repository: ProductRepository,
    ):
        self.order_repository = order_repository
        self.product_repository = product_repository
        self.events: List = []

    async def find_one(self, order_id: int) -> Order:
        order = await self.order_repository.get_by_id(order_id)
        if not order:
            raise OrderNotFoundException(order_id)
        return order

    async def _save(self, order: Order, expected_status: OrderStatus) -> Order:
        updated = await self.order_repository.update(order, expected_status)
        if updated is None:
            raise OrderStateConflictException(order.id, expected_status.value)
        return updated

    async def create_order(self, buyer_id: int, product_id: int) -> Order:
        """
        创建订单

        业务规则：
        1. 商品必须存在
        2. 买家不能是商品的卖家
        3. 金额从商品价格快照
        """
        product = await self.product_repository.get_by_id(product_id)
        if not product:
            raise ProductNotFoundException(product_id)
        if product.seller_id == buyer_id:
            raise SelfPurchaseException(product_id)

        now = datetime.now(timezone.utc)
        order = Order(
            id=None,
            buyer_id=buyer_id,
            seller_id=product.seller_id,
            product_id=product_id,
            amount_usd=product.price_usd,
            status=OrderStatus.CREATED,
            created_at=now,
            updated_at=now,
        )
        created = await self.order_repository.create(order)
        self.events.append(OrderCreated(
            order_id=created.id,
            seller_id=created.seller_id,
            product_title=product.title,
        ))
        return created

    async def check_can_report_payment(self, order_id: int, buyer_id: int) -> Order:
        """Pre-flight guard run before any chain verification round-trip."""
        order = await self.find_one(order_id)
        order.ensure_buyer(buyer_id)
        order.ensure_can_report_payment()
        return order

    async def report_payment(
        self,
        order_id: int,
        buyer_id: int,
        transaction_hash: Optional[str] = None,
        payment_network: Optional[str] = None,
        verification: Optional[dict[str, Any]] = None,
    ) -> Order:
        order = await self.find_one(order_id)
        order.ensure_buyer(buyer_id)
        previous = order.status
        order.report_payment(transaction_hash, payment_network, verification)
        updated = await self._save(order, previous)
        self.events.append(PaymentReported(
            order_id=updated.id,
            seller_id=updated.seller_id,
            verified=updated.status == OrderStatus.PAYMENT_VERIFIED,
        ))
        return updated

    async def check_can_verify_payment(self, order_id: int, buyer_id: int) -> Order:
        order = await self.find_one(order_id)
        order.ensure_buyer(buyer_id)
        order.ensure_can_verify_payment()
        return order

    async def apply_verification(
        self,
        order_id: int,
        buyer_id: int,
        verification: dict[str, Any],
    ) -> Order:
        order = await self.find_one(order_id)
        order.ensure_buyer(buyer_id)
        previous = order.status
        newly_verified = order.apply_verification(verification) and previous != OrderStatus.PAYMENT_VERIFIED
        updated = await self._save(order, previous)
        if newly_verified:
            self.events.append(PaymentReported(
                order_id=updated.id,
                seller_id=updated.seller_id,
                verified=True,
            ))
        return updated

    async def confirm_payment(self, order_id: int, seller_id: int) -> Order:
        """
        卖家确认收款

        自动交付（AUTO）的商品直接进入 COMPLETED
        """
        order = await self.find_one(order_id)
        order.ensure_seller(seller_id)
        product = await self.product_repository.get_by_id(order.product_id)
        auto_delivery = bool(product and product.is_auto_delivery)

        previous = order.status
        order.confirm_payment(auto_delivery=auto_delivery)
        updated = await self._save(order, previous)

        self.events.append(PaymentConfirmed(order_id=updated.id, buyer_id=updated.buyer_id))
        if updated.status == OrderStatus.COMPLETED:
            self.events.append(OrderCompleted(order_id=updated.id, buyer_id=updated.buyer_id))
        return updated

    async def complete_order(self, order_id: int, seller_id: int) -> Order:
        order = await self.find_one(order_id)
        order.ensure_seller(seller_id)
        previous = order.status
        order.complete()
        updated = await self._save(order, previous)
        self.events.append(OrderCompleted(order_id=updated.id, buyer_id=updated.buyer_id))
        return updated

    async def cancel_order(self, order_id: int, user_id: int) -> Order:
        order = await self.find_one(order_id)
        order.ensure_party(user_id)
        previous = order.status
        order.cancel()
        updated = await self._save(order, previous)
        recipient = updated.seller_id if user_id == updated.buyer_id else updated.buyer_id
        self.events.append(OrderCancelled(
            order_id=updated.id,
            recipient_id=recipient,
            cancelled_by=user_id,
        ))
        return updated

    async def get_delivery_content(self, order_id: int, buyer_id: int) -> dict[str, Any]:
        order = await self.find_one(order_id)
        order.ensure_buyer(buyer_id)
        order.ensure_deliverable()
        product = await self.product_repository.get_by_id(order.product_id)
        if not product:
            raise ProductNotFoundException(order.product_id)
        return {
            "delivery_type": product.delivery_type,
            "delivery_content": product.delivery_content,
        }

    async def get_visible_order(self, order_id: int, user_id: int, *, is_admin: bool = False) -> Order:
        order = await self.find_one(order_id)
        if not is_admin and not order.is_party(user_id):
            raise OrderAccessForbiddenException(order_id, user_id)
        return order

    def clear_events(self) -> List:
        """清空并返回领域事件"""
        events = self.events.copy()
        self.events.clear()
        return events
