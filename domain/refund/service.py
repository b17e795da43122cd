"""
退款领域服务 - 退款工作流

依赖订单聚合完成状态冻结与恢复：
- 申请退款：订单 -> REFUND_REQUESTED
- 批准：订单 -> REFUNDED
- 拒绝：订单仅在仍为 REFUND_REQUESTED 时恢复为 COMPLETED，否则保持不变
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Optional

from domain.common.exceptions import (
    OrderNotFoundException,
    OrderStateConflictException,
    RefundAccessForbiddenException,
    RefundAlreadyPendingException,
    RefundNotFoundException,
    InvalidRefundStateException,
)
from domain.order.entity import Order, OrderStatus
from domain.order.repository import OrderRepository
from .entity import Refund, RefundStatus
from .events import RefundDecided, RefundRequested
from .repository import RefundRepository


class RefundDomainService:

    def __init__(
        self,
        refund_repository: RefundRepository,
        order_repository: OrderRepository,
    ):
        self.refund_repository = refund_repository
        self.order_repository = order_repository
        self.events: List = []

    async def _get_order(self, order_id: int) -> Order:
        order = await self.order_repository.get_by_id(order_id)
        if not order:
            raise OrderNotFoundException(order_id)
        return order

    async def _save_order(self, order: Order, expected_status: OrderStatus) -> Order:
        updated = await self.order_repository.update(order, expected_status)
        if updated is None:
            raise OrderStateConflictException(order.id, expected_status.value)
        return updated

    async def _save_refund(self, refund: Refund, expected_status: RefundStatus) -> Refund:
        updated = await self.refund_repository.update(refund, expected_status)
        if updated is None:
            raise InvalidRefundStateException(
                refund.id, expected_status.value, "Refund was changed by another request"
            )
        return updated

    async def get_refund(self, refund_id: int) -> Refund:
        refund = await self.refund_repository.get_by_id(refund_id)
        if not refund:
            raise RefundNotFoundException(refund_id)
        return refund

    async def get_visible_refund(self, refund_id: int, user_id: int, *, is_admin: bool = False) -> Refund:
        """管理员、申请人或订单卖家可见"""
        refund = await self.get_refund(refund_id)
        if is_admin or refund.requester_id == user_id:
            return refund
        order = await self.order_repository.get_by_id(refund.order_id)
        if order is None or order.seller_id != user_id:
            raise RefundAccessForbiddenException(
                "Not authorized", refund_id=refund_id, order_id=refund.order_id
            )
        return refund

    @staticmethod
    def _ensure_processor(order: Order, user_id: int, is_admin: bool, refund_id: Optional[int]) -> None:
        if is_admin or order.seller_id == user_id:
            return
        raise RefundAccessForbiddenException(
            "Only an admin or the seller can process this refund",
            refund_id=refund_id,
            order_id=order.id,
        )

    async def request_refund(self, requester_id: int, order_id: int, reason: str) -> Refund:
        """
        买家申请退款

        业务规则：
        1. 只有买家可以申请
        2. 同一订单不能有两条 PENDING 退款
        3. 订单状态必须为 CONFIRMED / COMPLETED / PAYMENT_VERIFIED
        """
        order = await self._get_order(order_id)
        if order.buyer_id != requester_id:
            raise RefundAccessForbiddenException(
                "Only the buyer can request a refund", order_id=order_id
            )

        if await self.refund_repository.get_pending_by_order(order_id):
            raise RefundAlreadyPendingException(order_id)

        previous = order.status
        order.mark_refund_requested()

        now = datetime.now(timezone.utc)
        refund = Refund(
            id=None,
            order_id=order_id,
            requester_id=requester_id,
            amount_usd=order.amount_usd,
            reason=reason,
            status=RefundStatus.PENDING,
            created_at=now,
            updated_at=now,
        )

        await self._save_order(order, previous)
        created = await self.refund_repository.create(refund)

        self.events.append(RefundRequested(
            order_id=order_id,
            refund_id=created.id,
            seller_id=order.seller_id,
        ))
        return created

    async def process_refund(
        self,
        refund_id: int,
        processed_by: int,
        approved: bool,
        admin_note: Optional[str] = None,
        refund_transaction_hash: Optional[str] = None,
        *,
        is_admin: bool = False,
    ) -> Refund:
        """
        处理退款申请（管理员或卖家）

        - 批准且附带打款哈希：退款 COMPLETED，订单 REFUNDED
        - 批准无哈希：退款 APPROVED（待 complete_refund），订单 REFUNDED
        - 拒绝：退款 REJECTED，订单仅在 REFUND_REQUESTED 时恢复为 COMPLETED
        """
        refund = await self.get_refund(refund_id)
        order = await self._get_order(refund.order_id)
        self._ensure_processor(order, processed_by, is_admin, refund_id)

        previous_refund_status = refund.status
        order_restored = True
        if approved:
            refund.approve(processed_by, admin_note, refund_transaction_hash)
            previous_order_status = order.status
            order.mark_refunded()
            await self._save_order(order, previous_order_status)
        else:
            refund.reject(processed_by, admin_note)
            previous_order_status = order.status
            order_restored = order.restore_after_refund_rejection()
            if order_restored:
                await self._save_order(order, previous_order_status)

        saved = await self._save_refund(refund, previous_refund_status)

        self.events.append(RefundDecided(
            order_id=saved.order_id,
            refund_id=saved.id,
            buyer_id=saved.requester_id,
            approved=approved,
            admin_note=admin_note,
            order_restored=order_restored,
        ))
        return saved

    async def complete_refund(
        self,
        refund_id: int,
        admin_id: int,
        refund_transaction_hash: str,
        *,
        is_admin: bool = False,
    ) -> Refund:
        """记录已批准退款的打款交易"""
        refund = await self.get_refund(refund_id)
        order = await self._get_order(refund.order_id)
        self._ensure_processor(order, admin_id, is_admin, refund_id)

        previous = refund.status
        refund.complete(admin_id, refund_transaction_hash)
        return await self._save_refund(refund, previous)

    async def list_refunds(self, status: Optional[RefundStatus] = None, skip: int = 0, limit: int = 100) -> List[Refund]:
        return await self.refund_repository.list(status=status, skip=skip, limit=limit)

    async def list_by_requester(self, requester_id: int, skip: int = 0, limit: int = 100) -> List[Refund]:
        return await self.refund_repository.list_by_requester(requester_id, skip=skip, limit=limit)

    def clear_events(self) -> List:
        """清空并返回领域事件"""
        events = self.events.copy()
        self.events.clear()
        return events
