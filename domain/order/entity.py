"""
订单领域实体 - 订单聚合根

The order owns its status field. Every status change goes through one of the
transition methods below, which check the transition table and raise
InvalidOrderStateException for anything not listed.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

from domain.common.exceptions import (
    DomainValidationException,
    InvalidOrderStateException,
    OrderAccessForbiddenException,
)


class OrderStatus(str, Enum):
    """订单状态枚举"""
    CREATED = "created"                    # 已创建，待付款
    PAID_REPORTED = "paid_reported"        # 买家已报告付款
    PAYMENT_VERIFIED = "payment_verified"  # 链上校验通过
    CONFIRMED = "confirmed"                # 卖家确认收款
    COMPLETED = "completed"                # 已交付
    CANCELLED = "cancelled"                # 已取消
    REFUND_REQUESTED = "refund_requested"  # 退款处理中（冻结）
    REFUNDED = "refunded"                  # 已退款


PAYMENT_REPORTED_STATUSES = frozenset({OrderStatus.PAID_REPORTED, OrderStatus.PAYMENT_VERIFIED})

CANCELLABLE_STATUSES = frozenset({
    OrderStatus.CREATED,
    OrderStatus.PAID_REPORTED,
    OrderStatus.PAYMENT_VERIFIED,
    OrderStatus.CONFIRMED,
})

REFUNDABLE_STATUSES = frozenset({
    OrderStatus.CONFIRMED,
    OrderStatus.COMPLETED,
    OrderStatus.PAYMENT_VERIFIED,
})

TERMINAL_STATUSES = frozenset({OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REFUNDED})

# from -> allowed targets
ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.CREATED: frozenset({
        OrderStatus.PAID_REPORTED,
        OrderStatus.PAYMENT_VERIFIED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.PAID_REPORTED: frozenset({
        OrderStatus.PAYMENT_VERIFIED,
        OrderStatus.CONFIRMED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.PAYMENT_VERIFIED: frozenset({
        OrderStatus.PAYMENT_VERIFIED,
        OrderStatus.CONFIRMED,
        OrderStatus.CANCELLED,
        OrderStatus.REFUND_REQUESTED,
    }),
    OrderStatus.CONFIRMED: frozenset({
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
        OrderStatus.REFUND_REQUESTED,
    }),
    OrderStatus.COMPLETED: frozenset({OrderStatus.REFUND_REQUESTED}),
    OrderStatus.REFUND_REQUESTED: frozenset({OrderStatus.REFUNDED, OrderStatus.COMPLETED}),
    OrderStatus.CANCELLED: frozenset(),
    OrderStatus.REFUNDED: frozenset(),
}


def can_transition(current: OrderStatus, target: OrderStatus) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, frozenset())


@dataclass
class Order:
    """
    订单聚合根

    业务规则：
    1. 买家与卖家不能是同一人（创建时由领域服务校验）
    2. amount_usd 在创建时从商品价格快照，之后不可变
    3. 状态转换必须遵循 ALLOWED_TRANSITIONS
    4. 订单从不物理删除，取消/退款是终态
    """

    id: Optional[int]
    buyer_id: int
    seller_id: int
    product_id: int
    amount_usd: Decimal
    status: OrderStatus = OrderStatus.CREATED

    # 付款凭证
    transaction_hash: Optional[str] = None
    payment_network: Optional[str] = None
    payment_verified: bool = False
    verification_details: Optional[dict[str, Any]] = None

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if self.amount_usd is None or Decimal(self.amount_usd) < 0:
            raise DomainValidationException(
                f"Order amount must not be negative: {self.amount_usd}",
                field="amount_usd",
            )
        self.amount_usd = Decimal(self.amount_usd)

    # ---- guards ----

    def ensure_buyer(self, user_id: int) -> None:
        if self.buyer_id != user_id:
            raise OrderAccessForbiddenException(self.id, user_id)

    def ensure_seller(self, user_id: int) -> None:
        if self.seller_id != user_id:
            raise OrderAccessForbiddenException(self.id, user_id)

    def ensure_party(self, user_id: int) -> None:
        if user_id not in (self.buyer_id, self.seller_id):
            raise OrderAccessForbiddenException(self.id, user_id)

    def is_party(self, user_id: int) -> bool:
        return user_id in (self.buyer_id, self.seller_id)

    def _require(self, allowed: frozenset[OrderStatus] | set[OrderStatus], message: str) -> None:
        if self.status not in allowed:
            raise InvalidOrderStateException(self.id, self.status.value, message)

    def _transition(self, target: OrderStatus) -> None:
        if not can_transition(self.status, target):
            raise InvalidOrderStateException(
                self.id,
                self.status.value,
                f"Cannot move order from {self.status.value} to {target.value}",
            )
        self.status = target
        self.updated_at = datetime.now(timezone.utc)

    # ---- payment ----

    def ensure_can_report_payment(self) -> None:
        self._require({OrderStatus.CREATED}, "Order is not in CREATED status")

    def report_payment(
        self,
        transaction_hash: Optional[str] = None,
        payment_network: Optional[str] = None,
        verification: Optional[dict[str, Any]] = None,
    ) -> None:
        """CREATED -> PAID_REPORTED, or PAYMENT_VERIFIED when verification succeeded."""
        self.ensure_can_report_payment()
        if transaction_hash:
            self.transaction_hash = transaction_hash
        if payment_network:
            self.payment_network = payment_network
        if verification is not None:
            self.verification_details = verification
        if verification is not None and verification.get("verified"):
            self.payment_verified = True
            self._transition(OrderStatus.PAYMENT_VERIFIED)
        else:
            self._transition(OrderStatus.PAID_REPORTED)

    def ensure_can_verify_payment(self) -> None:
        self._require(PAYMENT_REPORTED_STATUSES, "Order payment has not been reported")
        if not self.transaction_hash or not self.payment_network:
            raise InvalidOrderStateException(
                self.id,
                self.status.value,
                "Transaction hash and payment network are required for verification",
            )

    def apply_verification(self, verification: dict[str, Any]) -> bool:
        """Record a verification outcome; status only moves on success."""
        self.ensure_can_verify_payment()
        self.verification_details = verification
        if verification.get("verified"):
            self.payment_verified = True
            self._transition(OrderStatus.PAYMENT_VERIFIED)
            return True
        self.updated_at = datetime.now(timezone.utc)
        return False

    def confirm_payment(self, auto_delivery: bool) -> None:
        self._require(PAYMENT_REPORTED_STATUSES, "Order payment has not been reported")
        self._transition(OrderStatus.CONFIRMED)
        if auto_delivery:
            self._transition(OrderStatus.COMPLETED)

    def complete(self) -> None:
        self._require({OrderStatus.CONFIRMED}, "Order is not in CONFIRMED status")
        self._transition(OrderStatus.COMPLETED)

    def cancel(self) -> None:
        self._require(CANCELLABLE_STATUSES, f"Cannot cancel an order in {self.status.value} status")
        self._transition(OrderStatus.CANCELLED)

    # ---- delivery ----

    def ensure_deliverable(self) -> None:
        self._require({OrderStatus.COMPLETED}, "Order is not completed")

    # ---- refund hooks (driven by the refund workflow) ----

    def ensure_refundable(self) -> None:
        self._require(
            REFUNDABLE_STATUSES,
            f'Cannot request refund for order in "{self.status.value}" status',
        )

    def mark_refund_requested(self) -> None:
        self.ensure_refundable()
        self._transition(OrderStatus.REFUND_REQUESTED)

    def mark_refunded(self) -> None:
        self._require({OrderStatus.REFUND_REQUESTED}, "Order has no refund in progress")
        self._transition(OrderStatus.REFUNDED)

    def restore_after_refund_rejection(self) -> bool:
        """REFUND_REQUESTED -> COMPLETED. Any other status is left as is."""
        if self.status != OrderStatus.REFUND_REQUESTED:
            return False
        self._transition(OrderStatus.COMPLETED)
        return True

    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES
