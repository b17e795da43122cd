"""
退款领域实体

A refund is an independent audit record tied to one order. The order's own
status is moved by the refund workflow through the order's transition methods.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Optional

from domain.common.exceptions import DomainValidationException, InvalidRefundStateException


class RefundStatus(str, Enum):
    """退款状态枚举"""
    PENDING = "pending"      # 待处理
    APPROVED = "approved"    # 已批准，等待打款
    REJECTED = "rejected"    # 已拒绝
    COMPLETED = "completed"  # 已打款（终态）


@dataclass
class Refund:
    """
    退款实体

    业务规则：
    1. 同一订单同时最多一个 PENDING 退款
    2. 只有 PENDING 的退款可以被处理
    3. 只有 APPROVED 的退款可以补录打款交易并完成
    """

    id: Optional[int]
    order_id: int
    requester_id: int
    amount_usd: Decimal
    reason: str
    status: RefundStatus = RefundStatus.PENDING
    admin_note: Optional[str] = None
    processed_by: Optional[int] = None
    refund_transaction_hash: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.reason or not self.reason.strip():
            raise DomainValidationException("Refund reason must not be empty", field="reason")
        self.amount_usd = Decimal(self.amount_usd)

    def _touch(self) -> None:
        self.updated_at = datetime.now(timezone.utc)

    def ensure_pending(self) -> None:
        if self.status != RefundStatus.PENDING:
            raise InvalidRefundStateException(
                self.id, self.status.value, "Refund has already been processed"
            )

    def approve(
        self,
        processed_by: int,
        admin_note: Optional[str] = None,
        refund_transaction_hash: Optional[str] = None,
    ) -> None:
        """PENDING -> APPROVED, or straight to COMPLETED when the settlement hash is known."""
        self.ensure_pending()
        self.processed_by = processed_by
        if admin_note:
            self.admin_note = admin_note
        if refund_transaction_hash:
            self.refund_transaction_hash = refund_transaction_hash
            self.status = RefundStatus.COMPLETED
        else:
            self.status = RefundStatus.APPROVED
        self._touch()

    def reject(self, processed_by: int, admin_note: Optional[str] = None) -> None:
        self.ensure_pending()
        self.processed_by = processed_by
        if admin_note:
            self.admin_note = admin_note
        self.status = RefundStatus.REJECTED
        self._touch()

    def complete(self, processed_by: int, refund_transaction_hash: str) -> None:
        if self.status != RefundStatus.APPROVED:
            raise InvalidRefundStateException(
                self.id, self.status.value, "Refund must be in APPROVED status"
            )
        if not refund_transaction_hash:
            raise DomainValidationException(
                "Refund transaction hash is required", field="refund_transaction_hash"
            )
        self.status = RefundStatus.COMPLETED
        self.refund_transaction_hash = refund_transaction_hash
        self.processed_by = processed_by
        self._touch()
