"""
退款仓储接口
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from .entity import Refund, RefundStatus


class RefundRepository(ABC):
    """退款仓储抽象接口"""

    @abstractmethod
    async def create(self, refund: Refund) -> Refund:
        """创建退款记录"""
        pass

    @abstractmethod
    async def get_by_id(self, refund_id: int) -> Optional[Refund]:
        """根据ID获取退款"""
        pass

    @abstractmethod
    async def get_pending_by_order(self, order_id: int) -> Optional[Refund]:
        """订单当前的 PENDING 退款（最多一条）"""
        pass

    @abstractmethod
    async def list(
        self,
        status: Optional[RefundStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Refund]:
        """退款列表，按创建时间倒序"""
        pass

    @abstractmethod
    async def list_by_requester(self, requester_id: int, skip: int = 0, limit: int = 100) -> List[Refund]:
        """用户发起的退款"""
        pass

    @abstractmethod
    async def update(self, refund: Refund, expected_status: RefundStatus) -> Optional[Refund]:
        """Conditional update on status; None when the refund changed concurrently."""
        pass
