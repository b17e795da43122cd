"""
订单仓储接口 - 定义订单数据访问的抽象接口
"""
from abc import ABC, abstractmethod
from typing import List, Optional

from .entity import Order, OrderStatus


class OrderRepository(ABC):
    """订单仓储抽象接口"""

    @abstractmethod
    async def create(self, order: Order) -> Order:
        """创建订单"""
        pass

    @abstractmethod
    async def get_by_id(self, order_id: int) -> Optional[Order]:
        """根据ID获取订单"""
        pass

    @abstractmethod
    async def list_all(self, skip: int = 0, limit: int = 100) -> List[Order]:
        """全部订单，按创建时间倒序"""
        pass

    @abstractmethod
    async def list_by_buyer(self, buyer_id: int, skip: int = 0, limit: int = 100) -> List[Order]:
        """买家的订单"""
        pass

    @abstractmethod
    async def list_by_seller(self, seller_id: int, skip: int = 0, limit: int = 100) -> List[Order]:
        """卖家的订单"""
        pass

    @abstractmethod
    async def update(self, order: Order, expected_status: OrderStatus) -> Optional[Order]:
        """
        Conditional update (compare-and-swap on status).

        Persists the mutable fields of ``order`` only if the stored status still
        equals ``expected_status``. Returns the updated order, or None when the
        row was changed concurrently (or no longer exists).
        """
        pass
