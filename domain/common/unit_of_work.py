"""
Unit of Work 抽象定义

订单、退款、商品三个仓储共享同一个事务边界：
- 写模式：正常退出自动提交（已显式 commit 的不再重复提交），异常退出回滚
- 只读模式（readonly=True）：退出时从不提交，用于链上校验前的状态预检等纯读取场景
"""
from __future__ import annotations

from abc import ABC, abstractmethod

from domain.order.repository import OrderRepository
from domain.product.repository import ProductRepository
from domain.refund.repository import RefundRepository


class AbstractUnitOfWork(ABC):
    """仓储在进入上下文后才绑定，退出后不可再用"""

    order_repository: OrderRepository
    refund_repository: RefundRepository
    product_repository: ProductRepository

    def __init__(self, *, readonly: bool = False) -> None:
        self._committed = False
        self._readonly = readonly
        self.order_repository = None  # type: ignore[assignment]
        self.refund_repository = None  # type: ignore[assignment]
        self.product_repository = None  # type: ignore[assignment]

    async def __aenter__(self) -> "AbstractUnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc:
            await self.rollback()
        elif not self._readonly and not self._committed:
            await self.commit()

    @abstractmethod
    async def commit(self) -> None:
        """持久化本事务内的全部写入；只读模式下实现可以忽略"""

    @abstractmethod
    async def rollback(self) -> None:
        """丢弃未提交的写入"""
