"""
订单仓储实现 - 使用SQLAlchemy实现数据访问
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.order.entity import Order, OrderStatus
from domain.order.repository import OrderRepository
from infrastructure.models.order import OrderModel


logger = get_logger(__name__)


class SQLAlchemyOrderRepository(OrderRepository):
    """订单仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: OrderModel) -> Order:
        """将数据库模型转换为领域实体"""
        return Order(
            id=model.id,
            buyer_id=model.buyer_id,
            seller_id=model.seller_id,
            product_id=model.product_id,
            amount_usd=Decimal(str(model.amount_usd)),
            status=OrderStatus(model.status),
            transaction_hash=model.transaction_hash,
            payment_network=model.payment_network,
            payment_verified=bool(model.payment_verified),
            verification_details=model.verification_details,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Order) -> OrderModel:
        """将领域实体转换为数据库模型"""
        return OrderModel(
            id=entity.id,
            buyer_id=entity.buyer_id,
            seller_id=entity.seller_id,
            product_id=entity.product_id,
            amount_usd=entity.amount_usd,
            status=entity.status.value,
            transaction_hash=entity.transaction_hash,
            payment_network=entity.payment_network,
            payment_verified=entity.payment_verified,
            verification_details=entity.verification_details,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    async def create(self, order: Order) -> Order:
        """创建订单"""
        db_order = self._to_model(order)
        self.session.add(db_order)
        await self.session.flush()
        await self.session.refresh(db_order)
        logger.info(
            "order_row_created",
            order_id=db_order.id,
            buyer_id=db_order.buyer_id,
            product_id=db_order.product_id,
        )
        return self._to_entity(db_order)

    async def get_by_id(self, order_id: int) -> Optional[Order]:
        """根据ID获取订单"""
        result = await self.session.execute(
            select(OrderModel)
            .where(OrderModel.id == order_id)
            .execution_options(populate_existing=True)
        )
        db_order = result.scalar_one_or_none()
        return self._to_entity(db_order) if db_order else None

    async def _list(self, *criteria, skip: int, limit: int) -> List[Order]:
        query = (
            select(OrderModel)
            .where(*criteria)
            .order_by(OrderModel.created_at.desc(), OrderModel.id.desc())
            .offset(skip)
            .limit(limit)
        )
        result = await self.session.execute(query)
        return [self._to_entity(o) for o in result.scalars().all()]

    async def list_all(self, skip: int = 0, limit: int = 100) -> List[Order]:
        return await self._list(skip=skip, limit=limit)

    async def list_by_buyer(self, buyer_id: int, skip: int = 0, limit: int = 100) -> List[Order]:
        return await self._list(OrderModel.buyer_id == buyer_id, skip=skip, limit=limit)

    async def list_by_seller(self, seller_id: int, skip: int = 0, limit: int = 100) -> List[Order]:
        return await self._list(OrderModel.seller_id == seller_id, skip=skip, limit=limit)

    async def update(self, order: Order, expected_status: OrderStatus) -> Optional[Order]:
        """条件更新：仅当库中状态仍为 expected_status 时写入"""
        order.updated_at = order.updated_at or datetime.now(timezone.utc)
        result = await self.session.execute(
            update(OrderModel)
            .where(
                OrderModel.id == order.id,
                OrderModel.status == expected_status.value,
            )
            .values(
                status=order.status.value,
                transaction_hash=order.transaction_hash,
                payment_network=order.payment_network,
                payment_verified=order.payment_verified,
                verification_details=order.verification_details,
                updated_at=order.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "order_update_conflict",
                order_id=order.id,
                expected_status=expected_status.value,
                target_status=order.status.value,
            )
            return None

        logger.info(
            "order_row_updated",
            order_id=order.id,
            from_status=expected_status.value,
            to_status=order.status.value,
        )
        return order
