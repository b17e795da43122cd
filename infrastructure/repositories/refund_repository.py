"""
退款仓储实现
"""
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger
from domain.common.exceptions import RefundAlreadyPendingException
from domain.refund.entity import Refund, RefundStatus
from domain.refund.repository import RefundRepository
from infrastructure.models.order import RefundModel


logger = get_logger(__name__)


class SQLAlchemyRefundRepository(RefundRepository):
    """退款仓储的SQLAlchemy实现"""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _to_entity(self, model: RefundModel) -> Refund:
        return Refund(
            id=model.id,
            order_id=model.order_id,
            requester_id=model.requester_id,
            amount_usd=Decimal(str(model.amount_usd)),
            reason=model.reason,
            status=RefundStatus(model.status),
            admin_note=model.admin_note,
            processed_by=model.processed_by,
            refund_transaction_hash=model.refund_transaction_hash,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Refund) -> RefundModel:
        return RefundModel(
            id=entity.id,
            order_id=entity.order_id,
            requester_id=entity.requester_id,
            amount_usd=entity.amount_usd,
            reason=entity.reason,
            status=entity.status.value,
            admin_note=entity.admin_note,
            processed_by=entity.processed_by,
            refund_transaction_hash=entity.refund_transaction_hash,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )

    async def create(self, refund: Refund) -> Refund:
        """创建退款记录；pending 唯一索引冲突转换为领域异常"""
        db_refund = self._to_model(refund)
        self.session.add(db_refund)
        try:
            await self.session.flush()
        except IntegrityError:
            logger.warning("refund_create_conflict", order_id=refund.order_id)
            raise RefundAlreadyPendingException(refund.order_id)
        await self.session.refresh(db_refund)
        logger.info(
            "refund_row_created",
            refund_id=db_refund.id,
            order_id=db_refund.order_id,
        )
        return self._to_entity(db_refund)

    async def get_by_id(self, refund_id: int) -> Optional[Refund]:
        result = await self.session.execute(
            select(RefundModel)
            .where(RefundModel.id == refund_id)
            .execution_options(populate_existing=True)
        )
        db_refund = result.scalar_one_or_none()
        return self._to_entity(db_refund) if db_refund else None

    async def get_pending_by_order(self, order_id: int) -> Optional[Refund]:
        result = await self.session.execute(
            select(RefundModel).where(
                RefundModel.order_id == order_id,
                RefundModel.status == RefundStatus.PENDING.value,
            )
        )
        db_refund = result.scalars().first()
        return self._to_entity(db_refund) if db_refund else None

    async def list(
        self,
        status: Optional[RefundStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[Refund]:
        query = select(RefundModel)
        if status:
            query = query.where(RefundModel.status == status.value)
        query = query.order_by(RefundModel.created_at.desc(), RefundModel.id.desc()).offset(skip).limit(limit)
        result = await self.session.execute(query)
        return [self._to_entity(r) for r in result.scalars().all()]

    async def list_by_requester(self, requester_id: int, skip: int = 0, limit: int = 100) -> List[Refund]:
        result = await self.session.execute(
            select(RefundModel)
            .where(RefundModel.requester_id == requester_id)
            .order_by(RefundModel.created_at.desc(), RefundModel.id.desc())
            .offset(skip)
            .limit(limit)
        )
        return [self._to_entity(r) for r in result.scalars().all()]

    async def update(self, refund: Refund, expected_status: RefundStatus) -> Optional[Refund]:
        refund.updated_at = refund.updated_at or datetime.now(timezone.utc)
        result = await self.session.execute(
            update(RefundModel)
            .where(
                RefundModel.id == refund.id,
                RefundModel.status == expected_status.value,
            )
            .values(
                status=refund.status.value,
                admin_note=refund.admin_note,
                processed_by=refund.processed_by,
                refund_transaction_hash=refund.refund_transaction_hash,
                updated_at=refund.updated_at,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "refund_update_conflict",
                refund_id=refund.id,
                expected_status=expected_status.value,
            )
            return None

        logger.info(
            "refund_row_updated",
            refund_id=refund.id,
            from_status=expected_status.value,
            to_status=refund.status.value,
        )
        return refund
