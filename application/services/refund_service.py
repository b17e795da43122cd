"""
退款应用服务 - 退款记录与订单状态在同一事务内写入
"""
from __future__ import annotations

from typing import Callable, List, Optional

from application.dtos.identity import CurrentUser
from application.dtos.refunds import (
    CompleteRefundDTO,
    CreateRefundDTO,
    ProcessRefundDTO,
    RefundResponseDTO,
)
from application.ports.notifier import Notifier
from application.services.notification_dispatcher import NotificationDispatcher
from core.logging_config import get_logger
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.refund.entity import Refund, RefundStatus
from domain.refund.events import RefundDecided
from domain.refund.service import RefundDomainService


logger = get_logger(__name__)


class RefundApplicationService:
    """退款用例编排"""

    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        notifier: Optional[Notifier] = None,
    ):
        self._uow_factory = uow_factory
        self._dispatcher = NotificationDispatcher(notifier)

    @staticmethod
    def _domain(uow: AbstractUnitOfWork) -> RefundDomainService:
        return RefundDomainService(uow.refund_repository, uow.order_repository)

    @staticmethod
    def _to_dto(refund: Refund) -> RefundResponseDTO:
        return RefundResponseDTO.model_validate(refund)

    async def request_refund(self, requester_id: int, data: CreateRefundDTO) -> RefundResponseDTO:
        async with self._uow_factory() as uow:
            domain_service = self._domain(uow)
            refund = await domain_service.request_refund(requester_id, data.order_id, data.reason)
            events = domain_service.clear_events()

        logger.info(
            "refund_requested",
            refund_id=refund.id,
            order_id=refund.order_id,
            requester_id=requester_id,
            amount_usd=str(refund.amount_usd),
        )
        await self._dispatcher.dispatch(events)
        return self._to_dto(refund)

    async def process_refund(self, refund_id: int, user: CurrentUser, data: ProcessRefundDTO) -> RefundResponseDTO:
        async with self._uow_factory() as uow:
            domain_service = self._domain(uow)
            refund = await domain_service.process_refund(
                refund_id,
                user.id,
                data.approved,
                admin_note=data.admin_note,
                refund_transaction_hash=data.refund_transaction_hash,
                is_admin=user.is_admin,
            )
            events = domain_service.clear_events()

        for event in events:
            if isinstance(event, RefundDecided) and not event.order_restored:
                logger.warning(
                    "refund_rejected_order_not_restored",
                    refund_id=refund.id,
                    order_id=refund.order_id,
                )
        logger.info(
            "refund_processed",
            refund_id=refund.id,
            order_id=refund.order_id,
            approved=data.approved,
            status=refund.status.value,
            processed_by=user.id,
        )
        await self._dispatcher.dispatch(events)
        return self._to_dto(refund)

    async def complete_refund(self, refund_id: int, user: CurrentUser, data: CompleteRefundDTO) -> RefundResponseDTO:
        async with self._uow_factory() as uow:
            refund = await self._domain(uow).complete_refund(
                refund_id,
                user.id,
                data.refund_transaction_hash,
                is_admin=user.is_admin,
            )

        logger.info(
            "refund_completed",
            refund_id=refund.id,
            order_id=refund.order_id,
            processed_by=user.id,
        )
        return self._to_dto(refund)

    async def get_refund(self, refund_id: int, user: CurrentUser) -> RefundResponseDTO:
        """管理员、申请人或订单卖家可见"""
        async with self._uow_factory(readonly=True) as uow:
            refund = await self._domain(uow).get_visible_refund(refund_id, user.id, is_admin=user.is_admin)
        return self._to_dto(refund)

    async def list_refunds(
        self,
        status: Optional[RefundStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[RefundResponseDTO]:
        async with self._uow_factory(readonly=True) as uow:
            refunds = await self._domain(uow).list_refunds(status=status, skip=skip, limit=limit)
        return [self._to_dto(r) for r in refunds]

    async def list_my_refunds(self, requester_id: int, skip: int = 0, limit: int = 100) -> List[RefundResponseDTO]:
        async with self._uow_factory(readonly=True) as uow:
            refunds = await self._domain(uow).list_by_requester(requester_id, skip=skip, limit=limit)
        return [self._to_dto(r) for r in refunds]
