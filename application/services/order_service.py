"""
订单应用服务（application/services）- 编排订单领域服务、链上校验与通知

事务边界：
- 每个用例在一个 unit of work 中读取 + 条件写回，退出时提交
- 链上校验（网络调用）在写事务之外执行，写回时由 compare-and-swap 复核状态
- 通知在提交之后分发，失败只记录日志
"""
from __future__ import annotations

from typing import Any, Callable, List, Optional

from application.dtos.identity import CurrentUser
from application.dtos.orders import (
    CreateOrderDTO,
    DeliveryContentDTO,
    OrderResponseDTO,
    ReportPaymentDTO,
)
from application.ports.chain_verifier import ChainVerifier
from application.ports.notifier import Notifier
from application.services.notification_dispatcher import NotificationDispatcher
from core.logging_config import get_logger
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.order.entity import Order
from domain.order.service import OrderDomainService


logger = get_logger(__name__)


class OrderApplicationService:
    """订单用例编排"""

    def __init__(
        self,
        uow_factory: Callable[..., AbstractUnitOfWork],
        verifier: ChainVerifier,
        notifier: Optional[Notifier] = None,
    ):
        self._uow_factory = uow_factory
        self._verifier = verifier
        self._dispatcher = NotificationDispatcher(notifier)

    @staticmethod
    def _domain(uow: AbstractUnitOfWork) -> OrderDomainService:
        return OrderDomainService(uow.order_repository, uow.product_repository)

    @staticmethod
    def _to_dto(order: Order) -> OrderResponseDTO:
        return OrderResponseDTO.model_validate(order)

    async def _verify(self, order_id: int, tx_reference: str, network: str) -> dict[str, Any]:
        result = await self._verifier.verify(tx_reference, network)
        if result.verified:
            logger.info(
                "chain_verification_succeeded",
                order_id=order_id,
                network=network,
                amount=result.amount,
                confirmations=result.confirmations,
            )
        else:
            logger.warning(
                "chain_verification_failed",
                order_id=order_id,
                network=network,
                tx_reference=tx_reference,
                error=result.error,
            )
        return result.to_details()

    def _log_transition(self, action: str, order: Order, actor_id: int) -> None:
        logger.info(
            "order_status_changed",
            action=action,
            order_id=order.id,
            status=order.status.value,
            actor_id=actor_id,
        )

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    async def create_order(self, buyer_id: int, data: CreateOrderDTO) -> OrderResponseDTO:
        async with self._uow_factory() as uow:
            domain_service = self._domain(uow)
            order = await domain_service.create_order(buyer_id, data.product_id)
            events = domain_service.clear_events()

        logger.info(
            "order_created",
            order_id=order.id,
            buyer_id=buyer_id,
            seller_id=order.seller_id,
            product_id=order.product_id,
            amount_usd=str(order.amount_usd),
        )
        await self._dispatcher.dispatch(events)
        return self._to_dto(order)

    async def report_payment(self, order_id: int, buyer_id: int, data: ReportPaymentDTO) -> OrderResponseDTO:
        """
        买家报告付款

        同时提供交易哈希与网络时先做链上校验：成功直接进入 PAYMENT_VERIFIED，
        失败（或未提供）进入 PAID_REPORTED 等待卖家确认。
        """
        verification: Optional[dict[str, Any]] = None
        if data.transaction_hash and data.payment_network:
            # 先校验前置状态，避免对不可付款的订单发起网络请求
            async with self._uow_factory(readonly=True) as uow:
                await self._domain(uow).check_can_report_payment(order_id, buyer_id)
            verification = await self._verify(order_id, data.transaction_hash, data.payment_network)

        async with self._uow_factory() as uow:
            domain_service = self._domain(uow)
            order = await domain_service.report_payment(
                order_id,
                buyer_id,
                transaction_hash=data.transaction_hash,
                payment_network=data.payment_network,
                verification=verification,
            )
            events = domain_service.clear_events()

        self._log_transition("report_payment", order, buyer_id)
        await self._dispatcher.dispatch(events)
        return self._to_dto(order)

    async def verify_payment(self, order_id: int, buyer_id: int) -> OrderResponseDTO:
        """重新发起链上校验；失败时状态不变，仅记录校验详情"""
        async with self._uow_factory(readonly=True) as uow:
            order = await self._domain(uow).check_can_verify_payment(order_id, buyer_id)
            tx_reference, network = order.transaction_hash, order.payment_network

        verification = await self._verify(order_id, tx_reference, network)

        async with self._uow_factory() as uow:
            domain_service = self._domain(uow)
            order = await domain_service.apply_verification(order_id, buyer_id, verification)
            events = domain_service.clear_events()

        self._log_transition("verify_payment", order, buyer_id)
        await self._dispatcher.dispatch(events)
        return self._to_dto(order)

    async def confirm_payment(self, order_id: int, seller_id: int) -> OrderResponseDTO:
        async with self._uow_factory() as uow:
            domain_service = self._domain(uow)
            order = await domain_service.confirm_payment(order_id, seller_id)
            events = domain_service.clear_events()

        self._log_transition("confirm_payment", order, seller_id)
        await self._dispatcher.dispatch(events)
        return self._to_dto(order)

    async def complete_order(self, order_id: int, seller_id: int) -> OrderResponseDTO:
        async with self._uow_factory() as uow:
            domain_service = self._domain(uow)
            order = await domain_service.complete_order(order_id, seller_id)
            events = domain_service.clear_events()

        self._log_transition("complete_order", order, seller_id)
        await self._dispatcher.dispatch(events)
        return self._to_dto(order)

    async def cancel_order(self, order_id: int, user_id: int) -> OrderResponseDTO:
        async with self._uow_factory() as uow:
            domain_service = self._domain(uow)
            order = await domain_service.cancel_order(order_id, user_id)
            events = domain_service.clear_events()

        self._log_transition("cancel_order", order, user_id)
        await self._dispatcher.dispatch(events)
        return self._to_dto(order)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    async def get_delivery_content(self, order_id: int, buyer_id: int) -> DeliveryContentDTO:
        async with self._uow_factory(readonly=True) as uow:
            content = await self._domain(uow).get_delivery_content(order_id, buyer_id)
        return DeliveryContentDTO(order_id=order_id, **content)

    async def get_order(self, order_id: int, user: CurrentUser) -> OrderResponseDTO:
        async with self._uow_factory(readonly=True) as uow:
            order = await self._domain(uow).get_visible_order(order_id, user.id, is_admin=user.is_admin)
        return self._to_dto(order)

    async def list_orders(self, skip: int = 0, limit: int = 100) -> List[OrderResponseDTO]:
        async with self._uow_factory(readonly=True) as uow:
            orders = await uow.order_repository.list_all(skip=skip, limit=limit)
        return [self._to_dto(o) for o in orders]

    async def list_purchases(self, buyer_id: int, skip: int = 0, limit: int = 100) -> List[OrderResponseDTO]:
        async with self._uow_factory(readonly=True) as uow:
            orders = await uow.order_repository.list_by_buyer(buyer_id, skip=skip, limit=limit)
        return [self._to_dto(o) for o in orders]

    async def list_sales(self, seller_id: int, skip: int = 0, limit: int = 100) -> List[OrderResponseDTO]:
        async with self._uow_factory(readonly=True) as uow:
            orders = await uow.order_repository.list_by_seller(seller_id, skip=skip, limit=limit)
        return [self._to_dto(o) for o in orders]
