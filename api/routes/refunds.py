"""
退款API路由
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_current_admin, get_current_user, get_refund_service
from application.dtos.identity import CurrentUser
from application.dtos.refunds import (
    CompleteRefundDTO,
    CreateRefundDTO,
    ProcessRefundDTO,
    RefundResponseDTO,
)
from application.services.refund_service import RefundApplicationService
from core.config import settings
from core.response import Response as ApiResponse, success_response
from domain.refund.entity import RefundStatus


router = APIRouter(
    prefix="/refunds",
    tags=["退款"]
)


@router.post("", summary="申请退款", response_model=ApiResponse[RefundResponseDTO])
async def request_refund(
    data: CreateRefundDTO,
    current_user: CurrentUser = Depends(get_current_user),
    service: RefundApplicationService = Depends(get_refund_service),
):
    """买家对 PAYMENT_VERIFIED / CONFIRMED / COMPLETED 订单申请退款"""
    refund = await service.request_refund(current_user.id, data)
    return success_response(data=refund, message="Refund requested")


@router.get("/my", summary="我的退款", response_model=ApiResponse[List[RefundResponseDTO]])
async def my_refunds(
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: CurrentUser = Depends(get_current_user),
    service: RefundApplicationService = Depends(get_refund_service),
):
    refunds = await service.list_my_refunds(current_user.id, skip=skip, limit=limit)
    return success_response(data=refunds)


@router.get("", summary="退款列表（管理员）", response_model=ApiResponse[List[RefundResponseDTO]])
async def list_refunds(
    status: Optional[RefundStatus] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    _: CurrentUser = Depends(get_current_admin),
    service: RefundApplicationService = Depends(get_refund_service),
):
    refunds = await service.list_refunds(status=status, skip=skip, limit=limit)
    return success_response(data=refunds)


@router.get("/{refund_id}", summary="退款详情", response_model=ApiResponse[RefundResponseDTO])
async def get_refund(
    refund_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: RefundApplicationService = Depends(get_refund_service),
):
    refund = await service.get_refund(refund_id, current_user)
    return success_response(data=refund)


@router.put("/{refund_id}/process", summary="处理退款", response_model=ApiResponse[RefundResponseDTO])
async def process_refund(
    refund_id: int,
    data: ProcessRefundDTO,
    current_user: CurrentUser = Depends(get_current_user),
    service: RefundApplicationService = Depends(get_refund_service),
):
    """
    管理员或订单卖家处理退款

    - approved=true：订单 -> REFUNDED；附带 refund_transaction_hash 时退款直接完成
    - approved=false：订单仍为 REFUND_REQUESTED 时恢复为 COMPLETED
    """
    refund = await service.process_refund(refund_id, current_user, data)
    return success_response(data=refund, message="Refund processed")


@router.put("/{refund_id}/complete", summary="补录退款打款", response_model=ApiResponse[RefundResponseDTO])
async def complete_refund(
    refund_id: int,
    data: CompleteRefundDTO,
    current_user: CurrentUser = Depends(get_current_user),
    service: RefundApplicationService = Depends(get_refund_service),
):
    refund = await service.complete_refund(refund_id, current_user, data)
    return success_response(data=refund, message="Refund completed")
