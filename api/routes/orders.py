"""
订单API路由 - FastAPI表现层
"""
from typing import List

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_current_admin, get_current_user, get_order_service
from application.dtos.identity import CurrentUser
from application.dtos.orders import (
    CreateOrderDTO,
    DeliveryContentDTO,
    OrderResponseDTO,
    ReportPaymentDTO,
)
from application.services.order_service import OrderApplicationService
from core.config import settings
from core.response import Response as ApiResponse, success_response


router = APIRouter(
    prefix="/orders",
    tags=["订单"]
)


@router.post("", summary="创建订单", response_model=ApiResponse[OrderResponseDTO])
async def create_order(
    data: CreateOrderDTO,
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    """
    买家下单

    - 金额从商品价格快照
    - 不能购买自己的商品
    """
    order = await service.create_order(current_user.id, data)
    return success_response(data=order, message="Order created")


@router.get("", summary="全部订单（管理员）", response_model=ApiResponse[List[OrderResponseDTO]])
async def list_orders(
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    _: CurrentUser = Depends(get_current_admin),
    service: OrderApplicationService = Depends(get_order_service),
):
    orders = await service.list_orders(skip=skip, limit=limit)
    return success_response(data=orders)


@router.get("/my/purchases", summary="我的购买", response_model=ApiResponse[List[OrderResponseDTO]])
async def my_purchases(
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    orders = await service.list_purchases(current_user.id, skip=skip, limit=limit)
    return success_response(data=orders)


@router.get("/my/sales", summary="我的销售", response_model=ApiResponse[List[OrderResponseDTO]])
async def my_sales(
    skip: int = Query(0, ge=0),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    orders = await service.list_sales(current_user.id, skip=skip, limit=limit)
    return success_response(data=orders)


@router.get("/{order_id}", summary="订单详情", response_model=ApiResponse[OrderResponseDTO])
async def get_order(
    order_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    """买家、卖家或管理员可见"""
    order = await service.get_order(order_id, current_user)
    return success_response(data=order)


@router.put("/{order_id}/pay", summary="报告付款", response_model=ApiResponse[OrderResponseDTO])
async def report_payment(
    order_id: int,
    data: ReportPaymentDTO,
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    """
    买家报告付款

    同时提交 transaction_hash 与 payment_network 时会先做链上校验
    """
    order = await service.report_payment(order_id, current_user.id, data)
    return success_response(data=order, message="Payment reported")


@router.put("/{order_id}/verify", summary="重新链上校验", response_model=ApiResponse[OrderResponseDTO])
async def verify_payment(
    order_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    order = await service.verify_payment(order_id, current_user.id)
    return success_response(data=order)


@router.put("/{order_id}/confirm", summary="卖家确认收款", response_model=ApiResponse[OrderResponseDTO])
async def confirm_payment(
    order_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    order = await service.confirm_payment(order_id, current_user.id)
    return success_response(data=order, message="Payment confirmed")


@router.put("/{order_id}/complete", summary="卖家完成交付", response_model=ApiResponse[OrderResponseDTO])
async def complete_order(
    order_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    order = await service.complete_order(order_id, current_user.id)
    return success_response(data=order, message="Order completed")


@router.put("/{order_id}/cancel", summary="取消订单", response_model=ApiResponse[OrderResponseDTO])
async def cancel_order(
    order_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    order = await service.cancel_order(order_id, current_user.id)
    return success_response(data=order, message="Order cancelled")


@router.get("/{order_id}/delivery", summary="获取交付内容", response_model=ApiResponse[DeliveryContentDTO])
async def get_delivery(
    order_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    service: OrderApplicationService = Depends(get_order_service),
):
    content = await service.get_delivery_content(order_id, current_user.id)
    return success_response(data=content)
