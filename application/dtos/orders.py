"""
订单 DTO - 应用层与表现层之间的数据传输
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Optional

from pydantic import ConfigDict, Field, field_validator, model_validator

from application.dtos.base import DTOBase
from application.dtos.verification import is_valid_tx_reference
from domain.order.entity import OrderStatus
from domain.product.entity import DeliveryType


class CreateOrderDTO(DTOBase):
    """创建订单"""
    product_id: int = Field(..., gt=0, description="商品ID")


class ReportPaymentDTO(DTOBase):
    """买家报告付款；不带交易哈希时等待卖家人工确认"""
    transaction_hash: Optional[str] = Field(None, max_length=255, description="链上交易哈希/签名")
    payment_network: Optional[str] = Field(None, max_length=32, description="ethereum / bsc / polygon / bitcoin / solana")

    @field_validator("transaction_hash", "payment_network")
    @classmethod
    def _blank_to_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def _check_hash_format(self) -> "ReportPaymentDTO":
        """按网络校验哈希格式：EVM 为 0x+64 位十六进制，BTC 为 64 位十六进制，Solana 为 base58"""
        if self.transaction_hash and not is_valid_tx_reference(self.transaction_hash, self.payment_network):
            raise ValueError(f"Invalid transaction hash for network {self.payment_network or 'unspecified'}")
        return self


class OrderResponseDTO(DTOBase):
    """订单响应"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    buyer_id: int
    seller_id: int
    product_id: int
    amount_usd: Decimal
    status: OrderStatus
    transaction_hash: Optional[str] = None
    payment_network: Optional[str] = None
    payment_verified: bool = False
    verification_details: Optional[dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class DeliveryContentDTO(DTOBase):
    """交付内容（仅 COMPLETED 订单的买家可见）"""
    order_id: int
    delivery_type: DeliveryType
    delivery_content: Optional[str] = None
