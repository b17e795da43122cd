"""
退款 DTO
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import ConfigDict, Field

from application.dtos.base import DTOBase
from domain.refund.entity import RefundStatus


class CreateRefundDTO(DTOBase):
    order_id: int = Field(..., gt=0)
    reason: str = Field(..., min_length=1, max_length=2000, description="退款原因")


class ProcessRefundDTO(DTOBase):
    approved: bool
    admin_note: Optional[str] = Field(None, max_length=2000)
    refund_transaction_hash: Optional[str] = Field(None, max_length=255)


class CompleteRefundDTO(DTOBase):
    refund_transaction_hash: str = Field(..., min_length=1, max_length=255)


class RefundResponseDTO(DTOBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    requester_id: int
    amount_usd: Decimal
    reason: str
    status: RefundStatus
    admin_note: Optional[str] = None
    processed_by: Optional[int] = None
    refund_transaction_hash: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
